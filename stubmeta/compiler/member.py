"""Member extraction for exposed structs."""

from typing import Sequence

from .attr import FIELD_OPTIONS, ExposureOptions, Flag, attribute_options
from .descriptors import MemberDescriptor
from .errors import MemberError, MemberErrorKind
from .syntax import Field
from .util import apply_rename_rule, extract_documents, type_signature

# Signature recorded for a readable field declared without a type
UNTYPED = "_"


def extract_member(
    field: Field, class_options: ExposureOptions, self_name: str
) -> MemberDescriptor | None:
    """Describe one field, or return ``None`` when it carries no visibility marker."""
    options = attribute_options(field.attrs, "pyo3", FIELD_OPTIONS)
    readable = options.has(Flag.GET) or class_options.has(Flag.GET_ALL)
    writable = options.has(Flag.SET) or class_options.has(Flag.SET_ALL)
    if not readable and not writable:
        return None

    if writable and class_options.has(Flag.FROZEN):
        raise MemberError(
            MemberErrorKind.FROZEN_SETTER, field.name, line=field.line, column=field.column
        )

    if field.type is None:
        if not readable:
            raise MemberError(
                MemberErrorKind.MISSING_TYPE, field.name, line=field.line, column=field.column
            )
        signature = UNTYPED
    else:
        signature = type_signature(field.type, self_name)

    name = options.name or apply_rename_rule(field.name, class_options.rename_all)
    return MemberDescriptor(
        name=name,
        type_signature=signature,
        readable=readable,
        writable=writable,
        doc=extract_documents(field.attrs),
    )


def extract_members(
    fields: Sequence[Field], class_options: ExposureOptions, self_name: str
) -> tuple[MemberDescriptor, ...]:
    """Describe every visible field, keeping declaration order.

    Fields without ``#[pyo3(get)]``/``#[pyo3(set)]`` (or the class-wide
    ``get_all``/``set_all``) are skipped.
    """
    members: list[MemberDescriptor] = []
    names: set[str] = set()
    for field in fields:
        member = extract_member(field, class_options, self_name)
        if member is None:
            continue
        if member.name in names:
            raise MemberError(
                MemberErrorKind.DUPLICATE_NAME, member.name, line=field.line, column=field.column
            )
        names.add(member.name)
        members.append(member)
    return tuple(members)
