"""Compile ``#[pyclass]`` structs into :class:`ClassDescriptor` values."""

from typing import Sequence

from .attr import ExposureOptions, Flag
from .descriptors import ClassDescriptor
from .member import extract_members
from .pymethods import find_constructor
from .syntax import FnDecl, StructDecl
from .util import extract_documents

# Flags that describe the Python-side class rather than field visibility
_CLASS_FLAGS = frozenset(Flag) - {
    Flag.GET_ALL,
    Flag.SET_ALL,
    Flag.GET,
    Flag.SET,
    Flag.PASS_MODULE,
    Flag.SKIP,
}


def compile_pyclass(
    item: StructDecl,
    options: ExposureOptions,
    associated: Sequence[FnDecl] = (),
) -> ClassDescriptor:
    """Describe an exposed struct.

    ``associated`` holds the functions of the type's ``#[pymethods]``
    blocks; a ``#[new]`` function among them becomes the constructor.
    Without one the class has no constructor.
    """
    return ClassDescriptor(
        exposed_name=options.name or item.name,
        module=options.module,
        members=extract_members(item.fields, options, item.name),
        constructor=find_constructor(associated, item.name),
        doc=extract_documents(item.attrs),
        source_identity=item.name,
        base=options.extends,
        flags=tuple(sorted(str(f) for f in options.flags & _CLASS_FLAGS)),
    )
