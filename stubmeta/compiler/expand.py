"""Routing of tagged declarations to their compilers."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterator, Sequence

from .attr import (
    CLASS_OPTIONS,
    FUNCTION_TAG_OPTIONS,
    METHODS_TAG_OPTIONS,
    attribute_options,
    parse_options,
)
from .descriptors import Descriptor
from .errors import UnsupportedItem
from .parser import parse, source_of
from .pyclass import compile_pyclass
from .pyclass_enum import compile_pyclass_enum
from .pyfunction import compile_pyfunction
from .pymethods import compile_pymethods
from .syntax import Attribute, EnumDecl, FnDecl, ImplDecl, Item, ModDecl, StructDecl

logger = logging.getLogger(__name__)

TAGS = ("pyclass", "pymethods", "pyfunction")


@dataclass(frozen=True)
class Expansion:
    """A compiled item paired with its descriptor."""

    item: Item
    descriptor: Descriptor
    source: str = ""


def _unsupported(tag: str, item: Item) -> UnsupportedItem:
    kind = type(item).__name__.removesuffix("Decl").lower()
    return UnsupportedItem(
        getattr(item, "name", ""),
        line=item.line,
        column=item.column,
        message=f"#[{tag}] cannot be applied to {kind} `{getattr(item, 'name', '')}`",
    )


def pyclass(attr: Attribute, item: Item, associated: Sequence[FnDecl] = ()) -> Expansion:
    """Compile a ``#[pyclass]`` struct or enum.

    Class options may be split between the tag and ``#[pyo3(...)]``
    attributes on the item.
    """
    options = attribute_options(item.attrs, "pyo3", CLASS_OPTIONS, attr.args)
    if isinstance(item, StructDecl):
        return Expansion(item, compile_pyclass(item, options, associated))
    if isinstance(item, EnumDecl):
        return Expansion(item, compile_pyclass_enum(item, options))
    raise _unsupported("pyclass", item)


def pymethods(attr: Attribute, item: Item) -> Expansion:
    options = parse_options(attr.args, vocabulary=METHODS_TAG_OPTIONS)
    if not isinstance(item, ImplDecl):
        raise _unsupported("pymethods", item)
    return Expansion(item, compile_pymethods(item, options))


def pyfunction(attr: Attribute, item: Item) -> Expansion:
    options = parse_options(attr.args, vocabulary=FUNCTION_TAG_OPTIONS)
    if not isinstance(item, FnDecl):
        raise _unsupported("pyfunction", item)
    return Expansion(item, compile_pyfunction(item, options))


def find_tag(item: Item) -> Attribute | None:
    """Return the exposure tag of an item, if it has one."""
    tags = [a for a in item.attrs if a.name in TAGS]
    if len(tags) > 1:
        raise UnsupportedItem(
            tags[1].name,
            line=tags[1].line,
            column=tags[1].column,
            message=f"#[{tags[1].name}] conflicts with #[{tags[0].name}]",
        )
    return tags[0] if tags else None


def compile_item(item: Item, associated: Sequence[FnDecl] = ()) -> Expansion | None:
    """Compile one item, or return ``None`` when it carries no exposure tag."""
    tag = find_tag(item)
    if tag is None:
        return None
    logger.debug("Compiling #[%s] on line %d", tag.name, item.line)
    match tag.name:
        case "pyclass":
            return pyclass(tag, item, associated)
        case "pymethods":
            return pymethods(tag, item)
        case _:
            return pyfunction(tag, item)


def walk(items: Sequence[Item]) -> Iterator[Item]:
    """Yield items depth-first, descending into inline modules."""
    for item in items:
        if isinstance(item, ModDecl):
            yield from walk(item.items)
        else:
            yield item


def _associated_functions(items: Sequence[Item]) -> dict[str, list[FnDecl]]:
    functions: dict[str, list[FnDecl]] = defaultdict(list)
    for item in items:
        if isinstance(item, ImplDecl) and any(a.name == "pymethods" for a in item.attrs):
            segments = item.self_type.segments
            name = segments[-1].name if segments else item.name
            functions[name].extend(item.functions)
    return functions


def compile_source(text: str) -> list[Expansion]:
    """Parse ``text`` and compile every tagged item in source order.

    The first error aborts compilation; no partial results are returned.
    """
    items = list(walk(parse(text)))
    associated = _associated_functions(items)

    expansions = []
    for item in items:
        name = item.name if isinstance(item, StructDecl) else ""
        expansion = compile_item(item, associated.get(name, ()))
        if expansion is None:
            continue
        expansions.append(
            Expansion(expansion.item, expansion.descriptor, source=source_of(text, item))
        )
    logger.debug("Compiled %d tagged items", len(expansions))
    return expansions
