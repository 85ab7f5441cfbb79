"""Attribute argument parsing.

Turns the token trees of an attribute such as
``#[pyclass(mapping, module = "my_module", name = "Placeholder")]`` into an
:class:`ExposureOptions` record. Each attribute position accepts a closed
vocabulary of keys.
"""

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Iterable

from .errors import DuplicateOption, MalformedOption, UnrecognizedOption
from .syntax import Attribute, Group, Token, TokenTree, render_tokens
from .util import RENAME_RULES, unquote


class Flag(StrEnum):
    MAPPING = auto()
    SEQUENCE = auto()
    FROZEN = auto()
    GET_ALL = auto()
    SET_ALL = auto()
    EQ = auto()
    ORD = auto()
    HASH = auto()
    STR = auto()
    CONSTRUCTOR = auto()
    SUBCLASS = auto()
    WEAKREF = auto()
    DICT = auto()
    UNSENDABLE = auto()
    EQ_INT = auto()
    GET = auto()
    SET = auto()
    PASS_MODULE = auto()
    SKIP = auto()


class OptionKind(StrEnum):
    FLAG = auto()
    STRING = auto()
    PATH = auto()
    SIGNATURE = auto()


class EntryKind(StrEnum):
    POSITIONAL_ONLY_MARKER = auto()  # /
    KEYWORD_ONLY_MARKER = auto()  # *
    VAR_POSITIONAL = auto()  # *args
    VAR_KEYWORD = auto()  # **kwargs
    NAMED = auto()  # name or name = default


@dataclass(frozen=True)
class SignatureEntry:
    """One comma-separated element of ``signature = (...)``."""

    kind: EntryKind
    name: str = ""
    default: tuple[TokenTree, ...] | None = None
    line: int = 0
    column: int = 0

    @property
    def label(self) -> str:
        return self.name or {"positional_only_marker": "/", "keyword_only_marker": "*"}.get(
            self.kind, ""
        )


@dataclass(frozen=True)
class ExposureOptions:
    name: str | None = None
    module: str | None = None
    flags: frozenset[Flag] = frozenset()
    signature: tuple[SignatureEntry, ...] | None = None
    extends: str | None = None
    rename_all: str | None = None
    defaults: tuple[tuple[str, str], ...] = ()

    def has(self, flag: Flag) -> bool:
        return flag in self.flags

    def default_for(self, name: str) -> str | None:
        for key, text in self.defaults:
            if key == name:
                return text
        return None


CLASS_OPTIONS: dict[str, OptionKind] = {
    "name": OptionKind.STRING,
    "module": OptionKind.STRING,
    "extends": OptionKind.PATH,
    "rename_all": OptionKind.STRING,
    **{
        key: OptionKind.FLAG
        for key in (
            "mapping",
            "sequence",
            "frozen",
            "get_all",
            "set_all",
            "eq",
            "ord",
            "hash",
            "str",
            "constructor",
            "subclass",
            "weakref",
            "dict",
            "unsendable",
            "eq_int",
        )
    },
}

FUNCTION_TAG_OPTIONS: dict[str, OptionKind] = {
    "name": OptionKind.STRING,
    "module": OptionKind.STRING,
    "signature": OptionKind.SIGNATURE,
}

FUNCTION_ATTR_OPTIONS: dict[str, OptionKind] = {
    "name": OptionKind.STRING,
    "signature": OptionKind.SIGNATURE,
    "pass_module": OptionKind.FLAG,
}

FIELD_OPTIONS: dict[str, OptionKind] = {
    "get": OptionKind.FLAG,
    "set": OptionKind.FLAG,
    "name": OptionKind.STRING,
}

VARIANT_OPTIONS: dict[str, OptionKind] = {"name": OptionKind.STRING}

METHODS_TAG_OPTIONS: dict[str, OptionKind] = {}

STUB_PARAM_OPTIONS: dict[str, OptionKind] = {"default": OptionKind.STRING}

STUB_FN_OPTIONS: dict[str, OptionKind] = {"skip": OptionKind.FLAG}


def split_commas(trees: tuple[TokenTree, ...]) -> list[list[TokenTree]]:
    """Split token trees at top-level commas, dropping empty trailing pieces."""
    pieces: list[list[TokenTree]] = [[]]
    for tree in trees:
        if isinstance(tree, Token) and tree.text == ",":
            pieces.append([])
        else:
            pieces[-1].append(tree)
    return [p for p in pieces if p]


def _position(tree: TokenTree) -> tuple[int, int]:
    return tree.line, tree.column


def _is_punct(tree: TokenTree, text: str) -> bool:
    return isinstance(tree, Token) and tree.kind == "punct" and tree.text == text


def parse_signature(group: TokenTree, key: str = "signature") -> tuple[SignatureEntry, ...]:
    """Parse the parenthesized parameter list of ``signature = (...)``."""
    if not isinstance(group, Group) or group.delimiter != "(":
        line, column = _position(group)
        raise MalformedOption(key, line=line, column=column)

    entries: list[SignatureEntry] = []
    for piece in split_commas(group.trees):
        line, column = _position(piece[0])
        first = piece[0]
        if len(piece) == 1 and _is_punct(first, "/"):
            entries.append(SignatureEntry(EntryKind.POSITIONAL_ONLY_MARKER, line=line, column=column))
        elif len(piece) == 1 and _is_punct(first, "*"):
            entries.append(SignatureEntry(EntryKind.KEYWORD_ONLY_MARKER, line=line, column=column))
        elif (
            len(piece) == 2
            and _is_punct(first, "*")
            and isinstance(piece[1], Token)
            and piece[1].kind == "ident"
        ):
            entries.append(
                SignatureEntry(EntryKind.VAR_POSITIONAL, piece[1].text, line=line, column=column)
            )
        elif (
            len(piece) == 3
            and _is_punct(first, "*")
            and _is_punct(piece[1], "*")
            and isinstance(piece[2], Token)
            and piece[2].kind == "ident"
        ):
            entries.append(
                SignatureEntry(EntryKind.VAR_KEYWORD, piece[2].text, line=line, column=column)
            )
        elif isinstance(first, Token) and first.kind == "ident" and len(piece) == 1:
            entries.append(SignatureEntry(EntryKind.NAMED, first.text, line=line, column=column))
        elif (
            isinstance(first, Token)
            and first.kind == "ident"
            and len(piece) > 2
            and _is_punct(piece[1], "=")
        ):
            entries.append(
                SignatureEntry(
                    EntryKind.NAMED, first.text, tuple(piece[2:]), line=line, column=column
                )
            )
        else:
            raise MalformedOption(
                key,
                line=line,
                column=column,
                message=f"malformed signature entry `{render_tokens(piece)}`",
            )
    return tuple(entries)


class _OptionsBuilder:
    """Accumulates options from one or more attributes of a single item."""

    def __init__(self, vocabulary: dict[str, OptionKind]):
        self.vocabulary = vocabulary
        self.seen: set[str] = set()
        self.values: dict[str, object] = {}
        self.flags: set[Flag] = set()

    def add(self, trees: tuple[TokenTree, ...]) -> None:
        for piece in split_commas(trees):
            self._add_piece(piece)

    def _add_piece(self, piece: list[TokenTree]) -> None:
        key_tok = piece[0]
        line, column = _position(key_tok)
        if not isinstance(key_tok, Token) or key_tok.kind != "ident":
            raise MalformedOption(
                render_tokens(piece),
                line=line,
                column=column,
                message=f"expected an option name, found `{render_tokens(piece)}`",
            )
        key = key_tok.text
        kind = self.vocabulary.get(key)
        if kind is None:
            raise UnrecognizedOption(key, line=line, column=column)
        if key in self.seen:
            raise DuplicateOption(key, line=line, column=column)
        self.seen.add(key)

        rest = piece[1:]
        if kind == OptionKind.FLAG:
            if rest:
                raise MalformedOption(
                    key, line=line, column=column, message=f"`{key}` takes no value"
                )
            self.flags.add(Flag(key))
            return

        if len(rest) < 2 or not _is_punct(rest[0], "="):
            raise MalformedOption(key, line=line, column=column, message=f"`{key}` needs a value")
        value = rest[1:]

        if kind == OptionKind.SIGNATURE:
            if len(value) != 1:
                raise MalformedOption(key, line=line, column=column)
            self.values[key] = parse_signature(value[0], key)
        elif kind == OptionKind.PATH:
            if len(value) == 1 and isinstance(value[0], Token) and value[0].kind == "str":
                self.values[key] = unquote(value[0].text)
            else:
                self.values[key] = render_tokens(value)
        else:
            if len(value) != 1 or not isinstance(value[0], Token) or value[0].kind != "str":
                raise MalformedOption(
                    key, line=line, column=column, message=f"`{key}` expects a string literal"
                )
            self.values[key] = unquote(value[0].text)

    def build(self) -> ExposureOptions:
        rename_all = self.values.get("rename_all")
        if rename_all is not None and rename_all not in RENAME_RULES:
            raise MalformedOption(
                "rename_all", message=f"unknown rename rule `{rename_all}`"
            )
        return ExposureOptions(
            name=self.values.get("name"),  # type: ignore[arg-type]
            module=self.values.get("module"),  # type: ignore[arg-type]
            flags=frozenset(self.flags),
            signature=self.values.get("signature"),  # type: ignore[arg-type]
            extends=self.values.get("extends"),  # type: ignore[arg-type]
            rename_all=rename_all,  # type: ignore[arg-type]
        )


def parse_options(
    *token_lists: tuple[TokenTree, ...] | None,
    vocabulary: dict[str, OptionKind] = CLASS_OPTIONS,
) -> ExposureOptions:
    """Parse one or more attribute argument lists into a single options record.

    Keys repeated within a list or across lists are rejected.
    """
    builder = _OptionsBuilder(vocabulary)
    for trees in token_lists:
        if trees:
            builder.add(trees)
    return builder.build()


def attribute_options(
    attrs: Iterable[Attribute],
    name: str,
    vocabulary: dict[str, OptionKind],
    *extra: tuple[TokenTree, ...] | None,
) -> ExposureOptions:
    """Merge every ``#[name(...)]`` attribute of an item with ``extra`` argument lists."""
    lists = [a.args for a in attrs if a.name == name]
    return parse_options(*extra, *lists, vocabulary=vocabulary)


def marker_argument(attr: Attribute) -> str | None:
    """Return ``x`` for markers written as ``#[getter(x)]``."""
    if not attr.args:
        return None
    pieces = split_commas(attr.args)
    first = pieces[0][0] if pieces else None
    if len(pieces) != 1 or len(pieces[0]) != 1 or not isinstance(first, Token):
        raise MalformedOption(
            attr.name,
            line=attr.line,
            column=attr.column,
            message=f"`{attr.name}` takes a single name",
        )
    if first.kind == "str":
        return unquote(first.text)
    return first.text


def parameter_defaults(
    attrs_by_param: Iterable[tuple[str, tuple[Attribute, ...]]],
) -> tuple[tuple[str, str], ...]:
    """Collect ``#[gen_stub(default = "...")]`` texts keyed by parameter name."""
    defaults: list[tuple[str, str]] = []
    for param, attrs in attrs_by_param:
        options = _OptionsBuilder(STUB_PARAM_OPTIONS)
        for attr in attrs:
            if attr.name == "gen_stub" and attr.args:
                options.add(attr.args)
        text = options.values.get("default")
        if text is not None:
            defaults.append((param, str(text)))
    return tuple(defaults)
