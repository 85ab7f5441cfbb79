"""Syntax nodes produced by the declaration parser.

Nodes are immutable. Attribute arguments and function bodies are kept as
token trees (:class:`Token` / :class:`Group`) so each attribute can be
interpreted by its own parser later.
"""

from dataclasses import dataclass, field
from enum import StrEnum, auto


@dataclass(frozen=True)
class Token:
    """A single lexical token.

    ``kind`` is one of ``ident``, ``number``, ``str``, ``char``,
    ``lifetime``, ``doc`` or ``punct``.
    """

    kind: str
    text: str
    line: int = 0
    column: int = 0

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class Group:
    """A delimited token tree: ``( ... )``, ``[ ... ]`` or ``{ ... }``."""

    delimiter: str
    trees: tuple["TokenTree", ...]
    line: int = 0
    column: int = 0

    @property
    def closing(self) -> str:
        return {"(": ")", "[": "]", "{": "}"}[self.delimiter]

    def render(self) -> str:
        return f"{self.delimiter}{render_tokens(self.trees)}{self.closing}"


TokenTree = Token | Group

_WORD_KINDS = frozenset(["ident", "number", "str", "char", "lifetime"])


def render_tokens(trees: tuple[TokenTree, ...] | list[TokenTree]) -> str:
    """Join token trees back into compact source text."""
    out: list[str] = []
    prev_word = False
    for tree in trees:
        is_word = isinstance(tree, Token) and tree.kind in _WORD_KINDS
        if prev_word and is_word:
            out.append(" ")
        out.append(tree.render())
        if isinstance(tree, Token) and tree.text == ",":
            out.append(" ")
        prev_word = is_word
    return "".join(out).strip()


@dataclass(frozen=True)
class Attribute:
    """An outer attribute ``#[path(args)]`` / ``#[path = value]`` or a doc comment.

    Doc comments are stored as ``doc`` attributes whose value is a token of
    kind ``doc``.
    """

    path: str
    args: tuple[TokenTree, ...] | None = None
    value: TokenTree | None = None
    line: int = 0
    column: int = 0

    @property
    def name(self) -> str:
        """Last path segment, so ``pyo3::pyclass`` and ``pyclass`` match."""
        return self.path.rsplit("::", 1)[-1]


class TypeKind(StrEnum):
    PATH = auto()
    REF = auto()
    PTR = auto()
    TUPLE = auto()
    SLICE = auto()
    ARRAY = auto()
    IMPL = auto()
    DYN = auto()
    NEVER = auto()
    LIFETIME = auto()
    BINDING = auto()
    CONST = auto()
    MAYBE = auto()


@dataclass(frozen=True)
class PathSegment:
    name: str
    args: tuple["TypeExpr", ...] = ()
    # Set only for Fn(A, B) -> C sugar
    inputs: tuple["TypeExpr", ...] | None = None
    output: "TypeExpr | None" = None

    def render(self) -> str:
        if self.inputs is not None:
            text = f"{self.name}({', '.join(t.render() for t in self.inputs)})"
            if self.output is not None:
                text += f" -> {self.output.render()}"
            return text
        if self.args:
            return f"{self.name}<{', '.join(a.render() for a in self.args)}>"
        return self.name


@dataclass(frozen=True)
class TypeExpr:
    """A parsed type, kept as a tree so it can be rewritten before rendering."""

    kind: TypeKind
    segments: tuple[PathSegment, ...] = ()
    args: tuple["TypeExpr", ...] = ()
    name: str = ""
    mutable: bool = False
    lifetime: str | None = None

    @classmethod
    def path(cls, *names: str, args: tuple["TypeExpr", ...] = ()) -> "TypeExpr":
        segments = [PathSegment(n) for n in names]
        segments[-1] = PathSegment(names[-1], args)
        return cls(TypeKind.PATH, segments=tuple(segments))

    @property
    def last_segment(self) -> PathSegment | None:
        if self.kind != TypeKind.PATH or not self.segments:
            return None
        return self.segments[-1]

    def render(self) -> str:
        match self.kind:
            case TypeKind.PATH:
                return "::".join(s.render() for s in self.segments)
            case TypeKind.REF:
                prefix = "&"
                if self.lifetime:
                    prefix += f"{self.lifetime} "
                if self.mutable:
                    prefix += "mut "
                return prefix + self.args[0].render()
            case TypeKind.PTR:
                return ("*mut " if self.mutable else "*const ") + self.args[0].render()
            case TypeKind.TUPLE:
                inner = ", ".join(a.render() for a in self.args)
                if len(self.args) == 1:
                    inner += ","
                return f"({inner})"
            case TypeKind.SLICE:
                return f"[{self.args[0].render()}]"
            case TypeKind.ARRAY:
                return f"[{self.args[0].render()}; {self.name}]"
            case TypeKind.IMPL | TypeKind.DYN:
                return f"{self.kind.value} " + " + ".join(a.render() for a in self.args)
            case TypeKind.NEVER:
                return "!"
            case TypeKind.BINDING:
                return f"{self.name} = {self.args[0].render()}"
            case TypeKind.MAYBE:
                return "?" + self.args[0].render()
            case _:
                return self.name


@dataclass(frozen=True)
class Field:
    """A struct or variant field. Tuple fields are named by position."""

    name: str
    type: TypeExpr | None
    attrs: tuple[Attribute, ...] = ()
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class StructDecl:
    name: str
    fields: tuple[Field, ...] = ()
    attrs: tuple[Attribute, ...] = ()
    public: bool = False
    span: tuple[int, int] | None = None
    line: int = 0
    column: int = 0


class VariantShape(StrEnum):
    UNIT = auto()
    TUPLE = auto()
    STRUCT = auto()


@dataclass(frozen=True)
class Variant:
    name: str
    shape: VariantShape = VariantShape.UNIT
    fields: tuple[Field, ...] = ()
    discriminant: tuple[TokenTree, ...] | None = None
    attrs: tuple[Attribute, ...] = ()
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class EnumDecl:
    name: str
    variants: tuple[Variant, ...] = ()
    attrs: tuple[Attribute, ...] = ()
    public: bool = False
    span: tuple[int, int] | None = None
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class FnArg:
    """A function parameter.

    ``receiver`` is set for ``self``, ``&self``, ``&mut self`` and
    ``self: T``. Untyped receivers have ``type`` set to ``None``.
    """

    name: str
    type: TypeExpr | None
    receiver: bool = False
    attrs: tuple[Attribute, ...] = ()
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class FnDecl:
    name: str
    args: tuple[FnArg, ...] = ()
    return_type: TypeExpr | None = None
    attrs: tuple[Attribute, ...] = ()
    public: bool = False
    span: tuple[int, int] | None = None
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class ImplDecl:
    self_type: TypeExpr
    trait: TypeExpr | None = None
    items: tuple["Item", ...] = ()
    attrs: tuple[Attribute, ...] = ()
    public: bool = False
    span: tuple[int, int] | None = None
    line: int = 0
    column: int = 0

    @property
    def name(self) -> str:
        return self.self_type.render()

    @property
    def functions(self) -> tuple[FnDecl, ...]:
        return tuple(item for item in self.items if isinstance(item, FnDecl))


@dataclass(frozen=True)
class ModDecl:
    name: str
    items: tuple["Item", ...] = field(default_factory=tuple)
    attrs: tuple[Attribute, ...] = ()
    public: bool = False
    span: tuple[int, int] | None = None
    line: int = 0
    column: int = 0


Item = StructDecl | EnumDecl | ImplDecl | FnDecl | ModDecl
