"""Declaration parser using Lark."""

import os
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from lark import Lark
from lark import Token as LarkToken
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput
from lark.visitors import Transformer, v_args

from .errors import ParseError
from .syntax import (
    Attribute,
    EnumDecl,
    Field,
    FnArg,
    FnDecl,
    Group,
    ImplDecl,
    Item,
    ModDecl,
    PathSegment,
    StructDecl,
    Token,
    TokenTree,
    TypeExpr,
    TypeKind,
    Variant,
    VariantShape,
)

_g_parser: Lark | None = None

_ITEM_TYPES = (StructDecl, EnumDecl, ImplDecl, FnDecl, ModDecl)

_TOKEN_KINDS = {
    "IDENT": "ident",
    "NUMBER": "number",
    "STRING": "str",
    "RAW_STRING": "str",
    "CHAR": "char",
    "LIFETIME": "lifetime",
    "DOC_COMMENT": "doc",
}


@dataclass
class _Path:
    value: str
    line: int
    column: int


@dataclass
class _Visibility:
    restriction: tuple[TokenTree, ...]


@dataclass
class _AttrArgs:
    trees: tuple[TokenTree, ...]


@dataclass
class _AttrValue:
    tree: TokenTree


@dataclass
class _Fields:
    fields: list[Field]
    shape: VariantShape


@dataclass
class _Discriminant:
    trees: tuple[TokenTree, ...]


@dataclass
class _Params:
    args: list[FnArg]


@dataclass
class _Return:
    type: TypeExpr


@dataclass
class _GenericArgs:
    args: list[TypeExpr]


@dataclass
class _Bounds:
    bounds: list[TypeExpr]


@dataclass
class _ImplHeader:
    self_type: TypeExpr
    trait: TypeExpr | None


@dataclass
class _Skipped:
    """An item or clause that carries nothing the compilers need."""


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[TFilter]) -> TFilter | None:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    return filtered[0]


def _find_many(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return _filter(args, class_type)


def _terminals(args: list[Any], *types: str) -> list[LarkToken]:
    return [a for a in args if isinstance(a, LarkToken) and a.type in types]


def _to_token(tok: LarkToken) -> Token:
    kind = _TOKEN_KINDS.get(tok.type)
    if kind is None:
        kind = "ident" if str(tok)[:1].isalpha() else "punct"
    return Token(kind=kind, text=str(tok), line=tok.line or 0, column=tok.column or 0)


def _doc_text(raw: str) -> str:
    text = raw[3:]
    return text[1:] if text.startswith(" ") else text


class TreeTransformer(Transformer):
    """Transform the parse tree into syntax nodes."""

    # Token trees

    def token(self, args: list[Any]) -> Token:
        return _to_token(args[0])

    def semi(self, args: list[Any]) -> Token:
        return _to_token(args[0])

    def disc_token(self, args: list[Any]) -> Token:
        return _to_token(args[0])

    @v_args(meta=True)
    def paren_group(self, meta: Any, args: list[Any]) -> Group:
        return Group("(", tuple(args), getattr(meta, "line", 0), getattr(meta, "column", 0))

    @v_args(meta=True)
    def bracket_group(self, meta: Any, args: list[Any]) -> Group:
        return Group("[", tuple(args), getattr(meta, "line", 0), getattr(meta, "column", 0))

    @v_args(meta=True)
    def brace_group(self, meta: Any, args: list[Any]) -> Group:
        return Group("{", tuple(args), getattr(meta, "line", 0), getattr(meta, "column", 0))

    # Attributes

    def path(self, args: list[Any]) -> _Path:
        first = args[0]
        return _Path("::".join(str(a) for a in args), first.line, first.column)

    def attr_args(self, args: list[Any]) -> _AttrArgs:
        return _AttrArgs(tuple(args))

    def attr_value(self, args: list[Any]) -> _AttrValue:
        return _AttrValue(args[0])

    def attribute(self, args: list[Any]) -> Attribute:
        path = args[0]
        attr_args = _find_one(args, _AttrArgs)
        attr_value = _find_one(args, _AttrValue)
        return Attribute(
            path=path.value,
            args=attr_args.trees if attr_args else None,
            value=attr_value.tree if attr_value else None,
            line=path.line,
            column=path.column,
        )

    def doc_comment(self, args: list[Any]) -> Attribute:
        tok = args[0]
        value = Token("doc", _doc_text(str(tok)), tok.line, tok.column)
        return Attribute(path="doc", value=value, line=tok.line, column=tok.column)

    def visibility(self, args: list[Any]) -> _Visibility:
        return _Visibility(tuple(args))

    def inner_attr(self, _args: list[Any]) -> _Skipped:
        return _Skipped()

    # Items

    @v_args(meta=True)
    def item(self, meta: Any, args: list[Any]) -> Any:
        decl = args[-1]
        if not isinstance(decl, _ITEM_TYPES):
            return _Skipped()
        return replace(
            decl,
            attrs=tuple(_find_many(args, Attribute)),
            public=_find_one(args, _Visibility) is not None,
            span=(meta.start_pos, meta.end_pos),
        )

    def struct_decl(self, args: list[Any]) -> StructDecl:
        ident = _terminals(args, "IDENT")[0]
        fields = _find_one(args, _Fields)
        return StructDecl(
            name=str(ident),
            fields=tuple(fields.fields) if fields else (),
            line=ident.line,
            column=ident.column,
        )

    def named_fields(self, args: list[Any]) -> _Fields:
        return _Fields(_find_many(args, Field), VariantShape.STRUCT)

    def tuple_fields(self, args: list[Any]) -> _Fields:
        fields = [replace(f, name=str(i)) for i, f in enumerate(_find_many(args, Field))]
        return _Fields(fields, VariantShape.TUPLE)

    def field(self, args: list[Any]) -> Field:
        ident = _terminals(args, "IDENT")[0]
        return Field(
            name=str(ident),
            type=_find_one(args, TypeExpr),
            attrs=tuple(_find_many(args, Attribute)),
            line=ident.line,
            column=ident.column,
        )

    def tuple_field(self, args: list[Any]) -> Field:
        type_ = _find_one(args, TypeExpr)
        attrs = tuple(_find_many(args, Attribute))
        line = attrs[0].line if attrs else 0
        return Field(name="", type=type_, attrs=attrs, line=line)

    def enum_decl(self, args: list[Any]) -> EnumDecl:
        ident = _terminals(args, "IDENT")[0]
        return EnumDecl(
            name=str(ident),
            variants=tuple(_find_many(args, Variant)),
            line=ident.line,
            column=ident.column,
        )

    def variant(self, args: list[Any]) -> Variant:
        ident = _terminals(args, "IDENT")[0]
        fields = _find_one(args, _Fields)
        discriminant = _find_one(args, _Discriminant)
        return Variant(
            name=str(ident),
            shape=fields.shape if fields else VariantShape.UNIT,
            fields=tuple(fields.fields) if fields else (),
            discriminant=discriminant.trees if discriminant else None,
            attrs=tuple(_find_many(args, Attribute)),
            line=ident.line,
            column=ident.column,
        )

    def discriminant(self, args: list[Any]) -> _Discriminant:
        return _Discriminant(tuple(args))

    def impl_header(self, args: list[Any]) -> _ImplHeader:
        return _ImplHeader(self_type=args[0], trait=None)

    def trait_impl_header(self, args: list[Any]) -> _ImplHeader:
        types = _find_many(args, TypeExpr)
        return _ImplHeader(self_type=types[1], trait=types[0])

    @v_args(meta=True)
    def impl_decl(self, meta: Any, args: list[Any]) -> ImplDecl:
        header = _find_one(args, _ImplHeader)
        return ImplDecl(
            self_type=header.self_type,
            trait=header.trait,
            items=tuple(a for a in args if isinstance(a, _ITEM_TYPES)),
            line=meta.line,
            column=meta.column,
        )

    def fn_decl(self, args: list[Any]) -> FnDecl:
        ident = _terminals(args, "IDENT")[0]
        params = _find_one(args, _Params)
        ret = _find_one(args, _Return)
        return FnDecl(
            name=str(ident),
            args=tuple(params.args) if params else (),
            return_type=ret.type if ret else None,
            line=ident.line,
            column=ident.column,
        )

    def fn_params(self, args: list[Any]) -> _Params:
        return _Params(_find_many(args, FnArg))

    def ref_receiver(self, args: list[Any]) -> FnArg:
        ident = _terminals(args, "IDENT")[-1]
        return FnArg(
            name=str(ident),
            type=None,
            receiver=str(ident) == "self",
            attrs=tuple(_find_many(args, Attribute)),
            line=ident.line,
            column=ident.column,
        )

    def typed_param(self, args: list[Any]) -> FnArg:
        ident = _terminals(args, "IDENT")[0]
        return FnArg(
            name=str(ident),
            type=_find_one(args, TypeExpr),
            receiver=str(ident) == "self",
            attrs=tuple(_find_many(args, Attribute)),
            line=ident.line,
            column=ident.column,
        )

    def bare_receiver(self, args: list[Any]) -> FnArg:
        ident = _terminals(args, "IDENT")[0]
        return FnArg(
            name=str(ident),
            type=None,
            receiver=str(ident) == "self",
            attrs=tuple(_find_many(args, Attribute)),
            line=ident.line,
            column=ident.column,
        )

    def return_type(self, args: list[Any]) -> _Return:
        return _Return(args[0])

    def mod_decl(self, args: list[Any]) -> ModDecl:
        ident = _terminals(args, "IDENT")[0]
        return ModDecl(
            name=str(ident),
            items=tuple(a for a in args if isinstance(a, _ITEM_TYPES)),
            line=ident.line,
            column=ident.column,
        )

    # Types

    def path_type(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.PATH, segments=tuple(_find_many(args, PathSegment)))

    def path_segment(self, args: list[Any]) -> PathSegment:
        generic_args = _find_one(args, _GenericArgs)
        return PathSegment(str(args[0]), tuple(generic_args.args) if generic_args else ())

    def fn_sugar_segment(self, args: list[Any]) -> PathSegment:
        ret = _find_one(args, _Return)
        return PathSegment(
            str(args[0]),
            inputs=tuple(_find_many(args, TypeExpr)),
            output=ret.type if ret else None,
        )

    def generic_args(self, args: list[Any]) -> _GenericArgs:
        return _GenericArgs(_find_many(args, TypeExpr))

    def lifetime_arg(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.LIFETIME, name=str(args[0]))

    def binding_arg(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.BINDING, name=str(args[0]), args=(args[1],))

    def const_arg(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.CONST, name=str(args[0]))

    def const_block_arg(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.CONST, name=Group("{", tuple(args)).render())

    def ref_type(self, args: list[Any]) -> TypeExpr:
        lifetime = _terminals(args, "LIFETIME")
        return TypeExpr(
            TypeKind.REF,
            args=(args[-1],),
            mutable=bool(_terminals(args, "MUT")),
            lifetime=str(lifetime[0]) if lifetime else None,
        )

    def ptr_type(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.PTR, args=(args[-1],), mutable=bool(_terminals(args, "MUT")))

    def tuple_type(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.TUPLE, args=tuple(_find_many(args, TypeExpr)))

    def slice_type(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.SLICE, args=(args[0],))

    def array_type(self, args: list[Any]) -> TypeExpr:
        length = tuple(a for a in args[1:] if isinstance(a, (Token, Group)))
        return TypeExpr(TypeKind.ARRAY, args=(args[0],), name=Group("(", length).render()[1:-1])

    def bounds(self, args: list[Any]) -> _Bounds:
        return _Bounds(_find_many(args, TypeExpr))

    def impl_type(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.IMPL, args=tuple(args[0].bounds))

    def dyn_type(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.DYN, args=tuple(args[0].bounds))

    def never_type(self, _args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.NEVER)

    def maybe_bound(self, args: list[Any]) -> TypeExpr:
        return TypeExpr(TypeKind.MAYBE, args=(args[0],))

    # Clauses whose content is not needed

    def generics(self, _args: list[Any]) -> _Skipped:
        return _Skipped()

    def where_clause(self, _args: list[Any]) -> _Skipped:
        return _Skipped()

    def block(self, _args: list[Any]) -> _Skipped:
        return _Skipped()

    def start(self, args: list[Any]) -> list[Item]:
        return [a for a in args if isinstance(a, _ITEM_TYPES)]


def _get_parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/rustdecl.lark", encoding="utf-8") as f:
            grammar = f.read()

        # Earley tolerates the overlapping token-tree and type rules; the
        # basic lexer keeps keywords from matching inside identifiers.
        _g_parser = Lark(grammar, parser="earley", lexer="basic", propagate_positions=True)
    return _g_parser


def parse(text: str) -> list[Item]:
    """Parse source text into top-level items.

    Items without a shape the compilers handle (``use``, ``const``, traits,
    macro invocations) are dropped. Nested ``mod`` blocks are kept as
    :class:`ModDecl` nodes.
    """
    try:
        tree = _get_parser().parse(text)
    except UnexpectedEOF as e:
        raise ParseError("<eof>", message="unexpected end of input") from e
    except UnexpectedCharacters as e:
        raise ParseError(
            text[e.pos_in_stream] if e.pos_in_stream is not None else "",
            line=e.line,
            column=e.column,
            message=f"unexpected character {text[e.pos_in_stream]!r}",
        ) from e
    except UnexpectedInput as e:
        token = getattr(e, "token", None)
        raise ParseError(
            str(token) if token is not None else "",
            line=e.line,
            column=e.column,
            message=f"unexpected token {str(token)!r}" if token is not None else "invalid syntax",
        ) from e

    return TreeTransformer().transform(tree)


def parse_item(text: str) -> Item:
    """Parse text holding exactly one item."""
    items = parse(text)
    if len(items) != 1:
        raise ParseError("", message=f"expected one item, found {len(items)}")
    return items[0]


def source_of(text: str, item: Item) -> str:
    """Return the original text of an item parsed from ``text``."""
    if item.span is None:
        return ""
    start, end = item.span
    return text[start:end]
