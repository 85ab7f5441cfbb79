"""Helpers shared by the declaration compilers."""

import re
from dataclasses import replace

from .syntax import Attribute, Group, PathSegment, Token, TokenTree, TypeExpr, TypeKind

# Wrappers whose first generic argument is the receiver type
_RECEIVER_WRAPPERS = frozenset(["PyRef", "PyRefMut", "Py", "Bound", "Borrowed"])

_NUMBER_RE = re.compile(
    r"^(0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+|[0-9][0-9_]*(\.[0-9][0-9_]*)?([eE][+-]?[0-9_]+)?)"
    r"(?:[iu](?:8|16|32|64|128|size)|f32|f64)?$"
)


def strip_lifetimes(t: TypeExpr) -> TypeExpr:
    """Drop lifetimes: ``PyRef<'_, Self>`` becomes ``PyRef<Self>``."""
    if t.kind == TypeKind.PATH:
        return replace(t, segments=tuple(_strip_segment(s) for s in t.segments))
    if t.kind == TypeKind.REF:
        return replace(t, lifetime=None, args=tuple(strip_lifetimes(a) for a in t.args))
    if t.kind in (TypeKind.IMPL, TypeKind.DYN):
        return replace(
            t, args=tuple(strip_lifetimes(a) for a in t.args if a.kind != TypeKind.LIFETIME)
        )
    return replace(t, args=tuple(strip_lifetimes(a) for a in t.args))


def _strip_segment(segment: PathSegment) -> PathSegment:
    args = tuple(strip_lifetimes(a) for a in segment.args if a.kind != TypeKind.LIFETIME)
    inputs = None
    if segment.inputs is not None:
        inputs = tuple(strip_lifetimes(a) for a in segment.inputs)
    output = strip_lifetimes(segment.output) if segment.output is not None else None
    return PathSegment(segment.name, args, inputs, output)


def replace_self(t: TypeExpr, name: str) -> TypeExpr:
    """Replace every ``Self`` path with ``name``."""
    if t.kind == TypeKind.PATH:
        if len(t.segments) == 1 and t.segments[0].name == "Self" and not t.segments[0].args:
            return TypeExpr.path(name)
        segments = []
        for s in t.segments:
            inputs = None
            if s.inputs is not None:
                inputs = tuple(replace_self(a, name) for a in s.inputs)
            output = replace_self(s.output, name) if s.output is not None else None
            segments.append(
                PathSegment(s.name, tuple(replace_self(a, name) for a in s.args), inputs, output)
            )
        return replace(t, segments=tuple(segments))
    return replace(t, args=tuple(replace_self(a, name) for a in t.args))


def is_path(t: TypeExpr | None, *names: str) -> bool:
    """Check whether ``t`` is a path whose last segment is one of ``names``."""
    if t is None:
        return False
    last = t.last_segment
    return last is not None and last.name in names


def is_python_token(t: TypeExpr | None) -> bool:
    """``Python<'py>`` is pyo3's GIL token; it never reaches Python callers."""
    return is_path(t, "Python")


def option_inner(t: TypeExpr | None) -> TypeExpr | None:
    if is_path(t, "Option") and t is not None and len(t.segments[-1].args) == 1:
        return t.segments[-1].args[0]
    return None


def unwrap_result(t: TypeExpr | None) -> TypeExpr | None:
    """``PyResult<T>`` and ``Result<T, E>`` both become ``T``."""
    if is_path(t, "PyResult", "Result") and t is not None:
        args = [a for a in t.segments[-1].args if a.kind != TypeKind.LIFETIME]
        if args:
            return args[0]
    return t


def receiver_target(t: TypeExpr | None) -> TypeExpr | None:
    """Return ``X`` for ``PyRef<X>``, ``&Bound<'_, X>`` and friends."""
    if t is None:
        return None
    if t.kind == TypeKind.REF:
        return receiver_target(t.args[0])
    if is_path(t, *_RECEIVER_WRAPPERS):
        args = [a for a in t.segments[-1].args if a.kind != TypeKind.LIFETIME]
        if len(args) == 1:
            return args[0]
    return None


def type_signature(t: TypeExpr | None, self_name: str | None = None) -> str:
    """Render a type as the opaque signature string stored in descriptors.

    A missing type (an unreturned function) renders as ``()``.
    """
    if t is None:
        return "()"
    t = strip_lifetimes(t)
    if self_name:
        t = replace_self(t, self_name)
    return t.render()


# Attributes


def find_attrs(attrs: tuple[Attribute, ...], name: str) -> list[Attribute]:
    return [a for a in attrs if a.name == name]


def unquote(text: str) -> str:
    """Return the content of a string literal token."""
    if text.startswith("b"):
        text = text[1:]
    if text.startswith("r"):
        return text.lstrip("r").strip("#")[1:-1]
    body = text[1:-1]
    return re.sub(r"\\(u\{[0-9a-fA-F]+\}|.)", _unescape, body)


def _unescape(m: re.Match[str]) -> str:
    esc = m.group(1)
    if esc.startswith("u{"):
        return chr(int(esc[2:-1], 16))
    return {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}.get(esc, esc)


def extract_documents(attrs: tuple[Attribute, ...]) -> str:
    """Collect doc comments and ``#[doc = "..."]`` attributes into one string."""
    lines: list[str] = []
    for attr in attrs:
        if attr.name != "doc" or not isinstance(attr.value, Token):
            continue
        if attr.value.kind == "doc":
            lines.append(attr.value.text)
        elif attr.value.kind == "str":
            text = unquote(attr.value.text)
            lines.extend(line[1:] if line.startswith(" ") else line for line in text.split("\n"))
    return "\n".join(lines)


# Naming rules accepted by ``rename_all``

RENAME_RULES = frozenset(
    [
        "camelCase",
        "kebab-case",
        "lowercase",
        "PascalCase",
        "SCREAMING-KEBAB-CASE",
        "SCREAMING_SNAKE_CASE",
        "snake_case",
        "UPPERCASE",
    ]
)


def _words(name: str) -> list[str]:
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return [w.lower() for w in re.split(r"[_\-]+", spaced) if w]


def to_camel_case(name: str) -> str:
    words = _words(name)
    if not words:
        return name
    return words[0] + "".join(w.capitalize() for w in words[1:])


def apply_rename_rule(name: str, rule: str | None) -> str:
    """Rename an identifier by one of the ``rename_all`` rules."""
    if rule is None:
        return name
    words = _words(name)
    match rule:
        case "camelCase":
            return to_camel_case(name)
        case "PascalCase":
            return "".join(w.capitalize() for w in words)
        case "snake_case":
            return "_".join(words)
        case "SCREAMING_SNAKE_CASE":
            return "_".join(words).upper()
        case "kebab-case":
            return "-".join(words)
        case "SCREAMING-KEBAB-CASE":
            return "-".join(words).upper()
        case "lowercase":
            return "".join(words)
        case "UPPERCASE":
            return "".join(words).upper()
    raise ValueError(f"Unknown rename rule: {rule}")


# Default values


def render_default(trees: tuple[TokenTree, ...]) -> str | None:
    """Render a default-value expression as a Python literal.

    Returns ``None`` when the expression has no verbatim Python form.
    """
    if (
        len(trees) == 2
        and isinstance(trees[0], Token)
        and trees[0].text == "Some"
        and isinstance(trees[1], Group)
        and trees[1].delimiter == "("
    ):
        return render_default(trees[1].trees)

    if len(trees) == 2 and isinstance(trees[0], Token) and trees[0].text == "-":
        inner = render_default(trees[1:])
        if inner is not None and isinstance(trees[1], Token) and trees[1].kind == "number":
            return "-" + inner
        return None

    if len(trees) != 1 or not isinstance(trees[0], Token):
        return None

    tok = trees[0]
    if tok.kind == "number":
        m = _NUMBER_RE.match(tok.text)
        return m.group(1) if m else None
    if tok.kind == "ident":
        return {"true": "True", "false": "False", "None": "None"}.get(tok.text)
    if tok.kind in ("str", "char"):
        if "\\u{" in tok.text or tok.text.startswith(("r#", "br#")):
            return None
        return tok.text
    return None
