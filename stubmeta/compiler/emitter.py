"""Registration fragment emitter.

Renders a descriptor as an ``inventory::submit!`` block that registers it
with the stub runtime, so the aggregator can collect every descriptor of a
crate at link time.
"""

from jinja2 import Environment, PackageLoader

from .descriptors import (
    ClassDescriptor,
    Descriptor,
    EnumDescriptor,
    FunctionDescriptor,
    MethodsBlockDescriptor,
)
from .member import UNTYPED
from .util import apply_rename_rule

DEFAULT_RUNTIME_PATH = "::stubmeta"

env = Environment(
    loader=PackageLoader("stubmeta.compiler", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("submit.rs.j2")

_KINDS: dict[type, str] = {
    ClassDescriptor: "class",
    EnumDescriptor: "enum",
    MethodsBlockDescriptor: "methods",
    FunctionDescriptor: "function",
}

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def rust_str(text: str) -> str:
    """Quote ``text`` as a Rust string literal."""
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def rust_option(text: str | None) -> str:
    if text is None:
        return "None"
    return f"Some({rust_str(text)})"


def _variant_path(runtime_path: str, enum_name: str, value: str) -> str:
    return f"{runtime_path}::{enum_name}::{apply_rename_rule(value, 'PascalCase')}"


def _type_output(runtime_path: str, signature: str) -> str:
    if signature == UNTYPED:
        return f"{runtime_path}::TypeInfo::any"
    if signature == "()":
        return f"{runtime_path}::TypeInfo::none"
    return f"<{signature} as {runtime_path}::PyStubType>::type_output"


def emit(descriptor: Descriptor, runtime_path: str = DEFAULT_RUNTIME_PATH) -> str:
    """Render the registration fragment of one descriptor."""
    kind = _KINDS.get(type(descriptor))
    if kind is None:
        raise TypeError(f"Not a descriptor: {descriptor!r}")
    return template.render(
        kind=kind,
        d=descriptor,
        runtime=runtime_path,
        rust_str=rust_str,
        rust_option=rust_option,
        type_output=lambda sig: _type_output(runtime_path, sig),
        variant=lambda enum_name, value: _variant_path(runtime_path, enum_name, value),
    )


def expand(item_text: str, descriptor: Descriptor, runtime_path: str = DEFAULT_RUNTIME_PATH) -> str:
    """Return the original item text followed by its registration fragment."""
    return item_text.rstrip("\n") + "\n\n" + emit(descriptor, runtime_path)
