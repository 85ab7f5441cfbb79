"""Compile ``#[pymethods]`` impl blocks into :class:`MethodsBlockDescriptor` values.

Each function in the block is classified by its markers and receiver:

- ``#[new]``: constructor, exposed as ``__new__``
- ``#[getter]`` / ``#[setter]``: property accessors, merged by name
- ``#[classattr]``: class attribute
- ``#[classmethod]``: class method; its ``cls`` parameter is dropped
- ``#[staticmethod]`` or no receiver: static method
- otherwise: instance method
"""

from dataclasses import dataclass
from typing import Sequence

from .attr import (
    FUNCTION_ATTR_OPTIONS,
    STUB_FN_OPTIONS,
    ExposureOptions,
    Flag,
    attribute_options,
    marker_argument,
)
from .descriptors import (
    CallableDescriptor,
    MemberDescriptor,
    MethodDescriptor,
    MethodKind,
    MethodsBlockDescriptor,
)
from .errors import MethodError, MethodErrorKind, UnsupportedItem
from .signature import analyze_signature, python_visible
from .syntax import FnArg, FnDecl, ImplDecl, TypeKind
from .util import (
    extract_documents,
    find_attrs,
    option_inner,
    receiver_target,
    type_signature,
    unwrap_result,
)

CONSTRUCTOR_NAME = "__new__"

_MARKERS = {
    "new": MethodKind.CONSTRUCTOR,
    "getter": MethodKind.PROPERTY_GETTER,
    "setter": MethodKind.PROPERTY_SETTER,
    "classattr": MethodKind.CLASS_ATTRIBUTE,
    "classmethod": MethodKind.CLASS,
    "staticmethod": MethodKind.STATIC,
}


def _is_receiver(arg: FnArg) -> bool:
    if arg.receiver:
        return True
    target = receiver_target(arg.type)
    return target is not None and target.render() == "Self"


def has_receiver(fn: FnDecl) -> bool:
    return bool(fn.args) and _is_receiver(fn.args[0])


def classify(fn: FnDecl) -> MethodKind:
    """Return the method kind of a function inside a ``#[pymethods]`` block."""
    kinds = [kind for name, kind in _MARKERS.items() if find_attrs(fn.attrs, name)]
    if len(kinds) > 1:
        raise MethodError(
            MethodErrorKind.CONFLICTING_MARKERS, fn.name, line=fn.line, column=fn.column
        )
    if kinds:
        return kinds[0]
    return MethodKind.INSTANCE if has_receiver(fn) else MethodKind.STATIC


_RECEIVER_KINDS = frozenset(
    {MethodKind.INSTANCE, MethodKind.PROPERTY_GETTER, MethodKind.PROPERTY_SETTER}
)


def _callable_args(fn: FnDecl, kind: MethodKind) -> tuple[FnArg, ...]:
    args = fn.args
    if args and kind in _RECEIVER_KINDS and _is_receiver(args[0]):
        args = args[1:]
    elif kind == MethodKind.CLASS and python_visible(args):
        # The first visible parameter of a class method is ``cls``
        first = python_visible(args)[0]
        args = tuple(a for a in args if a is not first)
    return args


def _function_options(fn: FnDecl) -> ExposureOptions:
    return attribute_options(fn.attrs, "pyo3", FUNCTION_ATTR_OPTIONS)


def compile_callable(
    fn: FnDecl,
    self_name: str,
    kind: MethodKind,
    options: ExposureOptions | None = None,
) -> CallableDescriptor:
    """Build the callable descriptor of one method."""
    options = options or _function_options(fn)
    signature = analyze_signature(_callable_args(fn, kind), options, self_name=self_name)
    if kind == MethodKind.CONSTRUCTOR:
        name = CONSTRUCTOR_NAME
        return_type = self_name
    else:
        name = options.name or fn.name
        return_type = type_signature(unwrap_result(fn.return_type), self_name)
    return CallableDescriptor(
        name=name,
        parameters=signature.parameters,
        return_type=return_type,
        doc=extract_documents(fn.attrs),
        shape=signature.shape,
    )


def find_constructor(functions: Sequence[FnDecl], self_name: str) -> CallableDescriptor | None:
    """Compile the ``#[new]`` function among ``functions``, if there is one."""
    constructors = [fn for fn in functions if find_attrs(fn.attrs, "new")]
    if len(constructors) > 1:
        extra = constructors[1]
        raise MethodError(
            MethodErrorKind.DUPLICATE_NAME, CONSTRUCTOR_NAME, line=extra.line, column=extra.column
        )
    if not constructors:
        return None
    return compile_callable(constructors[0], self_name, MethodKind.CONSTRUCTOR)


@dataclass
class _Accessor:
    name: str
    type_signature: str
    doc: str
    fn: FnDecl


def _accessor_name(fn: FnDecl, marker: str, prefix: str, options: ExposureOptions) -> str:
    explicit = marker_argument(find_attrs(fn.attrs, marker)[0])
    if explicit:
        return explicit
    if options.name:
        return options.name
    return fn.name.removeprefix(prefix)


def _getter(fn: FnDecl, self_name: str) -> _Accessor:
    options = _function_options(fn)
    return _Accessor(
        name=_accessor_name(fn, "getter", "get_", options),
        type_signature=type_signature(unwrap_result(fn.return_type), self_name),
        doc=extract_documents(fn.attrs),
        fn=fn,
    )


def _setter(fn: FnDecl, self_name: str) -> _Accessor:
    options = _function_options(fn)
    values = python_visible(_callable_args(fn, MethodKind.PROPERTY_SETTER))
    value_type = values[0].type if values else None
    return _Accessor(
        name=_accessor_name(fn, "setter", "set_", options),
        type_signature=type_signature(value_type, self_name) if value_type else "_",
        doc=extract_documents(fn.attrs),
        fn=fn,
    )


def _setter_matches(getter: _Accessor, setter: _Accessor, self_name: str) -> bool:
    if getter.type_signature == setter.type_signature:
        return True
    # A setter taking Option<T> also supports deletion
    setter_type = _setter_value_type(setter.fn)
    inner = option_inner(setter_type)
    return inner is not None and type_signature(inner, self_name) == getter.type_signature


def _setter_value_type(fn: FnDecl):
    values = python_visible(_callable_args(fn, MethodKind.PROPERTY_SETTER))
    return values[0].type if values else None


class _NameTable:
    """Tracks names already used in a block."""

    def __init__(self) -> None:
        self.names: set[str] = set()

    def claim(self, name: str, fn: FnDecl) -> None:
        if name in self.names:
            raise MethodError(MethodErrorKind.DUPLICATE_NAME, name, line=fn.line, column=fn.column)
        self.names.add(name)


def compile_pymethods(
    item: ImplDecl, options: ExposureOptions | None = None
) -> MethodsBlockDescriptor:
    """Describe every exposed callable of an inherent impl block."""
    if item.trait is not None:
        raise UnsupportedItem(
            item.trait.render(),
            line=item.line,
            column=item.column,
            message="#[pymethods] cannot be used on trait impls",
        )
    self_name = type_signature(item.self_type)
    if item.self_type.kind == TypeKind.PATH and item.self_type.segments:
        self_name = item.self_type.segments[-1].name

    table = _NameTable()
    methods: list[MethodDescriptor] = []
    class_attributes: list[MemberDescriptor] = []
    getters: dict[str, _Accessor] = {}
    setters: dict[str, _Accessor] = {}
    property_order: list[str] = []

    for fn in item.functions:
        if attribute_options(fn.attrs, "gen_stub", STUB_FN_OPTIONS).has(Flag.SKIP):
            continue
        kind = classify(fn)
        match kind:
            case MethodKind.PROPERTY_GETTER:
                getter = _getter(fn, self_name)
                if getter.name in getters:
                    raise MethodError(
                        MethodErrorKind.DUPLICATE_NAME, getter.name, line=fn.line, column=fn.column
                    )
                getters[getter.name] = getter
                if getter.name not in property_order:
                    property_order.append(getter.name)
            case MethodKind.PROPERTY_SETTER:
                setter = _setter(fn, self_name)
                if setter.name in setters:
                    raise MethodError(
                        MethodErrorKind.DUPLICATE_NAME, setter.name, line=fn.line, column=fn.column
                    )
                setters[setter.name] = setter
                if setter.name not in property_order:
                    property_order.append(setter.name)
            case MethodKind.CLASS_ATTRIBUTE:
                fn_options = _function_options(fn)
                name = fn_options.name or fn.name
                table.claim(name, fn)
                class_attributes.append(
                    MemberDescriptor(
                        name=name,
                        type_signature=type_signature(unwrap_result(fn.return_type), self_name),
                        readable=True,
                        writable=False,
                        doc=extract_documents(fn.attrs),
                    )
                )
            case _:
                callable_ = compile_callable(fn, self_name, kind)
                table.claim(callable_.name, fn)
                methods.append(MethodDescriptor(kind=kind, callable=callable_))

    properties: list[MemberDescriptor] = []
    for name in property_order:
        getter = getters.get(name)
        setter = setters.get(name)
        if getter is None and setter is not None:
            raise MethodError(
                MethodErrorKind.SETTER_WITHOUT_GETTER,
                name,
                line=setter.fn.line,
                column=setter.fn.column,
            )
        if setter is not None and not _setter_matches(getter, setter, self_name):
            raise MethodError(
                MethodErrorKind.PROPERTY_TYPE_MISMATCH,
                name,
                line=setter.fn.line,
                column=setter.fn.column,
                message=(
                    f"property `{name}` reads `{getter.type_signature}` "
                    f"but its setter takes `{setter.type_signature}`"
                ),
            )
        table.claim(name, getter.fn)
        properties.append(
            MemberDescriptor(
                name=name,
                type_signature=getter.type_signature,
                readable=True,
                writable=setter is not None,
                doc=getter.doc,
            )
        )

    return MethodsBlockDescriptor(
        target_identity=self_name,
        methods=tuple(methods),
        properties=tuple(properties),
        class_attributes=tuple(class_attributes),
    )
