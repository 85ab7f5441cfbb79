"""Signature analysis for exposed callables.

Classifies every Python-visible parameter of a function by passing kind and
default presence. Without a ``signature = (...)`` override each parameter
is positional-or-keyword in declaration order; an override can add ``/``,
``*``, ``*args``, ``**kwargs`` markers and defaults.
"""

import dataclasses
from dataclasses import dataclass
from typing import Sequence

from .attr import EntryKind, ExposureOptions, SignatureEntry, parameter_defaults
from .descriptors import CallShape, ParameterDescriptor, PassingKind
from .errors import SignatureError, SignatureErrorKind
from .syntax import FnArg
from .util import is_python_token, option_inner, render_default, type_signature

PLACEHOLDER = "..."


@dataclass(frozen=True)
class Signature:
    parameters: tuple[ParameterDescriptor, ...]
    shape: CallShape


def _error(kind: SignatureErrorKind, name: str, line: int = 0, column: int = 0) -> SignatureError:
    return SignatureError(kind, name, line=line, column=column)


def python_visible(args: Sequence[FnArg]) -> list[FnArg]:
    """Drop receivers and GIL tokens, which callers never pass."""
    return [a for a in args if not a.receiver and not is_python_token(a.type)]


def _check_duplicates(args: Sequence[FnArg]) -> None:
    seen: set[str] = set()
    for arg in args:
        if arg.name in seen:
            raise _error(SignatureErrorKind.DUPLICATE_NAME, arg.name, arg.line, arg.column)
        seen.add(arg.name)


def _implicit_parameters(
    args: Sequence[FnArg], options: ExposureOptions, self_name: str | None
) -> list[ParameterDescriptor]:
    # A trailing run of Option<T> parameters defaults to None
    trailing_optional = len(args)
    while trailing_optional > 0 and option_inner(args[trailing_optional - 1].type) is not None:
        trailing_optional -= 1

    params = []
    for index, arg in enumerate(args):
        default = options.default_for(arg.name)
        if default is None and index >= trailing_optional:
            default = "None"
        params.append(
            ParameterDescriptor(
                name=arg.name,
                type_signature=type_signature(arg.type, self_name),
                passing_kind=PassingKind.POSITIONAL_OR_KEYWORD,
                has_default=default is not None,
                default_repr=default,
            )
        )
    return params


def _explicit_parameters(
    args: Sequence[FnArg],
    entries: tuple[SignatureEntry, ...],
    options: ExposureOptions,
    self_name: str | None,
) -> list[ParameterDescriptor]:
    declared = {arg.name: (index, arg) for index, arg in enumerate(args)}
    params: list[ParameterDescriptor] = []
    seen: set[str] = set()
    after_star = False
    bare_star: SignatureEntry | None = None
    seen_slash = False
    seen_varkw = False
    last_index = -1

    for entry in entries:
        if entry.name:
            if entry.name in seen:
                raise _error(
                    SignatureErrorKind.DUPLICATE_NAME, entry.name, entry.line, entry.column
                )
            seen.add(entry.name)
            if entry.name not in declared:
                raise _error(
                    SignatureErrorKind.UNKNOWN_PARAMETER, entry.name, entry.line, entry.column
                )
            index, arg = declared[entry.name]
            if index < last_index:
                raise _error(
                    SignatureErrorKind.ORDERING_VIOLATION, entry.name, entry.line, entry.column
                )
            last_index = index
        if seen_varkw:
            raise _error(
                SignatureErrorKind.ORDERING_VIOLATION, entry.label, entry.line, entry.column
            )

        match entry.kind:
            case EntryKind.POSITIONAL_ONLY_MARKER:
                if after_star:
                    culprit = params[-1].name if params else "/"
                    raise _error(
                        SignatureErrorKind.POSITIONAL_ONLY_CONFLICT, culprit, entry.line, entry.column
                    )
                if seen_slash or not params:
                    raise _error(
                        SignatureErrorKind.ORDERING_VIOLATION, "/", entry.line, entry.column
                    )
                seen_slash = True
                params = [
                    _with_kind(p, PassingKind.POSITIONAL_ONLY) for p in params
                ]
            case EntryKind.KEYWORD_ONLY_MARKER | EntryKind.VAR_POSITIONAL:
                if after_star:
                    raise _error(
                        SignatureErrorKind.ORDERING_VIOLATION, entry.label, entry.line, entry.column
                    )
                after_star = True
                if entry.kind == EntryKind.KEYWORD_ONLY_MARKER:
                    bare_star = entry
                else:
                    params.append(
                        ParameterDescriptor(
                            name=entry.name,
                            type_signature=type_signature(arg.type, self_name),
                            passing_kind=PassingKind.VAR_POSITIONAL,
                        )
                    )
            case EntryKind.VAR_KEYWORD:
                _check_bare_star(bare_star, params)
                seen_varkw = True
                params.append(
                    ParameterDescriptor(
                        name=entry.name,
                        type_signature=type_signature(arg.type, self_name),
                        passing_kind=PassingKind.VAR_KEYWORD,
                    )
                )
            case EntryKind.NAMED:
                default = None
                if entry.default is not None:
                    default = (
                        options.default_for(entry.name)
                        or render_default(entry.default)
                        or PLACEHOLDER
                    )
                elif options.default_for(entry.name) is not None:
                    default = options.default_for(entry.name)
                params.append(
                    ParameterDescriptor(
                        name=entry.name,
                        type_signature=type_signature(arg.type, self_name),
                        passing_kind=(
                            PassingKind.KEYWORD_ONLY if after_star else PassingKind.POSITIONAL_OR_KEYWORD
                        ),
                        has_default=default is not None,
                        default_repr=default,
                    )
                )

    if not seen_varkw:
        _check_bare_star(bare_star, params)

    for arg in args:
        if arg.name not in seen:
            raise _error(SignatureErrorKind.MISSING_PARAMETER, arg.name, arg.line, arg.column)
    return params


def _check_bare_star(bare_star: SignatureEntry | None, params: list[ParameterDescriptor]) -> None:
    """A bare ``*`` must be followed by at least one keyword-only parameter."""
    if bare_star is None:
        return
    if not any(p.passing_kind == PassingKind.KEYWORD_ONLY for p in params):
        raise _error(
            SignatureErrorKind.ORDERING_VIOLATION, "*", bare_star.line, bare_star.column
        )


def _with_kind(param: ParameterDescriptor, kind: PassingKind) -> ParameterDescriptor:
    return ParameterDescriptor(
        name=param.name,
        type_signature=param.type_signature,
        passing_kind=kind,
        has_default=param.has_default,
        default_repr=param.default_repr,
    )


def check_default_order(params: Sequence[ParameterDescriptor], args: Sequence[FnArg] = ()) -> None:
    """Reject a required parameter after a defaulted one of the same kind group."""
    positions = {a.name: (a.line, a.column) for a in args}
    defaulted: set[str] = set()
    for param in params:
        group = param.passing_kind.group
        if group is None:
            continue
        if param.has_default:
            defaulted.add(group)
        elif group in defaulted:
            line, column = positions.get(param.name, (0, 0))
            raise _error(SignatureErrorKind.DEFAULT_ORDERING_VIOLATION, param.name, line, column)


def call_shape(params: Sequence[ParameterDescriptor]) -> CallShape:
    if not params:
        return CallShape.NOARGS
    kinds = {p.passing_kind for p in params}
    if kinds & {PassingKind.VAR_POSITIONAL, PassingKind.VAR_KEYWORD}:
        return CallShape.VARIADIC
    if kinds == {PassingKind.POSITIONAL_ONLY}:
        return CallShape.POSITIONAL
    if len(params) == 1 and not params[0].has_default:
        return CallShape.SINGLE
    return CallShape.KEYWORDS


def _with_parameter_defaults(options: ExposureOptions, args: Sequence[FnArg]) -> ExposureOptions:
    """Add ``#[gen_stub(default = "...")]`` texts found on ``args`` to ``options``."""
    known = {name for name, _ in options.defaults}
    found = [
        (name, text)
        for name, text in parameter_defaults((a.name, a.attrs) for a in args)
        if name not in known
    ]
    if not found:
        return options
    return dataclasses.replace(options, defaults=options.defaults + tuple(found))


def analyze_signature(
    args: Sequence[FnArg],
    options: ExposureOptions | None = None,
    *,
    self_name: str | None = None,
) -> Signature:
    """Analyze the declared parameters of a callable.

    ``self_name`` replaces ``Self`` in parameter types.
    """
    options = options or ExposureOptions()
    visible = python_visible(args)
    options = _with_parameter_defaults(options, visible)
    _check_duplicates(visible)

    if options.signature is None:
        params = _implicit_parameters(visible, options, self_name)
    else:
        params = _explicit_parameters(visible, options.signature, options, self_name)

    check_default_order(params, visible)
    return Signature(tuple(params), call_shape(params))
