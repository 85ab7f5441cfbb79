"""Compile ``#[pyfunction]`` items into :class:`FunctionDescriptor` values.

Compilation runs in two phases. :func:`build_function` describes the
function from its declaration and its own ``#[pyo3(...)]`` attributes;
:func:`apply_overrides` then applies the tag's ``name`` and ``module``
options to a copy. The overrides never touch parameters.
"""

import dataclasses

from .attr import (
    FUNCTION_ATTR_OPTIONS,
    ExposureOptions,
    Flag,
    SignatureEntry,
    attribute_options,
)
from .descriptors import CallableDescriptor, FunctionDescriptor
from .errors import DuplicateOption
from .signature import analyze_signature, python_visible
from .syntax import FnDecl
from .util import extract_documents, type_signature, unwrap_result


def build_function(
    item: FnDecl, signature: tuple[SignatureEntry, ...] | None = None
) -> FunctionDescriptor:
    """Describe a function from its declaration.

    ``signature`` is an override given on the tag itself; it may not be
    combined with one in ``#[pyo3(signature = ...)]``.
    """
    options = attribute_options(item.attrs, "pyo3", FUNCTION_ATTR_OPTIONS)
    if signature is not None:
        if options.signature is not None:
            raise DuplicateOption("signature", line=item.line, column=item.column)
        options = dataclasses.replace(options, signature=signature)

    args = item.args
    if options.has(Flag.PASS_MODULE):
        # The module handle is supplied by the runtime
        visible = python_visible(args)
        if visible:
            args = tuple(a for a in args if a is not visible[0])

    analyzed = analyze_signature(args, options)
    callable_ = CallableDescriptor(
        name=options.name or item.name,
        parameters=analyzed.parameters,
        return_type=type_signature(unwrap_result(item.return_type)),
        doc=extract_documents(item.attrs),
        shape=analyzed.shape,
    )
    return FunctionDescriptor(callable=callable_, source_name=item.name)


def apply_overrides(base: FunctionDescriptor, options: ExposureOptions) -> FunctionDescriptor:
    """Return a copy of ``base`` carrying the tag's name and module."""
    result = base
    if options.name is not None:
        result = dataclasses.replace(
            result, callable=dataclasses.replace(result.callable, name=options.name)
        )
    if options.module is not None:
        result = dataclasses.replace(result, module=options.module)
    return result


def compile_pyfunction(item: FnDecl, options: ExposureOptions) -> FunctionDescriptor:
    if options.name is not None:
        item_options = attribute_options(item.attrs, "pyo3", FUNCTION_ATTR_OPTIONS)
        if item_options.name is not None:
            raise DuplicateOption("name", line=item.line, column=item.column)
    base = build_function(item, options.signature)
    return apply_overrides(base, options)
