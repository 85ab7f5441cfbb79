"""Tests for the struct compiler."""

import pytest

from stubmeta.compiler import parse, parse_item
from stubmeta.compiler.attr import CLASS_OPTIONS, ExposureOptions, attribute_options
from stubmeta.compiler.descriptors import PassingKind
from stubmeta.compiler.errors import MethodError, MethodErrorKind
from stubmeta.compiler.pyclass import compile_pyclass


def _options(item):
    return attribute_options(item.attrs, "pyclass", CLASS_OPTIONS)


def describe_compile_pyclass():
    def uses_declared_name_by_default(expect):
        item = parse_item("#[pyclass] struct Counter { count: u32 }")
        descriptor = compile_pyclass(item, _options(item))
        expect(descriptor.exposed_name) == "Counter"
        expect(descriptor.source_identity) == "Counter"
        expect(descriptor.module) == None
        expect(descriptor.members) == ()
        expect(descriptor.constructor) == None
        expect(descriptor.doc) == ""

    def applies_name_and_module(expect):
        item = parse_item(
            """
            /// A placeholder.
            #[pyclass(mapping, module = "my_module", name = "Placeholder")]
            struct PlaceholderImpl {
                #[pyo3(get)]
                name: String,
            }
        """
        )
        descriptor = compile_pyclass(item, _options(item))
        expect(descriptor.exposed_name) == "Placeholder"
        expect(descriptor.module) == "my_module"
        expect(descriptor.source_identity) == "PlaceholderImpl"
        expect(descriptor.doc) == "A placeholder."
        expect(descriptor.flags) == ("mapping",)
        expect([m.name for m in descriptor.members]) == ["name"]

    def records_base_and_class_flags(expect):
        item = parse_item(
            "#[pyclass(extends = Base, subclass, frozen, get_all)] struct Child { a: i32 }"
        )
        descriptor = compile_pyclass(item, _options(item))
        expect(descriptor.base) == "Base"
        expect(descriptor.flags) == ("frozen", "subclass")

    def is_idempotent(expect):
        item = parse_item("#[pyclass(get_all)] struct P { a: i32 }")
        expect(compile_pyclass(item, _options(item))) == compile_pyclass(item, _options(item))

    def attaches_the_constructor(expect):
        struct, impl = parse(
            """
            #[pyclass]
            struct Counter { count: u32 }

            #[pymethods]
            impl Counter {
                #[new]
                #[pyo3(signature = (start = 0))]
                fn new(start: u32) -> Self { Counter { count: start } }

                fn increment(&mut self) {}
            }
        """
        )
        descriptor = compile_pyclass(struct, ExposureOptions(), impl.functions)
        constructor = descriptor.constructor
        expect(constructor.name) == "__new__"
        expect(constructor.return_type) == "Counter"
        expect(constructor.parameters[0].name) == "start"
        expect(constructor.parameters[0].passing_kind) == PassingKind.POSITIONAL_OR_KEYWORD
        expect(constructor.parameters[0].default_repr) == "0"

    def rejects_two_constructors(expect):
        struct, impl = parse(
            """
            struct P;
            impl P {
                #[new]
                fn new() -> Self { P }
                #[new]
                fn other() -> Self { P }
            }
        """
        )
        with pytest.raises(MethodError) as exc:
            compile_pyclass(struct, ExposureOptions(), impl.functions)
        expect(exc.value.kind) == MethodErrorKind.DUPLICATE_NAME
        expect(exc.value.ident) == "__new__"
