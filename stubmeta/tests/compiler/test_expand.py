"""Tests for tagged item dispatch."""

import pytest

from stubmeta.compiler import (
    compile_item,
    compile_source,
    parse_item,
    pyclass,
    pyfunction,
    pymethods,
)
from stubmeta.compiler.descriptors import (
    ClassDescriptor,
    EnumDescriptor,
    FunctionDescriptor,
    MethodsBlockDescriptor,
)
from stubmeta.compiler.errors import (
    CompileError,
    EnumError,
    UnrecognizedOption,
    UnsupportedItem,
)

SOURCE = """
use pyo3::prelude::*;

/// A counter.
#[pyclass(module = "counting")]
pub struct Counter {
    #[pyo3(get)]
    count: u32,
}

#[pymethods]
impl Counter {
    #[new]
    fn new(start: Option<u32>) -> Self {
        Counter { count: start.unwrap_or(0) }
    }

    fn increment(&mut self) {
        self.count += 1;
    }
}

#[pyclass(eq, eq_int)]
#[derive(Clone, PartialEq)]
pub enum Mode {
    Fast,
    Slow,
}

pub mod helpers {
    use super::*;

    #[pyfunction]
    pub fn make_counter() -> Counter {
        Counter { count: 0 }
    }
}

fn untagged() {}
"""


def describe_compile_source():
    def compiles_tagged_items_in_order(expect):
        expansions = compile_source(SOURCE)
        expect([type(e.descriptor) for e in expansions]) == [
            ClassDescriptor,
            MethodsBlockDescriptor,
            EnumDescriptor,
            FunctionDescriptor,
        ]

    def attaches_constructors_to_classes(expect):
        counter = compile_source(SOURCE)[0].descriptor
        expect(counter.module) == "counting"
        expect(counter.doc) == "A counter."
        expect(counter.constructor.name) == "__new__"
        expect(counter.constructor.parameters[0].default_repr) == "None"

    def keeps_the_item_source(expect):
        expansions = compile_source(SOURCE)
        expect(expansions[2].source.startswith("#[pyclass(eq, eq_int)]")) == True
        expect(expansions[2].source.endswith("}")) == True

    def fails_closed(expect):
        with pytest.raises(EnumError):
            compile_source(SOURCE + "\n#[pyclass]\nenum Bad { Payload(u8) }\n")

    def reports_locations(expect):
        with pytest.raises(UnrecognizedOption) as exc:
            compile_source("\n\n#[pyclass(sparkle)]\nstruct S;\n")
        expect(exc.value.line) == 3
        expect(exc.value.column) == 11


def describe_entry_points():
    def route_structs_and_enums(expect):
        struct = parse_item('#[pyclass(name = "S2")] struct S;')
        expect(pyclass(struct.attrs[0], struct).descriptor.exposed_name) == "S2"
        enum = parse_item("#[pyclass] enum E { A }")
        expect(isinstance(pyclass(enum.attrs[0], enum).descriptor, EnumDescriptor)) == True

    def merge_class_options_from_pyo3_attributes(expect):
        struct = parse_item('#[pyclass]\n#[pyo3(name = "Renamed")]\nstruct S;')
        expect(pyclass(struct.attrs[0], struct).descriptor.exposed_name) == "Renamed"

    def reject_mismatched_items(expect):
        fn = parse_item("#[pyclass] fn f() {}")
        with pytest.raises(UnsupportedItem):
            pyclass(fn.attrs[0], fn)
        struct = parse_item("#[pymethods] struct S;")
        with pytest.raises(UnsupportedItem):
            pymethods(struct.attrs[0], struct)
        impl = parse_item("#[pyfunction] impl S {}")
        with pytest.raises(UnsupportedItem):
            pyfunction(impl.attrs[0], impl)

    def reject_options_on_pymethods(expect):
        impl = parse_item("#[pymethods(frozen)] impl S {}")
        with pytest.raises(UnrecognizedOption):
            pymethods(impl.attrs[0], impl)

    def reject_two_tags(expect):
        item = parse_item("#[pyclass]\n#[pyfunction]\nstruct S;")
        with pytest.raises(UnsupportedItem):
            compile_item(item)

    def ignore_untagged_items(expect):
        expect(compile_item(parse_item("struct S;"))) == None

    def raise_compile_errors(expect):
        item = parse_item("#[pyclass(name = 1)] struct S;")
        with pytest.raises(CompileError):
            compile_item(item)
