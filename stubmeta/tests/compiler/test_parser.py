"""Tests for the declaration parser."""

import pytest

from stubmeta.compiler import parse, parse_item
from stubmeta.compiler.errors import ParseError
from stubmeta.compiler.parser import source_of
from stubmeta.compiler.syntax import (
    EnumDecl,
    FnDecl,
    Group,
    ImplDecl,
    ModDecl,
    StructDecl,
    TypeKind,
    VariantShape,
)
from stubmeta.compiler.util import type_signature


def describe_parse_struct():
    def parses_named_fields(expect):
        item = parse_item(
            """
            #[pyclass]
            pub struct Point {
                #[pyo3(get)]
                pub x: i32,
                y: Vec<String>,
            }
        """
        )
        expect(isinstance(item, StructDecl)) == True
        expect(item.name) == "Point"
        expect(item.public) == True
        expect([f.name for f in item.fields]) == ["x", "y"]
        expect(item.fields[1].type.render()) == "Vec<String>"
        expect(item.fields[0].attrs[0].name) == "pyo3"

    def parses_tuple_and_unit_structs(expect):
        items = parse(
            """
            struct Meters(pub f64, u8);
            struct Marker;
        """
        )
        expect([i.name for i in items]) == ["Meters", "Marker"]
        expect([f.name for f in items[0].fields]) == ["0", "1"]
        expect(items[1].fields) == ()

    def accepts_untyped_fields(expect):
        item = parse_item("struct Loose { a }")
        expect(item.fields[0].type) == None

    def parses_generics_and_where_clauses(expect):
        item = parse_item("struct Wrap<'a, T: Clone + 'a> where T: Send { inner: &'a T }")
        expect(item.name) == "Wrap"
        expect(item.fields[0].type.render()) == "&'a T"


def describe_parse_enum():
    def parses_variant_shapes(expect):
        item = parse_item(
            """
            enum Shape {
                Empty,
                Circle(f64),
                Rect { w: f64, h: f64 },
                Tagged = 7,
            }
        """
        )
        expect(isinstance(item, EnumDecl)) == True
        shapes = [v.shape for v in item.variants]
        expect(shapes) == [
            VariantShape.UNIT,
            VariantShape.TUPLE,
            VariantShape.STRUCT,
            VariantShape.UNIT,
        ]
        expect(item.variants[3].discriminant[0].text) == "7"

    def parses_negative_discriminants(expect):
        item = parse_item("enum Sign { Neg = -1, Zero = 0 }")
        expect([t.text for t in item.variants[0].discriminant]) == ["-", "1"]


def describe_parse_functions():
    def parses_receivers_and_typed_params(expect):
        item = parse_item(
            """
            impl Counter {
                fn a(&self) {}
                fn b(&mut self, n: usize) -> usize { n }
                fn c(self) {}
                fn d(slf: PyRef<'_, Self>, py: Python<'_>) {}
            }
        """
        )
        expect(isinstance(item, ImplDecl)) == True
        a, b, c, d = item.functions
        expect(a.args[0].receiver) == True
        expect(b.args[0].receiver) == True
        expect(b.args[1].name) == "n"
        expect(type_signature(b.return_type)) == "usize"
        expect(c.args[0].receiver) == True
        expect(d.args[0].receiver) == False
        expect(type_signature(d.args[0].type)) == "PyRef<Self>"

    def parses_qualifiers_and_bodies(expect):
        item = parse_item(
            """
            pub async unsafe fn run<T>(items: &[T], f: impl Fn(&T) -> bool) -> Option<usize>
            where
                T: Sync,
            {
                let mut count = 0;
                for item in items { if f(item) { count += 1; } }
                Some(count)
            }
        """
        )
        expect(isinstance(item, FnDecl)) == True
        expect(item.name) == "run"
        expect(item.args[0].type.render()) == "&[T]"
        expect(item.args[1].type.kind) == TypeKind.IMPL
        expect(item.args[1].type.render()) == "impl Fn(&T) -> bool"
        expect(item.return_type.render()) == "Option<usize>"

    def parses_parameter_attributes(expect):
        item = parse_item('fn f(#[gen_stub(default = "x")] a: i32) {}')
        expect(item.args[0].attrs[0].name) == "gen_stub"

    def renders_types(expect):
        item = parse_item(
            "fn f(a: (i32, String), b: [u8; 4], c: *const u8, d: Box<dyn Fn(i32) + Send>) {}"
        )
        expect([a.type.render() for a in item.args]) == [
            "(i32, String)",
            "[u8; 4]",
            "*const u8",
            "Box<dyn Fn(i32) + Send>",
        ]


def describe_parse_attributes():
    def keeps_argument_token_trees(expect):
        item = parse_item('#[pyclass(name = "P", module = "m")] struct P;')
        attr = item.attrs[0]
        expect(attr.name) == "pyclass"
        expect([t.text for t in attr.args if not isinstance(t, Group)]) == [
            "name",
            "=",
            '"P"',
            ",",
            "module",
            "=",
            '"m"',
        ]

    def keeps_path_attributes(expect):
        item = parse_item("#[pyo3::pyclass] struct P;")
        expect(item.attrs[0].path) == "pyo3::pyclass"
        expect(item.attrs[0].name) == "pyclass"

    def turns_doc_comments_into_attributes(expect):
        item = parse_item(
            """
            /// First line
            ///Second line
            // plain comment
            struct P;
        """
        )
        expect([a.value.text for a in item.attrs]) == ["First line", "Second line"]


def describe_parse_items():
    def skips_items_without_descriptors(expect):
        items = parse(
            """
            #![allow(dead_code)]
            use pyo3::prelude::*;
            use std::{collections::HashMap, fmt};
            const LIMIT: usize = 10;
            static mut COUNTER: u32 = 0;
            type Map = HashMap<String, i32>;
            trait Named { fn name(&self) -> String; }
            pyo3::create_exception!(m, Boom, PyException);
            macro_rules! noop { () => {}; }
            extern crate alloc;
            fn kept() {}
        """
        )
        expect([i.name for i in items]) == ["kept"]

    def keeps_inline_modules(expect):
        items = parse(
            """
            mod inner {
                pub fn f() {}
                mod deeper { struct S; }
            }
            mod external;
        """
        )
        expect(isinstance(items[0], ModDecl)) == True
        expect(items[0].items[0].name) == "f"
        expect(items[0].items[1].items[0].name) == "S"
        expect(items[1].items) == ()

    def records_item_spans(expect):
        text = "fn a() {}\n#[pyfunction]\nfn b(x: i32) -> i32 { x }\n"
        items = parse(text)
        expect(source_of(text, items[1])) == "#[pyfunction]\nfn b(x: i32) -> i32 { x }"


def describe_parse_errors():
    def rejects_invalid_syntax(expect):
        with pytest.raises(ParseError) as exc:
            parse("struct { }")
        expect(exc.value.line) == 1

    def rejects_unclosed_brace(expect):
        with pytest.raises(ParseError):
            parse("struct Broken { a: i32")

    def requires_exactly_one_item(expect):
        with pytest.raises(ParseError):
            parse_item("fn a() {} fn b() {}")
