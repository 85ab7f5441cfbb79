"""Tests for attribute argument parsing."""

import pytest

from stubmeta.compiler import parse_item
from stubmeta.compiler.attr import (
    FIELD_OPTIONS,
    FUNCTION_TAG_OPTIONS,
    EntryKind,
    Flag,
    attribute_options,
    marker_argument,
    parameter_defaults,
    parse_options,
)
from stubmeta.compiler.errors import DuplicateOption, MalformedOption, UnrecognizedOption


def _args(arguments: str):
    return parse_item(f"#[tag({arguments})] struct S;").attrs[0].args


def describe_parse_options():
    def accepts_empty_arguments(expect):
        options = parse_options(None)
        expect(options.name) == None
        expect(options.module) == None
        expect(options.flags) == frozenset()

    def parses_names_and_flags(expect):
        options = parse_options(_args('mapping, module = "my_module", name = "Placeholder"'))
        expect(options.name) == "Placeholder"
        expect(options.module) == "my_module"
        expect(options.has(Flag.MAPPING)) == True
        expect(options.has(Flag.FROZEN)) == False

    def parses_extends_paths(expect):
        options = parse_options(_args("extends = pyo3::exceptions::PyException, subclass"))
        expect(options.extends) == "pyo3::exceptions::PyException"
        expect(options.has(Flag.SUBCLASS)) == True

    def rejects_duplicate_keys(expect):
        with pytest.raises(DuplicateOption) as exc:
            parse_options(_args('name = "A", name = "B"'))
        expect(exc.value.ident) == "name"

    def rejects_duplicate_keys_across_attributes(expect):
        with pytest.raises(DuplicateOption) as exc:
            parse_options(_args("frozen"), _args("frozen"))
        expect(exc.value.ident) == "frozen"

    def rejects_unknown_keys(expect):
        with pytest.raises(UnrecognizedOption) as exc:
            parse_options(_args("mapping, sparkle"))
        expect(exc.value.ident) == "sparkle"
        expect(exc.value.line) == 1

    def rejects_keys_outside_the_vocabulary(expect):
        with pytest.raises(UnrecognizedOption):
            parse_options(_args("frozen"), vocabulary=FIELD_OPTIONS)

    def rejects_flags_with_values(expect):
        with pytest.raises(MalformedOption):
            parse_options(_args('frozen = "yes"'))

    def rejects_non_string_names(expect):
        with pytest.raises(MalformedOption):
            parse_options(_args("name = Placeholder"))

    def rejects_unknown_rename_rules(expect):
        with pytest.raises(MalformedOption):
            parse_options(_args('rename_all = "shouting"'))

    def accepts_known_rename_rules(expect):
        options = parse_options(_args('rename_all = "SCREAMING_SNAKE_CASE"'))
        expect(options.rename_all) == "SCREAMING_SNAKE_CASE"


def describe_signature_option():
    def parses_every_entry_kind(expect):
        options = parse_options(
            _args("signature = (a, /, b = 1, *args, c, **kwargs)"),
            vocabulary=FUNCTION_TAG_OPTIONS,
        )
        kinds = [e.kind for e in options.signature]
        expect(kinds) == [
            EntryKind.NAMED,
            EntryKind.POSITIONAL_ONLY_MARKER,
            EntryKind.NAMED,
            EntryKind.VAR_POSITIONAL,
            EntryKind.NAMED,
            EntryKind.VAR_KEYWORD,
        ]
        expect([e.name for e in options.signature]) == ["a", "", "b", "args", "c", "kwargs"]
        expect(options.signature[2].default[0].text) == "1"

    def parses_bare_star(expect):
        options = parse_options(_args("signature = (*, key)"), vocabulary=FUNCTION_TAG_OPTIONS)
        expect(options.signature[0].kind) == EntryKind.KEYWORD_ONLY_MARKER

    def keeps_complex_defaults(expect):
        options = parse_options(
            _args("signature = (items = vec![1, 2])"), vocabulary=FUNCTION_TAG_OPTIONS
        )
        expect(len(options.signature[0].default)) == 3

    def rejects_non_parenthesized_signatures(expect):
        with pytest.raises(MalformedOption):
            parse_options(_args("signature = a"), vocabulary=FUNCTION_TAG_OPTIONS)

    def rejects_malformed_entries(expect):
        with pytest.raises(MalformedOption):
            parse_options(_args("signature = (1)"), vocabulary=FUNCTION_TAG_OPTIONS)


def describe_attribute_options():
    def merges_matching_attributes(expect):
        item = parse_item(
            """
            #[pyclass(frozen)]
            #[pyo3(name = "Renamed")]
            #[pyo3(module = "m")]
            struct S;
        """
        )
        options = attribute_options(item.attrs, "pyo3", FUNCTION_TAG_OPTIONS)
        expect(options.name) == "Renamed"
        expect(options.module) == "m"


def describe_marker_argument():
    def reads_bare_and_quoted_names(expect):
        item = parse_item(
            """
            impl S {
                #[getter(value)]
                fn a(&self) {}
                #[setter("other")]
                fn b(&mut self, v: i32) {}
                #[getter]
                fn c(&self) {}
            }
        """
        )
        a, b, c = (fn.attrs[0] for fn in item.functions)
        expect(marker_argument(a)) == "value"
        expect(marker_argument(b)) == "other"
        expect(marker_argument(c)) == None

    def rejects_several_names(expect):
        item = parse_item("#[getter(a, b)] fn f() {}")
        with pytest.raises(MalformedOption):
            marker_argument(item.attrs[0])


def describe_parameter_defaults():
    def collects_explicit_default_texts(expect):
        item = parse_item(
            """
            fn f(
                #[gen_stub(default = "Mode.FAST")] mode: Mode,
                count: usize,
            ) {}
        """
        )
        defaults = parameter_defaults((a.name, a.attrs) for a in item.args)
        expect(defaults) == (("mode", "Mode.FAST"),)
