"""Tests for CLI interface."""

import json
import os
import tempfile

from click.testing import CliRunner

from stubmeta.compiler.cli import cli

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def _write_source(text: str) -> str:
    with tempfile.NamedTemporaryFile("w", suffix=".rs", delete=False) as f:
        f.write(text)
        return f.name


def describe_expand_command():
    def writes_items_with_fragments(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".rs", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(
                cli, ["expand", "-i", f"{FILE_DIR}/shapes.rs", "-o", output_file]
            )
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
            expect("pub struct Point {" in content) == True
            expect(content.count("::stubmeta::inventory::submit! {")) == 4
            expect("::stubmeta::PyClassInfo {" in content) == True
            expect("::stubmeta::PyEnumInfo {" in content) == True
            expect("::stubmeta::PyMethodsInfo {" in content) == True
            expect("::stubmeta::PyFunctionInfo {" in content) == True
            expect("use pyo3::prelude::*;" in content) == False
        finally:
            os.unlink(output_file)

    def uses_the_runtime_path(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".rs", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(
                cli,
                [
                    "expand",
                    "-i",
                    f"{FILE_DIR}/shapes.rs",
                    "-o",
                    output_file,
                    "--runtime-path",
                    "crate::stub_gen",
                ],
            )
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
            expect("crate::stub_gen::inventory::submit!" in content) == True
        finally:
            os.unlink(output_file)


def describe_info_command():
    def outputs_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{FILE_DIR}/shapes.rs", "--json"])
        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect([d["kind"] for d in data]) == ["class", "methods", "enum", "function"]
        point = data[0]["descriptor"]
        expect(point["exposed_name"]) == "Point"
        expect([m["name"] for m in point["members"]]) == ["x", "y"]
        expect(point["constructor"]["parameters"][0]["default_repr"]) == "0.0"
        perimeter = data[3]["descriptor"]
        expect(perimeter["callable"]["return_type"]) == "f64"
        expect(perimeter["callable"]["parameters"][0]["passing_kind"]) == "var_positional"

    def outputs_tables(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{FILE_DIR}/shapes.rs"])
        expect(result.exit_code) == 0
        expect("class Point" in result.output) == True
        expect("enum Kind" in result.output) == True
        expect("methods of Point" in result.output) == True
        expect("distance" in result.output) == True

    def accepts_verbose_flag(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["--verbose", "info", "-i", f"{FILE_DIR}/shapes.rs", "--json"])
        expect(result.exit_code) == 0


def describe_errors():
    def reports_compile_errors_with_location(expect):
        source = _write_source("\n#[pyclass]\nenum Bad {\n    Payload(u8),\n}\n")
        try:
            runner = CliRunner()
            result = runner.invoke(cli, ["info", "-i", source])
            expect(result.exit_code) == 1
            expect(f"{source}:4:5: error:" in result.output) == True
            expect("Payload" in result.output) == True
        finally:
            os.unlink(source)

    def reports_parse_errors(expect):
        source = _write_source("struct {\n")
        try:
            runner = CliRunner()
            result = runner.invoke(cli, ["info", "-i", source])
            expect(result.exit_code) == 1
            expect("error:" in result.output) == True
        finally:
            os.unlink(source)
