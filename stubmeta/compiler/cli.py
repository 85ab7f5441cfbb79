"""Command-line interface for stubmeta."""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from stubmeta.compiler import CompileError, compile_source
from stubmeta.compiler.descriptors import (
    CallableDescriptor,
    ClassDescriptor,
    EnumDescriptor,
    FunctionDescriptor,
    MethodsBlockDescriptor,
)
from stubmeta.compiler.emitter import DEFAULT_RUNTIME_PATH, expand as expand_item

if TYPE_CHECKING:
    from stubmeta.compiler.expand import Expansion

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output")
def cli(verbose: bool) -> None:
    """Stub descriptor compiler for exposed Rust declarations."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _compile(input_file: str) -> list[Expansion]:
    with open(input_file, encoding="utf-8") as f:
        source = f.read()

    try:
        return compile_source(source)
    except CompileError as e:
        print(f"{input_file}:{e.line}:{e.column}: error: {e.message}", file=sys.stderr)
        sys.exit(1)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input Rust source file")
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--runtime-path",
    "runtime_path",
    default=DEFAULT_RUNTIME_PATH,
    show_default=True,
    help="Path of the stub runtime crate in the generated code",
)
def expand(input_file: str, output_file: str, runtime_path: str) -> None:
    """Write every exposed item followed by its registration fragment."""
    expansions = _compile(input_file)
    chunks = [expand_item(e.source, e.descriptor, runtime_path) for e in expansions]
    logger.debug("Writing %d items to %s", len(chunks), output_file)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write("\n".join(chunks))


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input Rust source file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display the descriptors compiled from a source file."""
    expansions = _compile(input_file)

    if output_json:
        _output_json(expansions)
    else:
        _output_plain(expansions)


def _kind_of(descriptor: object) -> str:
    return {
        ClassDescriptor: "class",
        EnumDescriptor: "enum",
        MethodsBlockDescriptor: "methods",
        FunctionDescriptor: "function",
    }[type(descriptor)]


def _output_json(expansions: list[Expansion]) -> None:
    data = [
        {"kind": _kind_of(e.descriptor), "descriptor": e.descriptor.to_dict()} for e in expansions
    ]
    print(json.dumps(data, indent=2))


def _format_callable(c: CallableDescriptor) -> str:
    params = []
    for p in c.parameters:
        text = f"{p.name}: {p.type_signature}"
        if p.has_default:
            text += f" = {p.default_repr}"
        params.append(text)
    return f"{c.name}({', '.join(params)}) -> {c.return_type}"


def _output_plain(expansions: list[Expansion]) -> None:
    """Output descriptors using rich text formatting."""
    console = Console()

    for expansion in expansions:
        d = expansion.descriptor
        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))

        if isinstance(d, ClassDescriptor):
            module = f" [dim]({d.module})[/dim]" if d.module else ""
            console.print(f"[bold cyan]class {d.exposed_name}[/bold cyan]{module}")
            table.add_column("Member", style="white")
            table.add_column("Type", style="yellow")
            table.add_column("Access", style="dim")
            for m in d.members:
                access = "rw" if m.writable and m.readable else ("w" if m.writable else "r")
                table.add_row(m.name, m.type_signature, access)
            if d.constructor:
                table.add_row(_format_callable(d.constructor), "", "constructor")
        elif isinstance(d, EnumDescriptor):
            module = f" [dim]({d.module})[/dim]" if d.module else ""
            console.print(f"[bold cyan]enum {d.exposed_name}[/bold cyan]{module}")
            table.add_column("Variant", style="white")
            table.add_column("Value", style="yellow", justify="right")
            for v in d.variants:
                table.add_row(v.name, v.value)
        elif isinstance(d, MethodsBlockDescriptor):
            console.print(f"[bold cyan]methods of {d.target_identity}[/bold cyan]")
            table.add_column("Signature", style="white")
            table.add_column("Kind", style="dim")
            for method in d.methods:
                table.add_row(_format_callable(method.callable), method.kind.value)
            for prop in d.properties:
                kind = "property (rw)" if prop.writable else "property"
                table.add_row(f"{prop.name}: {prop.type_signature}", kind)
            for attr in d.class_attributes:
                table.add_row(f"{attr.name}: {attr.type_signature}", "class_attribute")
        else:
            module = f" [dim]({d.module})[/dim]" if d.module else ""
            console.print(f"[bold cyan]function[/bold cyan]{module}")
            table.add_column("Signature", style="white")
            table.add_column("Shape", style="dim")
            table.add_row(_format_callable(d.callable), d.callable.shape.value)

        console.print(table)
        console.print()


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
