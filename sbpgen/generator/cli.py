"""Command-line interface for sbpgen code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sbpgen import __version__
from sbpgen.generator import python
from sbpgen.generator.catalog import Catalog
from sbpgen.generator.parser import load_files
from sbpgen.generator.sizes import CatalogSizeInfo, SizeInfo, calculate_sizes
from sbpgen.generator.types import SchemaError

logger = logging.getLogger(__name__)

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def _configure_logging(verbose: int) -> None:
    level = LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)]
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(input_files: tuple[str, ...]) -> Catalog:
    """Load the catalog, exiting with a one-line error on schema failures."""
    try:
        return load_files(input_files)
    except SchemaError as e:
        _fail(e)


def _fail(error: SchemaError) -> NoReturn:
    where = f" [{error.schema}]" if error.schema else ""
    click.echo(f"Schema error{where}: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="sbpgen")
@click.option("--verbose", "-v", count=True, help="Increase log output (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """sbpgen message binding generator."""
    _configure_logging(verbose)


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_files",
    required=True,
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Input schema file (repeatable)",
)
@click.option("--output", "-o", "output_path", required=True, help="Output package directory")
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="sbpgen.proto",
    default=None,
    help="Import path for runtime. No value=sbpgen.proto, omit=sbp_runtime",
)
@click.option(
    "--keep-going",
    is_flag=True,
    default=False,
    help="Skip messages that fail instead of aborting",
)
def gen(
    input_files: tuple[str, ...], output_path: str, runtime_import: str | None, keep_going: bool
) -> None:
    """Generate message bindings from schema files."""
    catalog = _load(input_files)

    # Default to "sbp_runtime" (copied next to the bindings) if not specified
    import_path = runtime_import if runtime_import is not None else "sbp_runtime"
    try:
        files = python.render_catalog(catalog, import_path, keep_going=keep_going)
    except SchemaError as e:
        _fail(e)

    out_dir = Path(output_path)
    out_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in files.items():
        (out_dir / filename).write_text(content, encoding="utf-8")
        logger.info("Wrote %s", out_dir / filename)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="sbp_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate runtime support code."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content, encoding="utf-8")
    click.echo(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_files",
    required=True,
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Input schema file (repeatable)",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_files: tuple[str, ...], output_json: bool) -> None:
    """Display catalog information and size calculations."""
    catalog = _load(input_files)
    try:
        size_info = calculate_sizes(catalog)
    except SchemaError as e:
        _fail(e)

    if output_json:
        _output_json(size_info, catalog)
    else:
        _output_plain(size_info, catalog)


def _format_size(size: SizeInfo) -> str:
    """Format a size, marking variable tails."""
    if size.is_fixed:
        return f"{size.min_size} bytes"
    if size.unit:
        return f"{size.min_size} + {size.unit}n bytes"
    return f"{size.min_size}+ bytes"


def _format_id(msg_id: int | None) -> str:
    return "" if msg_id is None else f"0x{msg_id:04X}"


def _output_json(size_info: CatalogSizeInfo, catalog: Catalog) -> None:
    """Output catalog info as JSON."""
    data: dict = {"groups": {}, "messages": {}, "sizes": {}}

    for group in catalog.groups:
        data["groups"][group.name] = [m.name for m in group.messages]

    for name, message_info in size_info.messages.items():
        data["messages"][name] = {
            "msg_id": message_info.msg_id,
            "min_size": message_info.size.min_size,
            "max_size": message_info.size.max_size,
            "kind": message_info.size.kind.value,
        }

    data["sizes"] = {
        "min_message_size": size_info.min_message_size,
        "max_message_size": size_info.max_message_size,
    }

    click.echo(json.dumps(data, indent=2))


def _output_plain(size_info: CatalogSizeInfo, catalog: Catalog) -> None:
    """Output catalog info using rich text formatting."""
    console = Console()

    for group in catalog.groups:
        console.print(f"[bold cyan]{group.name}[/bold cyan]")
        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        table.add_column("Name", style="white")
        table.add_column("Msg ID", style="green", justify="right")
        table.add_column("Size", style="yellow", justify="right")
        table.add_column("Kind", style="dim")

        for message in group.messages:
            size = size_info.messages[message.name].size
            table.add_row(message.name, _format_id(message.msg_id), _format_size(size), size.kind.value)

        console.print(table)
        console.print()

    max_size = size_info.max_message_size
    console.print(
        f"Message size range: {size_info.min_message_size}"
        f" - {'unbounded' if max_size is None else max_size} bytes"
    )


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
