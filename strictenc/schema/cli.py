"""Command-line interface for strictenc schemas."""

from __future__ import annotations

import json
import logging
import logging.config
import sys

import click
import structlog
from rich.console import Console
from rich.table import Table
from structlog import get_logger

from strictenc.codec.errors import StrictEncodingError
from strictenc.codec.registry import Registry
from strictenc.codec.types import TypeRef
from strictenc.schema import parser, python
from strictenc.schema.sizes import SizeInfo, calculate_sizes
from strictenc.schema.types import PlanSummary, SizeSummary, summarize
from strictenc.schema.values import from_json, to_json


logger = get_logger()


def _configure_logging(verbose: bool) -> None:
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
    ]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": structlog.dev.ConsoleRenderer(colors=False),
                "foreign_pre_chain": pre_chain,
            },
        },
        "handlers": {
            "stderr": {
                "level": "DEBUG",
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "": {
                "handlers": ["stderr"],
                "level": "DEBUG" if verbose else "WARNING",
            },
        },
    })

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def _load(input_file: str) -> Registry:
    """Parse and compile a schema file, exiting with a message on failure."""
    log = logger.new(file=input_file)
    with open(input_file, encoding="utf-8") as f:
        text = f.read()

    try:
        registry = parser.load(text)
        registry.compile()
    except (parser.ValidationError, StrictEncodingError) as e:
        log.error("schema rejected", error=str(e))
        print(f"Error: {e}")
        sys.exit(1)

    log.debug("schema loaded", types=len(registry))
    return registry


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug events to stderr")
def cli(verbose: bool) -> None:
    """strictenc schema tools."""
    _configure_logging(verbose)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--runtime-import",
    "runtime_import",
    default="strictenc.codec",
    help="Import path for the strictenc runtime",
)
@click.option("--registry-name", default="registry", help="Name of the generated registry")
def gen(input_file: str, output_file: str, runtime_import: str, registry_name: str) -> None:
    """Generate Python dataclasses from a schema file."""
    registry = _load(input_file)
    types = [registry.descriptor(name) for name in registry]
    generated_file = python.render(
        types, runtime_import=runtime_import, registry_name=registry_name
    )

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display compiled plans: tags, field roles and sizes."""
    registry = _load(input_file)
    plans = registry.compile()
    sizes = calculate_sizes(registry)

    summaries: list[PlanSummary] = []
    for name, plan in plans.items():
        summary = summarize(plan)
        size = sizes[name]
        summary.size = SizeSummary(size.min_size, size.max_size, size.kind.value)
        summaries.append(summary)

    if output_json:
        print(json.dumps([s.to_dict() for s in summaries], indent=2))
    else:
        _output_plain(summaries, sizes)


def _format_size(size: SizeInfo) -> str:
    if size.max_size is None:
        return f"{size.min_size}+ bytes"
    if size.min_size == size.max_size:
        return f"{size.min_size} bytes"
    return f"{size.min_size}-{size.max_size} bytes"


def _output_plain(
    summaries: list[PlanSummary],
    sizes: dict[str, SizeInfo],
) -> None:
    """Output plans using rich text formatting."""
    console = Console()

    for summary in summaries:
        size = sizes[summary.name]
        heading = f"[bold cyan]{summary.name}[/bold cyan] [dim]{summary.kind}"
        if summary.use_tlv:
            heading += ", use_tlv"
        if summary.tag_strategy:
            heading += f", {summary.tag_strategy}, {summary.tag_width} byte tag"
        console.print(f"{heading}, {_format_size(size)} ({size.kind.value})[/dim]")

        if summary.variants:
            table = Table(show_header=True, box=None, padding=(0, 2, 0, 2))
            table.add_column("Variant", style="white")
            table.add_column("Tag", style="green", justify="right")
            table.add_column("Fields", style="yellow")
            for variant in summary.variants:
                fields = ", ".join(f"{f.name}: {f.type}" for f in variant.fields)
                table.add_row(variant.name, str(variant.tag), fields)
        else:
            table = Table(show_header=True, box=None, padding=(0, 2, 0, 2))
            table.add_column("Field", style="white")
            table.add_column("Type", style="yellow")
            table.add_column("Role", style="dim")
            table.add_column("TLV", style="green", justify="right")
            for field in summary.fields:
                tlv = "" if field.tlv_tag is None else str(field.tlv_tag)
                table.add_row(field.name, field.type, field.role, tlv)

        console.print(table)
        console.print()


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--type", "-t", "type_name", required=True, help="Type of the encoded value")
@click.argument("hex_data")
def decode(input_file: str, type_name: str, hex_data: str) -> None:
    """Decode a hex encoded value and print it as JSON."""
    registry = _load(input_file)

    try:
        data = bytes.fromhex(hex_data)
    except ValueError:
        print(f"Error: invalid hex input {hex_data!r}")
        sys.exit(1)

    try:
        value = registry.decode(type_name, data)
    except StrictEncodingError as e:
        logger.warning("decode failed", type=type_name, error=str(e))
        print(f"Error: {e}")
        sys.exit(1)

    print(json.dumps(to_json(value), indent=2))


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--type", "-t", "type_name", required=True, help="Type of the value")
@click.argument("json_value")
def encode(input_file: str, type_name: str, json_value: str) -> None:
    """Encode a JSON value and print it as hex."""
    registry = _load(input_file)

    try:
        doc = json.loads(json_value)
    except json.JSONDecodeError as e:
        print(f"Error: invalid JSON: {e}")
        sys.exit(1)

    try:
        value = from_json(registry, TypeRef(type_name), doc)
        data = registry.encode(type_name, value)
    except StrictEncodingError as e:
        logger.warning("encode failed", type=type_name, error=str(e))
        print(f"Error: {e}")
        sys.exit(1)

    print(data.hex())


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
