"""CLI interface for template inspection and document generation."""
import json
import sys
from pathlib import Path

import click

from messagelab.cli_common import read_text, run_generation
from messagelab.cli_templates import backup, template
from messagelab.config.loader import AppConfig
from messagelab.core.models import DataFormat
from messagelab.exceptions import MessageLabException
from messagelab.formatting import format_source
from messagelab.logging_config import configure_logging
from messagelab.parsers import detect_format, parse_document
from messagelab.session import TemplateSession


@click.group()
@click.version_option(package_name="messagelab")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path (JSON or YAML)",
)
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx, config: str | None, log_level: str | None, json_logs: bool):
    """Template-based generator of synthetic XML, JSON and CSV documents."""
    try:
        app_config = AppConfig.from_file(config) if config else AppConfig()
    except MessageLabException as e:
        click.echo(f"Error: {e.get_user_message()}", err=True)
        sys.exit(1)

    configure_logging(
        level=log_level or app_config.logging.level,
        json_format=json_logs or app_config.logging.json_format,
        log_file=app_config.logging.log_file,
    )
    ctx.obj = app_config


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--delimiter", "-d", help="CSV delimiter (detected when omitted)")
@click.option("--json", "as_json", is_flag=True, help="Print the template as JSON")
def inspect(source: str, delimiter: str | None, as_json: bool):
    """Show the fields, loops and relations inferred from a document."""
    text = read_text(source)
    fmt = detect_format(source, text)
    outcome = parse_document(text, fmt, delimiter)
    if not outcome.ok:
        detail = f" ({outcome.detail})" if outcome.detail else ""
        click.echo(f"✗ Could not parse {source}: {outcome.error_kind}{detail}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "format": fmt.value,
            "delimiter": outcome.delimiter,
            "fields": [field.to_dict() for field in outcome.fields],
            "loops": [loop.to_dict() for loop in outcome.loops],
            "relations": [rel.to_dict() for rel in outcome.relations],
        }, indent=2))
        return

    click.echo(f"Format: {fmt.value}")
    click.echo(f"Fields ({len(outcome.fields)}):")
    for field in outcome.fields:
        click.echo(f"  {field.id} [{field.kind.value}] = {field.value}")
    click.echo(f"Loops ({len(outcome.loops)}):")
    for loop in outcome.loops:
        click.echo(f"  {loop.id} x{loop.count}")
    click.echo(f"Relations ({len(outcome.relations)}):")
    for rel in outcome.relations:
        click.echo(f"  {rel.master_id} -> {rel.dependent_id}")


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--count", "-n", type=int, help="Number of documents (CSV: rows)")
@click.option("--output", "-o", default=".", type=click.Path(file_okay=False), help="Output directory")
@click.option("--preset", "-p", type=click.Path(exists=True), help="Preset file (YAML or JSON)")
@click.option("--delimiter", "-d", help="CSV delimiter (detected when omitted)")
@click.option("--seed", type=int, help="Random seed for reproducible data")
@click.option("--archive/--no-archive", default=True, help="Bundle the documents into a zip archive")
@click.pass_obj
def generate(
    app_config: AppConfig,
    source: str,
    count: int | None,
    output: str,
    preset: str | None,
    delimiter: str | None,
    seed: int | None,
    archive: bool,
):
    """Generate documents shaped like SOURCE."""
    generator_config = app_config.generator
    if seed is not None:
        generator_config = generator_config.model_copy(update={"seed": seed})

    session = TemplateSession(generator_config)
    status = session.load_upload(Path(source).name, read_text(source), delimiter)
    if not status.ok:
        click.echo(f"✗ Could not parse {source}: {status.text}", err=True)
        sys.exit(1)

    run_generation(session, count, output, archive, preset)


@cli.command(name="format")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice([f.value for f in DataFormat]),
    help="Source format (detected when omitted)",
)
@click.option("--in-place", is_flag=True, help="Rewrite the file instead of printing")
def format_command(source: str, fmt: str | None, in_place: bool):
    """Pretty-print a document."""
    text = read_text(source)
    data_format = DataFormat(fmt) if fmt else detect_format(source, text)
    formatted = format_source(text, data_format)
    if in_place:
        Path(source).write_text(formatted, encoding="utf-8")
        click.echo(f"✓ Formatted {source}")
    else:
        click.echo(formatted, nl=False)


# Add template store commands
cli.add_command(template)
cli.add_command(backup)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
