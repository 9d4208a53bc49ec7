"""Helpers shared by the CLI command modules."""
import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from messagelab.archive import archive_name, write_archive
from messagelab.core.models import GeneratedDocument, Preset
from messagelab.generators import base_name_for
from messagelab.session import TemplateSession


def read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8-sig")


def load_preset_file(path: str) -> Preset:
    """Load a preset from a YAML or JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return Preset.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise click.BadParameter(f"Invalid preset file {path}: {e}") from e


def write_documents(
    documents: list[GeneratedDocument],
    output_dir: str,
    base_name: str,
    archive: bool,
) -> list[Path]:
    """Write generated documents (or one archive) into ``output_dir``."""
    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)
    if archive:
        path = target / archive_name(base_name)
        write_archive(documents, path)
        return [path]

    written = []
    for document in documents:
        path = target / document.name
        path.write_bytes(document.content)
        written.append(path)
    return written


def run_generation(
    session: TemplateSession,
    count: int | None,
    output: str,
    archive: bool,
    preset: str | None,
) -> None:
    """Generate from a loaded session and report; exits with 1 on failure."""
    if preset:
        session.apply_preset(load_preset_file(preset))

    outcome = session.generate(count)
    if not outcome.ok:
        target = f" for field: {outcome.field_id}" if outcome.field_id else ""
        click.echo(f"✗ Generation failed ({outcome.error_kind}){target}", err=True)
        if outcome.detail:
            click.echo(f"  {outcome.detail}", err=True)
        sys.exit(1)

    base_name = base_name_for(session.file_name, session.config.base_name)
    written = write_documents(outcome.documents, output, base_name, archive)
    click.echo(f"✓ Generated {len(outcome.documents)} {session.format.value} document(s)")
    for path in written:
        click.echo(f"  {path}")
