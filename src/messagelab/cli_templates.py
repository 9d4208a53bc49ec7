"""CLI commands for the local template store and backups."""
import sys
from pathlib import Path

import click

from messagelab.cli_common import load_preset_file, read_text, run_generation
from messagelab.config.loader import AppConfig
from messagelab.exceptions import MessageLabException
from messagelab.session import TemplateSession
from messagelab.storage import (
    JsonFileStore,
    NO_PROJECT,
    PresetRepository,
    TemplateRepository,
    import_backup,
    write_backup,
)
from messagelab.storage.backup import BACKUP_FILE_NAME


def _store(app_config: AppConfig, store_path: str | None) -> JsonFileStore:
    return JsonFileStore(store_path or app_config.storage.resolved_path)


def _fail(error: MessageLabException) -> None:
    click.echo(f"Error: {error.get_user_message()}", err=True)
    sys.exit(1)


@click.group()
@click.option('--store', 'store_path', type=click.Path(dir_okay=False), help='Template store file')
@click.pass_context
def template(ctx, store_path):
    """Commands for stored templates."""
    store = _store(ctx.obj or AppConfig(), store_path)
    ctx.obj = {
        'config': ctx.obj or AppConfig(),
        'templates': TemplateRepository(store),
        'presets': PresetRepository(store),
    }


@template.command(name='list')
@click.pass_obj
def list_templates(obj):
    """List stored templates by project and category."""
    groups = obj['templates'].grouped()
    if not groups:
        click.echo("No stored templates")
        return

    last_id = obj['templates'].last_id()
    for project, categories in groups.items():
        click.echo("(no project)" if project == NO_PROJECT else project)
        for category, items in categories.items():
            click.echo(f"  {category}")
            for item in items:
                marker = "*" if item.id == last_id else " "
                click.echo(f"   {marker} {item.id} [{item.format.value}] {item.name}")


@template.command(name='save')
@click.argument('source', type=click.Path(exists=True, dir_okay=False))
@click.option('--name', '-n', help='Template name (also used as id)')
@click.option('--project', default='', help='Project the template belongs to')
@click.option('--category', default='', help='Category within the project')
@click.option('--description', default='', help='Free-text description')
@click.option('--delimiter', '-d', help='CSV delimiter (detected when omitted)')
@click.pass_obj
def save_template(obj, source, name, project, category, description, delimiter):
    """Parse SOURCE and store it as a template."""
    session = TemplateSession(obj['config'].generator)
    status = session.load_upload(Path(source).name, read_text(source), delimiter)
    if not status.ok:
        click.echo(f"✗ Could not parse {source}: {status.text}", err=True)
        sys.exit(1)

    payload = session.to_template(
        name=name or Path(source).stem,
        project=project,
        description=description,
        category=category,
    )
    saved = obj['templates'].save(payload)
    click.echo(f"✓ Saved template '{saved.id}'")
    click.echo(f"  Fields: {len(saved.fields)}, loops: {len(saved.loops)}, relations: {len(saved.relations)}")


@template.command(name='delete')
@click.argument('template_id')
@click.pass_obj
def delete_template(obj, template_id):
    """Delete a stored template."""
    try:
        obj['templates'].delete(template_id)
    except MessageLabException as e:
        _fail(e)
    click.echo(f"✓ Deleted template '{template_id}'")


@template.command(name='generate')
@click.argument('template_id')
@click.option('--count', '-n', type=int, help='Number of documents (CSV: rows)')
@click.option('--output', '-o', default='.', type=click.Path(file_okay=False), help='Output directory')
@click.option('--preset', '-p', type=click.Path(exists=True), help='Preset file (YAML or JSON)')
@click.option('--preset-id', help='Id of a stored preset of this template')
@click.option('--archive/--no-archive', default=True, help='Bundle the documents into a zip archive')
@click.pass_obj
def generate_from_template(obj, template_id, count, output, preset, preset_id, archive):
    """Generate documents from a stored template."""
    try:
        payload = obj['templates'].get(template_id)
    except MessageLabException as e:
        _fail(e)

    session = TemplateSession(obj['config'].generator)
    status = session.load_template(payload)
    if not status.ok:
        click.echo(f"✗ Could not load template '{template_id}': {status.text}", err=True)
        sys.exit(1)
    obj['templates'].set_last_id(template_id)

    if preset_id:
        stored = obj['presets'].get(template_id, preset_id)
        if stored is None:
            click.echo(f"✗ Preset not found: {preset_id}", err=True)
            sys.exit(1)
        session.apply_preset(stored)

    run_generation(session, count, output, archive, preset)


@click.group()
@click.option('--store', 'store_path', type=click.Path(dir_okay=False), help='Template store file')
@click.pass_context
def backup(ctx, store_path):
    """Commands for exporting and importing the template store."""
    ctx.obj = TemplateRepository(_store(ctx.obj or AppConfig(), store_path))


@backup.command(name='export')
@click.argument('path', default=BACKUP_FILE_NAME, type=click.Path(dir_okay=False))
@click.pass_obj
def export_command(repository, path):
    """Write every template, project and category to PATH."""
    target = write_backup(repository, path)
    click.echo(f"✓ Backup written to {target}")


@backup.command(name='import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def import_command(repository, path):
    """Replace the template store with the contents of a backup."""
    try:
        count = import_backup(repository, path)
    except MessageLabException as e:
        _fail(e)
    click.echo(f"✓ Imported {count} template(s) from {path}")


@template.command(name='presets')
@click.argument('template_id')
@click.pass_obj
def list_presets(obj, template_id):
    """List the presets stored for a template."""
    presets = obj['presets'].list(template_id)
    if not presets:
        click.echo(f"No presets for '{template_id}'")
        return
    for preset in presets:
        description = f" - {preset.description}" if preset.description else ""
        click.echo(f"  {preset.id} {preset.name}{description}")


@template.command(name='preset-save')
@click.argument('template_id')
@click.argument('preset_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--name', help='Preset name (defaults to the name in the file)')
@click.pass_obj
def save_preset(obj, template_id, preset_file, name):
    """Store a preset file for a template."""
    try:
        obj['templates'].get(template_id)
    except MessageLabException as e:
        _fail(e)

    preset = load_preset_file(preset_file)
    if name:
        preset = preset.model_copy(update={'name': name})
    obj['presets'].save(template_id, preset)
    click.echo(f"✓ Saved preset '{preset.id}' for template '{template_id}'")
