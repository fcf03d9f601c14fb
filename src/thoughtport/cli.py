"""thoughtport CLI - ThoughtKeeper import/export."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import click

from .adapters import LocalFile
from .config import load_config
from .core.filters import DateRange, ExportFilter, FilterOperator
from .core.mapping import ImportConfig
from .errors import ThoughtportError
from .workflows import (
    default_export_config,
    detect_columns,
    export_data,
    get_registry,
    import_file,
    load_export_document,
    preview_import,
    suggest_mapping,
    validate_import_file,
    write_export,
)


def _parse_filter(text: str) -> ExportFilter:
    """FIELD:OP:VALUE; "in" takes comma-separated options, "between" takes LOW,HIGH."""
    parts = text.split(":", 2)
    if len(parts) != 3:
        raise click.BadParameter(f"expected FIELD:OP:VALUE, got {text!r}", param_hint="--filter")
    field_path, op, value = parts
    try:
        operator = FilterOperator(op)
    except ValueError:
        choices = ", ".join(o.value for o in FilterOperator)
        raise click.BadParameter(f"unknown operator {op!r} (choose from {choices})", param_hint="--filter")

    match operator:
        case FilterOperator.IN:
            return ExportFilter(field_path, operator, [v.strip() for v in value.split(",")])
        case FilterOperator.BETWEEN:
            return ExportFilter(field_path, operator, [v.strip() for v in value.split(",", 1)])
        case _:
            return ExportFilter(field_path, operator, value)


def _open(path: str) -> LocalFile:
    return LocalFile(Path(path))


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """thoughtport - ThoughtKeeper import/export."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def formats(as_json: bool):
    """List registered formats."""
    registry = get_registry(load_config())
    stats = registry.stats()

    if as_json:
        click.echo(json.dumps(stats, indent=2))
        return

    for entry in stats:
        directions = [d for d, ok in (("export", entry["can_export"]), ("import", entry["can_import"])) if ok]
        click.echo(f"{entry['format']:10} {entry['name']:10} {'/'.join(directions):14} {', '.join(entry['extensions'])}")
        click.echo(f"{'':10} {entry['description']}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def detect(file: str):
    """Detect the import format of FILE."""
    registry = get_registry(load_config())
    source = _open(file)
    format_name = registry.detect_format(source)
    if format_name is None:
        click.echo(f"Error: could not detect a format for {source.name}", err=True)
        sys.exit(1)

    click.echo(format_name)
    result = validate_import_file(registry, source, format_name)
    if result.warning:
        click.echo(f"Warning: {result.warning}", err=True)
    if result.error:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "format_name", default=None, help="Import format (default: detect)")
def columns(file: str, format_name: str | None):
    """Show FILE's columns and the fields they map to."""
    registry = get_registry(load_config())
    source = _open(file)
    try:
        detected = detect_columns(registry, source, format_name)
        mapping = suggest_mapping(registry, source, format_name)
    except ThoughtportError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    targets = {entry.source_field: entry for entry in mapping}
    for column in detected:
        entry = targets.get(column)
        if entry is None:
            click.echo(f"  {column}  (covered by parent column)")
            continue
        flags = " (required)" if entry.required else ""
        click.echo(f"  {column} -> {entry.target_field}{flags}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "format_name", default=None, help="Import format (default: detect)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def preview(file: str, format_name: str | None, as_json: bool):
    """Preview what importing FILE would produce."""
    config = load_config()
    registry = get_registry(config)
    try:
        result = preview_import(registry, _open(file), format_name, preview_rows=config.preview_rows)
    except ThoughtportError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    click.echo(f"Records: {result.total_records} ({result.valid_records} valid, {result.invalid_records} invalid)")
    if result.sample_notebooks:
        click.echo("\nNotebooks:")
        for notebook in result.sample_notebooks:
            click.echo(f"  • {notebook.title} [{notebook.category}]")
    if result.sample_tasks:
        click.echo("\nTasks:")
        for task in result.sample_tasks:
            click.echo(f"  • {task.title} [{task.status.value}, {task.priority.value}]")
    if result.errors:
        click.echo("\nErrors:")
        for message in result.errors:
            click.echo(f"  {message}")
    if result.warnings:
        click.echo("\nWarnings:")
        for message in result.warnings:
            click.echo(f"  {message}")


@main.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "format_name", default=None, help="Import format (default: detect)")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False), help="Write JSON here instead of stdout")
@click.option("--skip-invalid", is_flag=True, help="Leave out records that fail validation")
def import_cmd(file: str, format_name: str | None, output: str | None, skip_invalid: bool):
    """Import FILE and write it out as a JSON export."""
    config = load_config()
    registry = get_registry(config)
    source = _open(file)

    check = validate_import_file(registry, source, format_name)
    if not check.is_valid:
        click.echo(f"Error: {check.error}", err=True)
        sys.exit(1)

    try:
        mapping = suggest_mapping(registry, source, format_name)
        result = import_file(registry, source, format_name, ImportConfig(mapping=mapping, skip_invalid=skip_invalid))
        content = export_data(registry, result.data, default_export_config(config, "json"))
    except ThoughtportError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for message in result.warnings:
        click.echo(f"Warning: {message}", err=True)
    if result.skipped:
        click.echo(f"Skipped {result.skipped} invalid records", err=True)

    if output:
        Path(output).write_bytes(content)
        counts = result.data.item_counts()
        click.echo(f"✓ Imported {counts['notebooks']} notebooks and {counts['tasks']} tasks to {output}")
    else:
        click.echo(content.decode("utf-8"))


@main.command()
@click.argument("input_file", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "format_name", default=None, help="Export format (default: from config)")
@click.option("--output", "-o", default=None, type=click.Path(), help="Output file, or '-' for stdout")
@click.option("--include-deleted/--exclude-deleted", default=None, help="Keep archived notebooks and cancelled tasks")
@click.option("--metadata/--no-metadata", default=None, help="Include export metadata")
@click.option("--since", default=None, help="Only records created on or after this date")
@click.option("--until", default=None, help="Only records created on or before this date")
@click.option("--filter", "filters", multiple=True, help="FIELD:OP:VALUE, e.g. tasks.status:in:pending,review")
def export(
    input_file: str,
    format_name: str | None,
    output: str | None,
    include_deleted: bool | None,
    metadata: bool | None,
    since: str | None,
    until: str | None,
    filters: tuple[str, ...],
):
    """Export a JSON export file INPUT to another format."""
    config = load_config()
    registry = get_registry(config)

    export_config = default_export_config(config, format_name)
    if include_deleted is not None:
        export_config.include_deleted = include_deleted
    if metadata is not None:
        export_config.include_metadata = metadata
    export_config.filters = [_parse_filter(f) for f in filters]

    try:
        if since or until:
            export_config.date_range = DateRange(since or datetime.min, until or datetime.max)
        data = load_export_document(registry, _open(input_file))
        if output == "-":
            click.echo(export_data(registry, data, export_config).decode("utf-8"))
            return
        if output:
            export_config.filename = Path(output).name
            directory = Path(output).parent
        else:
            directory = config.export_path
        path = write_export(registry, data, export_config, directory)
    except (ThoughtportError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Exported to {path}")


if __name__ == "__main__":
    main()
