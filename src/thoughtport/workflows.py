"""Shared workflow layer between the CLI and embedding applications.

Each function resolves a codec through the registry and runs one export or
import operation end to end.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import Config
from .core.classifier import NotebookCandidate, RecordKind, TaskCandidate, kind_from_tag, to_candidate
from .core.filters import ExportConfig
from .core.mapping import FieldMapping, ImportConfig, apply_mapping
from .core.models import ExportData, Notebook, Task, ValidationResult, utc_now
from .errors import EncodingError, UnsupportedFormatError
from .ports.codec import ExportCodec, ImportCodec
from .ports.file_source import FileSource
from .registry import HandlerRegistry, create_default_registry

logger = logging.getLogger(__name__)

PREVIEW_SAMPLE_SIZE = 3


def get_registry(config: Config) -> HandlerRegistry:
    """Registry of built-in codecs configured from config."""
    return create_default_registry(config)


def default_export_config(config: Config, format_name: str | None = None) -> ExportConfig:
    """Export options seeded from the conf file."""
    return ExportConfig(
        format=format_name or config.default_format,
        include_metadata=config.include_metadata,
        include_deleted=config.include_deleted,
    )


def get_exporter(registry: HandlerRegistry, format_name: str) -> ExportCodec:
    codec = registry.get_by_format(format_name)
    if not isinstance(codec, ExportCodec):
        raise UnsupportedFormatError(format_name, [c.format for c in registry.exporters()])
    return codec


def get_importer(registry: HandlerRegistry, file: FileSource, format_name: str | None = None) -> ImportCodec:
    """The codec named by format_name, or the one detected from the file."""
    if format_name is None:
        format_name = registry.detect_format(file)
        if format_name is None:
            raise UnsupportedFormatError(None, registry.available_formats(importable=True))
    codec = registry.get_by_format(format_name)
    if not isinstance(codec, ImportCodec):
        raise UnsupportedFormatError(format_name, registry.available_formats(importable=True))
    return codec


# ============== Export ==============


def export_filename(codec: ExportCodec, now: datetime | None = None) -> str:
    """thoughtkeeper-export-YYYY-MM-DDTHH-MM-SS.<ext>"""
    now = now or utc_now()
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    return f"thoughtkeeper-export-{stamp}{codec.extensions[0]}"


def export_data(registry: HandlerRegistry, data: ExportData, config: ExportConfig) -> bytes:
    """Encode data with the codec config.format names."""
    codec = get_exporter(registry, config.format)
    result = codec.validate_config(config)
    if result.warning:
        logger.warning(result.warning)
    if not result.is_valid:
        raise EncodingError(codec.name, message=f"Invalid export options: {result.error}")
    return codec.export(data, config)


def write_export(
    registry: HandlerRegistry,
    data: ExportData,
    config: ExportConfig,
    directory: Path,
    now: datetime | None = None,
) -> Path:
    """Export into directory, under config.filename or a generated name."""
    codec = get_exporter(registry, config.format)
    content = export_data(registry, data, config)
    path = Path(directory).expanduser() / (config.filename or export_filename(codec, now))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    logger.info(f"Wrote {len(content)} bytes to {path}")
    return path


# ============== Import ==============


def validate_import_file(
    registry: HandlerRegistry,
    file: FileSource,
    format_name: str | None = None,
) -> ValidationResult:
    """Check a file can be imported before reading it."""
    try:
        codec = get_importer(registry, file, format_name)
    except UnsupportedFormatError as e:
        return ValidationResult(is_valid=False, error=e.message)

    errors = []
    warnings = []
    if file.size > codec.max_file_size:
        limit_mb = codec.max_file_size // (1024 * 1024)
        errors.append(f"{file.name} exceeds the {limit_mb}MB limit for {codec.name} files")
    if file.size == 0:
        errors.append(f"{file.name} is empty")

    suffix = Path(file.name).suffix.lower()
    if suffix and suffix not in codec.extensions:
        warnings.append(f"{file.name} does not have a {codec.name} extension ({', '.join(codec.extensions)})")
    mime_type = (file.mime_type or "").split(";")[0].strip().lower()
    if mime_type and mime_type not in codec.mime_types:
        warnings.append(f"{file.name} is declared as {mime_type}, not a {codec.name} type")
    return ValidationResult.from_messages(errors, warnings)


def detect_columns(registry: HandlerRegistry, file: FileSource, format_name: str | None = None) -> list[str]:
    return get_importer(registry, file, format_name).detect_columns(file)


def suggest_mapping(registry: HandlerRegistry, file: FileSource, format_name: str | None = None) -> list[FieldMapping]:
    """Detected columns run through the codec's mapping rules."""
    codec = get_importer(registry, file, format_name)
    return codec.generate_mapping(codec.detect_columns(file))


@dataclass
class ImportPreview:
    """What an import would produce, computed from the first few rows."""

    total_records: int
    valid_records: int
    invalid_records: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    sample_notebooks: list[Notebook] = field(default_factory=list)
    sample_tasks: list[Task] = field(default_factory=list)
    mapping: list[FieldMapping] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "validRecords": self.valid_records,
            "invalidRecords": self.invalid_records,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "sampleData": {
                "notebooks": [notebook.to_dict() for notebook in self.sample_notebooks],
                "tasks": [task.to_dict() for task in self.sample_tasks],
            },
            "mapping": {entry.source_field: entry.target_field for entry in self.mapping},
        }


def preview_import(
    registry: HandlerRegistry,
    file: FileSource,
    format_name: str | None = None,
    mapping: list[FieldMapping] | None = None,
    preview_rows: int = 5,
) -> ImportPreview:
    """
    Validate every row and build samples from the first preview_rows.

    Up to three notebooks and three tasks are sampled.
    """
    codec = get_importer(registry, file, format_name)
    rows = codec.parse(file)
    if mapping is None:
        mapping = codec.generate_mapping(codec.detect_columns(file))
    results = codec.validate(rows, ImportConfig(mapping=mapping))

    notebooks: list[Notebook] = []
    tasks: list[Task] = []
    for row in rows[:preview_rows]:
        if not isinstance(row, dict) or kind_from_tag(row.get("type")) is RecordKind.SUBTASK:
            continue
        mapped = apply_mapping(row, mapping)
        match to_candidate(mapped.values, row.get("type")):
            case NotebookCandidate() as candidate if len(notebooks) < PREVIEW_SAMPLE_SIZE:
                notebooks.append(candidate.build())
            case TaskCandidate() as candidate if len(tasks) < PREVIEW_SAMPLE_SIZE:
                tasks.append(candidate.build())

    valid = sum(1 for result in results if result.is_valid)
    return ImportPreview(
        total_records=len(rows),
        valid_records=valid,
        invalid_records=len(rows) - valid,
        errors=[result.error for result in results if result.error],
        warnings=[result.warning for result in results if result.warning],
        sample_notebooks=notebooks,
        sample_tasks=tasks,
        mapping=mapping,
    )


@dataclass
class ImportResult:
    data: ExportData
    results: list[ValidationResult]
    skipped: int = 0

    @property
    def errors(self) -> list[str]:
        return [result.error for result in self.results if result.error]

    @property
    def warnings(self) -> list[str]:
        return [result.warning for result in self.results if result.warning]


def import_file(
    registry: HandlerRegistry,
    file: FileSource,
    format_name: str | None = None,
    config: ImportConfig | None = None,
) -> ImportResult:
    """
    Parse, validate and transform a file into ExportData.

    Invalid records are kept unless config.skip_invalid is set.
    """
    codec = get_importer(registry, file, format_name)
    rows = codec.parse(file)
    if config is None:
        config = ImportConfig(mapping=codec.generate_mapping(codec.detect_columns(file)))
    results = codec.validate(rows, config)

    accepted = rows
    if config.skip_invalid:
        accepted = [row for row, result in zip(rows, results) if result.is_valid]
    skipped = len(rows) - len(accepted)
    if skipped:
        logger.info(f"Skipping {skipped} invalid records from {file.name}")

    data = codec.transform(accepted, config.mapping)
    return ImportResult(data=data, results=results, skipped=skipped)


def load_export_document(registry: HandlerRegistry, file: FileSource) -> ExportData:
    """Read a JSON export (or any JSON record document) back into ExportData."""
    result = import_file(registry, file, format_name="json")
    for warning in result.warnings:
        logger.debug(warning)
    return result.data
