"""Behavior shared by the codec adapters."""

import logging
from datetime import datetime, timezone

from thoughtport.core.classifier import assemble_export_data, validate_import_rows
from thoughtport.core.filters import ExportConfig, prepare_export, validate_export_config
from thoughtport.core.mapping import FieldMapping, ImportConfig, generate_mapping
from thoughtport.core.models import EXPORT_VERSION, ExportData, ValidationResult
from thoughtport.errors import DecodingError, EncodingError
from thoughtport.ports.file_source import FileSource

logger = logging.getLogger(__name__)

MB = 1024 * 1024

DEFAULT_SAMPLE_SIZE = 10


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def collect_columns(records: list, sample_size: int = DEFAULT_SAMPLE_SIZE) -> list[str]:
    """
    Sorted column names across the first sample_size records.

    Nested objects contribute both their own key and dotted paths to their
    children ("owner", "owner.name").
    """
    columns: set[str] = set()

    def walk(record: dict, prefix: str) -> None:
        for key, value in record.items():
            full_key = f"{prefix}.{key}" if prefix else str(key)
            columns.add(full_key)
            if isinstance(value, dict):
                walk(value, full_key)

    for record in records[:sample_size]:
        if isinstance(record, dict):
            walk(record, "")
    return sorted(columns)


class BaseCodec:
    """
    Codec identity and the export preflight.

    Subclasses set the class attributes and implement _encode.
    """

    format: str = ""
    name: str = ""
    description: str = ""
    extensions: list[str] = []
    mime_types: list[str] = []
    max_file_size: int = 0

    def __init__(
        self,
        source_name: str = "ThoughtKeeper",
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        version: str = EXPORT_VERSION,
    ):
        self.source_name = source_name
        self.sample_size = sample_size
        self.version = version

    def __repr__(self) -> str:
        return f"{type(self).__name__}(format={self.format!r})"

    def default_config(self) -> ExportConfig:
        return ExportConfig(format=self.format)

    def validate_config(self, config: ExportConfig) -> ValidationResult:
        return validate_export_config(config, self.format, self.extensions)

    def _prepare(self, data: ExportData, config: ExportConfig) -> ExportData:
        prepared = prepare_export(data, config, self.format, self.source_name, version=self.version)
        logger.debug(
            f"{self.name} export: {len(prepared.notebooks)} notebooks, {len(prepared.tasks)} tasks after filtering"
        )
        return prepared

    def export(self, data: ExportData, config: ExportConfig) -> bytes:
        """Filter data and encode it. Any failure along the way is an EncodingError."""
        try:
            return self._encode(self._prepare(data, config), config)
        except EncodingError:
            raise
        except Exception as e:
            raise EncodingError(self.name, e) from e

    def _encode(self, data: ExportData, config: ExportConfig) -> bytes:
        raise NotImplementedError(f"{type(self).__name__} does not export")


class RecordImporter:
    """Import plumbing shared by codecs that implement parse()."""

    def _read_text(self, file: FileSource) -> str:
        if self.max_file_size and file.size > self.max_file_size:
            raise DecodingError(
                self.name,
                message=f"{file.name} is {file.size} bytes; {self.name} imports are limited to {self.max_file_size}",
            )
        try:
            return file.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise DecodingError(self.name, e) from e

    def detect_columns(self, file: FileSource) -> list[str]:
        return collect_columns(self.parse(file), self.sample_size)

    def generate_mapping(self, columns: list[str]) -> list[FieldMapping]:
        return generate_mapping(columns)

    def validate(self, rows: list[dict], config: ImportConfig) -> list[ValidationResult]:
        return validate_import_rows(rows, config.mapping)

    def transform(self, rows: list[dict], mapping: list[FieldMapping]) -> ExportData:
        return assemble_export_data(rows, mapping, self.format, f"{self.name} Import", self.version)
