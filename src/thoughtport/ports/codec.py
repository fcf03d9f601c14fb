"""Codec interfaces - one implementation per wire format."""

from typing import Protocol, runtime_checkable

from thoughtport.core.filters import ExportConfig
from thoughtport.core.mapping import FieldMapping, ImportConfig
from thoughtport.core.models import ExportData, ValidationResult
from thoughtport.ports.file_source import FileSource


@runtime_checkable
class Codec(Protocol):
    """What every registered codec declares about itself."""

    format: str
    name: str
    description: str
    extensions: list[str]
    mime_types: list[str]
    max_file_size: int


@runtime_checkable
class ExportCodec(Codec, Protocol):
    """Serializes ExportData to bytes."""

    def export(self, data: ExportData, config: ExportConfig) -> bytes:
        """Run the filter pipeline, then encode. Raises EncodingError."""
        ...

    def validate_config(self, config: ExportConfig) -> ValidationResult:
        ...

    def default_config(self) -> ExportConfig:
        ...


@runtime_checkable
class ImportCodec(Codec, Protocol):
    """Reads a file into rows and turns rows into ExportData."""

    def parse(self, file: FileSource) -> list[dict]:
        """Raw records in source order. Raises DecodingError."""
        ...

    def detect_columns(self, file: FileSource) -> list[str]:
        ...

    def generate_mapping(self, columns: list[str]) -> list[FieldMapping]:
        ...

    def validate(self, rows: list[dict], config: ImportConfig) -> list[ValidationResult]:
        ...

    def transform(self, rows: list[dict], mapping: list[FieldMapping]) -> ExportData:
        ...
