"""thoughtport - import/export engine for ThoughtKeeper notebooks and tasks."""

from .core.filters import ExportConfig, ExportFilter
from .core.mapping import FieldMapping, ImportConfig
from .core.models import ExportData, Notebook, Subtask, Task
from .errors import (
    DecodingError,
    EncodingError,
    InvalidDocumentError,
    ThoughtportError,
    UnsupportedFormatError,
)
from .registry import HandlerRegistry, create_default_registry

__all__ = [
    # Registry
    "HandlerRegistry",
    "create_default_registry",
    # Data
    "ExportConfig",
    "ExportData",
    "ExportFilter",
    "FieldMapping",
    "ImportConfig",
    "Notebook",
    "Subtask",
    "Task",
    # Errors
    "DecodingError",
    "EncodingError",
    "InvalidDocumentError",
    "ThoughtportError",
    "UnsupportedFormatError",
]
