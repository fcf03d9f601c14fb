"""Core domain logic - pure functions, no I/O."""

from .models import (
    EXPORT_VERSION,
    ExportData,
    ExportMetadata,
    Notebook,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
    ValidationResult,
    flatten_subtasks,
    generate_id,
    utc_now,
)
from .coercion import (
    normalize_priority,
    normalize_status,
    parse_bool,
    parse_date,
    parse_list,
    parse_number,
    serial_to_datetime,
)
from .mapping import (
    FIELD_RULES,
    FieldMapping,
    ImportConfig,
    TransformKind,
    apply_mapping,
    generate_mapping,
)
from .classifier import RecordKind, assemble_export_data, classify, to_candidate, validate_import_rows
from .filters import (
    DateRange,
    ExportConfig,
    ExportFilter,
    FilterOperator,
    apply_export_filters,
    prepare_export,
)
from .workbook import ColumnKind, Sheet, Workbook

__all__ = [
    # Models
    "EXPORT_VERSION",
    "ExportData",
    "ExportMetadata",
    "Notebook",
    "Subtask",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "ValidationResult",
    "flatten_subtasks",
    "generate_id",
    "utc_now",
    # Coercion
    "normalize_priority",
    "normalize_status",
    "parse_bool",
    "parse_date",
    "parse_list",
    "parse_number",
    "serial_to_datetime",
    # Mapping
    "FIELD_RULES",
    "FieldMapping",
    "ImportConfig",
    "TransformKind",
    "apply_mapping",
    "generate_mapping",
    # Classification
    "RecordKind",
    "assemble_export_data",
    "classify",
    "to_candidate",
    "validate_import_rows",
    # Export filtering
    "DateRange",
    "ExportConfig",
    "ExportFilter",
    "FilterOperator",
    "apply_export_filters",
    "prepare_export",
    # Workbook
    "ColumnKind",
    "Sheet",
    "Workbook",
]
