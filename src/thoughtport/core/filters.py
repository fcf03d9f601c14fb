"""Export configuration and the filter pipeline every export codec runs."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .coercion import parse_date
from .mapping import get_path
from .models import (
    EXPORT_VERSION,
    ExportData,
    ExportMetadata,
    TaskStatus,
    ValidationResult,
    utc_now,
)

COLLECTIONS = ("notebooks", "tasks")


class FilterOperator(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    IN = "in"
    BETWEEN = "between"


def _camel(segment: str) -> str:
    head, *rest = segment.split("_")
    return head + "".join(part.title() for part in rest)


def _comparable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class ExportFilter:
    """
    A predicate on one field of exported records.

    field is a dotted path, optionally prefixed "notebooks." or "tasks." to
    restrict it to one collection. Unprefixed filters apply to both.
    """

    field: str
    operator: FilterOperator
    value: Any
    enabled: bool = True

    def __post_init__(self):
        if not isinstance(self.operator, FilterOperator):
            self.operator = FilterOperator(self.operator)

    @property
    def scope(self) -> str | None:
        head, dot, _ = self.field.partition(".")
        return head if dot and head in COLLECTIONS else None

    @property
    def path(self) -> str:
        path = self.field.partition(".")[2] if self.scope else self.field
        return ".".join(_camel(segment) for segment in path.split("."))

    def applies_to(self, collection: str) -> bool:
        return self.scope is None or self.scope == collection

    def matches(self, record: dict) -> bool:
        """Test a wire-form record (see Notebook.to_dict / Task.to_dict)."""
        actual = _comparable(get_path(record, self.path))
        expected = self.value

        match self.operator:
            case FilterOperator.EQUALS:
                if isinstance(actual, datetime):
                    return actual == _bound(expected)
                return actual == _comparable(expected)
            case FilterOperator.CONTAINS:
                if isinstance(actual, list):
                    needle = str(expected).lower()
                    return any(needle in str(item).lower() for item in actual)
                return actual is not None and str(expected).lower() in str(actual).lower()
            case FilterOperator.STARTS_WITH:
                return actual is not None and str(actual).lower().startswith(str(expected).lower())
            case FilterOperator.IN:
                options = [_comparable(option) for option in expected]
                if isinstance(actual, list):
                    return any(item in options for item in actual)
                return actual in options
            case FilterOperator.BETWEEN:
                low, high = expected
                if actual is None:
                    return False
                if isinstance(actual, datetime):
                    return _bound(low) <= actual <= _bound(high)
                if isinstance(actual, (int, float)):
                    return float(low) <= actual <= float(high)
                return str(low) <= str(actual) <= str(high)
        return False

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value,
            "enabled": self.enabled,
        }


def _bound(value: Any) -> datetime | None:
    return parse_date(value)


@dataclass
class DateRange:
    """Inclusive range on creation date."""

    start: datetime
    end: datetime

    def __post_init__(self):
        self.start = parse_date(self.start)
        self.end = parse_date(self.end)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class ExportConfig:
    format: str = "json"
    include_metadata: bool = True
    include_deleted: bool = False
    date_range: DateRange | None = None
    filters: list[ExportFilter] = field(default_factory=list)
    filename: str | None = None


_FILENAME_UNSAFE = re.compile(r"[\\/:*?\"<>|]")


def validate_export_config(config: ExportConfig, format_name: str, extensions: list[str]) -> ValidationResult:
    """Check an export configuration before running it."""
    errors = []
    warnings = []
    if config.format != format_name:
        errors.append(f"Format '{config.format}' does not match codec '{format_name}'")
    if config.date_range and config.date_range.start > config.date_range.end:
        errors.append("Date range start is after its end")
    for export_filter in config.filters:
        if not export_filter.field.strip():
            errors.append("Filter has no field")
        elif export_filter.operator in (FilterOperator.IN, FilterOperator.BETWEEN) and not isinstance(
            export_filter.value, (list, tuple)
        ):
            errors.append(f"Filter on '{export_filter.field}' needs a list value for '{export_filter.operator.value}'")
        elif export_filter.operator is FilterOperator.BETWEEN and len(export_filter.value) != 2:
            errors.append(f"Filter on '{export_filter.field}' needs exactly two bounds")
    if config.filename:
        if _FILENAME_UNSAFE.search(config.filename):
            errors.append(f"Filename '{config.filename}' contains invalid characters")
        elif not any(config.filename.lower().endswith(ext) for ext in extensions):
            warnings.append(f"Filename '{config.filename}' does not end in {' or '.join(extensions)}")
    return ValidationResult.from_messages(errors, warnings)


def apply_export_filters(data: ExportData, config: ExportConfig) -> ExportData:
    """
    Run the export filter pipeline.

    Order is fixed: strip metadata, inclusive date range on creation date,
    enabled custom filters, then drop archived notebooks and cancelled tasks
    unless include_deleted is set. The input is not modified.

    Pure function - no I/O.
    """
    metadata = data.metadata if config.include_metadata else None
    notebooks = list(data.notebooks)
    tasks = list(data.tasks)

    if config.date_range:
        notebooks = [nb for nb in notebooks if config.date_range.contains(nb.created_at)]
        tasks = [task for task in tasks if config.date_range.contains(task.created_at)]

    for export_filter in config.filters:
        if not export_filter.enabled:
            continue
        if export_filter.applies_to("notebooks"):
            notebooks = [nb for nb in notebooks if export_filter.matches(nb.to_dict())]
        if export_filter.applies_to("tasks"):
            tasks = [task for task in tasks if export_filter.matches(task.to_dict())]

    if not config.include_deleted:
        notebooks = [nb for nb in notebooks if not nb.is_archived]
        tasks = [task for task in tasks if task.status != TaskStatus.CANCELLED]

    return ExportData(notebooks=notebooks, tasks=tasks, metadata=metadata)


def stamp_metadata(
    data: ExportData,
    config: ExportConfig,
    format_name: str,
    source: str,
    now: datetime | None = None,
    version: str = EXPORT_VERSION,
) -> ExportData:
    """
    Give filtered data fresh metadata describing this export.

    The exporter carries over from the incoming metadata. Nothing is added
    when metadata is not wanted.
    """
    if not config.include_metadata:
        return data
    previous = data.metadata
    data.metadata = ExportMetadata(
        version=version,
        format=format_name,
        exported_at=now or utc_now(),
        source=source,
        item_counts=data.item_counts(),
        filters=[f.to_dict() for f in config.filters if f.enabled],
        exported_by=previous.exported_by if previous else None,
    )
    return data


def prepare_export(
    data: ExportData,
    config: ExportConfig,
    format_name: str,
    source: str,
    now: datetime | None = None,
    version: str = EXPORT_VERSION,
) -> ExportData:
    """Filter, then stamp metadata. Every export codec starts here."""
    return stamp_metadata(apply_export_filters(data, config), config, format_name, source, now, version)
