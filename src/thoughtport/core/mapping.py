"""Column-to-field mapping and record validation - pure functions."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .coercion import (
    is_blank,
    is_known_priority,
    is_known_status,
    is_valid_date,
    is_valid_number,
    normalize_priority,
    normalize_status,
    parse_bool,
    parse_date,
    parse_list,
    parse_number,
)
from .models import ValidationResult, utc_now

logger = logging.getLogger(__name__)


class TransformKind(Enum):
    PARSE_DATE = "parse_date"
    PARSE_BOOL = "parse_bool"
    PARSE_LIST = "parse_list"
    PARSE_NUMBER = "parse_number"
    NORMALIZE_STATUS = "normalize_status"
    NORMALIZE_PRIORITY = "normalize_priority"
    CUSTOM = "custom"


_TRANSFORMS: dict[TransformKind, Callable[[Any], Any]] = {
    TransformKind.PARSE_DATE: parse_date,
    TransformKind.PARSE_BOOL: parse_bool,
    TransformKind.PARSE_LIST: parse_list,
    TransformKind.PARSE_NUMBER: parse_number,
    TransformKind.NORMALIZE_STATUS: normalize_status,
    TransformKind.NORMALIZE_PRIORITY: normalize_priority,
}

# Canonical fields that must be text when present
TEXT_FIELDS = ("id", "title")


@dataclass
class FieldMapping:
    """
    How one source column becomes one canonical field.

    default may be a plain value or a zero-argument factory (e.g. list,
    utc_now); factories are called each time a default is needed.
    """

    source_field: str
    target_field: str
    required: bool = False
    default: Any = None
    transform: TransformKind | None = None
    custom_transform: Callable[[Any], Any] | None = None
    validator: Callable[[Any], ValidationResult] | None = None

    def __post_init__(self):
        if self.transform is TransformKind.CUSTOM and self.custom_transform is None:
            raise ValueError(f"Mapping for '{self.source_field}' uses a custom transform but supplies none")

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def resolve_default(self) -> Any:
        return self.default() if callable(self.default) else self.default

    def apply_transform(self, value: Any) -> Any:
        if self.transform is None:
            return value
        if self.transform is TransformKind.CUSTOM:
            return self.custom_transform(value)
        return _TRANSFORMS[self.transform](value)


@dataclass
class ImportConfig:
    """Mapping plus options for validating or transforming a batch of rows."""

    mapping: list[FieldMapping]
    skip_invalid: bool = False


@dataclass(frozen=True)
class MappingRule:
    """A column-name pattern, matched against the normalized column name."""

    pattern: re.Pattern
    target_field: str
    required: bool = False
    default: Any = None
    transform: TransformKind | None = None

    def matches(self, column: str) -> bool:
        return bool(self.pattern.match(normalize_column(column)))

    def build(self, column: str) -> FieldMapping:
        return FieldMapping(
            source_field=column,
            target_field=self.target_field,
            required=self.required,
            default=self.default,
            transform=self.transform,
        )


def _rule(pattern: str, target: str, **options) -> MappingRule:
    return MappingRule(re.compile(pattern, re.IGNORECASE), target, **options)


# First matching rule wins, so specific patterns precede generic ones
FIELD_RULES: list[MappingRule] = [
    _rule(r"^(id|identifier|key|rowid)$", "id", required=True),
    _rule(r"^(type|kind|recordtype|itemtype)$", "type"),
    _rule(r"^(notebookid)$", "notebook_id"),
    _rule(r"^(parentid|parenttaskid|parent)$", "parent_id"),
    _rule(r"^(title|name|subject|task|notebook|taskname|notebookname|summary)$", "title", required=True),
    _rule(r"^(description|desc|details|note)$", "description"),
    _rule(r"^(content|body|text)$", "content"),
    _rule(r"^(notes|comments)$", "notes"),
    _rule(
        r"^(status|state|condition|taskstatus)$", "status",
        default="pending", transform=TransformKind.NORMALIZE_STATUS,
    ),
    _rule(
        r"^(priority|importance|urgency|taskpriority)$", "priority",
        default="medium", transform=TransformKind.NORMALIZE_PRIORITY,
    ),
    _rule(r"^(tags|labels|categories)$", "tags", default=list, transform=TransformKind.PARSE_LIST),
    _rule(r"^(category|group)$", "category", default="personal"),
    _rule(r"^(color|colour)$", "color"),
    _rule(r"^(assignee|assigned|assignedto|owner)$", "assignee"),
    _rule(
        r"^(collaborators|team|members)$", "collaborators",
        default=list, transform=TransformKind.PARSE_LIST,
    ),
    _rule(r"^(due|duedate|deadline|targetdate)$", "due_date", transform=TransformKind.PARSE_DATE),
    _rule(
        r"^(completed|completeddate|completedat|finishdate|finished)$", "completed_at",
        transform=TransformKind.PARSE_DATE,
    ),
    _rule(
        r"^(created|createddate|createdon|createdat|datecreated)$", "created_at",
        default=utc_now, transform=TransformKind.PARSE_DATE,
    ),
    _rule(
        r"^(updated|updateddate|updatedat|modifieddate|modified)$", "updated_at",
        default=utc_now, transform=TransformKind.PARSE_DATE,
    ),
    _rule(
        r"^(estimated|estimatedhours|estimate)$", "estimated_hours",
        transform=TransformKind.PARSE_NUMBER,
    ),
    _rule(r"^(actual|actualhours|spent)$", "actual_hours", transform=TransformKind.PARSE_NUMBER),
    _rule(r"^(taskcount)$", "task_count", transform=TransformKind.PARSE_NUMBER),
    _rule(r"^(subtaskcount)$", "subtask_count"),
    _rule(
        r"^(favorite|favourite|starred|isfavorite|isfavourite)$", "is_favorite",
        default=False, transform=TransformKind.PARSE_BOOL,
    ),
    _rule(
        r"^(archived|deleted|hidden|isarchived)$", "is_archived",
        default=False, transform=TransformKind.PARSE_BOOL,
    ),
    _rule(r"^(customfields)$", "custom_fields"),
    _rule(r"^(subtasks)$", "subtasks"),
]

SUBTASK_RULES: list[MappingRule] = [
    _rule(r"^(id|identifier|key)$", "id"),
    _rule(r"^(parenttaskid|parentid|parent|taskid)$", "parent_task_id", required=True),
    _rule(r"^(title|name|subject)$", "title"),
    _rule(r"^(completed|done|iscompleted|complete)$", "completed", default=False, transform=TransformKind.PARSE_BOOL),
    _rule(r"^(created|createddate|createdat)$", "created_at", default=utc_now, transform=TransformKind.PARSE_DATE),
    _rule(r"^(updated|updateddate|updatedat)$", "updated_at", default=utc_now, transform=TransformKind.PARSE_DATE),
]


def normalize_column(column: str) -> str:
    """Lowercase with every non-alphanumeric removed ("Due Date" -> "duedate")."""
    return re.sub(r"[^a-z0-9]", "", column.lower())


def sanitize_field_name(column: str) -> str:
    """Custom field key for an unmatched column ("Sprint #" -> "sprint")."""
    name = re.sub(r"[^a-z0-9]", "_", column.lower())
    name = re.sub(r"_+", "_", name).strip("_")
    return name or "field"


def get_path(record: Any, path: str) -> Any:
    """Look up a key, falling back to a dotted path into nested dicts."""
    if not isinstance(record, dict):
        return None
    if path in record:
        return record[path]
    current = record
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def generate_mapping(columns: list[str], rules: list[MappingRule] | None = None) -> list[FieldMapping]:
    """
    Propose a mapping for discovered column names.

    Columns matching a rule get its target, default and transform; others
    map to a sanitized custom field. A dotted column is skipped when its
    root column is also present, since the root carries the whole value.

    Pure function - no I/O.
    """
    rules = FIELD_RULES if rules is None else rules
    present = set(columns)
    mapping = []
    for column in columns:
        root, dot, _ = column.partition(".")
        if dot and root in present:
            continue
        rule = next((r for r in rules if r.matches(column)), None)
        if rule:
            mapping.append(rule.build(column))
        else:
            mapping.append(FieldMapping(source_field=column, target_field=sanitize_field_name(column)))
    return mapping


@dataclass
class MappedRecord:
    """Canonical values for one row, defaults included."""

    values: dict[str, Any]
    warnings: list[str] = field(default_factory=list)


def apply_mapping(row: dict, mapping: list[FieldMapping]) -> MappedRecord:
    """
    Produce canonical field values for one row.

    Blank sources take the mapping default, or are omitted. A transform that
    fails drops only that field and records a warning.
    """
    values: dict[str, Any] = {}
    warnings: list[str] = []
    for entry in mapping:
        value = get_path(row, entry.source_field)
        if is_blank(value):
            if not entry.has_default:
                continue
            value = entry.resolve_default()
        try:
            value = entry.apply_transform(value)
        except Exception as e:
            message = f"Could not convert '{entry.source_field}': {e}"
            logger.warning(message)
            warnings.append(message)
            continue
        if value is None:
            continue
        values[entry.target_field] = value
    return MappedRecord(values=values, warnings=warnings)


def validate_record(
    row: Any,
    index: int,
    mapping: list[FieldMapping],
    extra_checks: Callable[[dict, str], list[str]] | None = None,
) -> ValidationResult:
    """
    Validate one raw row against a mapping.

    Missing required fields without a default are errors; with a default they
    are warnings. Non-text ids/titles are errors. Unreadable dates, numbers,
    statuses and priorities are warnings since import will still succeed.
    """
    label = f"Record {index + 1}"
    if not isinstance(row, dict):
        return ValidationResult(is_valid=False, error=f"{label}: not a valid record")

    errors: list[str] = []
    warnings: list[str] = []
    for entry in mapping:
        raw = get_path(row, entry.source_field)
        if is_blank(raw):
            if entry.required and entry.has_default:
                warnings.append(f"{label}: using default value for '{entry.source_field}'")
            elif entry.required:
                errors.append(f"{label}: missing required field '{entry.source_field}'")
            continue

        if entry.target_field in TEXT_FIELDS and not isinstance(raw, str):
            errors.append(f"{label}: '{entry.source_field}' must be text")

        match entry.transform:
            case TransformKind.PARSE_DATE if not is_valid_date(raw):
                warnings.append(f"{label}: invalid date in '{entry.source_field}'")
            case TransformKind.PARSE_NUMBER if not is_valid_number(raw):
                warnings.append(f"{label}: invalid number in '{entry.source_field}'")
            case TransformKind.NORMALIZE_STATUS if not is_known_status(raw):
                warnings.append(f"{label}: unrecognized status '{raw}', using 'pending'")
            case TransformKind.NORMALIZE_PRIORITY if not is_known_priority(raw):
                warnings.append(f"{label}: unrecognized priority '{raw}', using 'medium'")

        if entry.validator:
            result = entry.validator(raw)
            if result.error:
                errors.append(f"{label}: {result.error}")
            if result.warning:
                warnings.append(f"{label}: {result.warning}")

    if extra_checks:
        warnings.extend(extra_checks(row, label))
    return ValidationResult.from_messages(errors, warnings)

