"""Decide whether an imported record is a notebook or a task, and build it."""

import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .coercion import (
    normalize_priority,
    normalize_status,
    parse_bool,
    parse_date,
    parse_list,
    parse_number,
)
from .mapping import SUBTASK_RULES, FieldMapping, apply_mapping, generate_mapping, validate_record
from .models import (
    EXPORT_VERSION,
    ExportData,
    ExportMetadata,
    Notebook,
    Subtask,
    Task,
    ValidationResult,
    generate_id,
    utc_now,
)

logger = logging.getLogger(__name__)

NOTEBOOK_FIELDS = frozenset({"content", "category", "collaborators"})
TASK_FIELDS = frozenset({"status", "priority", "assignee", "due_date"})

# Canonical field names; anything else a row carries becomes a custom field
STANDARD_FIELDS = frozenset({
    "id", "title", "description", "content", "notes", "status", "priority",
    "tags", "color", "category", "is_favorite", "is_archived", "task_count",
    "collaborators", "notebook_id", "parent_id", "assignee", "estimated_hours",
    "actual_hours", "due_date", "completed_at", "created_at", "updated_at",
    "subtasks", "subtask_count", "custom_fields",
})


class RecordKind(Enum):
    NOTEBOOK = "notebook"
    TASK = "task"
    SUBTASK = "subtask"


def kind_from_tag(tag: Any) -> RecordKind | None:
    """Read an explicit type tag ("notebook", "Tasks", ...) if it names a kind."""
    if not isinstance(tag, str):
        return None
    name = tag.strip().lower()
    if name.endswith("s"):
        name = name[:-1]
    try:
        return RecordKind(name)
    except ValueError:
        return None


def classify(fields: Collection[str]) -> RecordKind:
    """
    Classify a record by which canonical fields it carries.

    Notebook-only fields with no task fields make a notebook. Everything
    else, including a record with neither, is a task.

    Pure function - no I/O.
    """
    has_task = not TASK_FIELDS.isdisjoint(fields)
    has_notebook = not NOTEBOOK_FIELDS.isdisjoint(fields)
    if has_notebook and not has_task:
        return RecordKind.NOTEBOOK
    return RecordKind.TASK


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _optional_text(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def _flag(value: Any) -> bool:
    try:
        return parse_bool(value)
    except ValueError:
        return False


def _moment(value: Any) -> datetime | None:
    try:
        return parse_date(value)
    except ValueError:
        return None


def _number(value: Any) -> float | None:
    try:
        return parse_number(value)
    except ValueError:
        return None


def _custom_fields(fields: dict) -> dict[str, Any] | None:
    extra = dict(fields["custom_fields"]) if isinstance(fields.get("custom_fields"), dict) else {}
    for key, value in fields.items():
        if key not in STANDARD_FIELDS:
            extra[key] = value
    return extra or None


def build_subtask(fields: dict, parent_task_id: str) -> Subtask:
    return Subtask(
        id=_text(fields.get("id")) or generate_id("subtask"),
        parent_task_id=parent_task_id,
        title=_text(fields.get("title")) or "Untitled Subtask",
        completed=_flag(fields.get("completed")),
        created_at=_moment(fields.get("created_at")) or utc_now(),
        updated_at=_moment(fields.get("updated_at")) or utc_now(),
    )


def map_subtask(row: dict) -> dict:
    """Canonical subtask fields for a nested subtask dict or a subtask row."""
    return apply_mapping(row, generate_mapping(list(row), SUBTASK_RULES)).values


def _nested_subtasks(value: Any, task_id: str) -> list[Subtask]:
    if not isinstance(value, list):
        return []
    return [build_subtask(map_subtask(item), task_id) for item in value if isinstance(item, dict)]


@dataclass
class NotebookCandidate:
    fields: dict[str, Any]

    def build(self) -> Notebook:
        f = self.fields
        task_count = _number(f.get("task_count"))
        return Notebook(
            id=_text(f.get("id")) or generate_id("notebook"),
            title=_text(f.get("title")) or "Untitled Notebook",
            description=_text(f.get("description")),
            content=_text(f.get("content")),
            tags=parse_list(f.get("tags")),
            color=_text(f.get("color")),
            category=_text(f.get("category")) or "personal",
            is_favorite=_flag(f.get("is_favorite")),
            is_archived=_flag(f.get("is_archived")),
            task_count=int(task_count) if task_count else 0,
            collaborators=parse_list(f.get("collaborators")),
            created_at=_moment(f.get("created_at")) or utc_now(),
            updated_at=_moment(f.get("updated_at")) or utc_now(),
            custom_fields=_custom_fields(f),
        )


@dataclass
class TaskCandidate:
    fields: dict[str, Any]

    def build(self) -> Task:
        f = self.fields
        task_id = _text(f.get("id")) or generate_id("task")
        return Task(
            id=task_id,
            title=_text(f.get("title")) or "Untitled Task",
            description=_text(f.get("description")),
            notes=_text(f.get("notes")),
            status=normalize_status(f.get("status")),
            priority=normalize_priority(f.get("priority")),
            tags=parse_list(f.get("tags")),
            notebook_id=_optional_text(f.get("notebook_id")),
            parent_id=_optional_text(f.get("parent_id")),
            assignee=_optional_text(f.get("assignee")),
            estimated_hours=_number(f.get("estimated_hours")),
            actual_hours=_number(f.get("actual_hours")),
            due_date=_moment(f.get("due_date")),
            completed_at=_moment(f.get("completed_at")),
            created_at=_moment(f.get("created_at")) or utc_now(),
            updated_at=_moment(f.get("updated_at")) or utc_now(),
            subtasks=_nested_subtasks(f.get("subtasks"), task_id),
            custom_fields=_custom_fields(f),
        )


Candidate = NotebookCandidate | TaskCandidate


def to_candidate(fields: dict[str, Any], tag: Any = None) -> Candidate:
    """
    Wrap mapped fields in the variant they classify as.

    An explicit tag (argument or a "type" field) wins over the heuristic.
    The heuristic sees the mapped fields with defaults filled in, so a row
    whose Status cell is blank still classifies as a task.
    """
    fields = dict(fields)
    kind = kind_from_tag(tag)
    field_tag = kind_from_tag(fields.get("type"))
    if field_tag:
        fields.pop("type")
        kind = kind or field_tag
    if kind is None or kind is RecordKind.SUBTASK:
        kind = classify(fields.keys())
    if kind is RecordKind.NOTEBOOK:
        return NotebookCandidate(fields)
    return TaskCandidate(fields)


def _attach_subtasks(tasks: list[Task], subtask_rows: list[dict]) -> None:
    by_id = {task.id: task for task in tasks}
    for row in subtask_rows:
        fields = map_subtask(row)
        parent = by_id.get(_text(fields.get("parent_task_id")))
        if parent is None:
            logger.warning(f"Dropping subtask '{fields.get('title')}': parent task {fields.get('parent_task_id')!r} not found")
            continue
        parent.subtasks.append(build_subtask(fields, parent.id))


def assemble_export_data(
    rows: list[Any],
    mapping: list[FieldMapping],
    format_name: str,
    source: str,
    version: str = EXPORT_VERSION,
) -> ExportData:
    """
    Transform raw rows into canonical ExportData.

    Rows tagged as subtasks attach to their parent task by id. Non-dict rows
    are skipped; validation reports them.
    """
    notebooks: list[Notebook] = []
    tasks: list[Task] = []
    subtask_rows: list[dict] = []

    for row in rows:
        if not isinstance(row, dict):
            continue
        tag = row.get("type")
        if kind_from_tag(tag) is RecordKind.SUBTASK:
            subtask_rows.append(row)
            continue
        mapped = apply_mapping(row, mapping)
        match to_candidate(mapped.values, tag):
            case NotebookCandidate() as candidate:
                notebooks.append(candidate.build())
            case TaskCandidate() as candidate:
                tasks.append(candidate.build())

    _attach_subtasks(tasks, subtask_rows)

    data = ExportData(notebooks=notebooks, tasks=tasks)
    data.metadata = ExportMetadata(
        version=version,
        format=format_name,
        exported_at=utc_now(),
        source=source,
        item_counts=data.item_counts(),
    )
    logger.info(f"Assembled {len(notebooks)} notebooks and {len(tasks)} tasks from {source}")
    return data


def validate_import_rows(
    rows: list[Any],
    mapping: list[FieldMapping],
    extra_checks: Callable[[dict, str], list[str]] | None = None,
) -> list[ValidationResult]:
    """
    One ValidationResult per row, in order.

    Rows tagged as subtasks are checked against the subtask columns rather
    than the notebook/task mapping.
    """
    results = []
    for index, row in enumerate(rows):
        row_mapping = mapping
        if isinstance(row, dict) and kind_from_tag(row.get("type")) is RecordKind.SUBTASK:
            row_mapping = generate_mapping(list(row), SUBTASK_RULES)
        results.append(validate_record(row, index, row_mapping, extra_checks))
    return results
