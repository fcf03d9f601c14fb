"""Canonical notebook/task model shared by every codec - no I/O dependencies."""

import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

EXPORT_VERSION = "1.0.0"

_ID_ALPHABET = string.digits + string.ascii_lowercase


class TaskStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"
    REVIEW = "review"


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort weight, urgent highest."""
        return {"low": 1, "medium": 2, "high": 3, "urgent": 4}[self.value]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str, now: datetime | None = None) -> str:
    """
    Synthesize an identifier for a record that arrived without one.

    Format: <prefix>-<epoch milliseconds>-<9 random base36 chars>
    """
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{millis}-{suffix}"


@dataclass
class ValidationResult:
    """Outcome of validating one record or one export configuration."""

    is_valid: bool
    error: str | None = None
    warning: str | None = None

    @classmethod
    def from_messages(cls, errors: list[str], warnings: list[str]) -> "ValidationResult":
        return cls(
            is_valid=not errors,
            error="; ".join(errors) or None,
            warning="; ".join(warnings) or None,
        )


@dataclass
class Subtask:
    id: str
    parent_task_id: str
    title: str
    completed: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parentTaskId": self.parent_task_id,
            "title": self.title,
            "completed": self.completed,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Notebook:
    """A container of notes and tasks."""

    id: str
    title: str
    description: str = ""
    content: str = ""
    tags: list[str] = field(default_factory=list)
    color: str = ""
    category: str = "personal"
    is_favorite: bool = False
    is_archived: bool = False
    task_count: int = 0
    collaborators: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    custom_fields: dict[str, Any] | None = None

    def to_dict(self) -> dict:
        """Wire representation (camelCase keys, datetimes left as objects)."""
        record = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "tags": list(self.tags),
            "color": self.color,
            "category": self.category,
            "isFavorite": self.is_favorite,
            "isArchived": self.is_archived,
            "taskCount": self.task_count,
            "collaborators": list(self.collaborators),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.custom_fields:
            record["customFields"] = dict(self.custom_fields)
        return record


@dataclass
class Task:
    """A unit of work, optionally inside a notebook and with subtasks."""

    id: str
    title: str
    description: str = ""
    notes: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: list[str] = field(default_factory=list)
    notebook_id: str | None = None
    parent_id: str | None = None
    assignee: str | None = None
    estimated_hours: float | None = None
    actual_hours: float | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    subtasks: list[Subtask] = field(default_factory=list)
    custom_fields: dict[str, Any] | None = None

    @property
    def is_open(self) -> bool:
        return self.status not in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    def is_overdue(self, as_of: datetime | None = None) -> bool:
        """Past its due date and not completed."""
        if not self.due_date or self.status == TaskStatus.COMPLETED:
            return False
        as_of = as_of or utc_now()
        return self.due_date < as_of

    def to_dict(self) -> dict:
        """Wire representation (camelCase keys, enum values, datetimes left as objects)."""
        record = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "notes": self.notes,
            "status": self.status.value,
            "priority": self.priority.value,
            "tags": list(self.tags),
            "notebookId": self.notebook_id,
            "parentId": self.parent_id,
            "assignee": self.assignee,
            "estimatedHours": self.estimated_hours,
            "actualHours": self.actual_hours,
            "dueDate": self.due_date,
            "completedAt": self.completed_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "subtasks": [subtask.to_dict() for subtask in self.subtasks],
        }
        if self.custom_fields:
            record["customFields"] = dict(self.custom_fields)
        return record


@dataclass
class ExportMetadata:
    version: str
    format: str
    exported_at: datetime
    source: str
    item_counts: dict[str, int] = field(default_factory=dict)
    filters: list[dict] = field(default_factory=list)
    exported_by: str | None = None

    def to_dict(self) -> dict:
        record = {
            "version": self.version,
            "format": self.format,
            "exportedAt": self.exported_at,
            "source": self.source,
            "itemCounts": dict(self.item_counts),
            "filters": list(self.filters),
        }
        if self.exported_by:
            record["exportedBy"] = self.exported_by
        return record


@dataclass
class ExportData:
    """The unit every codec reads or writes."""

    notebooks: list[Notebook] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    metadata: ExportMetadata | None = None

    def item_counts(self) -> dict[str, int]:
        return {
            "notebooks": len(self.notebooks),
            "tasks": len(self.tasks),
            "subtasks": sum(len(task.subtasks) for task in self.tasks),
        }

    def to_dict(self) -> dict:
        record: dict[str, Any] = {}
        if self.metadata:
            record["metadata"] = self.metadata.to_dict()
        record["notebooks"] = [notebook.to_dict() for notebook in self.notebooks]
        record["tasks"] = [task.to_dict() for task in self.tasks]
        return record


def flatten_subtasks(tasks: list[Task]) -> list[Subtask]:
    """
    Flatten subtasks into one row per subtask.

    Each row's parent_task_id is the owning task's id, whatever the subtask
    itself carried.
    """
    return [
        replace(subtask, parent_task_id=task.id)
        for task in tasks
        for subtask in task.subtasks
    ]
