"""Shared fixtures: a small ThoughtKeeper workspace."""

from datetime import datetime, timezone

import pytest

from thoughtport.core.models import (
    ExportData,
    Notebook,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
)

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)
T2 = datetime(2024, 3, 20, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def notebooks():
    return [
        Notebook(
            id="nb-1",
            title="Work Notes",
            description="Team meeting notes",
            content="Standup every day",
            tags=["work", "meetings"],
            color="#ff0000",
            category="work",
            is_favorite=True,
            task_count=2,
            collaborators=["alice", "bob"],
            created_at=T0,
            updated_at=T1,
        ),
        Notebook(
            id="nb-2",
            title="Recipes",
            category="personal",
            tags=["food"],
            created_at=T1,
            updated_at=T2,
        ),
        Notebook(
            id="nb-3",
            title="Old Ideas",
            category="personal",
            is_archived=True,
            created_at=T0,
            updated_at=T0,
        ),
    ]


@pytest.fixture
def tasks():
    return [
        Task(
            id="task-1",
            title="Write report",
            description="Quarterly report",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.HIGH,
            tags=["work"],
            notebook_id="nb-1",
            assignee="alice",
            estimated_hours=4.5,
            due_date=T2,
            created_at=T0,
            updated_at=T1,
            subtasks=[
                Subtask(id="sub-1", parent_task_id="task-1", title="Outline", completed=True, created_at=T0, updated_at=T0),
                Subtask(id="sub-2", parent_task_id="task-1", title="Draft", created_at=T0, updated_at=T1),
            ],
        ),
        Task(
            id="task-2",
            title="Buy groceries",
            status=TaskStatus.PENDING,
            priority=TaskPriority.LOW,
            tags=["food", "errands"],
            created_at=T1,
            updated_at=T1,
        ),
        Task(
            id="task-3",
            title="Abandoned plan",
            status=TaskStatus.CANCELLED,
            priority=TaskPriority.URGENT,
            created_at=T0,
            updated_at=T0,
        ),
    ]


@pytest.fixture
def data(notebooks, tasks):
    return ExportData(notebooks=notebooks, tasks=tasks)
