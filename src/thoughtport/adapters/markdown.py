"""Markdown codec - a readable report of an export. Export only."""

import logging
import re
from collections.abc import Callable
from datetime import datetime

from thoughtport.core.filters import ExportConfig
from thoughtport.core.models import ExportData, Notebook, Task, TaskStatus, utc_now
from thoughtport.core.stats import all_tags, percentage, priority_distribution, status_distribution

from .base import MB, BaseCodec

logger = logging.getLogger(__name__)

TOC_NOTEBOOK_LIMIT = 10

STATUS_EMOJI = {
    "pending": "⏳",
    "in_progress": "🔄",
    "completed": "✅",
    "cancelled": "❌",
    "blocked": "🚫",
    "review": "👀",
}

PRIORITY_EMOJI = {
    "urgent": "🔥",
    "high": "⬆️",
    "medium": "➡️",
    "low": "⬇️",
}


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def _label(value: str) -> str:
    return value[:1].upper() + value[1:]


def _day(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def _tag_list(tags: list[str]) -> str:
    return ", ".join(f"`{tag}`" for tag in tags)


def task_sort_key(task: Task) -> tuple:
    """Priority descending, then due date ascending with undated tasks last."""
    due = task.due_date.timestamp() if task.due_date else float("inf")
    return (-task.priority.rank, due)


class MarkdownCodec(BaseCodec):
    format = "markdown"
    name = "Markdown"
    description = "Human-readable report with summaries, grouped notebooks and tasks"
    extensions = [".md"]
    mime_types = ["text/markdown"]
    max_file_size = 10 * MB

    def __init__(self, source_name: str = "ThoughtKeeper", clock: Callable[[], datetime] = utc_now, **kwargs):
        super().__init__(source_name=source_name, **kwargs)
        self.clock = clock

    def _encode(self, data: ExportData, config: ExportConfig) -> bytes:
        now = self.clock()
        parts = [self._header(data, config, now)]
        if data.notebooks or data.tasks:
            parts.append(self._table_of_contents(data))
        parts.append(self._summary(data))
        if data.notebooks:
            parts.append(self._notebooks(data.notebooks))
        if data.tasks:
            parts.append(self._tasks(data.tasks, now))
        parts.append(self._appendices(data, now))
        return "".join(parts).encode("utf-8")

    def _header(self, data: ExportData, config: ExportConfig, now: datetime) -> str:
        lines = [
            f"# {self.source_name} Export",
            "",
            f"**Generated:** {now:%B} {now.day}, {now.year}",
            "**Format:** Markdown",
        ]
        if data.metadata:
            lines.append(f"**Version:** {data.metadata.version}")
        lines.extend(["", "---", ""])
        if config.include_metadata:
            lines.extend([
                f"This document contains an export of your {self.source_name} data, including "
                f"{_plural(len(data.notebooks), 'notebook')} and {_plural(len(data.tasks), 'task')}.",
                "",
            ])
        return "\n".join(lines) + "\n"

    def _table_of_contents(self, data: ExportData) -> str:
        lines = ["## Table of Contents", "", "- [Summary](#summary)"]
        if data.notebooks:
            lines.append(f"- [Notebooks](#notebooks) ({len(data.notebooks)})")
            for notebook in data.notebooks[:TOC_NOTEBOOK_LIMIT]:
                lines.append(f"  - [{notebook.title}](#notebook-{slugify(notebook.title)})")
            if len(data.notebooks) > TOC_NOTEBOOK_LIMIT:
                lines.append(f"  - ... and {len(data.notebooks) - TOC_NOTEBOOK_LIMIT} more")
        if data.tasks:
            lines.append(f"- [Tasks](#tasks) ({len(data.tasks)})")
            lines.append("  - [By Status](#tasks-by-status)")
            lines.append("  - [High Priority](#high-priority-tasks)")
        lines.append("- [Appendices](#appendices)")
        return "\n".join(lines) + "\n\n"

    def _summary(self, data: ExportData) -> str:
        counts = data.item_counts()
        lines = [
            "## Summary",
            "",
            "| Metric | Count |",
            "|--------|-------|",
            f"| Notebooks | {counts['notebooks']} |",
            f"| Tasks | {counts['tasks']} |",
            f"| Subtasks | {counts['subtasks']} |",
        ]
        total = len(data.tasks)
        if total:
            lines.extend([
                "",
                "### Task Status Distribution",
                "",
                "| Status | Count | Percentage |",
                "|--------|-------|------------|",
            ])
            for status, count in status_distribution(data.tasks):
                lines.append(f"| {_label(status)} | {count} | {percentage(count, total):.1f}% |")
            lines.extend([
                "",
                "### Task Priority Distribution",
                "",
                "| Priority | Count | Percentage |",
                "|----------|-------|------------|",
            ])
            for priority, count in priority_distribution(data.tasks):
                emoji = PRIORITY_EMOJI.get(priority, "➡️")
                lines.append(f"| {emoji} {_label(priority)} | {count} | {percentage(count, total):.1f}% |")
        return "\n".join(lines) + "\n\n"

    def _notebooks(self, notebooks: list[Notebook]) -> str:
        groups: dict[str, list[Notebook]] = {}
        for notebook in notebooks:
            groups.setdefault(notebook.category or "personal", []).append(notebook)

        parts = ["## Notebooks\n\n"]
        for category, members in groups.items():
            members.sort(key=lambda nb: nb.updated_at, reverse=True)
            parts.append(f"### {_label(category)} ({len(members)})\n\n")
            parts.extend(self._notebook(notebook) for notebook in members)
        return "".join(parts)

    def _notebook(self, notebook: Notebook) -> str:
        lines = [
            f"#### {notebook.title} {{#notebook-{slugify(notebook.title)}}}",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| **ID** | `{notebook.id}` |",
            f"| **Category** | {notebook.category or 'personal'} |",
        ]
        if notebook.color:
            lines.append(f"| **Color** | {notebook.color} |")
        if notebook.is_favorite:
            lines.append("| **Favorite** | ⭐ Yes |")
        if notebook.task_count:
            lines.append(f"| **Tasks** | {notebook.task_count} |")
        if notebook.collaborators:
            lines.append(f"| **Collaborators** | {', '.join(notebook.collaborators)} |")
        lines.append(f"| **Created** | {_day(notebook.created_at)} |")
        lines.append(f"| **Updated** | {_day(notebook.updated_at)} |")
        lines.append("")
        if notebook.description:
            lines.extend(["**Description:**", "", notebook.description, ""])
        if notebook.content:
            lines.extend(["**Content:**", "", notebook.content, ""])
        if notebook.tags:
            lines.extend([f"**Tags:** {_tag_list(notebook.tags)}", ""])
        lines.extend(["---", ""])
        return "\n".join(lines) + "\n"

    def _tasks(self, tasks: list[Task], now: datetime) -> str:
        groups: dict[str, list[Task]] = {}
        for task in tasks:
            groups.setdefault(task.status.value, []).append(task)

        parts = ["## Tasks\n\n", "### Tasks by Status\n\n"]
        for status, members in groups.items():
            members.sort(key=task_sort_key)
            emoji = STATUS_EMOJI.get(status, "📝")
            parts.append(f"#### {emoji} {_label(status)} ({len(members)})\n\n")
            parts.extend(self._task(task, now) for task in members)

        high_priority = [
            task for task in tasks
            if task.priority.rank >= 3 and task.status != TaskStatus.COMPLETED
        ]
        if high_priority:
            parts.append(f"### 🔥 High Priority Tasks ({len(high_priority)})\n\n")
            parts.extend(self._task_digest(task, now) for task in high_priority)
        return "".join(parts)

    def _task(self, task: Task, now: datetime) -> str:
        checkbox = "[x]" if task.status == TaskStatus.COMPLETED else "[ ]"
        status_emoji = STATUS_EMOJI.get(task.status.value, "📝")
        priority_emoji = PRIORITY_EMOJI.get(task.priority.value, "➡️")
        lines = [f"- {checkbox} **{task.title}** {status_emoji} {priority_emoji}"]
        if task.description:
            lines.extend(["  ", f"  {task.description}"])

        details = []
        if task.assignee:
            details.append(f"👤 {task.assignee}")
        if task.due_date:
            overdue = " ⚠️ **OVERDUE**" if task.is_overdue(now) else ""
            details.append(f"📅 {_day(task.due_date)}{overdue}")
        if task.estimated_hours:
            details.append(f"⏱️ {task.estimated_hours:g}h")
        if details:
            lines.extend(["  ", f"  {' • '.join(details)}"])

        if task.tags:
            lines.extend(["  ", f"  **Tags:** {_tag_list(task.tags)}"])
        if task.subtasks:
            lines.extend(["  ", "  **Subtasks:**"])
            for subtask in task.subtasks:
                lines.append(f"  - {'[x]' if subtask.completed else '[ ]'} {subtask.title}")
        return "\n".join(lines) + "\n\n"

    def _task_digest(self, task: Task, now: datetime) -> str:
        priority = task.priority.value
        lines = [f"- **{task.title}** ({PRIORITY_EMOJI.get(priority, '➡️')} {priority})"]
        if task.description:
            lines.append(f"  {task.description}")
        if task.due_date:
            overdue = " ⚠️ **OVERDUE**" if task.is_overdue(now) else ""
            lines.append(f"  📅 Due: {_day(task.due_date)}{overdue}")
        return "\n".join(lines) + "\n\n"

    def _appendices(self, data: ExportData, now: datetime) -> str:
        lines = ["## Appendices", ""]
        tags = all_tags(data.notebooks, data.tasks)
        if tags:
            lines.extend(["### All Tags", "", _tag_list(tags), ""])
        lines.extend([
            "### Export Information",
            "",
            f"- **Export Date:** {now:%Y-%m-%d %H:%M:%S} UTC",
            "- **Format:** Markdown",
            f"- **Total Items:** {len(data.notebooks) + len(data.tasks)}",
        ])
        return "\n".join(lines) + "\n"
