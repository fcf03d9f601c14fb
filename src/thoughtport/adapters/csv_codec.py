"""CSV codec - sectioned, human-editable export and header-driven import."""

import csv
import io
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from thoughtport.core.filters import ExportConfig
from thoughtport.core.models import ExportData, ExportMetadata, Notebook, Subtask, Task, flatten_subtasks
from thoughtport.errors import DecodingError
from thoughtport.ports.file_source import FileSource

from .base import MB, BaseCodec, RecordImporter, iso_timestamp

logger = logging.getLogger(__name__)

METADATA_MARKER = "EXPORT METADATA"

# Section marker -> record kind tagged onto its rows
SECTION_KINDS = {
    "NOTEBOOKS": "notebook",
    "TASKS": "task",
    "SUBTASKS": "subtask",
}

NOTEBOOK_COLUMNS: list[tuple[str, Callable[[Notebook], Any]]] = [
    ("ID", lambda nb: nb.id),
    ("Title", lambda nb: nb.title),
    ("Description", lambda nb: nb.description),
    ("Category", lambda nb: nb.category),
    ("Tags", lambda nb: nb.tags),
    ("Color", lambda nb: nb.color),
    ("Is Favorite", lambda nb: nb.is_favorite),
    ("Is Archived", lambda nb: nb.is_archived),
    ("Task Count", lambda nb: nb.task_count),
    ("Collaborators", lambda nb: nb.collaborators),
    ("Created Date", lambda nb: nb.created_at),
    ("Updated Date", lambda nb: nb.updated_at),
]

TASK_COLUMNS: list[tuple[str, Callable[[Task], Any]]] = [
    ("ID", lambda t: t.id),
    ("Title", lambda t: t.title),
    ("Description", lambda t: t.description),
    ("Notes", lambda t: t.notes),
    ("Status", lambda t: t.status.value),
    ("Priority", lambda t: t.priority.value),
    ("Tags", lambda t: t.tags),
    ("Notebook ID", lambda t: t.notebook_id),
    ("Parent Task ID", lambda t: t.parent_id),
    ("Assignee", lambda t: t.assignee),
    ("Estimated Hours", lambda t: t.estimated_hours),
    ("Actual Hours", lambda t: t.actual_hours),
    ("Due Date", lambda t: t.due_date),
    ("Completed Date", lambda t: t.completed_at),
    ("Subtask Count", lambda t: len(t.subtasks)),
    ("Created Date", lambda t: t.created_at),
    ("Updated Date", lambda t: t.updated_at),
]

SUBTASK_COLUMNS: list[tuple[str, Callable[[Subtask], Any]]] = [
    ("ID", lambda s: s.id),
    ("Parent Task ID", lambda s: s.parent_task_id),
    ("Title", lambda s: s.title),
    ("Completed", lambda s: s.completed),
    ("Created Date", lambda s: s.created_at),
    ("Updated Date", lambda s: s.updated_at),
]


def escape_field(value: str) -> str:
    """Quote a field containing , " CR or LF, doubling inner quotes."""
    if any(ch in value for ch in ',"\n\r'):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return iso_timestamp(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, tuple)):
        return ";".join(str(item) for item in value)
    return str(value)


def render_table(columns: list[tuple[str, Callable]], items: list) -> list[str]:
    lines = [",".join(escape_field(header) for header, _ in columns)]
    for item in items:
        lines.append(",".join(escape_field(format_cell(getter(item))) for _, getter in columns))
    return lines


def render_metadata(metadata: ExportMetadata) -> list[str]:
    counts = metadata.item_counts
    pairs = [
        ("Export Date", iso_timestamp(metadata.exported_at)),
        ("Version", metadata.version),
        ("Format", metadata.format),
        ("Source", metadata.source),
        ("Total Notebooks", counts.get("notebooks", 0)),
        ("Total Tasks", counts.get("tasks", 0)),
        ("Total Subtasks", counts.get("subtasks", 0)),
    ]
    return [METADATA_MARKER] + [f"{escape_field(key)},{escape_field(str(value))}" for key, value in pairs]


def read_rows(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Tokenize delimited text into rows of trimmed cells.

    Quoted fields may hold delimiters, doubled quotes and line breaks.
    Rows with no non-blank cell are dropped.
    """
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows = []
    for cells in reader:
        cells = [cell.strip() for cell in cells]
        if any(cells):
            rows.append(cells)
    return rows


def _section_marker(cells: list[str]) -> str | None:
    if cells[0] and not any(cells[1:]):
        if cells[0] == METADATA_MARKER or cells[0] in SECTION_KINDS:
            return cells[0]
    return None


def rows_to_records(rows: list[list[str]]) -> list[dict]:
    """
    Turn tokenized rows into header-keyed records.

    Without section markers the first row is the header. After a NOTEBOOKS,
    TASKS or SUBTASKS marker the next row is that section's header and its
    records are tagged with the section's kind. The metadata section is
    skipped.
    """
    records = []
    header: list[str] | None = None
    kind: str | None = None
    in_metadata = False
    for cells in rows:
        marker = _section_marker(cells)
        if marker:
            in_metadata = marker == METADATA_MARKER
            kind = SECTION_KINDS.get(marker)
            header = None
            continue
        if in_metadata:
            continue
        if header is None:
            header = cells
            continue
        record = {name: (cells[i] if i < len(cells) else "") for i, name in enumerate(header) if name}
        if kind:
            record["type"] = kind
        records.append(record)
    return records


def header_columns(rows: list[list[str]]) -> list[str]:
    """Every column named by any section header, first-seen order."""
    columns: dict[str, None] = {}
    expect_header = True
    in_metadata = False
    sectioned = False
    for cells in rows:
        marker = _section_marker(cells)
        if marker:
            in_metadata = marker == METADATA_MARKER
            sectioned = sectioned or not in_metadata
            expect_header = True
            continue
        if in_metadata or not expect_header:
            continue
        columns.update((name, None) for name in cells if name)
        expect_header = False
    if sectioned:
        columns["type"] = None
    return list(columns)


class CsvCodec(RecordImporter, BaseCodec):
    format = "csv"
    name = "CSV"
    description = "Spreadsheet-compatible tables for notebooks, tasks and subtasks"
    extensions = [".csv"]
    mime_types = ["text/csv", "application/csv", "text/plain"]
    max_file_size = 50 * MB

    delimiter = ","

    def _encode(self, data: ExportData, config: ExportConfig) -> bytes:
        sections = []
        if data.metadata:
            sections.append(render_metadata(data.metadata))
        if data.notebooks:
            sections.append(["NOTEBOOKS"] + render_table(NOTEBOOK_COLUMNS, data.notebooks))
        if data.tasks:
            sections.append(["TASKS"] + render_table(TASK_COLUMNS, data.tasks))
        subtasks = flatten_subtasks(data.tasks)
        if subtasks:
            sections.append(["SUBTASKS"] + render_table(SUBTASK_COLUMNS, subtasks))
        return "\n\n".join("\n".join(lines) for lines in sections).encode("utf-8")

    def _rows(self, file: FileSource) -> list[list[str]]:
        text = self._read_text(file)
        try:
            rows = read_rows(text, self.delimiter)
        except csv.Error as e:
            raise DecodingError(self.name, e) from e
        if not rows:
            raise DecodingError(self.name, message=f"{file.name} is empty")
        return rows

    def parse(self, file: FileSource) -> list[dict]:
        records = rows_to_records(self._rows(file))
        logger.debug(f"Parsed {len(records)} rows from {file.name}")
        return records

    def detect_columns(self, file: FileSource) -> list[str]:
        return header_columns(self._rows(file))
