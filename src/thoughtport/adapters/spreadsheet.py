"""
Spreadsheet codec - XML spreadsheet markup export, best-effort import.

Import never reads binary workbooks: delimiter-bearing text is parsed as
delimited rows, anything else yields a fixed placeholder record.
"""

import csv
import logging
from datetime import datetime, timezone
from typing import Any
from xml.sax.saxutils import escape

from thoughtport.core.classifier import validate_import_rows
from thoughtport.core.coercion import is_probable_serial
from thoughtport.core.filters import ExportConfig
from thoughtport.core.mapping import ImportConfig
from thoughtport.core.models import ExportData, ValidationResult, flatten_subtasks, utc_now
from thoughtport.core.stats import category_distribution, priority_distribution, status_distribution
from thoughtport.core.workbook import ColumnKind, Sheet, Workbook
from thoughtport.errors import DecodingError
from thoughtport.ports.file_source import FileSource

from .base import MB, BaseCodec, RecordImporter, iso_timestamp
from .csv_codec import NOTEBOOK_COLUMNS, SUBTASK_COLUMNS, TASK_COLUMNS, read_rows, rows_to_records

logger = logging.getLogger(__name__)

SPREADSHEET_NS = "urn:schemas-microsoft-com:office:spreadsheet"
OFFICE_NS = "urn:schemas-microsoft-com:office:office"

STYLES = """  <Styles>
    <Style ss:ID="Header">
      <Font ss:Bold="1"/>
      <Interior ss:Color="#E0E0E0" ss:Pattern="Solid"/>
    </Style>
    <Style ss:ID="Date">
      <NumberFormat ss:Format="mm/dd/yyyy hh:mm:ss"/>
    </Style>
    <Style ss:ID="Number">
      <NumberFormat ss:Format="0"/>
    </Style>
  </Styles>"""

# Columns not listed here are strings
COLUMN_KINDS = {
    "Is Favorite": ColumnKind.BOOLEAN,
    "Is Archived": ColumnKind.BOOLEAN,
    "Completed": ColumnKind.BOOLEAN,
    "Task Count": ColumnKind.NUMBER,
    "Estimated Hours": ColumnKind.NUMBER,
    "Actual Hours": ColumnKind.NUMBER,
    "Subtask Count": ColumnKind.NUMBER,
    "Due Date": ColumnKind.DATE,
    "Completed Date": ColumnKind.DATE,
    "Created Date": ColumnKind.DATE,
    "Updated Date": ColumnKind.DATE,
}

ERROR_LITERALS = frozenset({"#DIV/0!", "#N/A", "#NAME?", "#NULL!", "#NUM!", "#REF!", "#VALUE!"})

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: str) -> str:
    return escape(text, _XML_ENTITIES)


def table_sheet(name: str, columns: list, items: list) -> Sheet:
    sheet = Sheet(name=name, column_kinds=[COLUMN_KINDS.get(header, ColumnKind.STRING) for header, _ in columns])
    sheet.add_header([header for header, _ in columns])
    for item in items:
        sheet.add_row([getter(item) for _, getter in columns])
    return sheet


def summary_sheet(data: ExportData) -> Sheet:
    sheet = Sheet(name="Summary", column_kinds=[ColumnKind.STRING, ColumnKind.NUMBER])
    counts = data.item_counts()
    sheet.add_header(["ThoughtKeeper Export Summary"])
    sheet.add_row(["Export Date", iso_timestamp(data.metadata.exported_at) if data.metadata else ""])
    sheet.add_row(["Total Notebooks", counts["notebooks"]])
    sheet.add_row(["Total Tasks", counts["tasks"]])
    sheet.add_row(["Total Subtasks", counts["subtasks"]])
    for label, distribution in (
        ("Status", status_distribution(data.tasks)),
        ("Priority", priority_distribution(data.tasks)),
        ("Category", category_distribution(data.notebooks)),
    ):
        sheet.add_row([])
        sheet.add_header([label, "Count"])
        for value, count in distribution:
            sheet.add_row([value, count])
    return sheet


def build_workbook(data: ExportData, title: str, author: str, created: datetime) -> Workbook:
    """Summary (when metadata is present), then one sheet per non-empty collection."""
    workbook = Workbook(title=title, author=author, created=created)
    if data.metadata:
        workbook.sheets.append(summary_sheet(data))
    if data.notebooks:
        workbook.sheets.append(table_sheet("Notebooks", NOTEBOOK_COLUMNS, data.notebooks))
    if data.tasks:
        workbook.sheets.append(table_sheet("Tasks", TASK_COLUMNS, data.tasks))
    subtasks = flatten_subtasks(data.tasks)
    if subtasks:
        workbook.sheets.append(table_sheet("Subtasks", SUBTASK_COLUMNS, subtasks))
    return workbook


def _spreadsheet_datetime(moment: datetime) -> str:
    # Markup DateTime cells carry no zone designator
    return moment.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def render_cell(value: Any, kind: ColumnKind, is_header: bool) -> str:
    """One <Cell>, typed by its column kind; values that don't fit render as String."""
    if is_header:
        style = ' ss:StyleID="Header"'
    elif kind is ColumnKind.DATE:
        style = ' ss:StyleID="Date"'
    elif kind is ColumnKind.NUMBER:
        style = ' ss:StyleID="Number"'
    else:
        style = ""

    if not is_header and kind is ColumnKind.DATE and isinstance(value, datetime):
        data_type, text = "DateTime", _spreadsheet_datetime(value)
    elif not is_header and kind is ColumnKind.NUMBER and _is_number(value):
        data_type, text = "Number", str(value)
    elif isinstance(value, bool):
        data_type, text = "String", "Yes" if value else "No"
    elif isinstance(value, (list, tuple)):
        data_type, text = "String", escape_xml(", ".join(str(item) for item in value))
    else:
        data_type, text = "String", escape_xml("" if value is None else str(value))
    return f'<Cell{style}><Data ss:Type="{data_type}">{text}</Data></Cell>'


def render_sheet(sheet: Sheet) -> str:
    lines = [f'  <Worksheet ss:Name="{escape_xml(sheet.name)}">', "    <Table>"]
    for row_index, row in enumerate(sheet.rows):
        cells = "".join(
            render_cell(value, sheet.kind_of(column), sheet.is_header(row_index))
            for column, value in enumerate(row)
        )
        lines.append(f"      <Row>{cells}</Row>")
    lines.extend(["    </Table>", "  </Worksheet>"])
    return "\n".join(lines)


def render_workbook(workbook: Workbook) -> str:
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<Workbook xmlns="{SPREADSHEET_NS}" xmlns:o="{OFFICE_NS}" xmlns:ss="{SPREADSHEET_NS}">',
        f'  <DocumentProperties xmlns="{OFFICE_NS}">',
        f"    <Title>{escape_xml(workbook.title)}</Title>",
        f"    <Author>{escape_xml(workbook.author)}</Author>",
        f"    <Created>{iso_timestamp(workbook.created)}</Created>",
        "  </DocumentProperties>",
        STYLES,
    ]
    parts.extend(render_sheet(sheet) for sheet in workbook.sheets)
    parts.append("</Workbook>")
    return "\n".join(parts)


def placeholder_records(now: datetime | None = None) -> list[dict]:
    """What import returns for content it cannot read."""
    stamp = iso_timestamp(now or utc_now())
    return [
        {
            "ID": "task-1",
            "Title": "Sample Task from Excel",
            "Description": "This is a simulated task from an Excel file",
            "Status": "pending",
            "Priority": "medium",
            "Tags": "excel,import,sample",
            "Created Date": stamp,
            "Updated Date": stamp,
        }
    ]


def suspect_value_warnings(row: dict, label: str) -> list[str]:
    """Serial-looking numbers, leftover formulas and error literals."""
    warnings = []
    for key, value in row.items():
        if key == "type":
            continue
        if is_probable_serial(value):
            warnings.append(f"{label}: '{key}' looks like a spreadsheet serial date ({value})")
        elif isinstance(value, str) and value.startswith("="):
            warnings.append(f"{label}: '{key}' contains a formula: {value}")
        elif isinstance(value, str) and value in ERROR_LITERALS:
            warnings.append(f"{label}: '{key}' contains a spreadsheet error: {value}")
    return warnings


class SpreadsheetCodec(RecordImporter, BaseCodec):
    format = "excel"
    name = "Excel"
    description = "Spreadsheet workbook with summary, notebook, task and subtask sheets"
    extensions = [".xls", ".xlsx"]
    mime_types = [
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ]
    max_file_size = 100 * MB

    def _encode(self, data: ExportData, config: ExportConfig) -> bytes:
        created = data.metadata.exported_at if data.metadata else utc_now()
        workbook = build_workbook(data, f"{self.source_name} Export", self.source_name, created)
        return render_workbook(workbook).encode("utf-8")

    def _text_content(self, file: FileSource) -> str | None:
        if self.max_file_size and file.size > self.max_file_size:
            raise DecodingError(
                self.name,
                message=f"{file.name} is {file.size} bytes; {self.name} imports are limited to {self.max_file_size}",
            )
        try:
            return file.read_bytes().decode("utf-8-sig")
        except UnicodeDecodeError:
            return None
        except OSError as e:
            raise DecodingError(self.name, e) from e

    def parse(self, file: FileSource) -> list[dict]:
        text = self._text_content(file)
        if text and not text.lstrip().startswith("<") and ("," in text or "\t" in text):
            first_line = text.lstrip().split("\n", 1)[0]
            delimiter = "\t" if "\t" in first_line else ","
            try:
                return rows_to_records(read_rows(text, delimiter))
            except csv.Error as e:
                raise DecodingError(self.name, e) from e
        logger.warning(f"{file.name} is not delimited text; returning placeholder records")
        return placeholder_records()

    def validate(self, rows: list[dict], config: ImportConfig) -> list[ValidationResult]:
        return validate_import_rows(rows, config.mapping, extra_checks=suspect_value_warnings)
