"""Tests for the CSV codec."""

import pytest

from thoughtport.adapters.csv_codec import (
    CsvCodec,
    escape_field,
    format_cell,
    header_columns,
    read_rows,
    rows_to_records,
)
from thoughtport.adapters.file_source import InMemoryFile
from thoughtport.core.filters import ExportConfig
from thoughtport.core.mapping import ImportConfig
from thoughtport.core.models import TaskStatus
from thoughtport.errors import DecodingError


@pytest.fixture
def codec():
    return CsvCodec()


def csv_file(text, name="data.csv"):
    return InMemoryFile.from_text(name, text, "text/csv")


class TestEscaping:
    def test_comma_and_quotes(self):
        assert escape_field('Hello, "World"') == '"Hello, ""World"""'

    def test_line_break(self):
        assert escape_field("a\nb") == '"a\nb"'

    def test_plain_value_untouched(self):
        assert escape_field("plain") == "plain"

    def test_parses_back(self):
        line = "Title,Notes\n" + escape_field("x") + "," + escape_field('Hello, "World"')
        assert rows_to_records(read_rows(line)) == [{"Title": "x", "Notes": 'Hello, "World"'}]

    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        (True, "Yes"),
        (False, "No"),
        (4.0, "4"),
        (4.5, "4.5"),
        (12.3456789, "12.3456789"),
        (1234567.0, "1234567"),
        (["a", "b"], "a;b"),
    ])
    def test_format_cell(self, value, expected):
        assert format_cell(value) == expected


class TestReadRows:
    def test_quoted_line_break_survives(self):
        assert read_rows('Title,Notes\nx,"line one\nline two"\n') == [
            ["Title", "Notes"],
            ["x", "line one\nline two"],
        ]

    def test_blank_rows_dropped(self):
        assert read_rows("a,b\n,\n\n1,2\n") == [["a", "b"], ["1", "2"]]

    def test_cells_trimmed(self):
        assert read_rows(" a , b ") == [["a", "b"]]


class TestExport:
    def test_sections(self, codec, data):
        text = codec.export(data, ExportConfig(format="csv")).decode("utf-8")
        blocks = text.split("\n\n")
        assert [block.splitlines()[0] for block in blocks] == ["EXPORT METADATA", "NOTEBOOKS", "TASKS", "SUBTASKS"]
        assert "Version,1.0.0" in blocks[0]
        assert blocks[1].splitlines()[1].startswith("ID,Title,Description,Category,Tags")

    def test_values(self, codec, data):
        text = codec.export(data, ExportConfig(format="csv", include_metadata=False)).decode("utf-8")
        assert not text.startswith("EXPORT METADATA")
        assert "nb-1,Work Notes,Team meeting notes,work,work;meetings,#ff0000,Yes,No,2,alice;bob," in text
        assert "sub-1,task-1,Outline,Yes,2024-03-01T09:00:00.000Z" in text

    def test_empty_collections_omitted(self, codec, data):
        data.tasks = []
        text = codec.export(data, ExportConfig(format="csv")).decode("utf-8")
        assert "TASKS" not in text
        assert "SUBTASKS" not in text


class TestImport:
    def test_plain_table(self, codec):
        file = csv_file("Name,Status,Due Date,Labels\nShip,done,2024-05-01,a|b\n")
        rows = codec.parse(file)
        assert rows == [{"Name": "Ship", "Status": "done", "Due Date": "2024-05-01", "Labels": "a|b"}]

        data = codec.transform(rows, codec.generate_mapping(codec.detect_columns(file)))
        (task,) = data.tasks
        assert task.status is TaskStatus.COMPLETED
        assert task.tags == ["a", "b"]
        assert task.due_date.isoformat() == "2024-05-01T00:00:00+00:00"

    def test_sectioned_round_trip(self, codec, data):
        exported = csv_file(codec.export(data, ExportConfig(format="csv", include_deleted=True)).decode("utf-8"))
        rows = codec.parse(exported)
        assert {row["type"] for row in rows} == {"notebook", "task", "subtask"}

        mapping = codec.generate_mapping(codec.detect_columns(exported))
        results = codec.validate(rows, ImportConfig(mapping=mapping))
        assert all(r.is_valid for r in results), [r.error for r in results if r.error]

        imported = codec.transform(rows, mapping)
        original = data.notebooks[0]
        notebook = imported.notebooks[0]
        assert [nb.id for nb in imported.notebooks] == ["nb-1", "nb-2", "nb-3"]
        assert (notebook.tags, notebook.collaborators, notebook.task_count) == (
            original.tags, original.collaborators, original.task_count
        )
        assert notebook.is_favorite and imported.notebooks[2].is_archived
        assert notebook.created_at == original.created_at
        assert [t.id for t in imported.tasks] == ["task-1", "task-2", "task-3"]
        assert imported.tasks[0].subtasks == data.tasks[0].subtasks
        assert imported.tasks[0].estimated_hours == 4.5
        assert imported.tasks[0].due_date == data.tasks[0].due_date

    def test_fractional_hours_survive(self, codec, data):
        data.tasks[0].estimated_hours = 12.3456789
        data.tasks[0].actual_hours = 1234567.25
        exported = csv_file(codec.export(data, ExportConfig(format="csv")).decode("utf-8"))
        rows = codec.parse(exported)
        imported = codec.transform(rows, codec.generate_mapping(codec.detect_columns(exported)))
        assert imported.tasks[0].estimated_hours == 12.3456789
        assert imported.tasks[0].actual_hours == 1234567.25

    def test_tag_with_comma_is_split(self, codec, data):
        # Tags are joined with ";" and split on any list separator
        data.notebooks[0].tags = ["salt, pepper", "herbs"]
        exported = csv_file(codec.export(data, ExportConfig(format="csv")).decode("utf-8"))
        assert '"salt, pepper;herbs"' in exported.read_text()
        rows = codec.parse(exported)
        imported = codec.transform(rows, codec.generate_mapping(codec.detect_columns(exported)))
        assert imported.notebooks[0].tags == ["salt", "pepper", "herbs"]

    def test_header_columns_union(self):
        rows = read_rows("NOTEBOOKS\nID,Title\n1,a\n\nTASKS\nID,Status\n2,done\n")
        assert header_columns(rows) == ["ID", "Title", "Status", "type"]

    def test_short_rows_padded(self, codec):
        assert codec.parse(csv_file("a,b,c\n1\n")) == [{"a": "1", "b": "", "c": ""}]

    def test_empty_file(self, codec):
        with pytest.raises(DecodingError, match="empty"):
            codec.parse(csv_file("\n\n"))

    def test_missing_required_reported(self, codec):
        file = csv_file("ID,Title\n,Nameless id\n")
        mapping = codec.generate_mapping(codec.detect_columns(file))
        (result,) = codec.validate(codec.parse(file), ImportConfig(mapping=mapping))
        assert not result.is_valid
        assert "missing required field 'ID'" in result.error
