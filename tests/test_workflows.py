"""Tests for the shared workflow layer."""

import json
from datetime import datetime, timezone

import pytest

from thoughtport.adapters import InMemoryFile, LocalFile
from thoughtport.config import Config
from thoughtport.core.filters import DateRange, ExportConfig, ExportFilter
from thoughtport.core.mapping import ImportConfig
from thoughtport.errors import EncodingError, UnsupportedFormatError
from thoughtport.workflows import (
    default_export_config,
    detect_columns,
    export_data,
    export_filename,
    get_registry,
    import_file,
    load_export_document,
    preview_import,
    suggest_mapping,
    validate_import_file,
    write_export,
)

NOW = datetime(2024, 4, 1, 12, 30, 45, tzinfo=timezone.utc)

MIXED_CSV = """ID,Title,Type,Category,Status,Priority
nb-1,Journal,notebook,personal,,
t-1,Call mom,,,todo,high
,Missing id,,,done,
t-3,Plan trip,,,doing,
nb-2,Work,notebook,work,,
"""


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def registry(config):
    return get_registry(config)


def csv_file(text=MIXED_CSV, name="items.csv"):
    return InMemoryFile.from_text(name, text, "text/csv")


class TestDefaultExportConfig:
    def test_seeded_from_config(self):
        config = Config(default_format="csv", include_metadata=False, include_deleted=True)
        export_config = default_export_config(config)
        assert export_config.format == "csv"
        assert export_config.include_metadata is False
        assert export_config.include_deleted is True

    def test_explicit_format_wins(self, config):
        assert default_export_config(config, "markdown").format == "markdown"


class TestExport:
    def test_export_data(self, registry, data):
        content = export_data(registry, data, ExportConfig(format="json"))
        assert json.loads(content)["metadata"]["format"] == "json"

    def test_unknown_format(self, registry, data):
        with pytest.raises(UnsupportedFormatError, match="Unsupported format 'pdf'"):
            export_data(registry, data, ExportConfig(format="pdf"))

    def test_invalid_options_rejected(self, registry, data):
        config = ExportConfig(format="csv", date_range=DateRange("2024-02-01", "2024-01-01"))
        with pytest.raises(EncodingError, match="start is after its end"):
            export_data(registry, data, config)

    @pytest.mark.parametrize("format_name", ["json", "csv", "excel", "markdown"])
    def test_filter_failure_is_encoding_error(self, registry, data, format_name):
        config = ExportConfig(format=format_name, filters=[ExportFilter("createdAt", "equals", "not a date")])
        with pytest.raises(EncodingError, match="export failed: Unrecognized date") as excinfo:
            export_data(registry, data, config)
        assert isinstance(excinfo.value.original_error, ValueError)

    def test_filename(self, registry):
        codec = registry.get_by_format("excel")
        assert export_filename(codec, NOW) == "thoughtkeeper-export-2024-04-01T12-30-45.xls"

    def test_write_export_generated_name(self, registry, data, tmp_path):
        path = write_export(registry, data, ExportConfig(format="markdown"), tmp_path, now=NOW)
        assert path == tmp_path / "thoughtkeeper-export-2024-04-01T12-30-45.md"
        assert path.read_text().startswith("# ThoughtKeeper Export")

    def test_write_export_named(self, registry, data, tmp_path):
        config = ExportConfig(format="csv", filename="mine.csv")
        path = write_export(registry, data, config, tmp_path / "out")
        assert path == tmp_path / "out" / "mine.csv"
        assert "NOTEBOOKS" in path.read_text()


class TestValidateImportFile:
    def test_valid(self, registry):
        result = validate_import_file(registry, csv_file())
        assert result.is_valid
        assert result.warning is None

    def test_undetectable(self, registry):
        result = validate_import_file(registry, InMemoryFile("notes.md", b"# hi", "text/markdown"))
        assert not result.is_valid
        assert "Could not detect file format" in result.error

    def test_too_large(self, registry):
        registry.get_by_format("csv").max_file_size = 10
        result = validate_import_file(registry, csv_file())
        assert not result.is_valid
        assert "exceeds" in result.error

    def test_extension_mismatch_warns(self, registry):
        result = validate_import_file(registry, InMemoryFile("items.txt", b"a,b\n1,2"), format_name="csv")
        assert result.is_valid
        assert "does not have a CSV extension" in result.warning

    def test_mime_mismatch_warns(self, registry):
        file = InMemoryFile("items.json", b"[]", "application/xml")
        result = validate_import_file(registry, file, format_name="json")
        assert "declared as application/xml" in result.warning


class TestColumns:
    def test_detect_and_suggest(self, registry):
        file = csv_file()
        assert detect_columns(registry, file) == ["ID", "Title", "Type", "Category", "Status", "Priority"]
        mapping = {m.source_field: m.target_field for m in suggest_mapping(registry, file)}
        assert mapping["Category"] == "category"


class TestPreviewImport:
    def test_counts_and_samples(self, registry):
        preview = preview_import(registry, csv_file(), preview_rows=5)
        assert preview.total_records == 5
        assert preview.valid_records == 4
        assert preview.invalid_records == 1
        assert "Record 3: missing required field 'ID'" in preview.errors[0]
        assert [nb.title for nb in preview.sample_notebooks] == ["Journal", "Work"]
        assert [t.title for t in preview.sample_tasks] == ["Call mom", "Missing id", "Plan trip"]

    def test_sample_window(self, registry):
        preview = preview_import(registry, csv_file(), preview_rows=2)
        assert [nb.title for nb in preview.sample_notebooks] == ["Journal"]
        assert [t.title for t in preview.sample_tasks] == ["Call mom"]

    def test_to_dict(self, registry):
        document = preview_import(registry, csv_file()).to_dict()
        assert document["totalRecords"] == 5
        assert document["mapping"]["Title"] == "title"
        assert len(document["sampleData"]["notebooks"]) == 2


class TestImportFile:
    def test_keeps_invalid_by_default(self, registry):
        result = import_file(registry, csv_file())
        assert len(result.data.tasks) == 3
        assert len(result.data.notebooks) == 2
        assert result.skipped == 0
        assert len(result.errors) == 1

    def test_skip_invalid(self, registry):
        file = csv_file()
        config = ImportConfig(mapping=suggest_mapping(registry, file), skip_invalid=True)
        result = import_file(registry, file, config=config)
        assert [t.id for t in result.data.tasks] == ["t-1", "t-3"]
        assert result.skipped == 1

    def test_unsupported_file(self, registry):
        with pytest.raises(UnsupportedFormatError):
            import_file(registry, InMemoryFile("notes.md", b"# hi"))

    def test_export_only_format_rejected(self, registry):
        with pytest.raises(UnsupportedFormatError, match="'markdown'"):
            import_file(registry, csv_file(), format_name="markdown")


class TestLoadExportDocument:
    def test_reads_json_export(self, registry, data, tmp_path):
        path = write_export(registry, data, ExportConfig(format="json", filename="export.json"), tmp_path)
        loaded = load_export_document(registry, LocalFile(path))
        assert [nb.id for nb in loaded.notebooks] == ["nb-1", "nb-2"]
        assert loaded.tasks[0].subtasks[1].title == "Draft"

    def test_filters_apply_to_loaded_data(self, registry, data, tmp_path):
        path = write_export(registry, data, ExportConfig(format="json", filename="export.json"), tmp_path)
        loaded = load_export_document(registry, LocalFile(path))
        config = ExportConfig(format="json", filters=[ExportFilter("tasks.assignee", "equals", "alice")])
        document = json.loads(export_data(registry, loaded, config))
        assert [t["id"] for t in document["tasks"]] == ["task-1"]
