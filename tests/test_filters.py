"""Tests for the export filter pipeline."""

from datetime import datetime, timezone

import pytest

from thoughtport.core.filters import (
    DateRange,
    ExportConfig,
    ExportFilter,
    FilterOperator,
    apply_export_filters,
    prepare_export,
    validate_export_config,
)
from thoughtport.core.models import ExportMetadata

NOW = datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)


def ids(records):
    return [r.id for r in records]


class TestExportFilter:
    def test_string_operator_coerced(self):
        assert ExportFilter("status", "startsWith", "p").operator is FilterOperator.STARTS_WITH

    def test_scope_and_path(self):
        f = ExportFilter("tasks.due_date", FilterOperator.EQUALS, None)
        assert f.scope == "tasks"
        assert f.path == "dueDate"
        assert not f.applies_to("notebooks")

    def test_unscoped_applies_everywhere(self):
        f = ExportFilter("tags", FilterOperator.CONTAINS, "work")
        assert f.scope is None
        assert f.applies_to("notebooks") and f.applies_to("tasks")

    @pytest.mark.parametrize("operator,value,expected", [
        (FilterOperator.EQUALS, "in_progress", True),
        (FilterOperator.CONTAINS, "PROG", True),
        (FilterOperator.STARTS_WITH, "in", True),
        (FilterOperator.IN, ["pending", "review"], False),
        (FilterOperator.IN, ["in_progress"], True),
    ])
    def test_operators_on_status(self, tasks, operator, value, expected):
        assert ExportFilter("status", operator, value).matches(tasks[0].to_dict()) is expected

    def test_contains_on_list_field(self, tasks):
        assert ExportFilter("tags", FilterOperator.CONTAINS, "errand").matches(tasks[1].to_dict())

    def test_between_dates(self, tasks):
        f = ExportFilter("dueDate", FilterOperator.BETWEEN, ["2024-03-15", "2024-03-31"])
        assert f.matches(tasks[0].to_dict())
        assert not f.matches(tasks[1].to_dict())

    def test_between_numbers(self, tasks):
        f = ExportFilter("estimatedHours", FilterOperator.BETWEEN, [4, 5])
        assert f.matches(tasks[0].to_dict())

    def test_dotted_path_into_custom_fields(self, tasks):
        tasks[1].custom_fields = {"sprint": "7"}
        f = ExportFilter("customFields.sprint", FilterOperator.EQUALS, "7")
        assert f.matches(tasks[1].to_dict())
        assert not f.matches(tasks[0].to_dict())


class TestApplyExportFilters:
    def test_excludes_archived_and_cancelled(self, data):
        result = apply_export_filters(data, ExportConfig())
        assert ids(result.notebooks) == ["nb-1", "nb-2"]
        assert ids(result.tasks) == ["task-1", "task-2"]

    def test_exclusion_beats_selecting_filter(self, data):
        config = ExportConfig(filters=[
            ExportFilter("notebooks.isArchived", FilterOperator.EQUALS, True),
            ExportFilter("tasks.status", FilterOperator.EQUALS, "cancelled"),
        ])
        result = apply_export_filters(data, config)
        assert result.notebooks == []
        assert result.tasks == []

    def test_include_deleted_keeps_everything(self, data):
        result = apply_export_filters(data, ExportConfig(include_deleted=True))
        assert len(result.notebooks) == 3
        assert len(result.tasks) == 3

    def test_date_range_is_inclusive_on_created(self, data):
        config = ExportConfig(
            include_deleted=True,
            date_range=DateRange("2024-03-05T14:30:00Z", "2024-03-31"),
        )
        result = apply_export_filters(data, config)
        assert ids(result.notebooks) == ["nb-2"]
        assert ids(result.tasks) == ["task-2"]

    def test_include_deleted_cannot_widen_date_range(self, data):
        config = ExportConfig(include_deleted=True, date_range=DateRange("2024-01-01", "2024-01-31"))
        result = apply_export_filters(data, config)
        assert result.notebooks == [] and result.tasks == []

    def test_disabled_filter_ignored(self, data):
        config = ExportConfig(filters=[ExportFilter("title", FilterOperator.EQUALS, "nothing", enabled=False)])
        assert len(apply_export_filters(data, config).tasks) == 2

    def test_strips_metadata_when_not_wanted(self, data):
        data.metadata = ExportMetadata(version="1.0.0", format="json", exported_at=NOW, source="x")
        assert apply_export_filters(data, ExportConfig(include_metadata=False)).metadata is None

    def test_input_untouched(self, data):
        apply_export_filters(data, ExportConfig(filters=[ExportFilter("title", "equals", "none")]))
        assert len(data.notebooks) == 3
        assert len(data.tasks) == 3


class TestPrepareExport:
    def test_fresh_metadata_counts_filtered_items(self, data):
        config = ExportConfig(format="csv", filters=[ExportFilter("tasks.priority", "in", ["high"])])
        prepared = prepare_export(data, config, "csv", "ThoughtKeeper", now=NOW, version="2.0.0")
        meta = prepared.metadata
        assert meta.version == "2.0.0"
        assert meta.format == "csv"
        assert meta.exported_at == NOW
        assert meta.item_counts == {"notebooks": 2, "tasks": 1, "subtasks": 2}
        assert meta.filters == [{"field": "tasks.priority", "operator": "in", "value": ["high"], "enabled": True}]

    def test_carries_exporter(self, data):
        data.metadata = ExportMetadata(version="1.0.0", format="json", exported_at=NOW, source="x", exported_by="ana")
        prepared = prepare_export(data, ExportConfig(), "json", "ThoughtKeeper")
        assert prepared.metadata.exported_by == "ana"

    def test_no_metadata_when_not_wanted(self, data):
        prepared = prepare_export(data, ExportConfig(include_metadata=False), "json", "ThoughtKeeper")
        assert prepared.metadata is None


class TestValidateExportConfig:
    def test_valid_default(self):
        assert validate_export_config(ExportConfig(), "json", [".json"]).is_valid

    def test_reversed_date_range_is_error(self):
        config = ExportConfig(date_range=DateRange("2024-02-01", "2024-01-01"))
        result = validate_export_config(config, "json", [".json"])
        assert not result.is_valid
        assert "start is after its end" in result.error

    def test_empty_filter_field_is_error(self):
        config = ExportConfig(filters=[ExportFilter(" ", "equals", "x")])
        assert not validate_export_config(config, "json", [".json"]).is_valid

    def test_between_needs_two_bounds(self):
        config = ExportConfig(filters=[ExportFilter("dueDate", "between", ["2024-01-01"])])
        assert "exactly two bounds" in validate_export_config(config, "json", [".json"]).error

    def test_extension_mismatch_is_warning(self):
        result = validate_export_config(ExportConfig(filename="out.txt"), "json", [".json"])
        assert result.is_valid
        assert "out.txt" in result.warning

    def test_unsafe_filename_is_error(self):
        assert not validate_export_config(ExportConfig(filename="a/b.json"), "json", [".json"]).is_valid

    def test_format_mismatch_is_error(self):
        assert not validate_export_config(ExportConfig(format="csv"), "json", [".json"]).is_valid
