"""Tests for conf file loading."""

from pathlib import Path
from unittest.mock import patch

from thoughtport.config import Config, load_config


def load_from(tmp_path, text):
    config_file = tmp_path / "thoughtport.conf"
    config_file.write_text(text)
    with patch("thoughtport.config.CONFIG_FILE", config_file):
        return load_config()


class TestLoadConfig:
    def test_defaults_when_missing(self, tmp_path):
        with patch("thoughtport.config.CONFIG_FILE", tmp_path / "absent.conf"):
            config = load_config()
        assert config == Config()

    def test_reads_values(self, tmp_path):
        config = load_from(tmp_path, "\n".join([
            "# thoughtport settings",
            "DEFAULT_FORMAT=CSV",
            "INCLUDE_METADATA=no",
            "INCLUDE_DELETED=yes",
            'SOURCE_NAME="Acme Notes"  # shown in headers',
            "EXPORT_DIR=~/exports # inline comment",
            "EXPORT_VERSION=2.0.0",
            "COLUMN_SAMPLE_SIZE=25",
            "PREVIEW_ROWS=3",
        ]))
        assert config.default_format == "csv"
        assert config.include_metadata is False
        assert config.include_deleted is True
        assert config.source_name == "Acme Notes"
        assert config.export_dir == "~/exports"
        assert config.export_version == "2.0.0"
        assert config.column_sample_size == 25
        assert config.preview_rows == 3

    def test_bad_values_keep_defaults(self, tmp_path, caplog):
        config = load_from(tmp_path, "INCLUDE_METADATA=sometimes\nCOLUMN_SAMPLE_SIZE=lots\nPREVIEW_ROWS=0\n")
        assert config.include_metadata is True
        assert config.column_sample_size == 10
        assert config.preview_rows == 5
        assert "INCLUDE_METADATA" in caplog.text
        assert "COLUMN_SAMPLE_SIZE" in caplog.text

    def test_ignores_unknown_keys_and_junk(self, tmp_path):
        config = load_from(tmp_path, "UNKNOWN=1\nnot a setting\n\nSOURCE_NAME=Notes\n")
        assert config.source_name == "Notes"


class TestExportPath:
    def test_expands_user(self):
        assert Config(export_dir="~/exports").export_path == Path.home() / "exports"

    def test_defaults_to_cwd(self):
        assert Config().export_path == Path.cwd()
