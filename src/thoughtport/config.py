"""Configuration management for thoughtport."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

THOUGHTPORT_HOME = Path(os.environ.get("THOUGHTPORT_HOME", Path.home() / "thoughtport"))
CONFIG_FILE = THOUGHTPORT_HOME / "config" / "thoughtport.conf"

_TRUE_VALUES = ("true", "yes", "1", "on")
_FALSE_VALUES = ("false", "no", "0", "off")


@dataclass
class Config:
    """thoughtport configuration."""

    default_format: str = "json"
    include_metadata: bool = True
    include_deleted: bool = False
    export_dir: str = ""
    source_name: str = "ThoughtKeeper"
    export_version: str = "1.0.0"
    column_sample_size: int = 10
    preview_rows: int = 5

    @property
    def export_path(self) -> Path:
        """Directory exports are written to; the current directory when unset."""
        return Path(self.export_dir).expanduser() if self.export_dir else Path.cwd()


def _parse_bool(key: str, value: str, current: bool) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(f"Ignoring {key.upper()}={value!r}: expected true or false")
    return current


def _parse_int(key: str, value: str, current: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Ignoring {key.upper()}={value!r}: expected a whole number")
        return current
    if parsed < 1:
        logger.warning(f"Ignoring {key.upper()}={value!r}: must be at least 1")
        return current
    return parsed


def load_config() -> Config:
    """Load configuration from thoughtport.conf file."""
    config = Config()

    if not CONFIG_FILE.exists():
        return config

    for line in CONFIG_FILE.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value[:1] in ('"', "'"):
            quote = value[0]
            end_quote = value.find(quote, 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        match key:
            case "default_format":
                config.default_format = value.lower()
            case "include_metadata":
                config.include_metadata = _parse_bool(key, value, config.include_metadata)
            case "include_deleted":
                config.include_deleted = _parse_bool(key, value, config.include_deleted)
            case "export_dir":
                config.export_dir = value
            case "source_name":
                config.source_name = value
            case "export_version":
                config.export_version = value
            case "column_sample_size":
                config.column_sample_size = _parse_int(key, value, config.column_sample_size)
            case "preview_rows":
                config.preview_rows = _parse_int(key, value, config.preview_rows)

    return config
