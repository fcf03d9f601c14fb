"""JSON codec - lossless export and shape-tolerant import."""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

from thoughtport.core.filters import ExportConfig
from thoughtport.core.models import ExportData
from thoughtport.errors import InvalidDocumentError
from thoughtport.ports.file_source import FileSource

from .base import MB, BaseCodec, RecordImporter, iso_timestamp

logger = logging.getLogger(__name__)


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return iso_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _tagged(items: list, kind: str, force: bool) -> list:
    rows = []
    for item in items:
        if isinstance(item, dict):
            row = dict(item)
            if force or "type" not in row:
                row["type"] = kind
            rows.append(row)
        else:
            rows.append(item)
    return rows


def records_from_document(document: Any) -> list:
    """
    Flatten a decoded JSON document into records.

    - Our own export shape: notebooks and tasks, each tagged with its kind
    - A bare array: its items, as-is
    - An object whose values include arrays of objects: every such array's
      items, tagged with the key's singular ("projects" -> "project")
      unless they carry a type
    - An object holding nothing but empty arrays: no records
    - Any other value: a single record
    """
    if isinstance(document, list):
        return list(document)
    if not isinstance(document, dict):
        return [document]

    if isinstance(document.get("metadata"), dict) and any(
        isinstance(document.get(key), list) for key in ("notebooks", "tasks")
    ):
        return _tagged(document.get("notebooks") or [], "notebook", force=True) + _tagged(
            document.get("tasks") or [], "task", force=True
        )

    collections = {
        key: value
        for key, value in document.items()
        if isinstance(value, list) and value and all(isinstance(item, dict) for item in value)
    }
    if collections:
        records: list = []
        for key, items in collections.items():
            records.extend(_tagged(items, key[:-1] if key.endswith("s") else key, force=False))
        return records
    if document and all(value == [] for value in document.values()):
        return []
    return [document]


class JsonCodec(RecordImporter, BaseCodec):
    format = "json"
    name = "JSON"
    description = "Complete data with full structure and metadata"
    extensions = [".json"]
    mime_types = ["application/json", "text/json"]
    max_file_size = 100 * MB

    def _encode(self, data: ExportData, config: ExportConfig) -> bytes:
        text = json.dumps(data.to_dict(), default=_encode_value, indent=2, ensure_ascii=False)
        return text.encode("utf-8")

    def parse(self, file: FileSource) -> list:
        text = self._read_text(file)
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidDocumentError(self.name, e) from e
        records = records_from_document(document)
        logger.debug(f"Parsed {len(records)} records from {file.name}")
        return records
