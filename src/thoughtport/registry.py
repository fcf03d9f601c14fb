"""Handler registry - format, extension and MIME type lookup for codecs."""

import logging
from collections.abc import Iterable
from pathlib import PurePath

from .adapters import CsvCodec, JsonCodec, MarkdownCodec, SpreadsheetCodec
from .config import Config
from .ports.codec import Codec, ExportCodec, ImportCodec
from .ports.file_source import FileSource

logger = logging.getLogger(__name__)


def _normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    return extension if extension.startswith(".") else f".{extension}"


class HandlerRegistry:
    """
    Codecs keyed by format tag.

    Lookups never raise; a miss returns None. Registration is not
    synchronized, so register everything before sharing the registry.
    """

    def __init__(self, codecs: Iterable[Codec] = ()):
        self._codecs: dict[str, Codec] = {}
        for codec in codecs:
            self.register(codec)

    def __contains__(self, format_name: str) -> bool:
        return format_name in self._codecs

    def __len__(self) -> int:
        return len(self._codecs)

    def register(self, codec: Codec) -> None:
        """Add a codec, replacing any already registered for its format."""
        if codec.format in self._codecs:
            logger.info(f"Replacing {codec.format} codec with {codec.name}")
        else:
            logger.info(f"Registered {codec.name} codec for {codec.format}")
        self._codecs[codec.format] = codec

    def unregister(self, format_name: str) -> bool:
        removed = self._codecs.pop(format_name, None)
        if removed:
            logger.info(f"Unregistered {removed.name} codec")
        return removed is not None

    def get_by_format(self, format_name: str) -> Codec | None:
        return self._codecs.get(format_name)

    def get_by_extension(self, extension: str, importable: bool = False) -> Codec | None:
        """First codec claiming the extension (".csv" or "csv")."""
        extension = _normalize_extension(extension)
        for codec in self._candidates(importable):
            if extension in (_normalize_extension(e) for e in codec.extensions):
                return codec
        return None

    def get_by_mime_type(self, mime_type: str, importable: bool = False) -> Codec | None:
        mime_type = mime_type.split(";")[0].strip().lower()
        if not mime_type:
            return None
        for codec in self._candidates(importable):
            if mime_type in (m.lower() for m in codec.mime_types):
                return codec
        return None

    def detect_format(self, file: FileSource) -> str | None:
        """
        Import format for a file: declared MIME type first, then extension.

        Only import-capable codecs are considered.
        """
        codec = self.get_by_mime_type(file.mime_type or "", importable=True)
        if codec is None:
            suffix = PurePath(file.name).suffix
            codec = self.get_by_extension(suffix, importable=True) if suffix else None
        if codec is None:
            logger.debug(f"No import codec recognizes {file.name} ({file.mime_type or 'no MIME type'})")
            return None
        return codec.format

    def _candidates(self, importable: bool) -> list[Codec]:
        codecs = list(self._codecs.values())
        if importable:
            return [codec for codec in codecs if isinstance(codec, ImportCodec)]
        return codecs

    def exporters(self) -> list[ExportCodec]:
        return [codec for codec in self._codecs.values() if isinstance(codec, ExportCodec)]

    def importers(self) -> list[ImportCodec]:
        return [codec for codec in self._codecs.values() if isinstance(codec, ImportCodec)]

    def available_formats(self, importable: bool = False) -> list[str]:
        return [codec.format for codec in self._candidates(importable)]

    def is_supported(self, format_name: str) -> bool:
        return format_name in self._codecs

    def stats(self) -> list[dict]:
        """One summary per registered codec, registration order."""
        return [
            {
                "format": codec.format,
                "name": codec.name,
                "description": codec.description,
                "extensions": list(codec.extensions),
                "mime_types": list(codec.mime_types),
                "max_file_size": codec.max_file_size,
                "can_export": isinstance(codec, ExportCodec),
                "can_import": isinstance(codec, ImportCodec),
            }
            for codec in self._codecs.values()
        ]


def create_default_registry(config: Config | None = None) -> HandlerRegistry:
    """Registry holding the four built-in codecs, configured from config."""
    config = config or Config()
    options = {
        "source_name": config.source_name,
        "sample_size": config.column_sample_size,
        "version": config.export_version,
    }
    return HandlerRegistry([
        JsonCodec(**options),
        CsvCodec(**options),
        SpreadsheetCodec(**options),
        MarkdownCodec(**options),
    ])
