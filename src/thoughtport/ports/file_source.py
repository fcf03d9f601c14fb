"""Readable file interface consumed by import codecs."""

from typing import Protocol


class FileSource(Protocol):
    """A named blob with a declared MIME type, read whole."""

    @property
    def name(self) -> str:
        ...

    @property
    def mime_type(self) -> str:
        """Declared MIME type, or "" when unknown."""
        ...

    @property
    def size(self) -> int:
        ...

    def read_bytes(self) -> bytes:
        ...

    def read_text(self) -> str:
        """Contents decoded as UTF-8."""
        ...
