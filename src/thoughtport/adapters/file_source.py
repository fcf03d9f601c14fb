"""FileSource adapters for local paths and in-memory content."""

import mimetypes
from dataclasses import dataclass
from pathlib import Path


class LocalFile:
    """A file on disk. MIME type is guessed from the extension when not given."""

    def __init__(self, path: Path | str, mime_type: str | None = None):
        self.path = Path(path).expanduser()
        self._mime_type = mime_type

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def mime_type(self) -> str:
        if self._mime_type is None:
            guessed, _ = mimetypes.guess_type(self.path.name)
            self._mime_type = guessed or ""
        return self._mime_type

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8-sig")


@dataclass
class InMemoryFile:
    """Content already in memory, e.g. an upload or a test fixture."""

    name: str
    content: bytes
    mime_type: str = ""

    @classmethod
    def from_text(cls, name: str, text: str, mime_type: str = "") -> "InMemoryFile":
        return cls(name=name, content=text.encode("utf-8"), mime_type=mime_type)

    @property
    def size(self) -> int:
        return len(self.content)

    def read_bytes(self) -> bytes:
        return self.content

    def read_text(self) -> str:
        return self.content.decode("utf-8-sig")
