"""Ports - interfaces/protocols for codecs and file access."""

from .file_source import FileSource
from .codec import Codec, ExportCodec, ImportCodec

__all__ = [
    "FileSource",
    "Codec",
    "ExportCodec",
    "ImportCodec",
]
