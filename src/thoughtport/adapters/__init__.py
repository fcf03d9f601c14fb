"""Adapters - codec and file source implementations of ports."""

from .json_codec import JsonCodec
from .csv_codec import CsvCodec
from .spreadsheet import SpreadsheetCodec
from .markdown import MarkdownCodec
from .file_source import InMemoryFile, LocalFile

__all__ = [
    "JsonCodec",
    "CsvCodec",
    "SpreadsheetCodec",
    "MarkdownCodec",
    "InMemoryFile",
    "LocalFile",
]
