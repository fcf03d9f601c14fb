"""In-memory spreadsheet model rendered by the spreadsheet codec."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ColumnKind(Enum):
    STRING = "String"
    NUMBER = "Number"
    DATE = "DateTime"
    BOOLEAN = "Boolean"


@dataclass
class Sheet:
    """
    One worksheet: rows of cell values plus style metadata.

    header_rows holds the indices of rows styled as headers; column_kinds
    says how each column's cells are typed.
    """

    name: str
    column_kinds: list[ColumnKind]
    rows: list[list[Any]] = field(default_factory=list)
    header_rows: set[int] = field(default_factory=set)

    def add_header(self, cells: list[str]) -> None:
        self.header_rows.add(len(self.rows))
        self.rows.append(list(cells))

    def add_row(self, cells: list[Any]) -> None:
        self.rows.append(list(cells))

    def kind_of(self, column: int) -> ColumnKind:
        if column < len(self.column_kinds):
            return self.column_kinds[column]
        return ColumnKind.STRING

    def is_header(self, row: int) -> bool:
        return row in self.header_rows

    @property
    def date_columns(self) -> list[int]:
        return [i for i, kind in enumerate(self.column_kinds) if kind is ColumnKind.DATE]

    @property
    def number_columns(self) -> list[int]:
        return [i for i, kind in enumerate(self.column_kinds) if kind is ColumnKind.NUMBER]


@dataclass
class Workbook:
    title: str
    author: str
    created: datetime
    sheets: list[Sheet] = field(default_factory=list)

    def sheet(self, name: str) -> Sheet | None:
        return next((s for s in self.sheets if s.name == name), None)
