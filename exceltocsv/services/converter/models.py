"""Data models used by the worksheet converter service."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from exceltocsv_io.reference import CellAddress


class CellType(str, Enum):
    """Cell value kinds that change how the raw ``<v>`` text is interpreted."""

    SHARED_STRING = "s"
    NUMBER = "n"
    BOOLEAN = "b"
    INLINE_STRING = "inlineStr"
    OTHER = "other"

    @classmethod
    def from_code(cls, code: str) -> "CellType":
        """Map the ``t`` attribute of a cell; an absent attribute means a number."""

        if not code or code == "n":
            return cls.NUMBER
        if code == "s":
            return cls.SHARED_STRING
        if code == "b":
            return cls.BOOLEAN
        if code == "inlineStr":
            return cls.INLINE_STRING
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class SheetDescriptor:
    """A worksheet selected for conversion.

    Attributes:
        relationship_id: Workbook relationship id pointing at the worksheet part.
        name: Sheet name as shown in the workbook.
        rename: File-name safe output name (without ``.csv``).
        hidden: Whether the sheet state is ``hidden`` or ``veryHidden``.
    """

    relationship_id: str
    name: str
    rename: str
    hidden: bool = False


@dataclass(frozen=True, slots=True)
class WorksheetOptions:
    """Per-conversion switches."""

    indexed: bool = False
    treat_errors_as_empty: bool = False
    remove_empty_rows: bool = False


@dataclass(slots=True)
class WorksheetState:
    """Mutable counters owned by exactly one worksheet conversion."""

    range_end: Optional[CellAddress] = None
    rows_covered: int = 0
    rows_written: int = 0

    @property
    def column_count(self) -> int:
        return self.range_end.column if self.range_end else 0

    @property
    def row_count(self) -> int:
        return self.range_end.row if self.range_end else 0


@dataclass(frozen=True, slots=True)
class WorksheetProgress:
    """Snapshot handed to progress callbacks after each source row."""

    sheet: str
    rows_covered: int
    rows_written: int
    row_count: int

    @property
    def fraction(self) -> float:
        if self.row_count <= 0:
            return 1.0
        return min(self.rows_covered / self.row_count, 1.0)


@dataclass(frozen=True, slots=True)
class WorksheetStats:
    """Outcome counters of one worksheet conversion."""

    rows_covered: int
    rows_written: int


ProgressCallback = Callable[[WorksheetProgress], None]


__all__ = [
    "CellType",
    "ProgressCallback",
    "SheetDescriptor",
    "WorksheetOptions",
    "WorksheetProgress",
    "WorksheetState",
    "WorksheetStats",
]
