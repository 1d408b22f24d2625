"""Worksheet converter service package."""

from .catalog import SheetEntry, build_catalog, read_sheet_entries, select_sheets
from .formatter import ValueFormatter, format_value
from .models import (
    CellType,
    SheetDescriptor,
    WorksheetOptions,
    WorksheetProgress,
    WorksheetStats,
)
from .tables import NumberFormatTable, SharedStringTable
from .worksheet import WorksheetStreamConverter, convert_worksheet

__all__ = [
    "CellType",
    "NumberFormatTable",
    "SharedStringTable",
    "SheetDescriptor",
    "SheetEntry",
    "ValueFormatter",
    "WorksheetOptions",
    "WorksheetProgress",
    "WorksheetStats",
    "WorksheetStreamConverter",
    "build_catalog",
    "convert_worksheet",
    "format_value",
    "read_sheet_entries",
    "select_sheets",
]
