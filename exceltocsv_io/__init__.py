"""`exceltocsv_io` top-level package exports the OOXML reading and CSV writing helpers."""

# Module responsibilities:
# - Re-export A1 reference parsing, package access and CSV text helpers so consumers have a stable API surface.
# - Provide package version placeholder for future packaging.

from __future__ import annotations

from .csv_text import CsvLineWriter, quote_value
from .ooxml import OoxmlPackage, Relationship, attribute, element_text, iter_elements, local_name
from .reference import CellAddress, RangeAddress, column_letters, column_number, row_number

__all__ = [
    "CellAddress",
    "RangeAddress",
    "column_letters",
    "column_number",
    "row_number",
    "OoxmlPackage",
    "Relationship",
    "attribute",
    "element_text",
    "iter_elements",
    "local_name",
    "CsvLineWriter",
    "quote_value",
]

__version__ = "0.1.0"
