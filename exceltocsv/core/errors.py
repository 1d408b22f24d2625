"""Custom exceptions used across ExcelToCSV."""

from __future__ import annotations

from typing import Iterable


class ExcelToCsvError(Exception):
    """Base error for the application."""


class ConfigError(ExcelToCsvError):
    """Configuration related error."""


class PackageError(ExcelToCsvError):
    """Raised when the source file is not a readable workbook package."""


class WorkbookError(ExcelToCsvError):
    """Workbook level failure; aborts the run before any output is written."""


class UnknownSheetError(WorkbookError):
    """Raised when requested sheet names do not exist in the workbook."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"The following specified sheets were not found: {', '.join(self.missing)}")


class RenameCountMismatchError(WorkbookError):
    """Raised when the rename list does not pair up with the selected sheets."""

    def __init__(self, sheet_count: int, rename_count: int) -> None:
        self.sheet_count = sheet_count
        self.rename_count = rename_count
        super().__init__(
            f"{rename_count} rename(s) supplied for {sheet_count} sheet(s); '--rename' must match "
            "the number of sheets in the workbook OR the number of sheets specified with '--sheets'."
        )


class WorksheetError(ExcelToCsvError):
    """Failure confined to one worksheet conversion."""

    sheet: str | None = None

    def with_sheet(self, sheet: str) -> "WorksheetError":
        """Attach the sheet name if it is not known yet and return ``self``."""

        if self.sheet is None:
            self.sheet = sheet
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.sheet:
            return f"[{self.sheet}] {message}"
        return message


class MalformedReferenceError(WorksheetError):
    """Raised when an A1 cell or range reference cannot be decoded."""


class MissingDimensionError(WorksheetError):
    """Raised when a worksheet has no dimension element before its data."""


class InvalidRowError(WorksheetError):
    """Raised when a row element lacks a parseable row number."""


class OutOfOrderError(WorksheetError):
    """Raised when rows or cells do not appear in ascending order."""


class MissingPartError(WorksheetError):
    """Raised when a cell references the shared string table but the workbook has none."""
