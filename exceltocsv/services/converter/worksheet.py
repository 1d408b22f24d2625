"""Single pass conversion of one worksheet part into CSV lines.

Worksheets store rows and cells sparsely: rows and cells without content are
simply omitted, and what remains appears in ascending order. The converter
walks the element stream once, holding at most one ``<row>`` in memory, and
rebuilds the dense grid on the fly:

1. ``<dimension ref="A1:D20">`` gives the column count used for padding and
   the row count used for progress.
2. Row numbers skipped between two rows become blank lines, unless empty
   rows are removed altogether.
3. Columns skipped inside a row become blank fields; rows are padded on the
   right up to the column count.
4. With indexing enabled every written line is prefixed with a quoted index
   ``min(row number, lines written + 1)``; once rows are elided the index
   counts output lines and no longer mirrors the worksheet row number.
"""

from __future__ import annotations

import logging
from typing import IO, List, Optional
from xml.etree import ElementTree as ET

from exceltocsv.core.errors import (
    InvalidRowError,
    MissingDimensionError,
    MissingPartError,
    OutOfOrderError,
    WorksheetError,
)
from exceltocsv_io.csv_text import CsvLineWriter
from exceltocsv_io.ooxml import attribute, element_text, iter_elements, local_name
from exceltocsv_io.reference import CellAddress, RangeAddress

from .formatter import EMPTY, ValueFormatter
from .models import (
    CellType,
    ProgressCallback,
    WorksheetOptions,
    WorksheetProgress,
    WorksheetState,
    WorksheetStats,
)
from .tables import NumberFormatTable, SharedStringTable, parse_uint

LOGGER = logging.getLogger(__name__)


def read_dimension(ref: str) -> RangeAddress:
    """Parse a dimension reference; a lone cell such as ``"A1"`` means ``"A1:A1"``."""

    ref = ref.strip()
    if ref and ":" not in ref:
        ref = f"{ref}:{ref}"
    return RangeAddress.parse(ref)


class WorksheetStreamConverter:
    """Convert worksheet streams of one workbook.

    The instance only holds read-only workbook state; every :meth:`convert`
    call owns a fresh :class:`WorksheetState`, so one converter may serve
    several sheets, including from different threads.
    """

    def __init__(
        self,
        shared_strings: SharedStringTable,
        number_formats: NumberFormatTable,
        options: WorksheetOptions | None = None,
        *,
        sheet: str = "",
        progress_cb: Optional[ProgressCallback] = None,
    ) -> None:
        self.options = options or WorksheetOptions()
        self.number_formats = number_formats
        self.formatter = ValueFormatter(
            shared_strings,
            number_formats,
            treat_errors_as_empty=self.options.treat_errors_as_empty,
        )
        self.sheet = sheet
        self.progress_cb = progress_cb

    def convert(self, stream: IO[bytes], writer: CsvLineWriter) -> WorksheetStats:
        """Stream ``stream`` into ``writer`` and return the row counters.

        Raises:
            MissingDimensionError: When no dimension precedes the sheet data.
            InvalidRowError: For a row without a positive row number.
            OutOfOrderError: For rows or cells that do not ascend.
            MalformedReferenceError: For undecodable cell or dimension references.
            MissingPartError: For shared string cells in a workbook without shared strings.
        """

        state = WorksheetState()
        try:
            self._convert(stream, writer, state)
        except WorksheetError as exc:
            raise exc.with_sheet(self.sheet)
        except ET.ParseError as exc:
            raise WorksheetError(f"Malformed worksheet XML: {exc}").with_sheet(self.sheet) from exc
        except (ValueError, ArithmeticError) as exc:
            raise WorksheetError(f"Unreadable worksheet value: {exc}").with_sheet(self.sheet) from exc
        writer.flush()
        LOGGER.debug(
            "Sheet %s converted: %d/%d rows (written/read)",
            self.sheet,
            state.rows_written,
            state.rows_covered,
        )
        return WorksheetStats(rows_covered=state.rows_covered, rows_written=state.rows_written)

    # Stream walk ------------------------------------------------------

    def _convert(self, stream: IO[bytes], writer: CsvLineWriter, state: WorksheetState) -> None:
        sheet_data: Optional[ET.Element] = None
        for event, name, element in iter_elements(stream):
            if event == "start":
                if name == "dimension" and sheet_data is None and state.range_end is None:
                    ref = attribute(element, "ref")
                    if ref.strip():
                        state.range_end = read_dimension(ref).end
                elif name == "sheetData":
                    if state.range_end is None:
                        raise MissingDimensionError("Worksheet has no dimension reference before its data.")
                    sheet_data = element
                continue

            if sheet_data is None:
                continue
            if name == "row":
                self._emit_row(element, writer, state)
                sheet_data.clear()
            elif name == "sheetData":
                return

        if state.range_end is None:
            raise MissingDimensionError("Worksheet has no dimension reference.")

    # Rows -------------------------------------------------------------

    def _emit_row(self, row: ET.Element, writer: CsvLineWriter, state: WorksheetState) -> None:
        raw_number = attribute(row, "r")
        row_number = parse_uint(raw_number)
        if not row_number:
            raise InvalidRowError(f"Row does not have a valid row number (r={raw_number!r}).")
        if row_number <= state.rows_covered:
            raise OutOfOrderError(f"Row {row_number} appears after row {state.rows_covered}.")

        if not self.options.remove_empty_rows:
            blank = [EMPTY] * state.column_count
            for gap_number in range(state.rows_covered + 1, row_number):
                self._write(blank, gap_number, writer, state)
                state.rows_covered = gap_number
                self._report(state)

        values = self._row_values(row, row_number)
        if len(values) < state.column_count:
            values.extend([EMPTY] * (state.column_count - len(values)))
        state.rows_covered = row_number

        if self.options.remove_empty_rows and all(value == EMPTY for value in values):
            self._report(state)
            return

        self._write(values, row_number, writer, state)
        self._report(state)

    def _write(self, values: List[str], row_number: int, writer: CsvLineWriter, state: WorksheetState) -> None:
        index = min(row_number, state.rows_written + 1) if self.options.indexed else None
        writer.write_row(values, index)
        state.rows_written += 1

    def _report(self, state: WorksheetState) -> None:
        if self.progress_cb is None:
            return
        self.progress_cb(
            WorksheetProgress(
                sheet=self.sheet,
                rows_covered=state.rows_covered,
                rows_written=state.rows_written,
                row_count=state.row_count,
            )
        )

    # Cells ------------------------------------------------------------

    def _row_values(self, row: ET.Element, row_number: int) -> List[str]:
        values: List[str] = []
        for cell in row:
            if local_name(cell.tag) != "c":
                continue
            ref = attribute(cell, "r")
            column = CellAddress.parse(ref).column if ref else len(values) + 1
            if column <= len(values):
                raise OutOfOrderError(f"Cell {ref} appears after column {len(values)} in row {row_number}.")
            if column > len(values) + 1:
                values.extend([EMPTY] * (column - len(values) - 1))
            try:
                text = self._cell_text(cell)
            except MissingPartError as exc:
                raise MissingPartError(f"Cell {ref or column}: {exc}") from exc
            values.append(text)
        return values

    def _cell_text(self, cell: ET.Element) -> str:
        cell_type = CellType.from_code(attribute(cell, "t"))
        style_index = parse_uint(attribute(cell, "s"))
        style_id = None if style_index is None else self.number_formats.format_id_for_style(style_index)

        raw: Optional[str] = None
        for child in cell:
            child_name = local_name(child.tag)
            if child_name == "v":
                raw = child.text or ""
            elif child_name == "is" and cell_type is CellType.INLINE_STRING:
                raw = element_text(child)
        return self.formatter.format(raw, cell_type, style_id)


def convert_worksheet(
    stream: IO[bytes],
    handle: IO[str],
    shared_strings: SharedStringTable,
    number_formats: NumberFormatTable,
    options: WorksheetOptions | None = None,
    *,
    sheet: str = "",
    progress_cb: Optional[ProgressCallback] = None,
) -> WorksheetStats:
    """Convert one worksheet stream into CSV text written to ``handle``."""

    converter = WorksheetStreamConverter(
        shared_strings,
        number_formats,
        options,
        sheet=sheet,
        progress_cb=progress_cb,
    )
    return converter.convert(stream, CsvLineWriter(handle))


__all__ = ["WorksheetStreamConverter", "convert_worksheet", "read_dimension"]
