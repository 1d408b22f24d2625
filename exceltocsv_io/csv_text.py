"""CSV text helpers for incremental worksheet output."""

# Module responsibilities:
# - Write one row per line through ``csv.writer`` (quote only when needed, LF endings).
# - Prefix rows with an always-quoted index value when row numbering is enabled.

from __future__ import annotations

import csv
from typing import IO, Optional, Sequence

SEPARATOR = ","
QUOTE = '"'
LINE_TERMINATOR = "\n"


def quote_value(value: str) -> str:
    """Always wrap ``value`` in quotes (used for the synthetic index column)."""

    return QUOTE + value.replace(QUOTE, QUOTE + QUOTE) + QUOTE


class CsvLineWriter:
    """Emit one CSV line per worksheet row.

    Data fields are quoted on demand by :mod:`csv` (comma, quote, CR or LF);
    the optional index is written ahead of them, always quoted.
    """

    def __init__(self, handle: IO[str]) -> None:
        self._handle = handle
        self._writer = csv.writer(
            handle,
            delimiter=SEPARATOR,
            quotechar=QUOTE,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator=LINE_TERMINATOR,
        )
        self.lines_written = 0

    def write_row(self, values: Sequence[str], index: Optional[int] = None) -> None:
        if index is not None:
            self._handle.write(quote_value(str(index)))
            if values:
                self._handle.write(SEPARATOR)
        # csv.writer renders a lone empty field as '""'
        if not values or (len(values) == 1 and not values[0]):
            self._handle.write(LINE_TERMINATOR)
        else:
            self._writer.writerow(values)
        self.lines_written += 1

    def flush(self) -> None:
        self._handle.flush()


__all__ = ["CsvLineWriter", "quote_value"]
