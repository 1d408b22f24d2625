"""Cell value formatting: shared string lookup, scientific and date rendering."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from itertools import chain
from typing import Optional

from .models import CellType
from .tables import NumberFormatTable, SharedStringTable

EMPTY = ""

# "#DIV/O!" (letter O) is kept next to "#DIV/0!" for producers that emit the misspelling.
ERROR_LITERALS = frozenset(
    {
        "#N/A",
        "#REF!",
        "#VALUE!",
        "#NAME?",
        "#DIV/O!",
        "#DIV/0!",
        "#NULL!",
        "#NUM!",
    }
)

BUILTIN_FORMAT_LIMIT = 163
EXPONENTIAL_FORMAT_IDS = frozenset({11, 48})
DATE_TIME_FORMAT_IDS = frozenset(
    chain(range(14, 23), range(27, 37), range(45, 48), range(50, 59), (81,))
)
DATE_TIME_CODE_CHARS = frozenset("dmyhs")
EXPONENTIAL_CODE_CHAR = "E"

OLE_EPOCH = datetime(1899, 12, 30)
OLE_MIN = -657435.0
OLE_MAX = 2958466.0
MILLIS_PER_DAY = 86_400_000
# Largest decimal exponent accepted for plain rendering (about 7.9e28).
MAX_DECIMAL_EXPONENT = 28


class FormatKind(Enum):
    PLAIN = "plain"
    EXPONENTIAL = "exponential"
    DATE_TIME = "date_time"


def is_excel_error(value: str) -> bool:
    return value in ERROR_LITERALS


def classify_builtin(format_id: int) -> FormatKind:
    if format_id in EXPONENTIAL_FORMAT_IDS:
        return FormatKind.EXPONENTIAL
    if format_id in DATE_TIME_FORMAT_IDS:
        return FormatKind.DATE_TIME
    return FormatKind.PLAIN


def classify_code(format_code: str) -> FormatKind:
    if EXPONENTIAL_CODE_CHAR in format_code:
        return FormatKind.EXPONENTIAL
    if not DATE_TIME_CODE_CHARS.isdisjoint(format_code):
        return FormatKind.DATE_TIME
    return FormatKind.PLAIN


def resolve_format(style_id: Optional[int], number_formats: NumberFormatTable) -> FormatKind:
    """Classify a number format id: built-in ids by range, custom ids by their format code."""

    if style_id is None:
        return FormatKind.PLAIN
    if style_id > BUILTIN_FORMAT_LIMIT:
        code = number_formats.custom_code(style_id)
        if code is not None:
            return classify_code(code)
    return classify_builtin(style_id)


def format_exponential(raw: str) -> str:
    """Re-render scientific notation as plain decimal text (``1.5E+3`` -> ``1500``).

    Magnitudes outside the 28 digit decimal range are returned unchanged.
    """

    try:
        value = Decimal(raw)
    except InvalidOperation:
        return raw
    if not value.is_finite() or abs(value.adjusted()) > MAX_DECIMAL_EXPONENT:
        return raw
    return format(value, "f")


def ole_to_datetime(value: float) -> Optional[datetime]:
    """Convert an OLE automation day offset to a datetime, rounding to milliseconds.

    Negative offsets keep a positive time-of-day, e.g. ``-1.25`` is 1899-12-29 06:00.
    Returns ``None`` outside the representable OLE range.
    """

    if math.isnan(value) or not (OLE_MIN < value < OLE_MAX):
        return None
    millis = int(value * MILLIS_PER_DAY + (0.5 if value >= 0 else -0.5))
    if millis < 0:
        remainder = -((-millis) % MILLIS_PER_DAY)
        millis -= remainder * 2
    # rounding can push a value just below the upper bound onto it
    if not (OLE_MIN * MILLIS_PER_DAY <= millis < OLE_MAX * MILLIS_PER_DAY):
        return None
    return OLE_EPOCH + timedelta(milliseconds=millis)


def format_date_time(raw: str) -> str:
    """Render a day offset as ``YYYY-MM-DDTHH:mm:ss``."""

    try:
        value = float(raw)
    except ValueError:
        return raw
    moment = ole_to_datetime(value)
    if moment is None:
        return raw
    return moment.isoformat(timespec="seconds")


def format_value(
    raw: Optional[str],
    cell_type: CellType,
    style_id: Optional[int],
    shared_strings: SharedStringTable,
    number_formats: NumberFormatTable,
    *,
    treat_errors_as_empty: bool = False,
) -> str:
    """Produce the display text of one cell.

    Args:
        raw: Text of the cell's value element (or inline string).
        cell_type: Declared cell type.
        style_id: Number format id of the cell, if it carries a style.
        shared_strings: Workbook shared string table.
        number_formats: Workbook custom number formats.
        treat_errors_as_empty: Map Excel error literals to an empty string.

    Returns:
        The unescaped display string.

    Raises:
        MissingPartError: For a shared string cell in a workbook without a shared string part.
    """

    if not raw:
        return EMPTY
    if treat_errors_as_empty and is_excel_error(raw):
        return EMPTY

    if cell_type is CellType.SHARED_STRING:
        try:
            index = int(raw)
        except ValueError:
            return raw
        return shared_strings.lookup(index)
    if cell_type is CellType.INLINE_STRING:
        return raw

    kind = resolve_format(style_id, number_formats)
    if kind is FormatKind.EXPONENTIAL:
        return format_exponential(raw)
    if kind is FormatKind.DATE_TIME:
        return format_date_time(raw)
    return raw


class ValueFormatter:
    """:func:`format_value` bound to one workbook's tables and error policy."""

    def __init__(
        self,
        shared_strings: SharedStringTable,
        number_formats: NumberFormatTable,
        *,
        treat_errors_as_empty: bool = False,
    ) -> None:
        self.shared_strings = shared_strings
        self.number_formats = number_formats
        self.treat_errors_as_empty = treat_errors_as_empty

    def format(self, raw: Optional[str], cell_type: CellType, style_id: Optional[int]) -> str:
        return format_value(
            raw,
            cell_type,
            style_id,
            self.shared_strings,
            self.number_formats,
            treat_errors_as_empty=self.treat_errors_as_empty,
        )


__all__ = [
    "ERROR_LITERALS",
    "FormatKind",
    "ValueFormatter",
    "classify_builtin",
    "classify_code",
    "format_date_time",
    "format_exponential",
    "format_value",
    "is_excel_error",
    "ole_to_datetime",
    "resolve_format",
]
