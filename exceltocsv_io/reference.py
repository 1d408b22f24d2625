"""A1-style cell and range references."""

# Module responsibilities:
# - Decode "C7" style references into 1-based column/row coordinates and back.
# - Parse "A1:Z99" worksheet dimensions into a start/end pair.

from __future__ import annotations

from dataclasses import dataclass

from exceltocsv.core.errors import MalformedReferenceError

ALPHABET_SIZE = 26


def column_number(text: str) -> int:
    """Return the base-26 column number of the letters in ``text`` (A=1, AA=27).

    Non-letters are ignored; text without letters yields 0.
    """

    number = 0
    for char in text:
        if "A" <= char <= "Z" or "a" <= char <= "z":
            number = number * ALPHABET_SIZE + (ord(char) & 0x1F)
    return number


def row_number(text: str) -> int:
    """Return the row number formed by the digits in ``text``, or 0 when there are none."""

    digits = "".join(char for char in text if "0" <= char <= "9")
    return int(digits) if digits else 0


def column_letters(number: int) -> str:
    """Encode a 1-based column number as letters (1 -> A, 27 -> AA)."""

    if number < 1:
        raise ValueError(f"Column number must be positive: {number}")
    letters: list[str] = []
    while number:
        number, remainder = divmod(number - 1, ALPHABET_SIZE)
        letters.append(chr(ord("A") + remainder))
    return "".join(reversed(letters))


@dataclass(frozen=True, slots=True)
class CellAddress:
    """A decoded A1 reference."""

    column: int
    row: int

    @classmethod
    def parse(cls, text: str) -> "CellAddress":
        column = column_number(text)
        row = row_number(text)
        if column == 0 or row == 0:
            raise MalformedReferenceError(f"'{text}' is not a valid cell reference.")
        return cls(column=column, row=row)

    def to_a1(self) -> str:
        return f"{column_letters(self.column)}{self.row}"

    def __str__(self) -> str:
        return self.to_a1()


@dataclass(frozen=True, slots=True)
class RangeAddress:
    """A decoded ``start:end`` range such as a worksheet dimension."""

    start: CellAddress
    end: CellAddress

    @classmethod
    def parse(cls, text: str) -> "RangeAddress":
        """Parse ``"A1:Z99"``.

        Raises:
            MalformedReferenceError: When the text does not hold exactly one
                colon or either side is not a cell reference.
        """

        if text.count(":") != 1:
            raise MalformedReferenceError(f"Range reference '{text}' must contain exactly one colon (':').")
        start, end = text.split(":")
        return cls(start=CellAddress.parse(start), end=CellAddress.parse(end))

    def to_a1(self) -> str:
        return f"{self.start.to_a1()}:{self.end.to_a1()}"

    def __str__(self) -> str:
        return self.to_a1()


__all__ = [
    "CellAddress",
    "RangeAddress",
    "column_letters",
    "column_number",
    "row_number",
]
