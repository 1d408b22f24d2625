"""Workbook level lookup tables shared read-only by every worksheet conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import IO, Dict, List, Optional, Sequence

from exceltocsv.core.errors import MissingPartError
from exceltocsv_io.ooxml import attribute, element_text, iter_elements

LOGGER = logging.getLogger(__name__)


class SharedStringTable:
    """Index -> text mapping of the workbook's shared string part.

    A workbook without a shared string part is valid; the failure is deferred
    until a cell actually references the table.
    """

    def __init__(self, items: Optional[Sequence[str]] = None) -> None:
        self._items: Optional[tuple[str, ...]] = tuple(items) if items is not None else None

    @classmethod
    def load(cls, stream: IO[bytes]) -> "SharedStringTable":
        """Stream ``<si>`` items in order; rich text runs are concatenated without separator."""

        items: List[str] = []
        root = None
        for event, name, element in iter_elements(stream):
            if event == "start":
                if root is None:
                    root = element
                continue
            if name == "si":
                items.append(element_text(element))
                element.clear()
                if root is not None:
                    root.clear()
        LOGGER.debug("Loaded %d shared strings", len(items))
        return cls(items)

    @classmethod
    def absent(cls) -> "SharedStringTable":
        return cls(None)

    @property
    def present(self) -> bool:
        return self._items is not None

    def lookup(self, index: int) -> str:
        """Return the text at ``index``; unknown indices yield an empty string.

        Raises:
            MissingPartError: When the workbook declares no shared string part.
        """

        if self._items is None:
            raise MissingPartError("Cell references the shared string table but the workbook has none.")
        if 0 <= index < len(self._items):
            return self._items[index]
        return ""

    def __len__(self) -> int:
        return len(self._items) if self._items is not None else 0


@dataclass(slots=True)
class NumberFormatTable:
    """Custom number formats and cell format records from the styles part.

    Attributes:
        formats: Custom ``numFmtId -> formatCode`` pairs from ``<numFmts>``.
        cell_formats: ``numFmtId`` of every ``<cellXfs>`` record, indexed by a cell's ``s``.
    """

    formats: Dict[int, str] = field(default_factory=dict)
    cell_formats: List[int] = field(default_factory=list)

    @classmethod
    def load(cls, stream: IO[bytes]) -> "NumberFormatTable":
        """Walk the whole stylesheet once, keeping only numbering format data."""

        table = cls()
        path: List[str] = []
        for event, name, element in iter_elements(stream):
            if event == "start":
                parent = path[-1] if path else ""
                path.append(name)
                if name == "numFmt" and parent == "numFmts":
                    table._add_format(element)
                elif name == "xf" and parent == "cellXfs":
                    table.cell_formats.append(parse_uint(attribute(element, "numFmtId")) or 0)
                continue
            path.pop()
            if name in ("numFmts", "cellXfs", "fonts", "fills", "borders", "cellStyleXfs", "cellStyles", "dxfs"):
                element.clear()
        LOGGER.debug(
            "Loaded %d custom number formats and %d cell formats",
            len(table.formats),
            len(table.cell_formats),
        )
        return table

    def _add_format(self, element) -> None:
        format_id = parse_uint(attribute(element, "numFmtId"))
        if format_id is None:
            LOGGER.warning("Skipping number format without numeric id: %r", element.attrib)
            return
        self.formats[format_id] = attribute(element, "formatCode")

    def format_id_for_style(self, style_index: int) -> int:
        """Resolve a cell's ``s`` attribute to a number format id.

        Without cell format records the style index is used as the format id itself.
        """

        if not self.cell_formats:
            return style_index
        if 0 <= style_index < len(self.cell_formats):
            return self.cell_formats[style_index]
        return 0

    def custom_code(self, format_id: int) -> Optional[str]:
        return self.formats.get(format_id)


def parse_uint(text: str) -> Optional[int]:
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


__all__ = ["NumberFormatTable", "SharedStringTable", "parse_uint"]
