"""Sheet enumeration, hidden-state filtering and rename pairing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import IO, List, Sequence

from exceltocsv.core.errors import RenameCountMismatchError, UnknownSheetError
from exceltocsv_io.ooxml import attribute, iter_elements
from exceltocsv_io.utils.paths import replace_invalid_filename_chars

from .models import SheetDescriptor

LOGGER = logging.getLogger(__name__)

HIDDEN_STATES = frozenset({"hidden", "veryHidden"})


@dataclass(frozen=True, slots=True)
class SheetEntry:
    """A ``<sheet>`` element of the workbook part."""

    name: str
    relationship_id: str
    state: str = "visible"

    @property
    def hidden(self) -> bool:
        return self.state in HIDDEN_STATES


def read_sheet_entries(stream: IO[bytes]) -> List[SheetEntry]:
    """Return every sheet with a relationship id, in workbook order."""

    entries: List[SheetEntry] = []
    for event, name, element in iter_elements(stream):
        if event != "start" or name != "sheet":
            continue
        relationship_id = attribute(element, "id")
        if not relationship_id:
            LOGGER.warning("Ignoring sheet %r without relationship id", attribute(element, "name"))
            continue
        entries.append(
            SheetEntry(
                name=attribute(element, "name"),
                relationship_id=relationship_id,
                state=attribute(element, "state") or "visible",
            )
        )
    return entries


def select_sheets(
    entries: Sequence[SheetEntry],
    requested_names: Sequence[str] = (),
    requested_renames: Sequence[str] = (),
    include_hidden: bool = False,
) -> List[SheetDescriptor]:
    """Apply hidden filtering, name selection and positional renames.

    Raises:
        UnknownSheetError: Listing every requested name that was not discovered.
        RenameCountMismatchError: When renames do not pair up with the selected names.
    """

    available = {entry.name: entry for entry in entries if include_hidden or not entry.hidden}

    names = list(requested_names) if requested_names else list(available)
    renames = list(requested_renames) if requested_renames else names

    missing = [name for name in dict.fromkeys(requested_names) if name not in available]
    if missing:
        raise UnknownSheetError(missing)
    if len(renames) != len(names):
        raise RenameCountMismatchError(sheet_count=len(names), rename_count=len(renames))

    descriptors = []
    for name, rename in zip(names, renames):
        entry = available[name]
        descriptors.append(
            SheetDescriptor(
                relationship_id=entry.relationship_id,
                name=name,
                rename=replace_invalid_filename_chars(rename),
                hidden=entry.hidden,
            )
        )
    return descriptors


def build_catalog(
    workbook_stream: IO[bytes],
    requested_names: Sequence[str] = (),
    requested_renames: Sequence[str] = (),
    include_hidden: bool = False,
) -> List[SheetDescriptor]:
    """Stream the workbook part once and return the ordered sheets to convert."""

    entries = read_sheet_entries(workbook_stream)
    descriptors = select_sheets(entries, requested_names, requested_renames, include_hidden)
    LOGGER.info(
        "Selected %d of %d sheet(s): %s",
        len(descriptors),
        len(entries),
        ", ".join(descriptor.name for descriptor in descriptors),
    )
    return descriptors


__all__ = ["HIDDEN_STATES", "SheetEntry", "build_catalog", "read_sheet_entries", "select_sheets"]
