"""Forward-only access to the parts of an OOXML spreadsheet package."""

# Module responsibilities:
# - Open the ZIP container and resolve the workbook part plus its relationships.
# - Hand out independent binary streams per part so worksheets can be read concurrently.
# - Expose a namespace-free (event, local_name, element) stream on top of ElementTree.iterparse.

from __future__ import annotations

import logging
import posixpath
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Dict, Iterator, Optional, Tuple
from xml.etree import ElementTree as ET

from exceltocsv.core.errors import PackageError

LOGGER = logging.getLogger(__name__)

ROOT_RELS_PART = "_rels/.rels"
DEFAULT_WORKBOOK_PART = "xl/workbook.xml"

OFFICE_DOCUMENT_SUFFIX = "/officeDocument"
SHARED_STRINGS_SUFFIX = "/sharedStrings"
STYLES_SUFFIX = "/styles"
WORKSHEET_SUFFIX = "/worksheet"

XmlEvent = Tuple[str, str, ET.Element]


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix from an ElementTree tag or attribute key."""

    return tag.rsplit("}", 1)[-1]


def attribute(element: ET.Element, name: str, default: str = "") -> str:
    """Return an attribute by local name, preferring the un-namespaced spelling."""

    value = element.attrib.get(name)
    if value is not None:
        return value
    for key, candidate in element.attrib.items():
        if local_name(key) == name:
            return candidate
    return default


def iter_elements(stream: IO[bytes]) -> Iterator[XmlEvent]:
    """Yield ``(event, local_name, element)`` for every start/end tag, in document order.

    Attributes are complete on ``start``; text and children only on ``end``.
    Callers own memory release and should ``clear()`` elements they are done with.
    """

    for event, element in ET.iterparse(stream, events=("start", "end")):
        yield event, local_name(element.tag), element


def element_text(element: ET.Element) -> str:
    """Concatenate ``t`` descendants of a string item in order, skipping phonetic runs."""

    parts: list[str] = []
    for child in element:
        name = local_name(child.tag)
        if name == "t":
            parts.append(child.text or "")
        elif name == "r":
            for run_child in child:
                if local_name(run_child.tag) == "t":
                    parts.append(run_child.text or "")
    return "".join(parts)


@dataclass(frozen=True, slots=True)
class Relationship:
    """One entry of a part's relationship list."""

    id: str
    type: str
    target: str

    def is_type(self, suffix: str) -> bool:
        return self.type.endswith(suffix)


def _resolve_target(base_part: str, target: str) -> str:
    if target.startswith("/"):
        return target.lstrip("/")
    return posixpath.normpath(posixpath.join(posixpath.dirname(base_part), target))


def _rels_part_for(part: str) -> str:
    directory, filename = posixpath.split(part)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


class OoxmlPackage:
    """An opened ``.xlsx`` package.

    Only relationship metadata is read eagerly; every content part is streamed
    on demand through :meth:`open_part`.
    """

    def __init__(self, archive: zipfile.ZipFile, source: Path) -> None:
        self._archive = archive
        self.source = source
        self._names = set(archive.namelist())
        self.workbook_part = self._find_workbook_part()
        self.relationships: Dict[str, Relationship] = self._read_relationships(self.workbook_part)

    @classmethod
    def open(cls, path: str | Path) -> "OoxmlPackage":
        source = Path(path)
        try:
            archive = zipfile.ZipFile(source)
        except (zipfile.BadZipFile, OSError) as exc:
            raise PackageError(f"'{source}' is not a readable .xlsx package: {exc}") from exc
        try:
            return cls(archive, source)
        except ET.ParseError as exc:
            archive.close()
            raise PackageError(f"'{source}' holds malformed package XML: {exc}") from exc
        except Exception:
            archive.close()
            raise

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> "OoxmlPackage":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Part lookup ------------------------------------------------------

    def has_part(self, name: str) -> bool:
        return name in self._names

    @contextmanager
    def open_part(self, name: str) -> Iterator[IO[bytes]]:
        """Open one part for reading; the stream is closed on every exit path."""

        if name not in self._names:
            raise PackageError(f"Package part '{name}' is missing from {self.source.name}")
        handle = self._archive.open(name)
        try:
            yield handle
        finally:
            handle.close()

    @property
    def shared_strings_part(self) -> Optional[str]:
        return self._part_by_type(SHARED_STRINGS_SUFFIX)

    @property
    def styles_part(self) -> Optional[str]:
        return self._part_by_type(STYLES_SUFFIX)

    def relationship(self, relationship_id: str) -> Relationship:
        try:
            return self.relationships[relationship_id]
        except KeyError as exc:
            raise PackageError(f"Workbook has no relationship with id '{relationship_id}'") from exc

    def worksheet_part(self, relationship_id: str) -> str:
        return self.relationship(relationship_id).target

    # Internal helpers -------------------------------------------------

    def _part_by_type(self, suffix: str) -> Optional[str]:
        for relationship in self.relationships.values():
            if relationship.is_type(suffix) and relationship.target in self._names:
                return relationship.target
        return None

    def _find_workbook_part(self) -> str:
        if ROOT_RELS_PART in self._names:
            for relationship in self._parse_relationships(ROOT_RELS_PART, base_part=""):
                if relationship.is_type(OFFICE_DOCUMENT_SUFFIX) and relationship.target in self._names:
                    return relationship.target
        if DEFAULT_WORKBOOK_PART in self._names:
            return DEFAULT_WORKBOOK_PART
        raise PackageError(f"'{self.source.name}' does not contain a workbook part")

    def _read_relationships(self, part: str) -> Dict[str, Relationship]:
        rels_part = _rels_part_for(part)
        if rels_part not in self._names:
            LOGGER.warning("Workbook part %s has no relationships part", part)
            return {}
        return {rel.id: rel for rel in self._parse_relationships(rels_part, base_part=part)}

    def _parse_relationships(self, rels_part: str, *, base_part: str) -> list[Relationship]:
        relationships: list[Relationship] = []
        with self.open_part(rels_part) as stream:
            for event, name, element in iter_elements(stream):
                if event != "end" or name != "Relationship":
                    continue
                if attribute(element, "TargetMode") == "External":
                    continue
                relationships.append(
                    Relationship(
                        id=attribute(element, "Id"),
                        type=attribute(element, "Type"),
                        target=_resolve_target(base_part, attribute(element, "Target")),
                    )
                )
        return relationships


__all__ = [
    "OoxmlPackage",
    "Relationship",
    "WORKSHEET_SUFFIX",
    "XmlEvent",
    "attribute",
    "element_text",
    "iter_elements",
    "local_name",
]
