from __future__ import annotations

import sys
import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence
from xml.sax.saxutils import escape, quoteattr

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
REL_TYPE_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"


def worksheet_xml(rows: str, dimension: Optional[str] = "A1:B4") -> str:
    """Wrap ``<row>`` markup into a worksheet part."""

    dim = f"<dimension ref={quoteattr(dimension)}/>" if dimension is not None else ""
    return (
        f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<worksheet xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">'
        f"{dim}<sheetViews><sheetView workbookViewId=\"0\"/></sheetViews>"
        f"<sheetData>{rows}</sheetData>"
        f'<pageMargins left="0.7" right="0.7" top="0.75" bottom="0.75" header="0.3" footer="0.3"/>'
        f"</worksheet>"
    )


def shared_strings_xml(items: Sequence[str]) -> str:
    body = "".join(f"<si><t xml:space=\"preserve\">{escape(item)}</t></si>" for item in items)
    return f'<sst xmlns="{MAIN_NS}" count="{len(items)}" uniqueCount="{len(items)}">{body}</sst>'


def styles_xml(num_fmts: Mapping[int, str] | None = None, cell_xfs: Iterable[int] | None = None) -> str:
    num_fmts = num_fmts or {}
    fmt_body = "".join(
        f"<numFmt numFmtId=\"{fmt_id}\" formatCode={quoteattr(code)}/>" for fmt_id, code in num_fmts.items()
    )
    numfmts_xml = f'<numFmts count="{len(num_fmts)}">{fmt_body}</numFmts>' if num_fmts else ""
    xfs_xml = ""
    if cell_xfs is not None:
        xfs = list(cell_xfs)
        xf_body = "".join(f'<xf numFmtId="{fmt_id}" fontId="0" fillId="0" borderId="0" xfId="0"/>' for fmt_id in xfs)
        xfs_xml = f'<cellXfs count="{len(xfs)}">{xf_body}</cellXfs>'
    return (
        f'<styleSheet xmlns="{MAIN_NS}">{numfmts_xml}'
        f'<fonts count="1"><font><sz val="11"/><name val="Calibri"/></font></fonts>'
        f'<fills count="1"><fill><patternFill patternType="none"/></fill></fills>'
        f'<borders count="1"><border><left/><right/><top/><bottom/><diagonal/></border></borders>'
        f'<cellStyleXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/></cellStyleXfs>'
        f"{xfs_xml}"
        f'<cellStyles count="1"><cellStyle name="Normal" xfId="0" builtinId="0"/></cellStyles>'
        f"</styleSheet>"
    )


def build_xlsx(
    path: Path,
    sheets: Sequence[Dict[str, str]],
    *,
    shared_strings: Optional[Sequence[str]] = None,
    styles: Optional[str] = None,
) -> Path:
    """Write a minimal package; each sheet dict has ``name``, ``xml`` and optional ``state``/``kind``."""

    sheet_entries = []
    rels = []
    parts: Dict[str, str] = {}
    for idx, sheet in enumerate(sheets, start=1):
        kind = sheet.get("kind", "worksheet")
        folder = "worksheets" if kind == "worksheet" else "chartsheets"
        part = f"{folder}/sheet{idx}.xml"
        state = f" state={quoteattr(sheet['state'])}" if sheet.get("state") else ""
        sheet_entries.append(f"<sheet name={quoteattr(sheet['name'])} sheetId=\"{idx}\"{state} r:id=\"rId{idx}\"/>")
        rels.append(f'<Relationship Id="rId{idx}" Type="{REL_TYPE_BASE}/{kind}" Target="{part}"/>')
        parts[f"xl/{part}"] = sheet["xml"]

    next_id = len(sheets) + 1
    if shared_strings is not None:
        rels.append(
            f'<Relationship Id="rId{next_id}" Type="{REL_TYPE_BASE}/sharedStrings" Target="sharedStrings.xml"/>'
        )
        parts["xl/sharedStrings.xml"] = shared_strings_xml(shared_strings)
        next_id += 1
    if styles is not None:
        rels.append(f'<Relationship Id="rId{next_id}" Type="{REL_TYPE_BASE}/styles" Target="/xl/styles.xml"/>')
        parts["xl/styles.xml"] = styles

    parts["[Content_Types].xml"] = (
        '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
        '<Default Extension="xml" ContentType="application/xml"/></Types>'
    )
    parts["_rels/.rels"] = (
        f'<Relationships xmlns="{PKG_REL_NS}">'
        f'<Relationship Id="rId1" Type="{REL_TYPE_BASE}/officeDocument" Target="xl/workbook.xml"/>'
        f"</Relationships>"
    )
    parts["xl/workbook.xml"] = (
        f'<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}"><sheets>{"".join(sheet_entries)}</sheets></workbook>'
    )
    parts["xl/_rels/workbook.xml.rels"] = f'<Relationships xmlns="{PKG_REL_NS}">{"".join(rels)}</Relationships>'

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in parts.items():
            archive.writestr(name, content)
    return path


@pytest.fixture()
def make_workbook(tmp_path: Path) -> Callable[..., Path]:
    def _make(sheets: Sequence[Dict[str, str]], *, name: str = "book.xlsx", **kwargs) -> Path:
        return build_xlsx(tmp_path / name, sheets, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log files out of the real home directory."""

    import exceltocsv.core.logger as core_logger

    monkeypatch.setenv("EXCELTOCSV_HOME", str(tmp_path / "home"))
    monkeypatch.setattr(core_logger, "_LOGGER", None, raising=False)
