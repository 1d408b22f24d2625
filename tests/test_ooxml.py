"""Tests for package level access: workbook discovery, relationships and part streams."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from conftest import styles_xml, worksheet_xml
from exceltocsv.core.errors import PackageError
from exceltocsv_io.ooxml import WORKSHEET_SUFFIX, OoxmlPackage, element_text, iter_elements, local_name


def test_local_name_strips_namespace() -> None:
    assert local_name("{http://example.com/ns}row") == "row"
    assert local_name("row") == "row"


def test_package_resolves_workbook_and_parts(make_workbook) -> None:
    path = make_workbook(
        [{"name": "Data", "xml": worksheet_xml("")}],
        shared_strings=["a"],
        styles=styles_xml(),
    )

    with OoxmlPackage.open(path) as package:
        assert package.workbook_part == "xl/workbook.xml"
        relationship = package.relationship("rId1")
        assert relationship.is_type(WORKSHEET_SUFFIX)
        assert relationship.target == "xl/worksheets/sheet1.xml"
        assert package.worksheet_part("rId1") == "xl/worksheets/sheet1.xml"
        assert package.shared_strings_part == "xl/sharedStrings.xml"
        # absolute target "/xl/styles.xml"
        assert package.styles_part == "xl/styles.xml"
        assert package.has_part("xl/styles.xml")


def test_optional_parts_may_be_absent(make_workbook) -> None:
    path = make_workbook([{"name": "Data", "xml": worksheet_xml("")}])

    with OoxmlPackage.open(path) as package:
        assert package.shared_strings_part is None
        assert package.styles_part is None


def test_unknown_relationship_and_missing_part(make_workbook) -> None:
    path = make_workbook([{"name": "Data", "xml": worksheet_xml("")}])

    with OoxmlPackage.open(path) as package:
        with pytest.raises(PackageError):
            package.relationship("rId42")
        with pytest.raises(PackageError):
            with package.open_part("xl/nothing.xml"):
                pass


def test_workbook_part_falls_back_without_root_relationships(tmp_path: Path) -> None:
    path = tmp_path / "bare.xlsx"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("xl/workbook.xml", "<workbook/>")

    with OoxmlPackage.open(path) as package:
        assert package.workbook_part == "xl/workbook.xml"
        assert package.relationships == {}


def test_open_rejects_non_zip_file(tmp_path: Path) -> None:
    path = tmp_path / "fake.xlsx"
    path.write_text("not a zip", encoding="utf-8")

    with pytest.raises(PackageError):
        OoxmlPackage.open(path)


def test_open_rejects_zip_without_workbook(tmp_path: Path) -> None:
    path = tmp_path / "empty.xlsx"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("readme.txt", "hello")

    with pytest.raises(PackageError):
        OoxmlPackage.open(path)


def test_element_text_concatenates_runs_and_skips_phonetics(tmp_path: Path) -> None:
    path = tmp_path / "si.xml"
    path.write_text(
        '<sst xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main"><si>'
        "<r><t>Hello</t></r><r><rPr><b/></rPr><t xml:space=\"preserve\"> World</t></r>"
        "<rPh sb=\"0\" eb=\"1\"><t>ignored</t></rPh>"
        "</si></sst>",
        encoding="utf-8",
    )

    with path.open("rb") as stream:
        items = [
            element_text(element)
            for event, name, element in iter_elements(stream)
            if event == "end" and name == "si"
        ]

    assert items == ["Hello World"]
