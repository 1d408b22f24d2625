"""Tests for conversion option loading and merging."""

from __future__ import annotations

from pathlib import Path

import pytest

from exceltocsv.core.errors import ConfigError
from exceltocsv.core.options import ConversionOptions, load_options


def test_defaults() -> None:
    options = ConversionOptions()

    assert options.sheets == []
    assert options.renames == []
    assert not options.indexed
    assert not options.remove_empty_rows
    assert options.max_workers == 1
    assert options.output_dir is None


def test_load_options_from_conversion_section(tmp_path: Path) -> None:
    path = tmp_path / "options.yaml"
    path.write_text(
        "conversion:\n"
        "  sheets: [Sales, Costs]\n"
        "  renames: [sales, costs]\n"
        "  indexed: true\n"
        "  max_workers: 4\n"
        f"  output_dir: {tmp_path / 'csv'}\n",
        encoding="utf-8",
    )

    options = load_options(path)

    assert options.sheets == ["Sales", "Costs"]
    assert options.renames == ["sales", "costs"]
    assert options.indexed
    assert options.max_workers == 4
    assert options.output_dir == tmp_path / "csv"


def test_load_options_from_document_root(tmp_path: Path) -> None:
    path = tmp_path / "options.yaml"
    path.write_text("remove_empty_rows: true\ntreat_errors_as_empty: true\n", encoding="utf-8")

    options = load_options(path)

    assert options.remove_empty_rows
    assert options.treat_errors_as_empty


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    path = tmp_path / "options.yaml"
    path.write_text("", encoding="utf-8")

    assert load_options(path) == ConversionOptions()


@pytest.mark.parametrize(
    "payload",
    [
        "unknown_key: 1\n",
        "max_workers: 0\n",
        "- just\n- a list\n",
        "conversion: nope\n",
        "sheets: [unclosed\n",
    ],
)
def test_invalid_options_raise_config_error(tmp_path: Path, payload: str) -> None:
    path = tmp_path / "options.yaml"
    path.write_text(payload, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_options(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_options(tmp_path / "absent.yaml")


def test_merged_ignores_none_and_validates() -> None:
    base = ConversionOptions(indexed=True, sheets=["A"])

    merged = base.merged(indexed=None, sheets=["B"], max_workers=2)

    assert merged.indexed
    assert merged.sheets == ["B"]
    assert merged.max_workers == 2
    assert base.sheets == ["A"]
    with pytest.raises(ConfigError):
        base.merged(max_workers=0)
