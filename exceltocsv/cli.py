"""Typer based command line entry points for ExcelToCSV."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import List, Optional
from xml.etree import ElementTree as ET

import typer

from exceltocsv.core.errors import ConfigError, ExcelToCsvError, PackageError, WorkbookError
from exceltocsv.core.logger import get_logger, set_level
from exceltocsv.core.options import ConversionOptions, load_options
from exceltocsv.core.pipeline import SheetResult, WorkbookConverter
from exceltocsv.services.converter import SheetDescriptor, WorksheetProgress, read_sheet_entries
from exceltocsv_io.ooxml import OoxmlPackage

SUPPORTED_SUFFIX = ".xlsx"
PROGRESS_STEPS = 10
LEFT_PADDING = 4

app = typer.Typer(help="Converts Excel (.xlsx) files to CSVs (.csv) without having Excel installed.")


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    logger = get_logger()

    level_value = getattr(logging, log_level.upper(), None)
    if not isinstance(level_value, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}")

    set_level(level_value)
    logger.debug("Log level set to %s", log_level.upper())


def _validate_workbook(path: Path) -> Path:
    if path.suffix.lower() != SUPPORTED_SUFFIX:
        raise typer.BadParameter(f"Only '{SUPPORTED_SUFFIX}' files are supported. Entered: '{path.suffix}'.")
    return path


class _ProgressPrinter:
    """Renders coarse per-sheet progress bars; safe to call from worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_step: dict[str, int] = {}

    def __call__(self, progress: WorksheetProgress) -> None:
        step = int(progress.fraction * PROGRESS_STEPS)
        with self._lock:
            if self._last_step.get(progress.sheet, -1) >= step:
                return
            self._last_step[progress.sheet] = step
        bar = "#" * step + "-" * (PROGRESS_STEPS - step)
        typer.secho(
            f"{'':<{LEFT_PADDING}}{progress.sheet} [{bar}] {progress.fraction:4.0%}",
            err=True,
        )


class _SheetTable:
    """Prints the per-sheet report; columns are sized once the sheets are known."""

    def __init__(self) -> None:
        self.width = len("Worksheet") + 2

    def header(self, descriptors: List[SheetDescriptor]) -> None:
        self.width = max([len(d.name) for d in descriptors] + [len("Worksheet")]) + 2
        typer.echo(f"{'':<{LEFT_PADDING}}{'Worksheet':<{self.width}}Information")
        typer.echo(f"{'':<{LEFT_PADDING}}{'-' * len('Worksheet'):<{self.width}}{'-' * len('Information')}")

    def row(self, result: SheetResult) -> None:
        _print_sheet(result, self.width)


def _print_sheet(result: SheetResult, width: int) -> None:
    prefix = f"{'':<{LEFT_PADDING}}{result.name:<{width}}"
    if result.status == "converted":
        typer.echo(
            f"{prefix}({result.rows_written}/{result.rows_covered}) rows (Written/Read). "
            f"Elapsed Time (s): {result.elapsed:.2f}"
        )
    elif result.status == "failed":
        typer.secho(f"{prefix}failed: {result.error}", fg=typer.colors.RED)
    else:
        typer.secho(f"{prefix}{result.status}", fg=typer.colors.YELLOW)


@app.command("convert")
def convert(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        resolve_path=True,
        callback=_validate_workbook,
        help="Absolute or relative path to Excel (.xlsx) file to convert.",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Directory where CSVs will be saved."),
    sheets: Optional[List[str]] = typer.Option(
        None, "--sheets", help="Sheet name to include; repeat for several. Defaults to all sheets."
    ),
    rename: Optional[List[str]] = typer.Option(
        None,
        "--rename",
        help="Output file name; repeat to match the number of sheets in the workbook OR selected with '--sheets'.",
    ),
    indexed: Optional[bool] = typer.Option(
        None, "--indexed/--no-indexed", help="Add a row number column without a header in first position."
    ),
    hidden: Optional[bool] = typer.Option(None, "--hidden/--no-hidden", help="Include hidden and veryHidden sheets."),
    null_errors: Optional[bool] = typer.Option(
        None, "--null-errors/--keep-errors", help="Convert any Excel error to an empty string."
    ),
    remove_empty_rows: Optional[bool] = typer.Option(
        None, "--remove-empty-rows/--keep-empty-rows", help="Remove empty rows from the worksheet."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Worksheets converted in parallel."),
    continue_on_error: Optional[bool] = typer.Option(
        None, "--continue-on-error/--stop-on-error", help="Keep converting other sheets when one fails."
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML file with default conversion options."),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Display per-sheet progress."),
) -> None:
    """Convert the selected worksheets of FILE into one CSV file each."""

    logger = get_logger()
    try:
        base = load_options(config) if config else ConversionOptions()
        options = base.merged(
            output_dir=output,
            sheets=sheets or None,
            renames=rename or None,
            indexed=indexed,
            include_hidden=hidden,
            treat_errors_as_empty=null_errors,
            remove_empty_rows=remove_empty_rows,
            max_workers=workers,
            continue_on_error=continue_on_error,
        )
    except ConfigError as exc:
        logger.error("convert config_error: %s", exc)
        typer.secho(f"Unable to load conversion options: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc

    typer.echo(f"Parsing file: {file}")
    typer.echo()

    table = _SheetTable()
    converter = WorkbookConverter(
        options,
        logger=logger,
        progress_cb=_ProgressPrinter() if progress else None,
        sheet_cb=table.row,
        catalog_cb=table.header,
    )
    try:
        result = converter.run(file)
    except (WorkbookError, PackageError, ConfigError) as exc:
        logger.error("convert failed file=%s: %s", file, exc)
        typer.secho(f"Conversion aborted: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc

    typer.echo()
    typer.echo(f"Output directory: {result.output_dir}")
    typer.echo(f"Total Elapsed (s): {result.elapsed:.2f}")
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("sheets")
def list_sheets(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, callback=_validate_workbook),
    hidden: bool = typer.Option(False, "--hidden/--no-hidden", help="Also list hidden and veryHidden sheets."),
) -> None:
    """List the worksheets of FILE with their visibility state."""

    try:
        with OoxmlPackage.open(file) as package, package.open_part(package.workbook_part) as stream:
            entries = read_sheet_entries(stream)
    except (ExcelToCsvError, ET.ParseError) as exc:
        typer.secho(f"Unable to read workbook: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc

    for entry in entries:
        if entry.hidden and not hidden:
            continue
        typer.echo(f"{entry.name}\t{entry.state}")


if __name__ == "__main__":  # pragma: no cover
    app()
