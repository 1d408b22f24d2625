from __future__ import annotations

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional
from xml.etree import ElementTree as ET

from .errors import PackageError, WorksheetError
from .options import ConversionOptions
from exceltocsv.services.converter import (
    NumberFormatTable,
    SharedStringTable,
    SheetDescriptor,
    WorksheetOptions,
    WorksheetStreamConverter,
    build_catalog,
)
from exceltocsv.services.converter.models import ProgressCallback
from exceltocsv_io.csv_text import CsvLineWriter
from exceltocsv_io.ooxml import WORKSHEET_SUFFIX, OoxmlPackage
from exceltocsv_io.utils.paths import csv_path_for, ensure_output_dir, temporary_path

LOGGER = logging.getLogger(__name__)

STATUS_CONVERTED = "converted"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"
STATUS_CANCELLED = "cancelled"

SheetCallback = Callable[["SheetResult"], None]
CatalogCallback = Callable[[List[SheetDescriptor]], None]


@dataclass
class SheetResult:
    name: str
    rename: str
    status: str
    path: Path | None = None
    rows_covered: int = 0
    rows_written: int = 0
    elapsed: float = 0.0
    error: str | None = None
    exception: BaseException | None = field(default=None, repr=False, compare=False)

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED


@dataclass
class WorkbookResult:
    source: Path
    output_dir: Path
    sheets: List[SheetResult]
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return not any(sheet.failed for sheet in self.sheets)

    @property
    def failures(self) -> List[SheetResult]:
        return [sheet for sheet in self.sheets if sheet.failed]


@dataclass(frozen=True)
class WorkbookTables:
    """Read-only workbook state shared by every worksheet conversion."""

    shared_strings: SharedStringTable
    number_formats: NumberFormatTable


def load_tables(package: OoxmlPackage) -> WorkbookTables:
    """Read the shared string and styles parts once; both parts are optional."""

    shared_part = package.shared_strings_part
    if shared_part:
        with package.open_part(shared_part) as stream:
            shared_strings = SharedStringTable.load(stream)
    else:
        LOGGER.info("Workbook %s has no shared string part", package.source.name)
        shared_strings = SharedStringTable.absent()

    styles_part = package.styles_part
    if styles_part:
        with package.open_part(styles_part) as stream:
            number_formats = NumberFormatTable.load(stream)
    else:
        number_formats = NumberFormatTable()
    return WorkbookTables(shared_strings=shared_strings, number_formats=number_formats)


class WorkbookConverter:
    """Coordinates Catalog -> Tables -> per-sheet conversion for one workbook."""

    def __init__(
        self,
        options: ConversionOptions | None = None,
        logger: logging.Logger | None = None,
        progress_cb: ProgressCallback | None = None,
        sheet_cb: SheetCallback | None = None,
        catalog_cb: CatalogCallback | None = None,
    ) -> None:
        self.options = options or ConversionOptions()
        self.logger = logger or LOGGER
        self.progress_cb = progress_cb
        self.sheet_cb = sheet_cb
        self.catalog_cb = catalog_cb

    @property
    def worksheet_options(self) -> WorksheetOptions:
        return WorksheetOptions(
            indexed=self.options.indexed,
            treat_errors_as_empty=self.options.treat_errors_as_empty,
            remove_empty_rows=self.options.remove_empty_rows,
        )

    def run(self, source: str | Path) -> WorkbookResult:
        """Convert every selected sheet of ``source``.

        Workbook level problems (unreadable package, unknown sheets, rename
        mismatch) raise before any CSV is written. Worksheet failures are
        reported in the returned result; unless ``continue_on_error`` is set,
        sheets not yet started are marked cancelled.
        """
        started = time.perf_counter()
        source = Path(source)
        output_dir = ensure_output_dir(source, self.options.output_dir)
        self.logger.info("Parsing file %s into %s", source, output_dir)

        with OoxmlPackage.open(source) as package:
            try:
                tables = load_tables(package)
                descriptors = self.catalog(package)
            except ET.ParseError as exc:
                raise PackageError(f"Malformed workbook XML in {source.name}: {exc}") from exc
            if self.catalog_cb is not None:
                self.catalog_cb(descriptors)
            results = self._convert_all(package, tables, descriptors, output_dir)

        elapsed = time.perf_counter() - started
        self.logger.info("Converted %s in %.2fs", source.name, elapsed)
        return WorkbookResult(source=source, output_dir=output_dir, sheets=results, elapsed=elapsed)

    def catalog(self, package: OoxmlPackage) -> List[SheetDescriptor]:
        with package.open_part(package.workbook_part) as stream:
            return build_catalog(
                stream,
                requested_names=self.options.sheets,
                requested_renames=self.options.renames,
                include_hidden=self.options.include_hidden,
            )

    def convert_sheet(
        self,
        package: OoxmlPackage,
        tables: WorkbookTables,
        descriptor: SheetDescriptor,
        output_dir: Path,
        *,
        tag: str = "",
    ) -> SheetResult:
        """Convert one sheet to ``<output_dir>/<rename>.csv`` via a temporary file."""
        started = time.perf_counter()
        relationship = package.relationship(descriptor.relationship_id)
        if not relationship.is_type(WORKSHEET_SUFFIX):
            self.logger.warning("Skipping sheet %s: %s is not a worksheet", descriptor.name, relationship.type)
            return SheetResult(name=descriptor.name, rename=descriptor.rename, status=STATUS_SKIPPED)

        path = csv_path_for(output_dir, descriptor.rename)
        tmp_path = temporary_path(path, tag)
        converter = WorksheetStreamConverter(
            tables.shared_strings,
            tables.number_formats,
            self.worksheet_options,
            sheet=descriptor.name,
            progress_cb=self.progress_cb,
        )
        try:
            with package.open_part(relationship.target) as stream, open(
                tmp_path, "w", encoding="utf-8", newline=""
            ) as handle:
                stats = converter.convert(stream, CsvLineWriter(handle))
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        return SheetResult(
            name=descriptor.name,
            rename=descriptor.rename,
            status=STATUS_CONVERTED,
            path=path,
            rows_covered=stats.rows_covered,
            rows_written=stats.rows_written,
            elapsed=time.perf_counter() - started,
        )

    # Internal helpers -------------------------------------------------

    def _run_one(
        self,
        package: OoxmlPackage,
        tables: WorkbookTables,
        descriptor: SheetDescriptor,
        output_dir: Path,
        tag: str,
    ) -> SheetResult:
        try:
            result = self.convert_sheet(package, tables, descriptor, output_dir, tag=tag)
        except (WorksheetError, PackageError) as exc:
            self.logger.error("Sheet %s failed: %s", descriptor.name, exc)
            result = SheetResult(
                name=descriptor.name,
                rename=descriptor.rename,
                status=STATUS_FAILED,
                error=str(exc),
                exception=exc,
            )
        else:
            self.logger.info(
                "Sheet %s: (%d/%d) rows (written/read) in %.2fs",
                result.name,
                result.rows_written,
                result.rows_covered,
                result.elapsed,
            )
        if self.sheet_cb is not None:
            self.sheet_cb(result)
        return result

    def _convert_all(
        self,
        package: OoxmlPackage,
        tables: WorkbookTables,
        descriptors: List[SheetDescriptor],
        output_dir: Path,
    ) -> List[SheetResult]:
        results: List[Optional[SheetResult]] = [None] * len(descriptors)
        if self.options.max_workers <= 1 or len(descriptors) <= 1:
            for index, descriptor in enumerate(descriptors):
                results[index] = self._run_one(package, tables, descriptor, output_dir, str(index))
                if results[index].failed and not self.options.continue_on_error:
                    break
        else:
            with ThreadPoolExecutor(max_workers=self.options.max_workers) as executor:
                futures: dict[Future[SheetResult], int] = {
                    executor.submit(self._run_one, package, tables, descriptor, output_dir, str(index)): index
                    for index, descriptor in enumerate(descriptors)
                }
                for future in as_completed(futures):
                    if future.cancelled():
                        continue
                    result = future.result()
                    results[futures[future]] = result
                    if result.failed and not self.options.continue_on_error:
                        for pending in futures:
                            pending.cancel()

        return [
            result
            if result is not None
            else SheetResult(name=descriptor.name, rename=descriptor.rename, status=STATUS_CANCELLED)
            for descriptor, result in zip(descriptors, results)
        ]
