from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

HOME_ENV = "EXCELTOCSV_HOME"
PROFILE_SECTION = "conversion"


def _home_dir() -> Path:
    """Writable base for runtime files (logs)."""
    env = os.getenv(HOME_ENV)
    if env:
        return Path(env)
    return Path.home() / "ExcelToCSV"


class ConversionOptions(BaseModel):
    """Everything a workbook conversion needs besides the source path.

    Attributes:
        sheets: Sheet names to convert; empty means every visible sheet.
        renames: Output names paired positionally with the selected sheets.
        indexed: Prepend a quoted row index column.
        include_hidden: Also consider hidden and very hidden sheets.
        treat_errors_as_empty: Write Excel error literals as empty cells.
        remove_empty_rows: Omit rows whose every cell is empty.
        output_dir: Target directory; defaults to a folder named after the workbook.
        max_workers: Worksheets converted concurrently.
        continue_on_error: Keep converting other sheets after a worksheet fails.
    """

    model_config = ConfigDict(extra="forbid")

    sheets: List[str] = Field(default_factory=list)
    renames: List[str] = Field(default_factory=list)
    indexed: bool = False
    include_hidden: bool = False
    treat_errors_as_empty: bool = False
    remove_empty_rows: bool = False
    output_dir: Optional[Path] = None
    max_workers: int = Field(default=1, ge=1)
    continue_on_error: bool = False

    def merged(self, **overrides: Any) -> "ConversionOptions":
        """Return a copy with every non-``None`` override applied and re-validated."""

        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return ConversionOptions.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid conversion options: {e}") from e


def load_options(path: str | Path) -> ConversionOptions:
    """Load conversion options from a YAML profile.

    The mapping may sit at the document root or under a ``conversion:`` key.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise ConfigError(f"Options file not found: {cfg_path}")
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Options file is not valid YAML: {cfg_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Options file must contain a mapping: {cfg_path}")
    section: Dict[str, Any] = data.get(PROFILE_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"'{PROFILE_SECTION}' must be a mapping: {cfg_path}")
    try:
        return ConversionOptions.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"Invalid options in {cfg_path}: {e}") from e
