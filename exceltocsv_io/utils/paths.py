"""Filesystem helpers for CSV output locations."""

# Module responsibilities:
# - Replace characters that cannot appear in file names on common platforms.
# - Resolve the output directory for a workbook and create it on demand.

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from exceltocsv.core.errors import ConfigError

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
REPLACEMENT = "_"


def replace_invalid_filename_chars(name: str) -> str:
    """Return ``name`` with every character that is illegal in a file name replaced by ``_``."""

    return _INVALID_FILENAME_CHARS.sub(REPLACEMENT, name)


def default_output_dir(source: Path) -> Path:
    """Directory next to ``source`` named after its stem, e.g. ``data/book.xlsx`` -> ``data/book``."""

    stem = replace_invalid_filename_chars(source.stem)
    if not stem.strip():
        raise ConfigError(
            f"Valid directory name could not be generated from '{source}'. Please specify an output directory."
        )
    return source.parent / stem


def ensure_output_dir(source: Path, output_dir: Optional[Path] = None) -> Path:
    """Resolve and create the directory CSV files are written to.

    Args:
        source: Workbook being converted.
        output_dir: Optional explicit directory; defaults to :func:`default_output_dir`.

    Returns:
        The existing directory path.

    Raises:
        ConfigError: When the directory cannot be created.
    """

    target = Path(output_dir) if output_dir else default_output_dir(source)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Directory '{target}' cannot be created. Message: '{exc}'") from exc
    return target


def csv_path_for(output_dir: Path, rename: str) -> Path:
    """Final CSV location for a sheet's (already sanitised) output name."""

    return output_dir / replace_invalid_filename_chars(f"{rename}.csv")


def temporary_path(path: Path, tag: str = "") -> Path:
    """Sibling work file for ``path``; ``tag`` keeps concurrent writers of one name apart."""

    suffix = f".{tag}.tmp" if tag else ".tmp"
    return path.with_name(path.name + suffix)
