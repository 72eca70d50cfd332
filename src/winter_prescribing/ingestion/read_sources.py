"""
Read the raw CSV files behind the pipeline into pandas frames.

Only minimal, safe cleaning happens here: blank cells become nulls and each
prescription frame is tagged with the file it came from. Column names are
left as published; the loader normalises them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

import numpy as np
import pandas as pd


log = logging.getLogger(__name__)


def _blank_to_null(df: pd.DataFrame) -> pd.DataFrame:
    return df.replace(r"^\s*$", np.nan, regex=True)


def read_prescription_extracts(directory: str | Path, pattern: str = "*.csv") -> List[Tuple[str, pd.DataFrame]]:
    """
    Read every monthly extract in ``directory`` matching ``pattern``.

    Files are read in sorted name order so the merged record stream is
    reproducible. Returns ``(file_name, frame)`` pairs.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Prescription directory not found: {directory}")

    files = sorted(p for p in directory.glob(pattern) if p.is_file())
    if not files:
        log.warning(f"[SOURCES] No files matching {pattern!r} in {directory}")

    frames = []
    for path in files:
        df = _blank_to_null(pd.read_csv(path, dtype=str))
        log.info(f"[SOURCES] {path.name}: {df.shape[0]} rows x {df.shape[1]} columns")
        frames.append((path.name, df))
    return frames


def read_health_boards(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Health board reference not found: {path}")
    log.info(f"[SOURCES] Loading health boards from: {path}")
    return _blank_to_null(pd.read_csv(path, dtype=str))


def read_education(path: str | Path, header_rows_to_skip: int = 10, footer_rows_to_skip: int = 3) -> pd.DataFrame:
    """
    Read the census qualifications table.

    The published file carries title/notes rows above the header and a few
    footnote rows under the data; both are trimmed here.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Education reference not found: {path}")

    log.info(f"[SOURCES] Loading education reference from: {path}")
    df = pd.read_csv(
        path,
        skiprows=header_rows_to_skip,
        skipfooter=footer_rows_to_skip,
        engine="python",
        dtype=str,
    )
    return _blank_to_null(df)
