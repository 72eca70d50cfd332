from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import pandas as pd


log = logging.getLogger(__name__)


def rows_to_frame(rows: Sequence[Any], key_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Convert dataclass rows to a DataFrame.

    Tuple-valued ``group_key``/``group`` fields are expanded into one column
    per element, named from ``key_names`` (or key_0, key_1, ...). None stays
    missing rather than becoming 0.
    """
    records = []
    for row in rows:
        data: Dict[str, Any] = {}
        for f in dataclasses.fields(row):
            value = getattr(row, f.name)
            if isinstance(value, tuple):
                names = list(key_names or [])
                names += [f"key_{i}" for i in range(len(names), len(value))]
                data.update(zip(names, value))
            else:
                data[f.name] = value
        records.append(data)
    return pd.DataFrame.from_records(records)


def write_table(rows: Sequence[Any], path: Path, key_names: Optional[Sequence[str]] = None) -> Path:
    path = Path(path)
    df = rows_to_frame(rows, key_names)
    path.parent.mkdir(parents=True, exist_ok=True)
    log.info(f"Writing {df.shape[0]} rows -> {path}")
    df.to_csv(path, index=False)
    return path
