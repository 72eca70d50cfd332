"""
Record loader: monthly prescription extracts -> PrescriptionRecord.

Steps:
- Normalise column names (schemas differ between years)
- Validate the required logical fields against the schema
- Coalesce the two historical health board code columns (HBT / HBT2014)
- Optionally keep a single medication
- Full outer join to the health board lookup
- Map every row to a typed record, failing fast on unparseable values
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from winter_prescribing.errors import ParseError, SchemaMismatch
from winter_prescribing.ingestion.registry import DEFAULT_SCHEMAS
from winter_prescribing.records import HealthBoardReference, PrescriptionRecord


log = logging.getLogger(__name__)

RECORD_FIELDS = ["hb_code", "item_description", "paid_quantity", "paid_date_month"]

Sources = Union[Mapping[str, pd.DataFrame], Sequence[Tuple[str, pd.DataFrame]]]


# -------------------------------------------------------
# Column names
# -------------------------------------------------------

def normalise_column_name(name: Any) -> str:
    """
    "PaidDateMonth" -> "paid_date_month", "HBT2014" -> "hbt2014",
    " HB Name " -> "hb_name".
    """
    s = str(name).strip()
    s = re.sub(r"(?<=[A-Z])(?=[A-Z][a-z])", "_", s)
    s = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", s)
    s = re.sub(r"[^0-9a-z]+", "_", s.lower())
    return s.strip("_")


def normalise_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [normalise_column_name(c) for c in df.columns]
    return df


def validate_required(df: pd.DataFrame, schema: Dict[str, Any], source: str) -> Dict[str, List[str]]:
    """
    Check every logical field in ``schema`` has at least one candidate column.

    Returns logical field -> candidate columns present in ``df`` (schema order).
    """
    resolved = {}
    for logical_name, rule in schema.get("required_columns", {}).items():
        allowed = rule.get("any_of", [])
        present = [col for col in allowed if col in df.columns]
        if not present:
            raise SchemaMismatch(logical_name, source, allowed)
        resolved[logical_name] = present
    return resolved


def coalesce(df: pd.DataFrame, columns: Sequence[str]) -> pd.Series:
    """First non-null value across ``columns``; absent columns count as null."""
    present = [c for c in columns if c in df.columns]
    if not present:
        return pd.Series(np.nan, index=df.index, dtype="object")
    out = df[present[0]]
    for col in present[1:]:
        out = out.combine_first(df[col])
    return out


# -------------------------------------------------------
# Value parsing
# -------------------------------------------------------

def _is_null(value: Any) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value))


def clean_text(value: Any) -> Optional[str]:
    if _is_null(value):
        return None
    text = str(value).strip()
    return text or None


_MONTH_PATTERNS = (
    re.compile(r"(\d{4})(\d{2})"),
    re.compile(r"(\d{4})-(\d{2})(?:-(\d{2}))?"),
)


def parse_paid_month(value: Any, row: str) -> dt.date:
    """Parse YYYYMM, YYYY-MM or YYYY-MM-DD into the first day of that month."""
    if _is_null(value):
        raise ParseError(row, value, "missing paid month")

    text = str(value).strip()
    if text.endswith(".0"):
        text = text[:-2]

    for pattern in _MONTH_PATTERNS:
        m = pattern.fullmatch(text)
        if m:
            year, month = int(m.group(1)), int(m.group(2))
            day = m.group(3) if m.re.groups > 2 else None
            try:
                dt.date(year, month, int(day) if day else 1)
            except ValueError as exc:
                raise ParseError(row, value, str(exc))
            return dt.date(year, month, 1)

    raise ParseError(row, value, "expected YYYYMM or YYYY-MM")


def parse_quantity(value: Any, row: str) -> Optional[int]:
    if _is_null(value):
        return None
    try:
        number = float(str(value).strip().replace(",", ""))
    except ValueError:
        raise ParseError(row, value, "not a number")
    if not math.isfinite(number) or not number.is_integer():
        raise ParseError(row, value, "not a whole quantity")
    if number < 0:
        raise ParseError(row, value, "negative quantity")
    return int(number)


# -------------------------------------------------------
# Frames
# -------------------------------------------------------

def load_health_boards(df: pd.DataFrame, schema: Optional[Dict[str, Any]] = None,
                       source: str = "health_boards") -> List[HealthBoardReference]:
    schema = schema or DEFAULT_SCHEMAS["health_boards"]
    df = normalise_columns(df)
    fields = validate_required(df, schema, source)

    boards = []
    seen = set()
    for code, name in zip(coalesce(df, fields["code"]), coalesce(df, fields["name"])):
        code, name = clean_text(code), clean_text(name)
        if code is None:
            continue
        if code in seen:
            log.warning(f"[LOADER] Duplicate health board code {code!r} in {source}; keeping first")
            continue
        seen.add(code)
        boards.append(HealthBoardReference(code=code, name=name))
    return boards


def prepare_source(name: str, df: pd.DataFrame, schema: Dict[str, Any]) -> pd.DataFrame:
    """Normalise one raw extract into the canonical record columns."""
    df = normalise_columns(df)
    fields = validate_required(df, schema, name)

    out = pd.DataFrame({field: coalesce(df, fields[field]) for field in RECORD_FIELDS}, index=df.index)
    out["hb_code"] = out["hb_code"].map(clean_text)
    out["__source__"] = name
    out["__row__"] = [f"{name} row {i}" for i in df.index]
    return out.reset_index(drop=True)


def filter_medication(df: pd.DataFrame, medication: Optional[str]) -> pd.DataFrame:
    if not medication:
        return df
    mask = df["item_description"].astype("string").str.contains(medication, case=False, regex=False)
    return df[mask.fillna(False).astype(bool)]


def join_health_boards(df: pd.DataFrame, boards: Sequence[HealthBoardReference]) -> pd.DataFrame:
    """
    Full outer join on health board code.

    Prescriptions with no matching board keep a null ``hb_name``. Boards with
    no prescriptions are appended as placeholder rows so their absence can be
    reported later.
    """
    lookup = pd.DataFrame(
        {"hb_code": [b.code for b in boards], "hb_name": [b.name for b in boards]},
        dtype="object",
    )

    dupes = lookup["hb_code"].duplicated()
    if dupes.any():
        log.warning(f"[LOADER] Duplicate health board codes {lookup.loc[dupes, 'hb_code'].tolist()}; keeping first")
        lookup = lookup[~dupes]

    merged = df.merge(lookup, on="hb_code", how="left")
    merged["__placeholder__"] = False

    seen = set(df["hb_code"].dropna())
    missing = lookup[~lookup["hb_code"].isin(seen)].copy()
    if not missing.empty:
        for col in merged.columns:
            if col not in missing.columns:
                missing[col] = None
        missing["__placeholder__"] = True
        merged = pd.concat([merged, missing[merged.columns]], ignore_index=True)

    return merged


def _to_record(row: Dict[str, Any]) -> PrescriptionRecord:
    if row["__placeholder__"]:
        return PrescriptionRecord(
            paid_date_month=None,
            hb_code=clean_text(row["hb_code"]),
            hb_name=clean_text(row["hb_name"]),
            item_description=None,
            paid_quantity=None,
        )

    label = row["__row__"]
    return PrescriptionRecord(
        paid_date_month=parse_paid_month(row["paid_date_month"], label),
        hb_code=clean_text(row["hb_code"]),
        hb_name=clean_text(row["hb_name"]),
        item_description=clean_text(row["item_description"]),
        paid_quantity=parse_quantity(row["paid_quantity"], label),
        source=row["__source__"],
    )


def load_prescriptions(
    sources: Sources,
    boards: Union[pd.DataFrame, Sequence[HealthBoardReference]],
    medication: Optional[str] = None,
    schema: Optional[Dict[str, Any]] = None,
) -> List[PrescriptionRecord]:
    """
    Merge raw monthly extracts into one list of PrescriptionRecord.

    ``sources`` are (source name, frame) pairs or a mapping of the same.
    ``boards`` is the raw health board lookup frame or already-built
    references. Records are returned in source order followed by one
    placeholder record per reference board without prescriptions.
    """
    schema = schema or DEFAULT_SCHEMAS["prescriptions"]
    if isinstance(boards, pd.DataFrame):
        boards = load_health_boards(boards)

    items = sources.items() if isinstance(sources, Mapping) else sources
    frames = [prepare_source(name, df, schema) for name, df in items]

    if frames:
        combined = pd.concat(frames, ignore_index=True)
    else:
        combined = pd.DataFrame(columns=RECORD_FIELDS + ["__source__", "__row__"], dtype="object")

    log.info(f"[LOADER] Merged {len(frames)} sources: {combined.shape[0]} rows")

    combined = filter_medication(combined, medication)
    if medication:
        log.info(f"[LOADER] Rows matching {medication!r}: {combined.shape[0]}")

    merged = join_health_boards(combined, boards)
    records = [_to_record(row) for row in merged.to_dict("records")]

    no_code = sum(1 for r in records if r.hb_code is None)
    no_name = sum(1 for r in records if r.hb_code is not None and r.hb_name is None)
    if no_code:
        log.warning(f"[LOADER] {no_code} records have no health board code")
    if no_name:
        log.warning(f"[LOADER] {no_name} records have a code with no matching health board")

    return records
