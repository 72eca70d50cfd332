from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from winter_prescribing.harmonisation.season import DECEMBER, JANUARY
from winter_prescribing.records import AggregateRow, ComparisonRow, missing_to_none


def percent_change(december: Optional[float], january: Optional[float]) -> Optional[float]:
    """(January - December) / December as a fraction; None when undefined."""
    if december is None or january is None or december == 0:
        return None
    return (january - december) / december


def _as_int(value) -> Optional[int]:
    value = missing_to_none(value)
    return int(value) if value is not None else None


def compare_seasons(rows: Iterable[AggregateRow]) -> List[ComparisonRow]:
    """
    Pivot (..., season, month) aggregates into one December/January row per
    group and season.

    The leading elements of each group key form the group (empty for an
    overall comparison). A season lacking either month still yields a row,
    with None for the missing value and for the derived columns.
    """
    group_ids: Dict[Tuple, int] = {}
    long = []
    for row in rows:
        *group, season, month = row.group_key
        if month not in (DECEMBER, JANUARY):
            raise ValueError(f"Unexpected month {month!r} in group {row.group_key}")
        gid = group_ids.setdefault(tuple(group), len(group_ids))
        long.append((gid, season, month, row.paid_quantity_sum))

    if not long:
        return []

    df = pd.DataFrame(long, columns=["group_id", "season", "month", "value"])
    df["value"] = pd.to_numeric(df["value"].astype("object"))

    dupes = df.duplicated(["group_id", "season", "month"])
    if dupes.any():
        raise ValueError(f"Duplicate month values for: {df.loc[dupes, ['season', 'month']].values.tolist()}")

    # Wide: one row per (group, season) in first-seen order
    order = pd.MultiIndex.from_frame(df[["group_id", "season"]].drop_duplicates())
    wide = (
        df.pivot(index=["group_id", "season"], columns="month", values="value")
        .reindex(index=order, columns=[DECEMBER, JANUARY])
    )

    wide["difference"] = wide[JANUARY] - wide[DECEMBER]
    wide["percent_change"] = wide["difference"] / wide[DECEMBER].replace({0: np.nan})

    groups = list(group_ids)
    out = []
    for (gid, season), r in wide.iterrows():
        pct = missing_to_none(r["percent_change"])
        out.append(
            ComparisonRow(
                group=groups[gid],
                season=season,
                december_value=_as_int(r[DECEMBER]),
                january_value=_as_int(r[JANUARY]),
                difference=_as_int(r["difference"]),
                percent_change=float(pct) if pct is not None else None,
            )
        )
    return out
