from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from winter_prescribing.records import (
    NO_QUALIFICATIONS,
    CombinedAnalyticalRow,
    ComparisonRow,
    EducationReference,
    GroupAverage,
    missing_to_none,
)


log = logging.getLogger(__name__)


def _as_float(value) -> Optional[float]:
    value = missing_to_none(value)
    return float(value) if value is not None else None


def average_differences(comparisons: Iterable[ComparisonRow]) -> List[GroupAverage]:
    """
    Mean December->January difference per group.

    The mean is taken over the distinct seasons where the group has a
    difference; seasons with a missing month do not count. Groups come out in
    first-seen order.
    """
    group_ids: Dict[Tuple, int] = {}
    long = []
    for row in comparisons:
        gid = group_ids.setdefault(row.group, len(group_ids))
        long.append((gid, row.season, row.difference))

    if not long:
        return []

    df = pd.DataFrame(long, columns=["group_id", "season", "difference"])
    df["difference"] = pd.to_numeric(df["difference"].astype("object"))

    observed = df.dropna(subset=["difference"]).drop_duplicates(["group_id", "season"])
    stats = (
        observed.groupby("group_id", sort=False)["difference"]
        .agg(average_difference="mean", seasons_observed="count")
        .reindex(range(len(group_ids)))
    )

    groups = list(group_ids)
    return [
        GroupAverage(
            group=groups[gid],
            average_difference=_as_float(r.average_difference),
            seasons_observed=int(missing_to_none(r.seasons_observed) or 0),
        )
        for gid, r in zip(stats.index, stats.itertuples(index=False))
    ]


def normalise_name(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    name = " ".join(str(name).split())
    return name or None


def _first_element(group: Tuple) -> Optional[str]:
    return group[0] if group else None


def board_name(group: Tuple) -> Optional[str]:
    """Name element of a (board code, board name) group."""
    return group[1] if len(group) > 1 else None


def join_education(
    averages: Sequence[GroupAverage],
    education: Sequence[EducationReference],
    tier: str = NO_QUALIFICATIONS,
    name_of: Callable[[Tuple], Optional[str]] = _first_element,
) -> List[CombinedAnalyticalRow]:
    """
    Outer join per-group averages to census education by health board name.

    Names must match exactly once whitespace is collapsed. Unmatched rows on
    either side are kept with None on the missing side: averages first, in
    their own order, then education rows nobody matched.
    """
    left = pd.DataFrame(
        {
            "name": pd.Series([normalise_name(name_of(a.group)) for a in averages], dtype="object"),
            "average_difference": pd.Series([a.average_difference for a in averages], dtype="float64"),
            "seasons_observed": pd.Series([a.seasons_observed for a in averages], dtype="float64"),
            "left_pos": pd.Series(range(len(averages)), dtype="float64"),
        }
    )
    right = pd.DataFrame(
        {
            "name": pd.Series([normalise_name(e.hb_name) for e in education], dtype="object"),
            "auxiliary_metric": pd.Series([e.tier_pct(tier) for e in education], dtype="float64"),
            "total_population_16_plus": pd.Series([e.total_population_16_plus for e in education], dtype="float64"),
            "right_pos": pd.Series(range(len(education)), dtype="float64"),
        }
    )

    dupes = right["name"].duplicated()
    if dupes.any():
        log.warning(f"[JOIN] Duplicate education rows for {right.loc[dupes, 'name'].tolist()}; keeping first")
        right = right[~dupes]

    # A missing name never matches anything
    left_named = left[left["name"].notna()]
    merged = pd.merge(left_named, right, on="name", how="outer", indicator=True)
    merged = pd.concat([merged, left[left["name"].isna()].assign(_merge="left_only")], ignore_index=True)
    merged = merged.sort_values(["left_pos", "right_pos"], na_position="last", kind="stable")

    for name in merged.loc[merged["_merge"] == "left_only", "name"]:
        log.warning(f"[JOIN] No education row for group {name!r}")
    for name in merged.loc[merged["_merge"] == "right_only", "name"]:
        log.warning(f"[JOIN] Education row {name!r} has no prescribing group")

    merged["scaled_metric"] = merged["average_difference"] / merged["total_population_16_plus"].replace({0: np.nan})
    merged["seasons_observed"] = merged["seasons_observed"].fillna(0).astype(int)

    return [
        CombinedAnalyticalRow(
            group_identity=missing_to_none(r.name),
            average_difference=_as_float(r.average_difference),
            seasons_observed=int(r.seasons_observed),
            auxiliary_metric=_as_float(r.auxiliary_metric),
            total_population_16_plus=_as_float(r.total_population_16_plus),
            scaled_metric=_as_float(r.scaled_metric),
        )
        for r in merged.itertuples(index=False)
    ]
