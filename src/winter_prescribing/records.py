"""
Typed rows passed between the pipeline stages.

All rows are frozen: each run builds them from the input files and no stage
mutates what an earlier stage produced. Missing data is ``None`` throughout,
including ratios whose denominator is zero or absent.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import pandas as pd

from winter_prescribing.harmonisation.season import SeasonLabel, label_season


NO_QUALIFICATIONS = "no_qualifications"


@dataclass(frozen=True)
class PrescriptionRecord:
    paid_date_month: Optional[dt.date]
    hb_code: Optional[str]
    hb_name: Optional[str]
    item_description: Optional[str]
    paid_quantity: Optional[int]
    source: Optional[str] = None

    @property
    def season_label(self) -> Optional[SeasonLabel]:
        if self.paid_date_month is None:
            return None
        return label_season(self.paid_date_month.year, self.paid_date_month.month)

    @property
    def season(self) -> Optional[str]:
        label = self.season_label
        return label.season if label else None

    @property
    def month_name(self) -> Optional[str]:
        label = self.season_label
        return label.month_name if label else None


@dataclass(frozen=True)
class HealthBoardReference:
    code: str
    name: str


@dataclass(frozen=True)
class EducationReference:
    """
    Census qualification counts for one health board.

    ``tier_counts`` holds any further qualification tiers that were
    configured; ``no_qualifications`` is always available through
    ``tier_pct`` as well.
    """

    hb_name: str
    total_population_16_plus: Optional[float]
    no_qualifications_count: Optional[float]
    tier_counts: Dict[str, Optional[float]] = field(default_factory=dict)

    def tier_pct(self, tier: str) -> Optional[float]:
        if tier == NO_QUALIFICATIONS:
            count = self.no_qualifications_count
        else:
            count = self.tier_counts.get(tier)
        total = self.total_population_16_plus
        if count is None or total is None or total == 0:
            return None
        return count / total * 100

    @property
    def no_qualifications_pct(self) -> Optional[float]:
        return self.tier_pct(NO_QUALIFICATIONS)


@dataclass(frozen=True)
class AggregateRow:
    group_key: Tuple
    paid_quantity_sum: Optional[int]
    record_count: int


@dataclass(frozen=True)
class ComparisonRow:
    group: Tuple
    season: str
    december_value: Optional[int]
    january_value: Optional[int]
    difference: Optional[int]
    percent_change: Optional[float]


@dataclass(frozen=True)
class GroupAverage:
    group: Tuple
    average_difference: Optional[float]
    seasons_observed: int


@dataclass(frozen=True)
class CombinedAnalyticalRow:
    group_identity: Optional[str]
    average_difference: Optional[float]
    seasons_observed: int
    auxiliary_metric: Optional[float]
    total_population_16_plus: Optional[float]
    scaled_metric: Optional[float]


def missing_to_none(value):
    """NaN/NA from a pandas stage becomes None at the row boundary."""
    if value is None or isinstance(value, (tuple, list, dict)):
        return value
    return None if pd.isna(value) else value
