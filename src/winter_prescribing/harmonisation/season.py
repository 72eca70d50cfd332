from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

DECEMBER = MONTH_NAMES[11]
JANUARY = MONTH_NAMES[0]
HOLIDAY_MONTHS = (12, 1)


@dataclass(frozen=True)
class SeasonLabel:
    season: Optional[str]
    month_name: str


def is_holiday_month(month: int) -> bool:
    return month in HOLIDAY_MONTHS


def label_season(year: int, month: int) -> SeasonLabel:
    """
    Label a calendar month with its winter holiday season.

    December of year Y belongs to "Y/Y+1" and January of year Y to "Y-1/Y",
    so a December and the following January share one season. Any other
    month has no season.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")

    month_name = MONTH_NAMES[month - 1]

    if month == 12:
        return SeasonLabel(season=f"{year}/{year + 1}", month_name=month_name)
    if month == 1:
        return SeasonLabel(season=f"{year - 1}/{year}", month_name=month_name)
    return SeasonLabel(season=None, month_name=month_name)
