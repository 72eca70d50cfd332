from __future__ import annotations

from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

import pandas as pd

from winter_prescribing.records import AggregateRow, PrescriptionRecord, missing_to_none


KeyFunc = Callable[[PrescriptionRecord], Optional[Tuple[Hashable, ...]]]


def by_date(record: PrescriptionRecord):
    if record.paid_date_month is None:
        return None
    return (record.paid_date_month,)


def by_season_month(record: PrescriptionRecord):
    """(season, month name); records outside December/January are skipped."""
    if record.season is None:
        return None
    return (record.season, record.month_name)


def by_board_season_month(record: PrescriptionRecord):
    """
    (board code, board name, season, month name).

    Boards are keyed by code so unknown codes stay apart; records with no
    code at all have no board to belong to and are skipped.
    """
    if record.season is None or record.hb_code is None:
        return None
    return (record.hb_code, record.hb_name, record.season, record.month_name)


def aggregate(records: Iterable[PrescriptionRecord], key: KeyFunc) -> List[AggregateRow]:
    """
    Sum paid quantity per group.

    Groups come out in the order their key is first seen. Null quantities
    count towards ``record_count`` but not the sum; a group with no
    quantities at all sums to None. Records whose key is None are skipped.
    """
    keyed = [(key(r), r.paid_quantity) for r in records]
    keyed = [(k, q) for k, q in keyed if k is not None]
    if not keyed:
        return []

    # Keys may hold None (e.g. an unmatched board name), so group on a first-seen id
    key_ids: Dict[Tuple, int] = {}
    df = pd.DataFrame(
        {
            "key_id": [key_ids.setdefault(k, len(key_ids)) for k, _ in keyed],
            "paid_quantity": pd.to_numeric(pd.Series([q for _, q in keyed], dtype="object")),
        }
    )

    grouped = df.groupby("key_id", sort=False)["paid_quantity"]
    agg = pd.DataFrame(
        {
            "paid_quantity_sum": grouped.sum(min_count=1),
            "record_count": grouped.size(),
        }
    )

    keys = list(key_ids)
    out = []
    for key_id, row in zip(agg.index, agg.itertuples(index=False)):
        total = missing_to_none(row.paid_quantity_sum)
        out.append(
            AggregateRow(
                group_key=keys[key_id],
                paid_quantity_sum=int(total) if total is not None else None,
                record_count=int(row.record_count),
            )
        )
    return out
