import datetime as dt

import pandas as pd

from conftest import make_record

from winter_prescribing.analysis.aggregate import (
    aggregate,
    by_board_season_month,
    by_date,
    by_season_month,
)
from winter_prescribing.analysis.compare import compare_seasons
from winter_prescribing.ingestion.load_prescriptions import load_prescriptions
from winter_prescribing.records import PrescriptionRecord


def test_null_quantity_excluded_from_sum_but_counted():
    records = [make_record(2020, 12, 10), make_record(2020, 12, 20), make_record(2020, 12, None)]

    rows = aggregate(records, by_season_month)

    assert len(rows) == 1
    assert rows[0].group_key == ("2020/2021", "December")
    assert rows[0].paid_quantity_sum == 30
    assert rows[0].record_count == 3


def test_group_with_only_null_quantities_sums_to_none():
    rows = aggregate([make_record(2020, 12, None)], by_season_month)
    assert rows[0].paid_quantity_sum is None
    assert rows[0].record_count == 1


def test_groups_in_first_seen_order():
    records = [
        make_record(2021, 1, 5),
        make_record(2020, 12, 7),
        make_record(2021, 1, 3),
    ]
    rows = aggregate(records, by_date)
    assert [r.group_key for r in rows] == [(dt.date(2021, 1, 1),), (dt.date(2020, 12, 1),)]
    assert [r.paid_quantity_sum for r in rows] == [8, 7]


def test_non_holiday_months_and_placeholders_are_skipped():
    placeholder = PrescriptionRecord(None, "S08000016", "NHS Borders", None, None)
    records = [make_record(2020, 11, 50), make_record(2020, 12, 10), placeholder]

    assert [r.group_key for r in aggregate(records, by_season_month)] == [("2020/2021", "December")]
    assert len(aggregate(records, by_date)) == 2


def test_unknown_board_codes_stay_in_separate_groups():
    df = pd.DataFrame(
        {
            "HBT": ["S99000001", "S99000001", "S99000002", None],
            "BNFItemDescription": ["PARACETAMOL"] * 4,
            "PaidQuantity": [100, 80, 50, 7],
            "PaidDateMonth": [202012, 202101, 202012, 202012],
        }
    )
    records = load_prescriptions([("unknown.csv", df)], [])

    rows = compare_seasons(aggregate(records, by_board_season_month))

    assert [(c.group, c.december_value, c.january_value, c.difference) for c in rows] == [
        (("S99000001", None), 100, 80, -20),
        (("S99000002", None), 50, None, None),
    ]
    assert rows[1].percent_change is None


def test_board_grouping_is_by_code():
    records = [
        make_record(2020, 12, 10),
        make_record(2020, 12, 6, hb_name="NHS Borders", hb_code="S08000016"),
        make_record(2020, 12, 4),
        make_record(2020, 12, 1, hb_name=None, hb_code=None),
    ]
    rows = aggregate(records, by_board_season_month)

    assert [(r.group_key[:2], r.paid_quantity_sum) for r in rows] == [
        (("S08000015", "NHS Ayrshire and Arran"), 14),
        (("S08000016", "NHS Borders"), 6),
    ]
