from __future__ import annotations

import datetime as dt
from pathlib import Path

import pandas as pd
import pytest
import yaml

from winter_prescribing.records import PrescriptionRecord


AYRSHIRE = "S08000015"
BORDERS = "S08000016"

# (paid month, quantity) as Dec/Jan pairs over four seasons
SEASON_QUANTITIES = [
    (201612, 100), (201701, 80),
    (201712, 120), (201801, 90),
    (201812, 110), (201901, 85),
    (201912, 130), (202001, 95),
]


def make_record(year, month, quantity, hb_name="NHS Ayrshire and Arran", hb_code=AYRSHIRE):
    return PrescriptionRecord(
        paid_date_month=dt.date(year, month, 1),
        hb_code=hb_code,
        hb_name=hb_name,
        item_description="PARACETAMOL 500MG TABLETS",
        paid_quantity=quantity,
        source="test.csv",
    )


@pytest.fixture
def boards_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "HB": [AYRSHIRE, BORDERS],
            "HBName": ["NHS Ayrshire and Arran", "NHS Borders"],
        }
    )


@pytest.fixture
def extract_2019() -> pd.DataFrame:
    # Older extracts carry the code under HBT2014 only
    return pd.DataFrame(
        {
            "HBT2014": [AYRSHIRE, AYRSHIRE],
            "BNFItemDescription": ["PARACETAMOL 500MG TABLETS", "IBUPROFEN 200MG TABLETS"],
            "PaidQuantity": [100, 999],
            "PaidDateMonth": [201912, 201912],
        }
    )


@pytest.fixture
def extract_2020() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "HBT": [AYRSHIRE, None],
            "HBT2014": [None, AYRSHIRE],
            "BNFItemDescription": ["PARACETAMOL 500MG TABLETS", "Paracetamol 500mg tablets"],
            "PaidQuantity": [50, 30],
            "PaidDateMonth": [202001, 202001],
        }
    )


EDUCATION_HEADER = [
    "Table QS501SC - Highest level of qualification",
    "All people aged 16 and over",
    "Health Board Area 2014",
    "Census 2011",
    "Source: National Records of Scotland",
    "Crown copyright",
    "Counts are of usual residents",
    "Areas are 2014 health board boundaries",
    "Figures may not sum due to rounding",
    "Data extracted for prescribing analysis",
]

EDUCATION_FOOTER = [
    "Notes:",
    "1. Highest level of qualification is derived from responses",
    "End of table",
]


def write_data_dir(root: Path) -> Path:
    """Lay out a data directory the way config/datasets.yaml expects."""
    rx_dir = root / "prescriptions"
    rx_dir.mkdir(parents=True)

    for paid_month, quantity in SEASON_QUANTITIES:
        code_col = "HBT2014" if paid_month < 201901 else "HBT"
        df = pd.DataFrame(
            {
                code_col: [AYRSHIRE, AYRSHIRE],
                "BNFItemDescription": ["PARACETAMOL 500MG TABLETS", "IBUPROFEN 200MG TABLETS"],
                "PaidQuantity": [quantity, 5000],
                "PaidDateMonth": [paid_month, paid_month],
            }
        )
        df.to_csv(rx_dir / f"pitc{paid_month}.csv", index=False)

    ref_dir = root / "reference"
    ref_dir.mkdir()
    pd.DataFrame(
        {"HB": [AYRSHIRE, BORDERS], "HBName": ["NHS Ayrshire and Arran", "NHS Borders"]}
    ).to_csv(ref_dir / "health_boards.csv", index=False)

    lines = EDUCATION_HEADER + [
        ",All people aged 16 and over,No qualifications,Level 1",
        'Ayrshire and Arran,"300,000","90,000","70,000"',
        'Borders,"95,000","25,000","20,000"',
    ] + EDUCATION_FOOTER
    (ref_dir / "qualifications.csv").write_text("\n".join(lines) + "\n", encoding="utf-8")

    return root


@pytest.fixture
def data_dir(tmp_path) -> Path:
    return write_data_dir(tmp_path / "data")


@pytest.fixture
def datasets_cfg():
    root = Path(__file__).resolve().parents[1]
    with (root / "config" / "datasets.yaml").open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)["datasets"]
