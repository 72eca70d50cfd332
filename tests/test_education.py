import pandas as pd
import pytest

from conftest import write_data_dir
from winter_prescribing.errors import ParseError, SchemaMismatch
from winter_prescribing.harmonisation.education import load_education
from winter_prescribing.ingestion.read_sources import read_education


@pytest.fixture
def census_df():
    return pd.DataFrame(
        {
            "Unnamed: 0": ["Fife", "NHS Borders", None],
            "All people aged 16 and over": ["300,000", "95,000", None],
            "No qualifications": ["60,000", "-", None],
            "Level 1": ["70,000", "20,000", None],
        }
    )


def test_prefix_added_once(census_df):
    refs = load_education(census_df)

    assert [r.hb_name for r in refs] == ["NHS Fife", "NHS Borders"]
    assert refs[0].total_population_16_plus == 300000.0
    assert refs[0].no_qualifications_pct == pytest.approx(20.0)
    assert refs[1].no_qualifications_count is None
    assert refs[1].no_qualifications_pct is None


def test_extra_tiers_carried(census_df):
    refs = load_education(census_df, tiers=["level_1"])
    assert refs[0].tier_counts == {"level_1": 70000.0}
    assert refs[0].tier_pct("level_1") == pytest.approx(70000 / 300000 * 100)


def test_unknown_tier_is_a_schema_mismatch(census_df):
    with pytest.raises(SchemaMismatch):
        load_education(census_df, tiers=["level_9"])


def test_missing_population_column(census_df):
    with pytest.raises(SchemaMismatch) as excinfo:
        load_education(census_df.drop(columns=["All people aged 16 and over"]))
    assert excinfo.value.column == "total_population_16_plus"


def test_non_numeric_count(census_df):
    census_df.loc[0, "No qualifications"] = "n/a"
    with pytest.raises(ParseError):
        load_education(census_df)


def test_read_education_trims_header_and_footer(tmp_path):
    root = write_data_dir(tmp_path / "data")
    df = read_education(root / "reference" / "qualifications.csv")

    refs = load_education(df)
    assert [r.hb_name for r in refs] == ["NHS Ayrshire and Arran", "NHS Borders"]
    assert refs[0].no_qualifications_count == 90000.0
