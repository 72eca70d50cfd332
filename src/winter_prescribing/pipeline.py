from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from winter_prescribing.analysis.aggregate import aggregate, by_board_season_month, by_season_month
from winter_prescribing.analysis.compare import compare_seasons
from winter_prescribing.analysis.diagnostics import build_diagnostics
from winter_prescribing.analysis.join import average_differences, board_name, join_education
from winter_prescribing.harmonisation.education import load_education
from winter_prescribing.ingestion.load_prescriptions import load_health_boards, load_prescriptions
from winter_prescribing.ingestion.read_sources import (
    read_education,
    read_health_boards,
    read_prescription_extracts,
)
from winter_prescribing.ingestion.registry import (
    get_dataset_config,
    load_datasets_config,
    load_schema,
    resolve_path,
)
from winter_prescribing.outputs import write_table
from winter_prescribing.records import (
    NO_QUALIFICATIONS,
    AggregateRow,
    CombinedAnalyticalRow,
    ComparisonRow,
    EducationReference,
    GroupAverage,
    PrescriptionRecord,
)


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    records: List[PrescriptionRecord]
    season_totals: List[AggregateRow]
    season_comparison: List[ComparisonRow]
    board_totals: List[AggregateRow]
    board_comparison: List[ComparisonRow]
    board_averages: List[GroupAverage]
    education: List[EducationReference]
    combined: List[CombinedAnalyticalRow]
    diagnostics: Dict[str, Any]


def run_pipeline(data_dir: Path, datasets_cfg: Dict[str, Dict[str, Any]],
                 schemas_dir: Optional[Path] = None) -> PipelineResult:
    """Read every input under ``data_dir`` and run all stages once."""
    data_dir = Path(data_dir)
    log.info("=== Winter prescribing pipeline: start ===")

    rx_cfg = get_dataset_config(datasets_cfg, "prescriptions")
    hb_cfg = get_dataset_config(datasets_cfg, "health_boards")
    edu_cfg = get_dataset_config(datasets_cfg, "education")

    # All reads happen before any transform
    sources = read_prescription_extracts(resolve_path(data_dir, rx_cfg), rx_cfg.get("pattern", "*.csv"))
    boards_raw = read_health_boards(resolve_path(data_dir, hb_cfg))
    education_raw = read_education(
        resolve_path(data_dir, edu_cfg),
        header_rows_to_skip=edu_cfg.get("header_rows_to_skip", 10),
        footer_rows_to_skip=edu_cfg.get("footer_rows_to_skip", 3),
    )

    boards = load_health_boards(boards_raw, load_schema("health_boards", schemas_dir))
    records = load_prescriptions(
        sources,
        boards,
        medication=rx_cfg.get("medication"),
        schema=load_schema("prescriptions", schemas_dir),
    )
    education = load_education(
        education_raw,
        load_schema("education", schemas_dir),
        name_prefix=edu_cfg.get("name_prefix", "NHS "),
        tiers=edu_cfg.get("tiers") or (),
    )

    log.info("Aggregating by season...")
    season_totals = aggregate(records, by_season_month)
    season_comparison = compare_seasons(season_totals)

    log.info("Aggregating by health board and season...")
    board_totals = aggregate(records, by_board_season_month)
    board_comparison = compare_seasons(board_totals)

    log.info("Joining health board averages with education...")
    board_averages = average_differences(board_comparison)
    combined = join_education(
        board_averages,
        education,
        tier=edu_cfg.get("metric_tier", NO_QUALIFICATIONS),
        name_of=board_name,
    )

    diagnostics = build_diagnostics(records, board_comparison, combined)
    log.info(f"Diagnostics: {diagnostics}")
    log.info("=== Winter prescribing pipeline finished ===")

    return PipelineResult(
        records=records,
        season_totals=season_totals,
        season_comparison=season_comparison,
        board_totals=board_totals,
        board_comparison=board_comparison,
        board_averages=board_averages,
        education=education,
        combined=combined,
        diagnostics=diagnostics,
    )


def write_outputs(result: PipelineResult, out_dir: Path) -> None:
    out_dir = Path(out_dir)
    write_table(result.season_totals, out_dir / "season_totals.csv", ["season", "month"])
    write_table(result.season_comparison, out_dir / "season_comparison.csv")
    write_table(result.board_comparison, out_dir / "board_comparison.csv", ["hb_code", "hb_name"])
    write_table(result.combined, out_dir / "board_education.csv")

    diag_file = out_dir / "diagnostics.json"
    diag_file.parent.mkdir(parents=True, exist_ok=True)
    with open(diag_file, "w") as f:
        json.dump(result.diagnostics, f, indent=2)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="December/January prescribing comparison")
    parser.add_argument("--data-dir", type=Path, required=True)
    parser.add_argument("--config", type=Path, required=True, help="datasets.yaml registry, e.g. config/datasets.yaml")
    parser.add_argument("--schemas-dir", type=Path, default=None,
                        help="validation schemas (defaults to validation_schemas/ next to --config)")
    parser.add_argument("--out-dir", type=Path, default=Path("outputs"))
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    datasets_cfg = load_datasets_config(args.config)
    schemas_dir = args.schemas_dir or args.config.parent / "validation_schemas"
    result = run_pipeline(args.data_dir, datasets_cfg, schemas_dir)
    write_outputs(result, args.out_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
