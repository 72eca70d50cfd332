from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from winter_prescribing.errors import ParseError, SchemaMismatch
from winter_prescribing.ingestion.load_prescriptions import (
    clean_text,
    coalesce,
    normalise_columns,
    validate_required,
)
from winter_prescribing.ingestion.registry import DEFAULT_SCHEMAS
from winter_prescribing.records import EducationReference


log = logging.getLogger(__name__)


def parse_count(value: Any, row: str) -> Optional[float]:
    """Census counts are published with thousands separators; "-" means none recorded."""
    text = clean_text(value)
    if text is None or text == "-":
        return None
    try:
        return float(text.replace(",", ""))
    except ValueError:
        raise ParseError(row, value, "not a number")


def prefix_name(name: str, prefix: str) -> str:
    if not prefix or name.startswith(prefix):
        return name
    return f"{prefix}{name}"


def load_education(
    df: pd.DataFrame,
    schema: Optional[Dict[str, Any]] = None,
    name_prefix: str = "NHS ",
    tiers: Sequence[str] = (),
    source: str = "education",
) -> List[EducationReference]:
    """
    Build one EducationReference per health board from the census table.

    Census area names are published without the "NHS " prefix the health
    board lookup uses, so ``name_prefix`` is prepended before any join.
    ``tiers`` names further qualification columns (after normalisation) to
    carry alongside the no-qualifications count.
    """
    schema = schema or DEFAULT_SCHEMAS["education"]
    df = normalise_columns(df)
    fields = validate_required(df, schema, source)

    for tier in tiers:
        if tier not in df.columns:
            raise SchemaMismatch(tier, source)

    names = coalesce(df, fields["hb_name"])
    totals = coalesce(df, fields["total_population_16_plus"])
    no_quals = coalesce(df, fields["no_qualifications_count"])

    refs = []
    for i, (name, total, no_qual) in enumerate(zip(names, totals, no_quals)):
        name = clean_text(name)
        if name is None:
            continue
        row = f"{source} row {df.index[i]}"
        refs.append(
            EducationReference(
                hb_name=prefix_name(name, name_prefix),
                total_population_16_plus=parse_count(total, row),
                no_qualifications_count=parse_count(no_qual, row),
                tier_counts={tier: parse_count(df[tier].iloc[i], row) for tier in tiers},
            )
        )

    log.info(f"[EDUCATION] Loaded {len(refs)} health board rows from {source}")
    return refs
