from __future__ import annotations

from typing import Any, Dict, Sequence

from winter_prescribing.records import (
    CombinedAnalyticalRow,
    ComparisonRow,
    PrescriptionRecord,
)


MAX_EXAMPLES = 20


def _examples(items) -> list:
    return sorted({str(i) for i in items})[:MAX_EXAMPLES]


def build_diagnostics(
    records: Sequence[PrescriptionRecord],
    comparisons: Sequence[ComparisonRow],
    combined: Sequence[CombinedAnalyticalRow],
) -> Dict[str, Any]:
    """Summarise the missing-data conditions that flowed through as None."""
    placeholders = [r for r in records if r.paid_date_month is None]
    prescribed = [r for r in records if r.paid_date_month is not None]

    no_code = [r for r in prescribed if r.hb_code is None]
    unknown_code = [r for r in prescribed if r.hb_code is not None and r.hb_name is None]

    missing_december = [c for c in comparisons if c.december_value is None]
    missing_january = [c for c in comparisons if c.january_value is None]

    no_education = [c for c in combined if c.total_population_16_plus is None]
    no_prescribing = [c for c in combined if c.seasons_observed == 0]

    return {
        "records": len(prescribed),
        "records_without_hb_code": {
            "count": len(no_code),
            "sources": _examples(r.source for r in no_code),
        },
        "records_with_unknown_hb_code": {
            "count": len(unknown_code),
            "codes": _examples(r.hb_code for r in unknown_code),
        },
        "boards_without_prescriptions": {
            "count": len(placeholders),
            "boards": _examples(r.hb_name or r.hb_code for r in placeholders),
        },
        "seasons_missing_december": {
            "count": len(missing_december),
            "examples": _examples((c.group, c.season) for c in missing_december),
        },
        "seasons_missing_january": {
            "count": len(missing_january),
            "examples": _examples((c.group, c.season) for c in missing_january),
        },
        "groups_without_education": {
            "count": len(no_education),
            "groups": _examples(c.group_identity for c in no_education),
        },
        "education_without_prescribing": {
            "count": len(no_prescribing),
            "groups": _examples(c.group_identity for c in no_prescribing),
        },
    }
