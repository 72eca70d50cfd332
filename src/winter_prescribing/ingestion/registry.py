from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


log = logging.getLogger(__name__)

REQUIRED_DATASETS = ("prescriptions", "health_boards", "education")


# Used when no <key>.yaml schema file is available.
DEFAULT_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "prescriptions": {
        "required_columns": {
            "hb_code": {"any_of": ["hbt", "hbt2014"]},
            "item_description": {"any_of": ["bnf_item_description"]},
            "paid_quantity": {"any_of": ["paid_quantity"]},
            "paid_date_month": {"any_of": ["paid_date_month"]},
        }
    },
    "health_boards": {
        "required_columns": {
            "code": {"any_of": ["hb"]},
            "name": {"any_of": ["hb_name"]},
        }
    },
    "education": {
        "required_columns": {
            "hb_name": {"any_of": ["health_board", "unnamed_0", "area"]},
            "total_population_16_plus": {"any_of": ["all_people_aged_16_and_over"]},
            "no_qualifications_count": {"any_of": ["no_qualifications"]},
        }
    },
}


def load_datasets_config(path: Path) -> Dict[str, Dict[str, Any]]:
    """
    Read the registry file and return its `datasets:` block.

    Every dataset the pipeline reads must have an entry; paths inside stay
    relative until `resolve_path` anchors them to the data directory.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Datasets registry not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        registry = yaml.safe_load(f) or {}

    datasets = registry.get("datasets")
    if not isinstance(datasets, dict):
        raise ValueError(f"{path.name} has no 'datasets:' mapping")
    missing = [key for key in REQUIRED_DATASETS if key not in datasets]
    if missing:
        raise ValueError(f"{path.name} is missing dataset entries: {missing}")
    return datasets


def get_dataset_config(datasets_cfg: Dict[str, Dict[str, Any]], key: str) -> Dict[str, Any]:
    try:
        return datasets_cfg[key]
    except KeyError:
        raise KeyError(f"Dataset {key!r} not found in datasets registry")


def load_schema(key: str, schemas_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Schema from `<schemas_dir>/<key>.yaml`, or the built-in one when there is no such file."""
    if schemas_dir is not None:
        schema_path = Path(schemas_dir) / f"{key}.yaml"
        if schema_path.exists():
            with schema_path.open("r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        log.info(f"[REGISTRY] No {schema_path.name} in {schemas_dir}; using built-in schema")
    return DEFAULT_SCHEMAS[key]


def resolve_path(data_dir: Path, cfg: Dict[str, Any]) -> Path:
    path_str = cfg.get("path")
    if not path_str:
        raise ValueError(f"Dataset config must contain a 'path' field: {cfg}")
    path = Path(path_str)
    return path if path.is_absolute() else Path(data_dir) / path
