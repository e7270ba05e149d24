"""YAML configuration for batches of raster checks."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .tolerance import DEFAULT_PLACES, STD_DEV_PLACES

DEFAULT_SOURCE = "gdal"

REQUIRED_KEYS = {"name", "verified", "expected"}

# Top-level keys that act as defaults for every check.
SHARED_KEYS = ["outdir", "places", "std_dev_places", "html", "excel", "json"]

DEFAULTS = {
    "outdir": "outputs",
    "places": DEFAULT_PLACES,
    "std_dev_places": STD_DEV_PLACES,
    "html": True,
    "excel": False,
    "json": True,
}


@dataclass(frozen=True)
class SourceConfig:
    source: str
    location: str


@dataclass(frozen=True)
class CheckConfig:
    name: str
    verified: SourceConfig
    expected: SourceConfig
    outdir: Path
    places: int = DEFAULT_PLACES
    std_dev_places: int = STD_DEV_PLACES
    html: bool = True
    excel: bool = False
    json: bool = True


def load_config(config_path: Path) -> dict:
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as handle:
        config = yaml.safe_load(handle) or {}

    if not isinstance(config, dict):
        raise ValueError("Config root must be a mapping (YAML dictionary).")

    return config


def _resolve_source(value: Any, label: str) -> SourceConfig:
    """
    Accepts either a plain location string or a mapping
    ``{source: <type>, location: <locator>}``.
    """
    if isinstance(value, (str, Path)):
        return SourceConfig(source=DEFAULT_SOURCE, location=str(value))
    if not isinstance(value, dict):
        raise ValueError(f"{label} must be a location string or a mapping.")
    if "location" not in value:
        raise ValueError(f"{label} is missing 'location'.")
    source = str(value.get("source") or DEFAULT_SOURCE)
    return SourceConfig(source=source, location=str(value["location"]))


def _non_negative_int(config: Dict[str, Any], key: str) -> int:
    try:
        value = int(config[key])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer.") from exc
    if value < 0:
        raise ValueError(f"{key} must be zero or positive.")
    return value


def resolve_check(section: Dict[str, Any], shared: Dict[str, Any] | None = None) -> CheckConfig:
    if not isinstance(section, dict):
        raise ValueError("Each check must be a mapping (YAML dictionary).")

    shared = shared or {}
    merged = dict(section)
    for k in SHARED_KEYS:
        if k not in merged and shared.get(k) is not None:
            merged[k] = shared[k]
    config = {**DEFAULTS, **merged}

    missing = REQUIRED_KEYS - set(config)
    if missing:
        missing_list = ", ".join(sorted(missing))
        raise ValueError(f"Config missing required keys: {missing_list}")

    return CheckConfig(
        name=str(config["name"]),
        verified=_resolve_source(config["verified"], "verified"),
        expected=_resolve_source(config["expected"], "expected"),
        outdir=Path(config["outdir"]).expanduser(),
        places=_non_negative_int(config, "places"),
        std_dev_places=_non_negative_int(config, "std_dev_places"),
        html=bool(config["html"]),
        excel=bool(config["excel"]),
        json=bool(config["json"]),
    )


def resolve_check_config(raw_config: dict) -> List[CheckConfig]:
    """
    Resolve a workspace YAML into the list of checks to run.

    The YAML either lists checks under ``checks`` (top-level keys such as
    ``outdir`` or ``places`` serve as shared defaults) or is itself a
    single flat check.
    """
    checks = raw_config.get("checks")
    if checks is None:
        return [resolve_check(raw_config)]

    if not isinstance(checks, list) or not checks:
        raise ValueError("checks must be a non-empty list of mappings.")

    resolved = [resolve_check(section, raw_config) for section in checks]
    names = [check.name for check in resolved]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate check names: {', '.join(duplicates)}")
    return resolved
