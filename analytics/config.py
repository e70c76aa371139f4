"""
Configuration utilities for the marketplace analytics core.
Keeps environment variables, schema constants and report defaults in one place
so snapshot → aggregate → ranking → reports all read the same values.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "AIRBNB_ANALYTICS_"
UNKNOWN = "Unknown"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

TABLE_NAMES: Dict[str, str] = {
    "listings": "property_details",
    "hosts": "host_information",
    "reviews": "listing_reviews",
    "exchange_rates": "exchange_rates",
}

SCORE_COLUMNS: Tuple[str, ...] = (
    "overall_rating",
    "cleanliness_score",
    "location_score",
    "value_score",
    "accuracy_score",
    "communication_score",
)

SCORE_LABELS: Dict[str, str] = {
    "overall_rating": "overall",
    "cleanliness_score": "cleanliness",
    "location_score": "location",
    "value_score": "value",
    "accuracy_score": "accuracy",
    "communication_score": "communication",
}

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "listings": ["listing_id", "host_id", "city", "property_type", "price"],
    "hosts": ["host_id", "profile_pic", "identity_verified"],
    "reviews": ["listing_id", "host_id", *SCORE_COLUMNS],
    "exchange_rates": ["city", "exchange_rate"],
}

TRUTHY_FLAGS = {"t", "true", "yes", "y", "1"}


# ---------------------------------------------------------------------------
# Dataclass Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    """Immutable configuration for one analytics run."""

    duckdb_path: Path
    reference_currency: str = "USD"
    decimals: int = 2
    top_n: int = 3
    bottom_n: int = 2
    category_label: str = "Yurt"
    category_pattern: str = "yurt"
    entire_prefix: str = "Entire"
    room_pattern: str = "room"
    max_workers: int = 4

    @property
    def duckdb_path_str(self) -> str:
        return str(self.duckdb_path)


_cached_config: Optional[Config] = None


# ---------------------------------------------------------------------------
# Environment Handling
# ---------------------------------------------------------------------------

def _env(name: str, default: str) -> str:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = _env(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        _LOGGER.warning("Ignoring malformed %s%s=%r; using %s", ENV_PREFIX, name, raw, default)
        return default
    if value < minimum:
        _LOGGER.warning("Ignoring out-of-range %s%s=%s; using %s", ENV_PREFIX, name, value, default)
        return default
    return value


def load_config(refresh: bool = False) -> Config:
    """
    Load configuration from environment and cache the result.
    Parameters
    ----------
    refresh : bool
        If True, re-read environment variables and reinitialize Config.
    """
    global _cached_config
    if _cached_config is not None and not refresh:
        return _cached_config

    load_dotenv(override=False)

    project_root = Path(os.getenv(ENV_PREFIX + "ROOT", Path.cwd()))
    duckdb_path = Path(_env("DUCKDB", "db/airbnb.duckdb"))
    if not duckdb_path.is_absolute():
        duckdb_path = project_root / duckdb_path

    _cached_config = Config(
        duckdb_path=duckdb_path,
        reference_currency=_env("REFERENCE_CURRENCY", "USD"),
        decimals=_env_int("DECIMALS", 2),
        top_n=_env_int("TOP_N", 3, minimum=1),
        bottom_n=_env_int("BOTTOM_N", 2, minimum=1),
        category_label=_env("CATEGORY_LABEL", "Yurt"),
        category_pattern=_env("CATEGORY_PATTERN", "yurt"),
        entire_prefix=_env("ENTIRE_PREFIX", "Entire"),
        room_pattern=_env("ROOM_PATTERN", "room"),
        max_workers=_env_int("MAX_WORKERS", 4, minimum=1),
    )

    _LOGGER.debug(
        "Loaded configuration: duckdb=%s | currency=%s | top_n=%s | bottom_n=%s | workers=%s",
        duckdb_path, _cached_config.reference_currency, _cached_config.top_n,
        _cached_config.bottom_n, _cached_config.max_workers,
    )
    return _cached_config


__all__ = [
    "Config",
    "load_config",
    "REQUIRED_COLUMNS",
    "SCORE_COLUMNS",
    "SCORE_LABELS",
    "TABLE_NAMES",
    "UNKNOWN",
]
