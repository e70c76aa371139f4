"""Immutable snapshot of the four input relations consumed by every report."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import duckdb
import pandas as pd

from .config import REQUIRED_COLUMNS, SCORE_COLUMNS, TABLE_NAMES, TRUTHY_FLAGS, UNKNOWN
from .errors import SchemaError

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------

def normalize_label(series: pd.Series) -> pd.Series:
    """Replace null or blank grouping labels with the literal 'Unknown' bucket."""
    cleaned = series.astype("object").where(series.notna(), None)
    cleaned = cleaned.map(lambda v: str(v).strip() if v is not None else "")
    return cleaned.mask(cleaned == "", UNKNOWN)


def coerce_flag(value: Any) -> bool:
    """Interpret the host flag encodings ('t'/'f', booleans, 0/1); anything else is False."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_FLAGS
    try:
        if pd.isna(value):
            return False
    except (TypeError, ValueError):
        return False
    try:
        return bool(int(value)) if not isinstance(value, bool) else value
    except (TypeError, ValueError):
        return False


def _validate(name: str, frame: Any) -> pd.DataFrame:
    if not isinstance(frame, pd.DataFrame):
        raise SchemaError(name)
    missing = set(REQUIRED_COLUMNS[name]) - set(frame.columns)
    if missing:
        raise SchemaError(name, missing)
    return frame.copy()


def _prepare_listings(df: pd.DataFrame) -> pd.DataFrame:
    df["city"] = normalize_label(df["city"])
    df["property_type"] = normalize_label(df["property_type"])
    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    return df


def _prepare_hosts(df: pd.DataFrame) -> pd.DataFrame:
    df["profile_pic"] = df["profile_pic"].map(coerce_flag).astype(bool)
    df["identity_verified"] = df["identity_verified"].map(coerce_flag).astype(bool)
    return df


def _prepare_reviews(df: pd.DataFrame) -> pd.DataFrame:
    for column in SCORE_COLUMNS:
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df


def _prepare_rates(df: pd.DataFrame) -> pd.DataFrame:
    # A rate row never stands for the 'Unknown' bucket: unnamed cities are dropped, not normalized.
    cities = df["city"].astype("object").where(df["city"].notna(), None)
    df["city"] = cities.map(lambda v: str(v).strip() if v is not None else "")
    unnamed = df["city"] == ""
    if unnamed.any():
        _LOGGER.warning("[SNAPSHOT] Dropping %d exchange rate rows without a city", int(unnamed.sum()))
        df = df[~unnamed].copy()
    df["exchange_rate"] = pd.to_numeric(df["exchange_rate"], errors="coerce")
    invalid = df["exchange_rate"].isna() | (df["exchange_rate"] <= 0)
    if invalid.any():
        _LOGGER.warning("[SNAPSHOT] Dropping %d exchange rate rows without a positive rate", int(invalid.sum()))
        df = df[~invalid]
    duplicated = df["city"].duplicated(keep="first")
    if duplicated.any():
        _LOGGER.warning(
            "[SNAPSHOT] Keeping first rate for duplicated cities: %s",
            sorted(df.loc[duplicated, "city"].unique().tolist()),
        )
        df = df[~duplicated]
    return df.reset_index(drop=True)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Snapshot:
    """Validated, normalized copies of listings, hosts, reviews and exchange rates."""

    listings: pd.DataFrame
    hosts: pd.DataFrame
    reviews: pd.DataFrame
    exchange_rates: pd.DataFrame

    @classmethod
    def from_frames(
        cls,
        listings: pd.DataFrame,
        hosts: pd.DataFrame,
        reviews: pd.DataFrame,
        exchange_rates: pd.DataFrame,
    ) -> "Snapshot":
        """Validate every relation before any normalization; the caller's frames are never mutated."""
        validated = {
            "listings": _validate("listings", listings),
            "hosts": _validate("hosts", hosts),
            "reviews": _validate("reviews", reviews),
            "exchange_rates": _validate("exchange_rates", exchange_rates),
        }
        snapshot = cls(
            listings=_prepare_listings(validated["listings"]),
            hosts=_prepare_hosts(validated["hosts"]),
            reviews=_prepare_reviews(validated["reviews"]),
            exchange_rates=_prepare_rates(validated["exchange_rates"]),
        )
        _LOGGER.info(
            "[SNAPSHOT] Loaded listings=%d hosts=%d reviews=%d rates=%d",
            len(snapshot.listings), len(snapshot.hosts), len(snapshot.reviews), len(snapshot.exchange_rates),
        )
        return snapshot

    @classmethod
    def from_duckdb(
        cls,
        source: Union[str, Path, "duckdb.DuckDBPyConnection"],
        table_names: Optional[Dict[str, str]] = None,
    ) -> "Snapshot":
        """Read the four relations from a DuckDB file or an open connection."""
        names = {**TABLE_NAMES, **(table_names or {})}
        owns_connection = not isinstance(source, duckdb.DuckDBPyConnection)
        con = duckdb.connect(str(source), read_only=True) if owns_connection else source
        try:
            frames = {}
            for relation, table in names.items():
                try:
                    frames[relation] = con.execute(f'SELECT * FROM "{table}"').fetchdf()
                except duckdb.CatalogException as exc:
                    raise SchemaError(relation, REQUIRED_COLUMNS[relation]) from exc
        finally:
            if owns_connection:
                con.close()
        return cls.from_frames(**frames)


__all__ = ["Snapshot", "normalize_label", "coerce_flag"]
