"""
Report assembler.

Each public function is a typed query over an immutable :class:`Snapshot`.
Aggregation, ranking and tiering are delegated to the engine modules; this
module only selects populations, joins relations and projects typed rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .aggregate import NullPolicy, aggregate, complete_rows, mean_of
from .config import SCORE_COLUMNS, SCORE_LABELS, Config, load_config
from .currency import with_usd_price
from .errors import DataIssue, DataIssues
from .models import (
    CategoryScores,
    CityPriceRank,
    CityScores,
    MarketCompetitiveness,
    PriceDelta,
    PriceTierScores,
    PropertyTypePrice,
    VerificationScores,
)
from .ranking import Direction, RankMode, rank, top_n
from .snapshot import Snapshot
from .tiers import tier_compare

_LOGGER = logging.getLogger(__name__)

OTHER_LABEL = "All Other"
BOTH_VERIFIED = "Both Verified"
NOT_VERIFIED = "Not Verified"

SCORE_AVERAGES: Dict[str, str] = {f"avg_{SCORE_LABELS[c]}": c for c in SCORE_COLUMNS}

TIER_METRICS: Dict[str, str] = {
    "overall_score": "overall_rating",
    "accuracy": "accuracy_score",
    "cleanliness": "cleanliness_score",
    "communication": "communication_score",
    "location": "location_score",
    "value": "value_score",
}


# ---------------------------------------------------------------------------
# Declarative ranked reports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RankedReportSpec:
    """Grouping key, ordering metric, direction and cut-off of a ranked price report."""

    name: str
    keys: Tuple[str, ...]
    metric: str
    direction: Direction
    mode: RankMode
    partition: Optional[str] = None
    limit: Optional[int] = None
    tie_break: Tuple[str, ...] = ()
    values: Mapping[str, str] = field(default_factory=lambda: {"average_price_usd": "price_usd"})
    null_policy: NullPolicy = NullPolicy.PROPAGATE_NULL


CITY_PRICE_RANK = RankedReportSpec(
    name="city_price_rank",
    keys=("city",),
    metric="average_price_usd",
    direction=Direction.ASC,
    mode=RankMode.DENSE,
)


def property_type_spec(name: str, direction: Direction, limit: int) -> RankedReportSpec:
    """Row-number ranking of property types per city by listing count."""
    return RankedReportSpec(
        name=name,
        keys=("city", "property_type"),
        metric="listing_count",
        direction=direction,
        mode=RankMode.ROW_NUMBER,
        partition="city",
        limit=limit,
        tie_break=("property_type",),
    )


def ranked_report(
    spec: RankedReportSpec,
    frame: pd.DataFrame,
    *,
    decimals: Optional[int] = None,
    issues: Optional[DataIssues] = None,
) -> pd.DataFrame:
    """Aggregate ``frame`` by ``spec.keys``, rank within its partition and apply the cut-off."""
    summary = aggregate(
        frame,
        spec.keys,
        spec.values,
        null_policy=spec.null_policy,
        count_name="listing_count",
        decimals=decimals,
        issues=issues,
    )
    ranked = rank(
        summary,
        spec.metric,
        mode=spec.mode,
        partition=spec.partition,
        direction=spec.direction,
        tie_break=spec.tie_break,
    )
    if spec.limit is not None:
        ranked = top_n(ranked, spec.limit)
    _LOGGER.debug("[REPORTS] %s produced %d rows", spec.name, len(ranked))
    return ranked


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _native(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    return [{k: _native(v) for k, v in rec.items()} for rec in frame.to_dict(orient="records")]


def _setup(config: Optional[Config], issues: Optional[DataIssues]) -> Tuple[Config, DataIssues]:
    return config or load_config(), issues if issues is not None else DataIssues()


def _converted(snapshot: Snapshot, issues: DataIssues) -> pd.DataFrame:
    result = with_usd_price(snapshot.listings, snapshot.exchange_rates)
    issues.record(DataIssue.MISSING_EXCHANGE_RATE, result.missing_rate, context="listings")
    issues.record(DataIssue.NULL_METRIC, result.missing_price, context="listings.price")
    return result.frame


def _join_listings(reviews: pd.DataFrame, listings: pd.DataFrame, columns: List[str], issues: DataIssues) -> pd.DataFrame:
    """Inner-join reviews to listing columns, counting reviews of unknown listings."""
    orphans = ~reviews["listing_id"].isin(listings["listing_id"])
    issues.record(DataIssue.INCONSISTENT_FOREIGN_KEY, int(orphans.sum()), context="reviews.listing_id")
    right = listings[["listing_id", *columns]].drop_duplicates("listing_id")
    return reviews[~orphans].merge(right, on="listing_id", how="inner")


def _matches(series: pd.Series, pattern: str, *, prefix: bool = False) -> pd.Series:
    lowered = series.astype(str).str.lower()
    if prefix:
        return lowered.str.startswith(pattern.lower())
    return lowered.str.contains(pattern.lower(), regex=False)


def _score_row(frame: pd.DataFrame, decimals: int) -> Dict[str, Any]:
    return {
        name: mean_of(frame[column], NullPolicy.ZERO_FILL, decimals)
        for name, column in SCORE_AVERAGES.items()
    }


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def cities(snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None) -> List[str]:
    """Distinct normalized city names, 'Unknown' included."""
    return sorted(snapshot.listings["city"].unique().tolist())


def city_price_rank(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[CityPriceRank]:
    """Cities densely ranked by average converted price, cheapest first."""
    config, issues = _setup(config, issues)
    ranked = ranked_report(CITY_PRICE_RANK, _converted(snapshot, issues), decimals=config.decimals, issues=issues)
    ranked = ranked.sort_values(["rank", "city"], kind="mergesort")
    return [CityPriceRank(**rec) for rec in _records(ranked)]


def _property_types(
    snapshot: Snapshot, config: Config, issues: DataIssues, name: str, direction: Direction, limit: int
) -> List[PropertyTypePrice]:
    spec = property_type_spec(name, direction, limit)
    ranked = ranked_report(spec, _converted(snapshot, issues), decimals=config.decimals, issues=issues)
    ranked = ranked.sort_values(["city", "rank"], kind="mergesort")
    return [PropertyTypePrice(**rec) for rec in _records(ranked)]


def top_property_types(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[PropertyTypePrice]:
    """Most common property types per city (row-number by listing count, descending)."""
    config, issues = _setup(config, issues)
    return _property_types(snapshot, config, issues, "top_property_types", Direction.DESC, config.top_n)


def rarest_property_types(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[PropertyTypePrice]:
    """Rarest property types per city (row-number by listing count, ascending)."""
    config, issues = _setup(config, issues)
    return _property_types(snapshot, config, issues, "rarest_property_types", Direction.ASC, config.bottom_n)


def entire_vs_room_delta(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> PriceDelta:
    """
    Percentage difference of room prices relative to entire-property prices.
    Each side is the mean of its per-property-type averages.
    """
    config, issues = _setup(config, issues)
    converted = _converted(snapshot, issues)
    entire = converted[_matches(converted["property_type"], config.entire_prefix, prefix=True)]
    room = converted[_matches(converted["property_type"], config.room_pattern)]

    entire_avg = mean_of(aggregate(entire, "property_type", {"avg": "price_usd"})["avg"])
    room_avg = mean_of(aggregate(room, "property_type", {"avg": "price_usd"})["avg"])
    if entire_avg is None or room_avg is None or entire_avg == 0:
        issues.record(DataIssue.EMPTY_PARTITION, context="entire vs room price delta")
        delta = NullPolicy.ZERO_FILL.sentinel()
    else:
        delta = round((room_avg - entire_avg) / entire_avg * 100, config.decimals)
    return PriceDelta(
        entire_average_usd=None if entire_avg is None else round(entire_avg, config.decimals),
        room_average_usd=None if room_avg is None else round(room_avg, config.decimals),
        price_difference=delta,
    )


def category_scores(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[CategoryScores]:
    """Review score averages of the configured category versus every other review."""
    config, issues = _setup(config, issues)
    listings = snapshot.listings
    category_ids = listings.loc[_matches(listings["property_type"], config.category_pattern), "listing_id"]
    keyed = snapshot.reviews["listing_id"].notna()
    issues.record(DataIssue.INCONSISTENT_FOREIGN_KEY, int((~keyed).sum()), context="reviews without listing_id")
    reviews = snapshot.reviews[keyed]
    in_category = reviews["listing_id"].isin(category_ids)

    rows = []
    for label, frame in ((config.category_label, reviews[in_category]), (OTHER_LABEL, reviews[~in_category])):
        if frame.empty:
            issues.record(DataIssue.EMPTY_PARTITION, context=f"category '{label}'")
        rows.append(CategoryScores(category_label=label, review_count=len(frame), **_score_row(frame, config.decimals)))
    return rows


def _city_scores(snapshot: Snapshot, config: Config, issues: DataIssues) -> pd.DataFrame:
    joined = _join_listings(snapshot.reviews, snapshot.listings, ["city"], issues)
    eligible = complete_rows(joined, SCORE_COLUMNS)
    issues.record(DataIssue.NULL_METRIC, len(joined) - len(eligible), context="partial review scores")
    return aggregate(
        eligible,
        "city",
        SCORE_AVERAGES,
        null_policy=NullPolicy.ZERO_FILL,
        count_name="review_count",
        decimals=config.decimals,
    )


def city_review_scores(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[CityScores]:
    """Per-city averages over reviews scored on all six dimensions, best overall first."""
    config, issues = _setup(config, issues)
    summary = _city_scores(snapshot, config, issues)
    summary = summary.sort_values(["avg_overall", "city"], ascending=[False, True], kind="mergesort")
    return [CityScores(**rec) for rec in _records(summary)]


def city_location_scores(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[CityScores]:
    """Same population as :func:`city_review_scores`, ordered by location score."""
    config, issues = _setup(config, issues)
    summary = _city_scores(snapshot, config, issues)
    summary = summary.sort_values(["avg_location", "city"], ascending=[False, True], kind="mergesort")
    return [CityScores(**rec) for rec in _records(summary)]


def price_tier_scores(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[PriceTierScores]:
    """Per city, review scores of listings priced at-or-above versus below the city average."""
    config, issues = _setup(config, issues)
    converted = _converted(snapshot, issues)
    reviews = _join_listings(snapshot.reviews, snapshot.listings, [], issues)
    rows = reviews.merge(converted[["listing_id", "city", "price_usd"]], on="listing_id", how="inner")
    summary = tier_compare(
        rows,
        "city",
        "price_usd",
        TIER_METRICS,
        threshold_rows=converted,
        null_policy=NullPolicy.ZERO_FILL,
        decimals=config.decimals,
    )
    summary = summary.sort_values(["overall_score_above_avg", "city"], ascending=[False, True], kind="mergesort")
    return [PriceTierScores(**rec) for rec in _records(summary)]


def market_competitiveness(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[MarketCompetitiveness]:
    """Listing counts, average price and average rating per city over rated, convertible listings."""
    config, issues = _setup(config, issues)
    converted = _converted(snapshot, issues)
    rated = _join_listings(snapshot.reviews, snapshot.listings, [], issues)
    rated = rated[rated["overall_rating"].notna()]
    joined = rated.merge(converted[["listing_id", "city"]], on="listing_id", how="inner")
    qualifying = converted[converted["listing_id"].isin(joined["listing_id"])]

    listings = aggregate(
        qualifying,
        "city",
        {"average_price_usd": "price_usd"},
        null_policy=NullPolicy.ZERO_FILL,
        count_name="total_listings",
        count_distinct="listing_id",
        decimals=config.decimals,
    )
    ratings = aggregate(
        joined,
        "city",
        {"average_rating": "overall_rating"},
        null_policy=NullPolicy.ZERO_FILL,
        count_name="rated_reviews",
        decimals=config.decimals,
    )
    if listings.empty:
        return []
    summary = listings.merge(ratings[["city", "average_rating"]], on="city", how="left")
    summary["average_rating"] = summary["average_rating"].fillna(0.0)
    summary = summary.sort_values(["total_listings", "city"], ascending=[False, True], kind="mergesort")
    return [MarketCompetitiveness(**rec) for rec in _records(summary)]


def verification_impact(
    snapshot: Snapshot, config: Optional[Config] = None, issues: Optional[DataIssues] = None
) -> List[VerificationScores]:
    """
    Review score averages for hosts with both a profile picture and a verified identity
    versus everyone else. Anything short of both flags is 'Not Verified'.
    """
    config, issues = _setup(config, issues)
    reviews = snapshot.reviews
    hosts = snapshot.hosts.drop_duplicates("host_id")
    orphans = ~reviews["host_id"].isin(hosts["host_id"])
    issues.record(DataIssue.INCONSISTENT_FOREIGN_KEY, int(orphans.sum()), context="reviews.host_id")

    joined = reviews[~orphans].merge(hosts[["host_id", "profile_pic", "identity_verified"]], on="host_id", how="inner")
    verified = joined["profile_pic"].astype(bool) & joined["identity_verified"].astype(bool)
    joined["verification_status"] = np.where(verified, BOTH_VERIFIED, NOT_VERIFIED)

    rows = []
    for status in (BOTH_VERIFIED, NOT_VERIFIED):
        bucket = joined[joined["verification_status"] == status]
        if bucket.empty:
            issues.record(DataIssue.EMPTY_PARTITION, context=f"verification '{status}'")
        rows.append(
            VerificationScores(verification_status=status, review_count=len(bucket), **_score_row(bucket, config.decimals))
        )
    return rows


__all__ = [
    "CITY_PRICE_RANK",
    "RankedReportSpec",
    "category_scores",
    "cities",
    "city_location_scores",
    "city_price_rank",
    "city_review_scores",
    "entire_vs_room_delta",
    "market_competitiveness",
    "price_tier_scores",
    "property_type_spec",
    "ranked_report",
    "rarest_property_types",
    "top_property_types",
    "verification_impact",
]
