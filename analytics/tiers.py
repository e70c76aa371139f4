"""
Tier classifier: split a partition at its own mean and compare the two buckets.

The work runs in two ordered stages that share one partition key and one value
column. Stage one derives each partition's threshold from the threshold
population; stage two re-scans rows and buckets them with a closed-open split
(``value >= threshold`` is ``above``, ``value < threshold`` is ``below``).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import pandas as pd

from .aggregate import NullPolicy, aggregate, apply_null_policy
from .errors import DataIssue, DataIssues

_LOGGER = logging.getLogger(__name__)

ABOVE = "above"
BELOW = "below"


@dataclass(frozen=True, eq=False)
class TierSplit:
    """The two disjoint buckets of one classification pass."""

    above: pd.DataFrame
    below: pd.DataFrame
    unclassified: int = 0

    @property
    def sizes(self) -> Dict[str, int]:
        return {ABOVE: len(self.above), BELOW: len(self.below)}


def partition_thresholds(frame: pd.DataFrame, partition: str, value_column: str) -> pd.Series:
    """Stage one: mean of ``value_column`` per partition, indexed by partition key."""
    means = aggregate(frame, partition, {"threshold": value_column})
    if means.empty:
        return pd.Series(dtype="float64", name="threshold")
    return pd.Series(
        pd.to_numeric(means["threshold"], errors="coerce").to_numpy(),
        index=pd.Index(means[partition], name=partition),
        name="threshold",
    )


def classify(
    frame: pd.DataFrame,
    thresholds: pd.Series,
    partition: str,
    value_column: str,
    tier_name: str = "tier",
) -> pd.DataFrame:
    """Stage two: attach each row's partition threshold and its tier label."""
    classified = frame.copy()
    classified["threshold"] = classified[partition].map(thresholds)
    values = pd.to_numeric(classified[value_column], errors="coerce")
    classified[tier_name] = None
    classified.loc[values >= classified["threshold"], tier_name] = ABOVE
    classified.loc[values < classified["threshold"], tier_name] = BELOW
    return classified


def split_by_threshold(
    frame: pd.DataFrame,
    partition: str,
    value_column: str,
    thresholds: Optional[pd.Series] = None,
) -> TierSplit:
    """Bucket ``frame`` into at-or-above and below its partition mean."""
    if thresholds is None:
        thresholds = partition_thresholds(frame, partition, value_column)
    classified = classify(frame, thresholds, partition, value_column)
    unclassified = int(classified["tier"].isna().sum())
    if unclassified:
        _LOGGER.debug("[TIERS] %d rows without a comparable value or threshold", unclassified)
    return TierSplit(
        above=classified[classified["tier"] == ABOVE].reset_index(drop=True),
        below=classified[classified["tier"] == BELOW].reset_index(drop=True),
        unclassified=unclassified,
    )


def tier_compare(
    rows: pd.DataFrame,
    partition: str,
    value_column: str,
    metrics: Mapping[str, str],
    *,
    threshold_rows: Optional[pd.DataFrame] = None,
    null_policy: NullPolicy = NullPolicy.ZERO_FILL,
    decimals: Optional[int] = None,
    issues: Optional[DataIssues] = None,
) -> pd.DataFrame:
    """
    Per partition, the mean of each metric for the at-or-above and below buckets.

    ``threshold_rows`` (default ``rows``) is the population the thresholds come
    from; it must carry the same ``partition`` and ``value_column`` as ``rows``.
    Output columns are ``{name}_above_avg`` / ``{name}_below_avg`` for every
    metric name, plus ``rows_above`` and ``rows_below``.
    """
    population = rows if threshold_rows is None else threshold_rows
    thresholds = partition_thresholds(population, partition, value_column)
    split = split_by_threshold(rows, partition, value_column, thresholds)
    if issues is not None:
        issues.record(DataIssue.EMPTY_PARTITION, split.unclassified, context="rows without a tier threshold")

    columns = [partition]
    for name in metrics:
        columns += [f"{name}_above_avg", f"{name}_below_avg"]
    columns += ["rows_above", "rows_below"]

    partitions = pd.Index(pd.unique(pd.concat([split.above[partition], split.below[partition]])), name=partition)
    if partitions.empty:
        return pd.DataFrame(columns=columns)

    result = pd.DataFrame(index=partitions)
    for tier, bucket in ((ABOVE, split.above), (BELOW, split.below)):
        summary = aggregate(bucket, partition, metrics, count_name="rows", decimals=decimals, issues=issues)
        summary = summary.set_index(partition).reindex(partitions)
        result[f"rows_{tier}"] = summary["rows"].fillna(0).astype("int64")
        for name in metrics:
            result[f"{name}_{tier}_avg"] = apply_null_policy(
                pd.to_numeric(summary[name], errors="coerce"), null_policy
            )

    return result.reset_index()[columns]


__all__ = ["ABOVE", "BELOW", "TierSplit", "classify", "partition_thresholds", "split_by_threshold", "tier_compare"]
