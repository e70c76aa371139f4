"""
Grouping / aggregation engine.

Every report funnels through :func:`aggregate`: one output row per distinct key,
a row count and the mean of each requested metric over its non-null values.
How an empty mean is reported is declared by the caller through ``NullPolicy``.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import UNKNOWN
from .errors import DataIssue, DataIssues
from .snapshot import normalize_label

_LOGGER = logging.getLogger(__name__)

Metrics = Union[Mapping[str, str], Sequence[str]]


class NullPolicy(str, Enum):
    """Sentinel used for an aggregate with no qualifying input values."""

    ZERO_FILL = "zero_fill"
    UNKNOWN_LABEL = "unknown_label"
    PROPAGATE_NULL = "propagate_null"

    def sentinel(self) -> Any:
        if self is NullPolicy.ZERO_FILL:
            return 0.0
        if self is NullPolicy.UNKNOWN_LABEL:
            return UNKNOWN
        return None


def _metric_map(metrics: Metrics) -> Dict[str, str]:
    if isinstance(metrics, Mapping):
        return dict(metrics)
    return {column: column for column in metrics}


def _round(value: Any, decimals: Optional[int]) -> Any:
    if decimals is None or value is None:
        return value
    return round(float(value), decimals)


def apply_null_policy(series: pd.Series, policy: NullPolicy) -> pd.Series:
    """Replace missing aggregates with the policy's sentinel."""
    if policy is NullPolicy.PROPAGATE_NULL:
        return series.astype("object").where(series.notna(), None) if series.isna().any() else series
    sentinel = policy.sentinel()
    if policy is NullPolicy.UNKNOWN_LABEL:
        return series.astype("object").where(series.notna(), sentinel)
    return series.fillna(sentinel)


def mean_of(
    values: Union[pd.Series, Iterable[Any]],
    null_policy: NullPolicy = NullPolicy.PROPAGATE_NULL,
    decimals: Optional[int] = None,
) -> Any:
    """Arithmetic mean over non-null values, or the policy sentinel when none remain."""
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype="float64")
    cleaned = pd.to_numeric(series, errors="coerce").dropna()
    if cleaned.empty:
        return null_policy.sentinel()
    return _round(float(cleaned.mean()), decimals)


def complete_rows(frame: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Rows in which every one of ``columns`` is non-null."""
    columns = list(columns)
    return frame[frame[columns].notna().all(axis=1)]


def aggregate(
    frame: pd.DataFrame,
    keys: Union[str, Sequence[str]],
    metrics: Metrics = (),
    *,
    null_policy: NullPolicy = NullPolicy.PROPAGATE_NULL,
    count_name: str = "count",
    count_distinct: Optional[str] = None,
    decimals: Optional[int] = None,
    issues: Optional[DataIssues] = None,
) -> pd.DataFrame:
    """
    Group ``frame`` by ``keys`` and summarise each group.

    Parameters
    ----------
    keys : str or sequence of str
        Grouping column(s). Null or blank key values fall into the 'Unknown' bucket.
    metrics : mapping or sequence
        ``{output_name: source_column}`` (or plain column names) averaged per group.
    count_distinct : str, optional
        Count distinct values of this column instead of rows.
    decimals : int, optional
        Round averages before the null policy is applied.

    Output row order is not defined; callers sort as their final step.
    """
    key_list: List[str] = [keys] if isinstance(keys, str) else list(keys)
    metric_map = _metric_map(metrics)
    columns = key_list + [count_name] + list(metric_map)

    if frame.empty:
        return pd.DataFrame(columns=columns)

    work = frame.copy()
    for key in key_list:
        work[key] = normalize_label(work[key])

    grouped = work.groupby(key_list, sort=False, dropna=False)
    if count_distinct:
        result = grouped[count_distinct].nunique().rename(count_name).to_frame()
    else:
        result = grouped.size().rename(count_name).to_frame()

    for output, source in metric_map.items():
        values = pd.to_numeric(work[source], errors="coerce")
        if issues is not None:
            issues.record(DataIssue.NULL_METRIC, int(values.isna().sum()), context=source)
        means = values.groupby([work[key] for key in key_list], sort=False, dropna=False).mean()
        if decimals is not None:
            means = means.round(decimals)
        if issues is not None:
            issues.record(DataIssue.EMPTY_PARTITION, int(means.isna().sum()), context=output)
        result[output] = means.reindex(result.index)

    result = result.reset_index()
    result[count_name] = result[count_name].astype(np.int64)
    for output in metric_map:
        result[output] = apply_null_policy(result[output], null_policy)
    return result[columns]


__all__ = ["NullPolicy", "aggregate", "apply_null_policy", "complete_rows", "mean_of"]
