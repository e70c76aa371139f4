"""Partitioned ranking: dense rank and row-number within a partition."""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence, Union

import pandas as pd

_LOGGER = logging.getLogger(__name__)

Partition = Optional[Union[str, Sequence[str]]]


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @property
    def ascending(self) -> bool:
        return self is Direction.ASC


class RankMode(str, Enum):
    DENSE = "dense"
    ROW_NUMBER = "row_number"


def _partition_list(partition: Partition) -> List[str]:
    if partition is None:
        return []
    if isinstance(partition, str):
        return [partition]
    return list(partition)


def dense_rank(
    frame: pd.DataFrame,
    metric: str,
    *,
    partition: Partition = None,
    direction: Direction = Direction.ASC,
    rank_name: str = "rank",
) -> pd.DataFrame:
    """Ties share a rank; the next distinct value advances the rank by exactly one."""
    ranked = frame.copy()
    if ranked.empty:
        ranked[rank_name] = pd.Series(dtype="Int64")
        return ranked
    values = pd.to_numeric(ranked[metric], errors="coerce")
    parts = _partition_list(partition)
    if parts:
        ranks = values.groupby([ranked[p] for p in parts], sort=False).rank(
            method="dense", ascending=direction.ascending
        )
    else:
        ranks = values.rank(method="dense", ascending=direction.ascending)
    ranked[rank_name] = ranks.round().astype("Int64")
    return ranked


def row_number(
    frame: pd.DataFrame,
    metric: str,
    *,
    partition: Partition = None,
    direction: Direction = Direction.ASC,
    tie_break: Sequence[str] = (),
    rank_name: str = "rank",
) -> pd.DataFrame:
    """
    Strictly increasing 1..K per partition regardless of ties.
    Equal metric values are ordered by ``tie_break`` columns ascending, so the
    numbering is reproducible across runs.
    """
    parts = _partition_list(partition)
    ranked = frame.copy()
    if ranked.empty:
        ranked[rank_name] = pd.Series(dtype="int64")
        return ranked
    order = parts + [metric] + list(tie_break)
    ascending = [True] * len(parts) + [direction.ascending] + [True] * len(tie_break)
    ranked = ranked.sort_values(order, ascending=ascending, kind="mergesort", na_position="last")
    if parts:
        ranked[rank_name] = ranked.groupby(parts, sort=False).cumcount() + 1
    else:
        ranked[rank_name] = range(1, len(ranked) + 1)
    ranked[rank_name] = ranked[rank_name].astype("int64")
    return ranked.reset_index(drop=True)


def rank(
    frame: pd.DataFrame,
    metric: str,
    *,
    mode: RankMode,
    partition: Partition = None,
    direction: Direction = Direction.ASC,
    tie_break: Sequence[str] = (),
    rank_name: str = "rank",
) -> pd.DataFrame:
    if mode is RankMode.DENSE:
        return dense_rank(frame, metric, partition=partition, direction=direction, rank_name=rank_name)
    return row_number(
        frame, metric, partition=partition, direction=direction, tie_break=tie_break, rank_name=rank_name
    )


def top_n(frame: pd.DataFrame, n: int, rank_name: str = "rank") -> pd.DataFrame:
    """Keep rows ranked ``<= n``; partitions smaller than ``n`` return every row."""
    if n < 1:
        raise ValueError(f"top_n expects n >= 1, got {n}")
    return frame[frame[rank_name] <= n].reset_index(drop=True)


__all__ = ["Direction", "RankMode", "dense_rank", "rank", "row_number", "top_n"]
