"""Error taxonomy for the analytics core."""
from __future__ import annotations

import logging
from collections import Counter
from enum import Enum
from typing import Dict, Iterable, List

_LOGGER = logging.getLogger(__name__)


class AnalyticsError(ValueError):
    """Base class for failures surfaced to the caller."""


class SchemaError(AnalyticsError):
    """Raised when an input relation is structurally invalid."""

    def __init__(self, relation: str, missing: Iterable[str] = ()) -> None:
        self.relation = relation
        self.missing: List[str] = sorted(missing)
        if self.missing:
            message = f"Relation '{relation}' is missing required columns: {', '.join(self.missing)}"
        else:
            message = f"Relation '{relation}' is not a tabular frame"
        super().__init__(message)


class DataIssue(str, Enum):
    """Non-fatal conditions resolved into row exclusion or sentinel values."""

    MISSING_EXCHANGE_RATE = "missing_exchange_rate"
    NULL_METRIC = "null_metric"
    EMPTY_PARTITION = "empty_partition"
    INCONSISTENT_FOREIGN_KEY = "inconsistent_foreign_key"


class DataIssues:
    """Counter of data issues raised while building one report."""

    def __init__(self) -> None:
        self._counts: Counter = Counter()

    def record(self, issue: DataIssue, count: int = 1, *, context: str = "") -> None:
        if count <= 0:
            return
        self._counts[issue] += count
        level = logging.INFO if issue is DataIssue.NULL_METRIC else logging.WARNING
        _LOGGER.log(level, "[ISSUES] %s x%d%s", issue.value, count, f" ({context})" if context else "")

    def merge(self, other: "DataIssues") -> None:
        self._counts.update(other._counts)

    def count(self, issue: DataIssue) -> int:
        return int(self._counts.get(issue, 0))

    def as_dict(self) -> Dict[str, int]:
        return {issue.value: int(n) for issue, n in sorted(self._counts.items(), key=lambda kv: kv[0].value)}

    def __bool__(self) -> bool:
        return bool(self._counts)


__all__ = ["AnalyticsError", "SchemaError", "DataIssue", "DataIssues"]
