"""Run the report catalogue against one snapshot on a thread pool."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd
from pydantic import BaseModel

from . import reports
from .config import Config, load_config
from .errors import DataIssues
from .snapshot import Snapshot

_LOGGER = logging.getLogger(__name__)

ReportFn = Callable[[Snapshot, Optional[Config], Optional[DataIssues]], Any]

REPORTS: Dict[str, ReportFn] = {
    "cities": reports.cities,
    "city_price_rank": reports.city_price_rank,
    "top_property_types": reports.top_property_types,
    "entire_vs_room_delta": reports.entire_vs_room_delta,
    "rarest_property_types": reports.rarest_property_types,
    "category_scores": reports.category_scores,
    "city_review_scores": reports.city_review_scores,
    "city_location_scores": reports.city_location_scores,
    "price_tier_scores": reports.price_tier_scores,
    "market_competitiveness": reports.market_competitiveness,
    "verification_impact": reports.verification_impact,
}


@dataclass
class ReportBundle:
    """Results of one run keyed by report name, in catalogue order."""

    results: Dict[str, Any] = field(default_factory=dict)
    issues: Dict[str, Dict[str, int]] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    elapsed_ms: Optional[int] = None

    @property
    def complete(self) -> bool:
        return not self.errors

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        """Tabular view of every successful report for a presentation layer."""
        frames: Dict[str, pd.DataFrame] = {}
        for name, result in self.results.items():
            if isinstance(result, BaseModel):
                frames[name] = pd.DataFrame([result.model_dump()])
            elif result and isinstance(result[0], BaseModel):
                frames[name] = pd.DataFrame([row.model_dump() for row in result])
            else:
                frames[name] = pd.DataFrame({name: list(result)})
        return frames


def _run_one(name: str, snapshot: Snapshot, config: Config) -> tuple[Any, DataIssues]:
    issues = DataIssues()
    result = REPORTS[name](snapshot, config, issues)
    return result, issues


def run_reports(
    snapshot: Snapshot,
    config: Optional[Config] = None,
    names: Optional[Iterable[str]] = None,
    max_workers: Optional[int] = None,
) -> ReportBundle:
    """
    Compute the requested reports (all by default) in parallel.
    A failing report is logged and recorded in ``errors``; the others still complete.
    """
    config = config or load_config()
    selected: List[str] = list(names) if names is not None else list(REPORTS)
    unknown = [name for name in selected if name not in REPORTS]
    if unknown:
        raise KeyError(f"Unknown report(s): {', '.join(unknown)}")

    start = time.perf_counter()
    bundle = ReportBundle()
    outcomes: Dict[str, Any] = {}
    workers = max_workers or config.max_workers
    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_name = {executor.submit(_run_one, name, snapshot, config): name for name in selected}
        for future in as_completed(future_to_name):
            name = future_to_name[future]
            try:
                outcomes[name] = future.result()
            except Exception as exc:
                _LOGGER.exception("[PIPELINE] Report %s failed: %s", name, exc)
                bundle.errors[name] = str(exc)

    for name in selected:
        if name not in outcomes:
            continue
        result, issues = outcomes[name]
        bundle.results[name] = result
        if issues:
            bundle.issues[name] = issues.as_dict()

    bundle.elapsed_ms = int((time.perf_counter() - start) * 1000)
    _LOGGER.info(
        "[PIPELINE] Completed %d/%d reports in %d ms (workers=%d)",
        len(bundle.results), len(selected), bundle.elapsed_ms, workers,
    )
    return bundle


__all__ = ["REPORTS", "ReportBundle", "run_reports"]
