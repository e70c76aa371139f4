"""Currency-normalized, city-partitioned analytics over a short-term-rental marketplace snapshot."""
from .aggregate import NullPolicy, aggregate
from .config import Config, load_config
from .errors import AnalyticsError, DataIssue, DataIssues, SchemaError
from .pipeline import REPORTS, ReportBundle, run_reports
from .ranking import Direction, RankMode
from .snapshot import Snapshot

__all__ = [
    "AnalyticsError",
    "Config",
    "DataIssue",
    "DataIssues",
    "Direction",
    "NullPolicy",
    "REPORTS",
    "RankMode",
    "ReportBundle",
    "SchemaError",
    "Snapshot",
    "aggregate",
    "load_config",
    "run_reports",
]
