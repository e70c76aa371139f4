#!/usr/bin/env python3
"""Run the report catalogue against a DuckDB snapshot and print each table."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from analytics import REPORTS, Snapshot, load_config, run_reports


logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def main(argv: Optional[Sequence[str]] = None) -> int:
    cfg = load_config()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--db", type=Path, default=cfg.duckdb_path, help="DuckDB file with the four tables")
    parser.add_argument("--report", action="append", choices=sorted(REPORTS), help="Limit to these reports")
    parser.add_argument("--out-dir", type=Path, help="Also write one CSV per report here")
    args = parser.parse_args(argv)

    snapshot = Snapshot.from_duckdb(args.db)
    bundle = run_reports(snapshot, cfg, names=args.report)

    if args.out_dir:
        args.out_dir.mkdir(parents=True, exist_ok=True)
    with pd.option_context("display.max_rows", 200, "display.width", 160):
        for name, frame in bundle.to_frames().items():
            print(f"\n== {name} ({len(frame)} rows)")
            print(frame.to_string(index=False))
            if args.out_dir:
                frame.to_csv(args.out_dir / f"{name}.csv", index=False)

    for name, counts in bundle.issues.items():
        logging.info("Data issues in %s: %s", name, counts)
    for name, error in bundle.errors.items():
        logging.error("Report %s failed: %s", name, error)
    return 0 if bundle.complete else 1


if __name__ == "__main__":
    sys.exit(main())
