#!/usr/bin/env python3
"""
Load the four marketplace relations into DuckDB.

- Creates/overwrites db/airbnb.duckdb (or AIRBNB_ANALYTICS_DUCKDB)
- CREATE OR REPLACE TABLE property_details  FROM <data-dir>/property_details.csv
- CREATE OR REPLACE TABLE host_information  FROM <data-dir>/host_information.csv
- CREATE OR REPLACE TABLE listing_reviews   FROM <data-dir>/listing_reviews.csv
- CREATE OR REPLACE TABLE exchange_rates    FROM <data-dir>/exchange_rates.csv
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import duckdb

from analytics.config import TABLE_NAMES, load_config


logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def require_file(path: Path) -> Path:
    if not path.is_file():
        raise FileNotFoundError(f"Expected input file: {path}")
    return path


def main(argv: Optional[Sequence[str]] = None) -> None:
    cfg = load_config()
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--data-dir", type=Path, default=Path("data"), help="Folder holding one CSV per table")
    parser.add_argument("--db", type=Path, default=cfg.duckdb_path, help="Target DuckDB file")
    args = parser.parse_args(argv)

    sources = {table: require_file(args.data_dir / f"{table}.csv") for table in TABLE_NAMES.values()}

    db_path: Path = args.db
    db_path.parent.mkdir(parents=True, exist_ok=True)
    # Start from a clean DB file (safe because we fully rebuild tables below)
    if db_path.exists():
        logging.info("Removing existing DB: %s", db_path)
        db_path.unlink()

    logging.info("Connecting to DuckDB: %s", db_path)
    con = duckdb.connect(str(db_path))
    try:
        for table, csv_path in sources.items():
            logging.info("Creating table '%s' from %s", table, csv_path.name)
            con.execute(
                f"""
                CREATE OR REPLACE TABLE "{table}" AS
                SELECT * FROM read_csv_auto(?, header = true)
                """,
                [str(csv_path)],
            )

        counts = {table: con.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0] for table in sources}
        logging.info("Rows -> %s", " | ".join(f"{table}: {n}" for table, n in counts.items()))
    finally:
        con.close()
        logging.info("DuckDB connection closed.")


if __name__ == "__main__":
    main()
