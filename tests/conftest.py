from pathlib import Path

import pandas as pd
import pytest

from analytics.config import Config
from analytics.snapshot import Snapshot


def score_row(listing_id, host_id, overall, clean, location, value, accuracy, communication):
    return {
        "listing_id": listing_id,
        "host_id": host_id,
        "overall_rating": overall,
        "cleanliness_score": clean,
        "location_score": location,
        "value_score": value,
        "accuracy_score": accuracy,
        "communication_score": communication,
    }


@pytest.fixture
def config():
    return Config(duckdb_path=Path("unused.duckdb"))


@pytest.fixture
def listings_df():
    return pd.DataFrame(
        [
            {"listing_id": 1, "host_id": 1, "city": "Istanbul", "property_type": "Entire rental unit", "price": 10},
            {"listing_id": 2, "host_id": 1, "city": "Istanbul", "property_type": "Entire rental unit", "price": 20},
            {"listing_id": 3, "host_id": 2, "city": "Istanbul", "property_type": "Private room in home", "price": 30},
            {"listing_id": 4, "host_id": 2, "city": "Paris", "property_type": "Entire rental unit", "price": 100},
            {"listing_id": 5, "host_id": 3, "city": "Paris", "property_type": "Private room", "price": 50},
            {"listing_id": 6, "host_id": 3, "city": "Paris", "property_type": "Yurt", "price": 40},
            {"listing_id": 7, "host_id": 1, "city": None, "property_type": "Entire home", "price": 70},
            {"listing_id": 8, "host_id": 3, "city": "Atlantis", "property_type": None, "price": 500},
        ]
    )


@pytest.fixture
def hosts_df():
    return pd.DataFrame(
        [
            {"host_id": 1, "profile_pic": "t", "identity_verified": "t"},
            {"host_id": 2, "profile_pic": "t", "identity_verified": "f"},
            {"host_id": 3, "profile_pic": "f", "identity_verified": "f"},
        ]
    )


@pytest.fixture
def reviews_df():
    return pd.DataFrame(
        [
            score_row(1, 1, 90, 9, 9, 9, 9, 10),
            score_row(2, 1, 80, 8, 8, 8, 8, 8),
            score_row(3, 2, 100, 10, 10, 10, 10, 10),
            score_row(4, 2, 95, 9, 10, 9, 9, 10),
            score_row(6, 3, 85, 8, 7, 7, 9, 9),
            score_row(5, 3, 70, None, 6, 6, 6, 6),
            score_row(7, 1, 60, 6, 6, 6, 6, 6),
            score_row(999, 42, 50, 5, 5, 5, 5, 5),
        ]
    )


@pytest.fixture
def rates_df():
    return pd.DataFrame([{"city": "Istanbul", "exchange_rate": 1.0}, {"city": "Paris", "exchange_rate": 1.1}])


@pytest.fixture
def snapshot(listings_df, hosts_df, reviews_df, rates_df):
    return Snapshot.from_frames(listings_df, hosts_df, reviews_df, rates_df)


def make_snapshot(listings, reviews=(), hosts=(), rates=()):
    """Build a snapshot from plain row dicts, filling empty relations with their columns."""
    listing_cols = ["listing_id", "host_id", "city", "property_type", "price"]
    review_cols = list(score_row(0, 0, 0, 0, 0, 0, 0, 0))
    return Snapshot.from_frames(
        pd.DataFrame(list(listings), columns=listing_cols),
        pd.DataFrame(list(hosts), columns=["host_id", "profile_pic", "identity_verified"]),
        pd.DataFrame(list(reviews), columns=review_cols),
        pd.DataFrame(list(rates), columns=["city", "exchange_rate"]),
    )


@pytest.fixture
def build_snapshot():
    return make_snapshot
