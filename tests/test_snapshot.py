import duckdb
import pandas as pd
import pytest

from analytics.errors import SchemaError
from analytics.snapshot import Snapshot, coerce_flag, normalize_label


def test_missing_column_is_a_hard_failure(listings_df, hosts_df, reviews_df, rates_df):
    with pytest.raises(SchemaError) as excinfo:
        Snapshot.from_frames(listings_df.drop(columns=["price"]), hosts_df, reviews_df, rates_df)
    assert excinfo.value.relation == "listings"
    assert excinfo.value.missing == ["price"]


def test_non_frame_relation_rejected(listings_df, hosts_df, reviews_df):
    with pytest.raises(SchemaError):
        Snapshot.from_frames(listings_df, hosts_df, reviews_df, [{"city": "Paris"}])


def test_null_labels_normalized_to_unknown(snapshot):
    listings = snapshot.listings.set_index("listing_id")
    assert listings.loc[7, "city"] == "Unknown"
    assert listings.loc[8, "property_type"] == "Unknown"


def test_inputs_are_not_mutated(listings_df, hosts_df, reviews_df, rates_df):
    before = listings_df.copy()
    Snapshot.from_frames(listings_df, hosts_df, reviews_df, rates_df)
    pd.testing.assert_frame_equal(listings_df, before)


def test_host_flags_coerced(snapshot):
    hosts = snapshot.hosts.set_index("host_id")
    assert bool(hosts.loc[1, "profile_pic"]) is True
    assert bool(hosts.loc[2, "identity_verified"]) is False


@pytest.mark.parametrize(
    "value,expected",
    [("t", True), ("f", False), ("TRUE", True), (True, True), (1, True), (0, False), (None, False), (float("nan"), False)],
)
def test_coerce_flag(value, expected):
    assert coerce_flag(value) is expected


def test_normalize_label_blank_and_whitespace():
    result = normalize_label(pd.Series(["  Rome ", "", None, "Rio"]))
    assert result.tolist() == ["Rome", "Unknown", "Unknown", "Rio"]


def test_duplicate_and_invalid_rates(listings_df, hosts_df, reviews_df):
    rates = pd.DataFrame(
        [
            {"city": "Paris", "exchange_rate": 1.1},
            {"city": "Paris", "exchange_rate": 9.9},
            {"city": "Rome", "exchange_rate": 0},
        ]
    )
    snapshot = Snapshot.from_frames(listings_df, hosts_df, reviews_df, rates)
    assert snapshot.exchange_rates.to_dict(orient="records") == [{"city": "Paris", "exchange_rate": 1.1}]


def test_rates_without_city_are_dropped(listings_df, hosts_df, reviews_df):
    rates = pd.DataFrame(
        [
            {"city": " Paris ", "exchange_rate": 1.1},
            {"city": None, "exchange_rate": 2.0},
            {"city": "   ", "exchange_rate": 3.0},
        ]
    )
    snapshot = Snapshot.from_frames(listings_df, hosts_df, reviews_df, rates)
    assert snapshot.exchange_rates.to_dict(orient="records") == [{"city": "Paris", "exchange_rate": 1.1}]


def test_from_duckdb_connection(listings_df, hosts_df, reviews_df, rates_df):
    con = duckdb.connect()
    try:
        con.register("property_details", listings_df)
        con.register("host_information", hosts_df)
        con.register("listing_reviews", reviews_df)
        con.register("exchange_rates", rates_df)
        snapshot = Snapshot.from_duckdb(con)
    finally:
        con.close()
    assert len(snapshot.listings) == len(listings_df)
    assert set(snapshot.exchange_rates["city"]) == {"Istanbul", "Paris"}


def test_from_duckdb_missing_table(listings_df):
    con = duckdb.connect()
    try:
        con.register("property_details", listings_df)
        with pytest.raises(SchemaError) as excinfo:
            Snapshot.from_duckdb(con)
    finally:
        con.close()
    assert excinfo.value.relation == "hosts"
