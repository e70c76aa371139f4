import math

import pandas as pd
import pytest

from analytics.aggregate import NullPolicy, aggregate, complete_rows, mean_of
from analytics.errors import DataIssue, DataIssues


@pytest.fixture
def rows():
    return pd.DataFrame(
        {
            "city": ["Rio", "Rio", None, "", "Rome"],
            "kind": ["a", "b", "a", "a", "a"],
            "price": [10.0, 30.0, 5.0, 7.0, None],
            "listing_id": [1, 1, 2, 3, 4],
        }
    )


def test_absent_keys_fall_into_unknown_bucket(rows):
    result = aggregate(rows, "city", {"avg_price": "price"}).set_index("city")
    assert result.loc["Unknown", "count"] == 2
    assert result.loc["Unknown", "avg_price"] == pytest.approx(6.0)
    assert result.loc["Rio", "avg_price"] == pytest.approx(20.0)


def test_composite_keys(rows):
    result = aggregate(rows, ["city", "kind"], ["price"])
    assert len(result) == 4
    rio_b = result[(result["city"] == "Rio") & (result["kind"] == "b")]
    assert rio_b["price"].iloc[0] == 30.0


@pytest.mark.parametrize(
    "policy,expected",
    [(NullPolicy.ZERO_FILL, 0.0), (NullPolicy.UNKNOWN_LABEL, "Unknown"), (NullPolicy.PROPAGATE_NULL, None)],
)
def test_null_policy_for_group_without_values(rows, policy, expected):
    result = aggregate(rows, "city", {"avg_price": "price"}, null_policy=policy).set_index("city")
    assert result.loc["Rome", "avg_price"] == expected
    assert result.loc["Rome", "count"] == 1


def test_count_distinct(rows):
    result = aggregate(rows, "city", count_name="listings", count_distinct="listing_id").set_index("city")
    assert result.loc["Rio", "listings"] == 1
    assert result.loc["Unknown", "listings"] == 2


def test_rounding_and_issue_counts(rows):
    issues = DataIssues()
    frame = pd.DataFrame({"city": ["A", "A", "A"], "price": [1.0, 1.0, 2.0]})
    result = aggregate(frame, "city", {"avg": "price"}, decimals=2, issues=issues)
    assert result["avg"].iloc[0] == 1.33

    aggregate(rows, "city", {"avg": "price"}, issues=issues)
    assert issues.count(DataIssue.NULL_METRIC) == 1
    assert issues.count(DataIssue.EMPTY_PARTITION) == 1


def test_empty_frame_returns_columns_only():
    result = aggregate(pd.DataFrame(columns=["city", "price"]), "city", {"avg": "price"})
    assert result.empty
    assert list(result.columns) == ["city", "count", "avg"]


def test_mean_of_and_complete_rows():
    assert mean_of([1, None, 3]) == 2.0
    assert mean_of([], NullPolicy.ZERO_FILL) == 0.0
    assert mean_of([None], NullPolicy.PROPAGATE_NULL) is None
    assert math.isclose(mean_of([1, 2, 2], decimals=2), 1.67)

    frame = pd.DataFrame({"a": [1, None, 3], "b": [1, 2, None]})
    assert complete_rows(frame, ["a", "b"]).index.tolist() == [0]
