import pandas as pd
import pytest

from analytics.ranking import Direction, RankMode, dense_rank, rank, row_number, top_n


def test_dense_rank_ties_share_rank_and_advance_by_one():
    frame = pd.DataFrame({"city": ["A", "B", "C", "D"], "price": [50.0, 20.0, 50.0, 70.0]})
    ranked = dense_rank(frame, "price").set_index("city")["rank"].to_dict()
    assert ranked == {"B": 1, "A": 2, "C": 2, "D": 3}


def test_dense_rank_is_non_decreasing_in_metric():
    frame = pd.DataFrame({"city": list("abcdefg"), "price": [3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0]})
    ranked = dense_rank(frame, "price").sort_values("price")
    assert ranked["rank"].is_monotonic_increasing
    assert ranked["rank"].min() == 1


def test_dense_rank_within_partition_descending():
    frame = pd.DataFrame({"p": ["x", "x", "y"], "v": [1, 2, 5]})
    ranked = dense_rank(frame, "v", partition="p", direction=Direction.DESC)
    assert ranked["rank"].tolist() == [2, 1, 1]


def test_row_number_unique_and_gapless_per_partition():
    frame = pd.DataFrame(
        {
            "city": ["A", "A", "A", "A", "B"],
            "property_type": ["Loft", "Boat", "Castle", "Yurt", "Boat"],
            "listing_count": [5, 5, 5, 1, 2],
        }
    )
    ranked = row_number(
        frame, "listing_count", partition="city", direction=Direction.DESC, tie_break=("property_type",)
    )
    for _, group in ranked.groupby("city"):
        assert group["rank"].tolist() == list(range(1, len(group) + 1))
    city_a = ranked[ranked["city"] == "A"]["property_type"].tolist()
    assert city_a == ["Boat", "Castle", "Loft", "Yurt"]


def test_row_number_is_reproducible_under_input_order():
    frame = pd.DataFrame({"city": ["A"] * 3, "property_type": ["c", "a", "b"], "listing_count": [1, 1, 1]})
    first = row_number(frame, "listing_count", partition="city", tie_break=("property_type",))
    second = row_number(frame.iloc[::-1], "listing_count", partition="city", tie_break=("property_type",))
    pd.testing.assert_frame_equal(first, second)


def test_top_n_returns_whole_small_partition():
    frame = pd.DataFrame({"city": ["A", "A", "A", "B"], "n": [3, 2, 1, 9]})
    ranked = rank(frame, "n", mode=RankMode.ROW_NUMBER, partition="city", direction=Direction.DESC)
    kept = top_n(ranked, 2)
    assert kept.groupby("city").size().to_dict() == {"A": 2, "B": 1}


def test_top_n_rejects_non_positive():
    with pytest.raises(ValueError):
        top_n(pd.DataFrame({"rank": [1]}), 0)


def test_empty_frames_rank_cleanly():
    empty = pd.DataFrame(columns=["city", "v"])
    assert dense_rank(empty, "v").empty
    assert row_number(empty, "v", partition="city").empty
