"""
Tests for dashboard graph aggregation in `isucondition/services/graph_aggregator.py`.

Covers:
- Series values for populated and missing buckets
- Overall score flooring and the empty-input case
- Tooltip placeholders versus recorded values
- Time labels in the graph timezone
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from hypothesis import given
from hypothesis import strategies as st

from isucondition.domain.models import GraphBucket, GraphData, Tooltip
from isucondition.services.graph_aggregator import (
    PLACEHOLDER,
    aggregate,
    build_tooltip,
    format_time_label,
    overall_score,
)

TOKYO = ZoneInfo("Asia/Tokyo")
DAY_START = datetime(2021, 8, 1, tzinfo=TOKYO)


def make_bucket(hour: int, data: GraphData | None) -> GraphBucket:
    start_at = DAY_START + timedelta(hours=hour)
    return GraphBucket(start_at=start_at, end_at=start_at + timedelta(hours=1), data=data)


def scored(score: int, sitting: int = 0, **detail: int | bool) -> GraphData:
    return GraphData(score=score, sitting=sitting, detail=detail)


graph_data = st.builds(
    GraphData,
    score=st.integers(min_value=0, max_value=100),
    sitting=st.integers(min_value=0, max_value=100),
    detail=st.fixed_dictionaries(
        {},
        optional={
            "is_dirty": st.integers(min_value=0, max_value=100),
            "is_overweight": st.integers(min_value=0, max_value=100),
            "is_broken": st.integers(min_value=0, max_value=100),
            "missing_data": st.integers(min_value=0, max_value=10),
        },
    ),
)


class TestAggregate:
    def test_empty_buckets_give_empty_series_and_zero_score(self) -> None:
        result = aggregate([])

        assert result.score_series == []
        assert result.sitting_series == []
        assert result.time_labels == []
        assert result.tooltips == []
        assert result.overall_score == 0

    @pytest.mark.parametrize(
        "scores,expected",
        [([10, 20, 30], 20), ([10, 15], 12), ([100], 100), ([0, 0, 1], 0)],
    )
    def test_overall_score_is_floored_mean(self, scores: list[int], expected: int) -> None:
        buckets = [make_bucket(hour, scored(score)) for hour, score in enumerate(scores)]

        assert aggregate(buckets, TOKYO).overall_score == expected

    def test_missing_buckets_count_as_zero_score(self) -> None:
        buckets = [make_bucket(0, scored(90, sitting=50)), make_bucket(1, None)]

        result = aggregate(buckets, TOKYO)

        assert result.score_series == [90, 0]
        assert result.sitting_series == [50, 0]
        assert result.overall_score == 45

    def test_labels_are_produced_for_missing_buckets(self) -> None:
        buckets = [make_bucket(hour, None) for hour in (0, 9, 23)]

        assert aggregate(buckets, TOKYO).time_labels == ["00:00", "09:00", "23:00"]

    @given(buckets=st.lists(st.one_of(st.none(), graph_data), max_size=30))
    def test_series_lengths_match_bucket_count(self, buckets: list[GraphData | None]) -> None:
        """Property: every bucket yields exactly one entry in every series."""
        result = aggregate([make_bucket(i % 24, data) for i, data in enumerate(buckets)], TOKYO)

        assert len(result.score_series) == len(buckets)
        assert len(result.sitting_series) == len(buckets)
        assert len(result.time_labels) == len(buckets)
        assert len(result.tooltips) == len(buckets)
        if buckets:
            assert result.overall_score == sum(result.score_series) // len(buckets)


class TestTooltips:
    def test_missing_bucket_uses_placeholder_everywhere(self) -> None:
        assert build_tooltip(None) == Tooltip(
            score=PLACEHOLDER,
            is_dirty=PLACEHOLDER,
            is_overweight=PLACEHOLDER,
            is_broken=PLACEHOLDER,
            missing_data=PLACEHOLDER,
        )

    def test_recorded_values_are_stringified(self) -> None:
        tooltip = build_tooltip(scored(66, is_dirty=66, is_overweight=33, is_broken=33))

        assert tooltip.score == "66"
        assert tooltip.is_dirty == "66"
        assert tooltip.is_overweight == "33"
        assert tooltip.is_broken == "33"
        assert tooltip.missing_data == PLACEHOLDER

    def test_zero_or_false_detail_uses_placeholder(self) -> None:
        tooltip = build_tooltip(scored(100, is_dirty=0, is_overweight=False, missing_data=2))

        assert tooltip.is_dirty == PLACEHOLDER
        assert tooltip.is_overweight == PLACEHOLDER
        assert tooltip.is_broken == PLACEHOLDER
        assert tooltip.missing_data == "2"

    def test_true_detail_renders_lowercase(self) -> None:
        assert build_tooltip(scored(50, is_broken=True)).is_broken == "true"

    def test_zero_score_is_not_a_placeholder(self) -> None:
        assert build_tooltip(scored(0)).score == "0"


class TestTimeLabels:
    def test_utc_start_is_rendered_in_graph_timezone(self) -> None:
        start_at = datetime(2021, 7, 31, 15, 0, tzinfo=UTC)

        assert format_time_label(start_at, TOKYO) == "00:00"

    def test_naive_start_is_rendered_as_is(self) -> None:
        assert format_time_label(datetime(2021, 8, 1, 7, 5)) == "07:05"


def test_overall_score_helper_handles_empty_input() -> None:
    assert overall_score([]) == 0
