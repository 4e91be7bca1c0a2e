"""
Tests for hourly bucketing in `isucondition/services/graph_buckets.py`.
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from isucondition.domain.models import IsuCondition
from isucondition.errors import ClassificationError
from isucondition.services.graph_buckets import (
    HOURS_PER_DAY,
    build_hour_buckets,
    calculate_graph_data,
    day_start,
    day_window,
)

TOKYO = ZoneInfo("Asia/Tokyo")
DAY = datetime(2021, 8, 1, tzinfo=TOKYO)

INFO = "is_dirty=false,is_overweight=false,is_broken=false"
WARNING = "is_dirty=true,is_overweight=false,is_broken=false"
CRITICAL = "is_dirty=true,is_overweight=true,is_broken=true"


def reading(at: datetime, condition: str = INFO, is_sitting: bool = False) -> IsuCondition:
    return IsuCondition(
        jia_isu_uuid="isu-1", timestamp=at, is_sitting=is_sitting, condition=condition
    )


class TestDayWindow:
    def test_day_start_truncates_to_local_midnight(self) -> None:
        # 2021-08-01 15:30 UTC is already 2021-08-02 in Tokyo
        assert day_start(datetime(2021, 8, 1, 15, 30, tzinfo=UTC), TOKYO) == datetime(
            2021, 8, 2, tzinfo=TOKYO
        )

    def test_naive_date_is_local(self) -> None:
        assert day_start(datetime(2021, 8, 1, 23, 59), TOKYO) == DAY

    def test_window_spans_one_day(self) -> None:
        start, end = day_window(DAY + timedelta(hours=5), TOKYO)

        assert start == DAY
        assert end - start == timedelta(hours=24)


class TestCalculateGraphData:
    def test_mixed_levels(self) -> None:
        data = calculate_graph_data(
            [
                reading(DAY + timedelta(minutes=10), INFO, is_sitting=True),
                reading(DAY + timedelta(minutes=20), WARNING),
                reading(DAY + timedelta(minutes=40), CRITICAL, is_sitting=True),
            ]
        )

        # (3 + 2 + 1) * 100 // 3 // 3
        assert data.score == 66
        assert data.sitting == 66
        assert data.detail == {"is_dirty": 66, "is_overweight": 33, "is_broken": 33}

    def test_all_info_scores_full_marks(self) -> None:
        data = calculate_graph_data([reading(DAY), reading(DAY + timedelta(minutes=30))])

        assert data.score == 100
        assert data.sitting == 0
        assert data.detail == {"is_dirty": 0, "is_overweight": 0, "is_broken": 0}

    def test_missing_data_tracks_expected_readings(self) -> None:
        data = calculate_graph_data([reading(DAY)], expected_readings_per_hour=6)

        assert data.detail["missing_data"] == 5

    def test_missing_data_never_negative(self) -> None:
        readings = [reading(DAY + timedelta(minutes=m)) for m in range(0, 60, 10)]

        assert calculate_graph_data(readings, expected_readings_per_hour=3).detail[
            "missing_data"
        ] == 0

    def test_unclassifiable_reading_raises(self) -> None:
        with pytest.raises(ClassificationError):
            calculate_graph_data([reading(DAY, "a=true,b=true,c=true,d=true")])


class TestBuildHourBuckets:
    def test_always_builds_a_full_day(self) -> None:
        buckets = build_hour_buckets([], DAY, TOKYO)

        assert len(buckets) == HOURS_PER_DAY
        assert all(bucket.data is None for bucket in buckets)
        assert buckets[0].start_at == DAY
        assert buckets[-1].end_at == DAY + timedelta(hours=24)

    def test_readings_land_in_their_hour(self) -> None:
        readings = [
            reading(DAY + timedelta(hours=5, minutes=59), WARNING),
            reading(DAY + timedelta(minutes=10), INFO, is_sitting=True),
            reading(DAY + timedelta(hours=5), INFO),
        ]

        buckets = build_hour_buckets(readings, DAY + timedelta(hours=12), TOKYO)

        assert buckets[0].data is not None
        assert buckets[0].data.score == 100
        assert buckets[0].data.sitting == 100
        assert buckets[5].data is not None
        assert buckets[5].data.score == 83
        assert buckets[5].condition_timestamps == [
            int((DAY + timedelta(hours=5)).timestamp()),
            int((DAY + timedelta(hours=5, minutes=59)).timestamp()),
        ]
        assert [i for i, b in enumerate(buckets) if b.data is not None] == [0, 5]

    def test_readings_outside_the_day_are_ignored(self) -> None:
        readings = [
            reading(DAY - timedelta(seconds=1), CRITICAL),
            reading(DAY + timedelta(hours=24), CRITICAL),
        ]

        assert all(b.data is None for b in build_hour_buckets(readings, DAY, TOKYO))

    def test_utc_readings_are_bucketed_by_local_hour(self) -> None:
        # 2021-07-31 16:30 UTC is 01:30 in Tokyo
        readings = [reading(datetime(2021, 7, 31, 16, 30, tzinfo=UTC))]

        buckets = build_hour_buckets(readings, DAY, TOKYO)

        assert buckets[1].data is not None


class TestDaylightSavingTime:
    NEW_YORK = ZoneInfo("America/New_York")

    def test_spring_forward_day_uses_real_hours(self) -> None:
        # 2021-03-15 03:30 UTC is 23:30 EDT on the 14th
        readings = [reading(datetime(2021, 3, 15, 3, 30, tzinfo=UTC))]

        buckets = build_hour_buckets(
            readings, datetime(2021, 3, 14, 12, tzinfo=self.NEW_YORK), self.NEW_YORK
        )

        populated = [b.start_at.strftime("%H:%M") for b in buckets if b.data is not None]
        assert populated == ["23:00"]
        labels = [b.start_at.strftime("%H:%M") for b in buckets]
        assert "02:00" not in labels
        assert labels[:3] == ["00:00", "01:00", "03:00"]

    def test_fall_back_day_repeats_the_local_hour(self) -> None:
        # 05:30 and 06:30 UTC are 01:30 EDT and 01:30 EST
        readings = [
            reading(datetime(2021, 11, 7, 5, 30, tzinfo=UTC), WARNING),
            reading(datetime(2021, 11, 7, 6, 30, tzinfo=UTC), CRITICAL),
        ]

        buckets = build_hour_buckets(
            readings, datetime(2021, 11, 7, tzinfo=self.NEW_YORK), self.NEW_YORK
        )

        assert [b.start_at.strftime("%H:%M") for b in buckets[:4]] == [
            "00:00",
            "01:00",
            "01:00",
            "02:00",
        ]
        assert buckets[1].data is not None and buckets[1].data.score == 66
        assert buckets[2].data is not None and buckets[2].data.score == 33

    def test_every_bucket_is_one_elapsed_hour(self) -> None:
        start, end = day_window(datetime(2021, 3, 14, tzinfo=self.NEW_YORK), self.NEW_YORK)
        buckets = build_hour_buckets([], start, self.NEW_YORK)

        assert end.astimezone(UTC) - start.astimezone(UTC) == timedelta(hours=24)
        assert all(
            b.end_at.astimezone(UTC) - b.start_at.astimezone(UTC) == timedelta(hours=1)
            for b in buckets
        )
        assert buckets[-1].end_at == end
