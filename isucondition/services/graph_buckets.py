"""
Group one local day of readings into 24 hourly graph buckets.

Per hour, each reading scores 3 (info), 2 (warning) or 1 (critical); the
bucket score is that sum scaled to 0..100. Sitting and flag values are
percentages of the hour's readings.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta, tzinfo

from isucondition.domain.models import (
    CONDITION_FLAGS,
    MISSING_DATA,
    GraphBucket,
    GraphData,
    IsuCondition,
)
from isucondition.services.condition_level import (
    LEVEL_SCORES,
    TRUE_MARKER,
    calculate_condition_level,
)

HOURS_PER_DAY = 24
_HOUR = timedelta(hours=1)


def day_start(graph_date: datetime, tz: tzinfo) -> datetime:
    """Local midnight of the day `graph_date` falls on. Naive values are taken as local."""
    if graph_date.tzinfo is None:
        local = graph_date.replace(tzinfo=tz)
    else:
        local = graph_date.astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def hours_after(start: datetime, hours: int, tz: tzinfo) -> datetime:
    """`start` plus `hours` of elapsed time, expressed in `tz`."""
    return (start.astimezone(UTC) + hours * _HOUR).astimezone(tz)


def day_window(graph_date: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """
    Half-open [start, end) of 24 elapsed hours from local midnight of `graph_date`.

    On a DST change day the window ends an hour before or after the next local
    midnight, so every bucket is one real hour long.
    """
    start = day_start(graph_date, tz)
    return start, hours_after(start, HOURS_PER_DAY, tz)


def _flag_is_true(condition: str, flag: str) -> bool:
    return f"{flag}{TRUE_MARKER}" in condition


def calculate_graph_data(
    conditions: list[IsuCondition], expected_readings_per_hour: int | None = None
) -> GraphData:
    """Aggregate a non-empty list of readings. Raises `ClassificationError`."""
    raw_score = 0
    sitting_count = 0
    flag_counts = dict.fromkeys(CONDITION_FLAGS, 0)

    for condition in conditions:
        raw_score += LEVEL_SCORES[calculate_condition_level(condition.condition)]
        if condition.is_sitting:
            sitting_count += 1
        for flag in CONDITION_FLAGS:
            if _flag_is_true(condition.condition, flag):
                flag_counts[flag] += 1

    count = len(conditions)
    detail: dict[str, int | bool] = {
        flag: flag_count * 100 // count for flag, flag_count in flag_counts.items()
    }
    if expected_readings_per_hour is not None:
        detail[MISSING_DATA] = max(0, expected_readings_per_hour - count)

    return GraphData(
        score=raw_score * 100 // 3 // count,
        sitting=sitting_count * 100 // count,
        detail=detail,
    )


def build_hour_buckets(
    conditions: Iterable[IsuCondition],
    graph_date: datetime,
    tz: tzinfo,
    expected_readings_per_hour: int | None = None,
) -> list[GraphBucket]:
    """
    Build the 24 buckets of the local day containing `graph_date`.

    Readings outside the day are ignored. Hours without readings get a bucket
    with `data=None` so the graph keeps a full time axis.
    """
    start, end = day_window(graph_date, tz)
    start_utc = start.astimezone(UTC)

    by_hour: dict[int, list[IsuCondition]] = defaultdict(list)
    for condition in conditions:
        if not start <= condition.timestamp < end:
            continue
        elapsed = condition.timestamp.astimezone(UTC) - start_utc
        by_hour[int(elapsed // _HOUR)].append(condition)

    buckets = []
    for hour in range(HOURS_PER_DAY):
        start_at = hours_after(start, hour, tz)
        hour_conditions = sorted(by_hour.get(hour, []), key=lambda c: c.timestamp)
        buckets.append(
            GraphBucket(
                start_at=start_at,
                end_at=hours_after(start, hour + 1, tz),
                data=(
                    calculate_graph_data(hour_conditions, expected_readings_per_hour)
                    if hour_conditions
                    else None
                ),
                condition_timestamps=[int(c.timestamp.timestamp()) for c in hour_conditions],
            )
        )
    return buckets
