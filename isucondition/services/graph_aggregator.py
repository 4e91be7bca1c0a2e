"""
Turn hourly graph buckets into dashboard series.

Every bucket yields one entry in every series, including buckets without
data, so the dashboard keeps a fixed-width time axis. "-" marks a value that
was not recorded and is never used for a recorded zero.
"""

from collections.abc import Sequence
from datetime import datetime, tzinfo

from isucondition.domain.models import (
    CONDITION_FLAGS,
    MISSING_DATA,
    GraphBucket,
    GraphData,
    GraphResult,
    Tooltip,
)

PLACEHOLDER = "-"

TIME_LABEL_FORMAT = "%H:%M"

_TOOLTIP_FLAGS = (*CONDITION_FLAGS, MISSING_DATA)


def format_time_label(start_at: datetime, tz: tzinfo | None = None) -> str:
    """24-hour HH:MM in `tz`; naive datetimes are formatted as they are."""
    if tz is not None and start_at.tzinfo is not None:
        start_at = start_at.astimezone(tz)
    return start_at.strftime(TIME_LABEL_FORMAT)


def _detail_text(value: int | bool | None) -> str:
    if not value:
        return PLACEHOLDER
    if isinstance(value, bool):
        return "true"
    return str(value)


def build_tooltip(data: GraphData | None) -> Tooltip:
    if data is None:
        return Tooltip(**dict.fromkeys(("score", *_TOOLTIP_FLAGS), PLACEHOLDER))
    return Tooltip(
        score=str(data.score),
        **{flag: _detail_text(data.detail.get(flag)) for flag in _TOOLTIP_FLAGS},
    )


def overall_score(scores: Sequence[int]) -> int:
    """Floor of the mean bucket score; 0 when there are no buckets."""
    if not scores:
        return 0
    return sum(scores) // len(scores)


def aggregate(buckets: Sequence[GraphBucket], tz: tzinfo | None = None) -> GraphResult:
    """Build score/sitting series, time labels, tooltips and the overall score."""
    result = GraphResult()
    for bucket in buckets:
        data = bucket.data
        result.score_series.append(data.score if data is not None else 0)
        result.sitting_series.append(data.sitting if data is not None else 0)
        result.time_labels.append(format_time_label(bucket.start_at, tz))
        result.tooltips.append(build_tooltip(data))

    result.overall_score = overall_score(result.score_series)
    return result
