"""
Domain models for Isu condition tracking.

These models represent the core business concepts and are framework-agnostic.
Stored records are frozen; payload models are rebuilt for every request.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Flags an Isu reports in every condition string
CONDITION_FLAGS = ("is_dirty", "is_overweight", "is_broken")

MISSING_DATA = "missing_data"


class ConditionLevel(str, Enum):
    """Severity level derived from the number of active condition flags."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Isu(BaseModel):
    """A registered Isu device."""

    model_config = ConfigDict(frozen=True)

    id: int
    jia_isu_uuid: str
    name: str
    character: str | None = None
    jia_user_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class IsuCondition(BaseModel):
    """A single condition reading. Append-only, unique per (Isu, timestamp)."""

    model_config = ConfigDict(frozen=True)

    jia_isu_uuid: str
    timestamp: datetime
    is_sitting: bool
    condition: str = Field(description="Serialized flags, e.g. is_dirty=true,is_broken=false")
    message: str = ""

    @field_validator("timestamp")
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are UTC, matching how the store persists them."""
        return v.replace(tzinfo=UTC) if v.tzinfo is None else v


class ConditionSummary(BaseModel):
    """A classified condition reading as shown to the owner."""

    jia_isu_uuid: str
    isu_name: str
    timestamp: int = Field(description="Unix timestamp in seconds")
    is_sitting: bool
    condition: str
    condition_level: ConditionLevel
    message: str


class IsuSummary(BaseModel):
    """An Isu in the device list, with its latest condition when it has one."""

    id: int
    jia_isu_uuid: str
    name: str
    character: str | None = None
    latest_isu_condition: ConditionSummary | None = None

    def to_response(self) -> dict[str, Any]:
        """Render for the device list; the latest condition key is omitted when absent."""
        payload = self.model_dump(mode="json", exclude={"latest_isu_condition"})
        if self.latest_isu_condition is not None:
            payload["latest_isu_condition"] = self.latest_isu_condition.model_dump(mode="json")
        return payload


class GraphData(BaseModel):
    """Aggregated readings of one hour."""

    score: int = Field(ge=0, le=100)
    sitting: int = Field(ge=0, le=100, description="Percentage of readings while sitting")
    detail: dict[str, int | bool] = Field(
        default_factory=dict, description="Per-flag percentage, plus missing_data when tracked"
    )


class GraphBucket(BaseModel):
    """One hourly slot of the dashboard graph. `data` is None when nothing was reported."""

    model_config = ConfigDict(frozen=True)

    start_at: datetime
    end_at: datetime
    data: GraphData | None = None
    condition_timestamps: list[int] = Field(default_factory=list)


class Tooltip(BaseModel):
    """Display strings for one graph slot; "-" means not recorded."""

    score: str
    is_dirty: str
    is_overweight: str
    is_broken: str
    missing_data: str


class GraphResult(BaseModel):
    """Dashboard-ready series, one entry per bucket."""

    score_series: list[int] = Field(default_factory=list)
    sitting_series: list[int] = Field(default_factory=list)
    time_labels: list[str] = Field(default_factory=list)
    overall_score: int = 0
    tooltips: list[Tooltip] = Field(default_factory=list)


class IsuGraph(BaseModel):
    """Graph for one Isu and one local day."""

    day: str = Field(description="Local date label, YYYY/MM/DD")
    buckets: list[GraphBucket]
    graph: GraphResult
