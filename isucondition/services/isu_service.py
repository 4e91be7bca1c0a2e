"""
Request-level operations over the condition pipeline.

Each operation opens at most one store snapshot, so a device list and the
readings joined onto it reflect one point in time. Unknown Isu and rejected
input come back as `Result.err`; `StoreError` and `ClassificationError` are
raised and abort the request.
"""

from collections.abc import Collection, Sequence
from datetime import datetime

from isucondition.config import AppConfig
from isucondition.domain.models import (
    ConditionLevel,
    ConditionSummary,
    Isu,
    IsuCondition,
    IsuGraph,
    IsuSummary,
)
from isucondition.errors import (
    ClassificationError,
    InvalidConditionFormatError,
    IsuNotFoundError,
    StoreError,
)
from isucondition.log import get_logger
from isucondition.result import Result
from isucondition.services.condition_level import calculate_condition_level, parse_condition_flags
from isucondition.services.condition_store import ConditionStore
from isucondition.services.graph_aggregator import aggregate
from isucondition.services.graph_buckets import build_hour_buckets, day_window
from isucondition.services.latest_condition import join_latest_conditions, summarize_condition

logger = get_logger(__name__)

DAY_LABEL_FORMAT = "%Y/%m/%d"


class IsuConditionService:
    """Orchestrates store reads, classification and graph aggregation per request."""

    def __init__(self, store: ConditionStore, config: AppConfig) -> None:
        self.store = store
        self.config = config
        self.tz = config.graph.tzinfo
        self.logger = logger.bind(component="isu_condition_service")

    async def list_isu(self, jia_user_id: str) -> list[IsuSummary]:
        """The user's Isu, most recently registered first, each with its latest condition."""
        try:
            async with self.store.snapshot() as snapshot:
                isu_list = await snapshot.list_isu(jia_user_id)
                summaries = await join_latest_conditions(snapshot, isu_list)
        except (StoreError, ClassificationError) as e:
            self.logger.exception("isu_list_failed", jia_user_id=jia_user_id, error=str(e))
            raise

        self.logger.info("isu_list_built", jia_user_id=jia_user_id, isu_count=len(summaries))
        return summaries

    async def get_isu(self, jia_user_id: str, jia_isu_uuid: str) -> Result[Isu, IsuNotFoundError]:
        async with self.store.snapshot() as snapshot:
            isu = await snapshot.get_isu(jia_user_id, jia_isu_uuid)
        if isu is None:
            return Result.err(IsuNotFoundError(jia_isu_uuid))
        return Result.ok(isu)

    async def get_isu_graph(
        self, jia_user_id: str, jia_isu_uuid: str, graph_date: datetime
    ) -> Result[IsuGraph, IsuNotFoundError]:
        """
        Hourly graph for the local day containing `graph_date`.

        `graph_date` must already be parsed; malformed dates are rejected by
        the request layer.
        """
        start, end = day_window(graph_date, self.tz)

        try:
            async with self.store.snapshot() as snapshot:
                isu = await snapshot.get_isu(jia_user_id, jia_isu_uuid)
                if isu is None:
                    return Result.err(IsuNotFoundError(jia_isu_uuid))
                conditions = await snapshot.get_conditions(jia_isu_uuid, start, end)

            buckets = build_hour_buckets(
                conditions, start, self.tz, self.config.graph.expected_readings_per_hour
            )
            graph = aggregate(buckets, self.tz)
        except (StoreError, ClassificationError) as e:
            self.logger.exception("isu_graph_failed", jia_isu_uuid=jia_isu_uuid, error=str(e))
            raise

        self.logger.info(
            "isu_graph_built",
            jia_isu_uuid=jia_isu_uuid,
            day=start.date().isoformat(),
            condition_count=len(conditions),
            overall_score=graph.overall_score,
        )
        return Result.ok(
            IsuGraph(day=start.strftime(DAY_LABEL_FORMAT), buckets=buckets, graph=graph)
        )

    async def get_isu_conditions(
        self,
        jia_user_id: str,
        jia_isu_uuid: str,
        end_time: datetime,
        condition_levels: Collection[ConditionLevel],
        start_time: datetime | None = None,
        limit: int | None = None,
    ) -> Result[list[ConditionSummary], IsuNotFoundError]:
        """Newest readings before `end_time` whose level is one of `condition_levels`."""
        if limit is None:
            limit = self.config.graph.condition_list_limit
        levels = set(condition_levels)

        async with self.store.snapshot() as snapshot:
            isu = await snapshot.get_isu(jia_user_id, jia_isu_uuid)
            if isu is None:
                return Result.err(IsuNotFoundError(jia_isu_uuid))
            conditions = await snapshot.get_conditions_before(jia_isu_uuid, end_time, start_time)

        summaries: list[ConditionSummary] = []
        for condition in conditions:
            if len(summaries) >= limit:
                break
            if calculate_condition_level(condition.condition) not in levels:
                continue
            summaries.append(summarize_condition(condition, isu.name))
        return Result.ok(summaries)

    async def post_conditions(
        self, jia_isu_uuid: str, readings: Sequence[IsuCondition]
    ) -> Result[int, IsuNotFoundError | InvalidConditionFormatError]:
        """Validate then append readings for a registered Isu; nothing is written on rejection."""
        for reading in readings:
            if reading.jia_isu_uuid != jia_isu_uuid:
                return Result.err(
                    InvalidConditionFormatError(
                        f"reading for {reading.jia_isu_uuid} posted to {jia_isu_uuid}"
                    )
                )
            try:
                parse_condition_flags(reading.condition)
            except InvalidConditionFormatError as e:
                self.logger.warning("condition_rejected", jia_isu_uuid=jia_isu_uuid, error=str(e))
                return Result.err(e)

        async with self.store.snapshot() as snapshot:
            if not await snapshot.isu_exists(jia_isu_uuid):
                return Result.err(IsuNotFoundError(jia_isu_uuid))

        written = await self.store.add_conditions(readings)
        self.logger.info("conditions_posted", jia_isu_uuid=jia_isu_uuid, count=written)
        return Result.ok(written)

    async def register_isu(
        self, jia_user_id: str, jia_isu_uuid: str, name: str, character: str | None = None
    ) -> Isu:
        """Record a new Isu; activation with the device service happens elsewhere."""
        return await self.store.add_isu(jia_user_id, jia_isu_uuid, name, character)
