"""Attach each Isu's most recent condition to the device list."""

from collections.abc import Sequence

from isucondition.domain.models import ConditionSummary, Isu, IsuCondition, IsuSummary
from isucondition.log import get_logger
from isucondition.services.condition_level import calculate_condition_level
from isucondition.services.condition_store import ReadSnapshot

logger = get_logger(__name__)


def summarize_condition(condition: IsuCondition, isu_name: str) -> ConditionSummary:
    """Classify a reading and shape it for display. Raises `ClassificationError`."""
    return ConditionSummary(
        jia_isu_uuid=condition.jia_isu_uuid,
        isu_name=isu_name,
        timestamp=int(condition.timestamp.timestamp()),
        is_sitting=condition.is_sitting,
        condition=condition.condition,
        condition_level=calculate_condition_level(condition.condition),
        message=condition.message,
    )


async def join_latest_conditions(
    snapshot: ReadSnapshot, isu_list: Sequence[Isu]
) -> list[IsuSummary]:
    """
    Build the device list, keeping the order of `isu_list`.

    An Isu that has never reported gets no latest condition. A failing read
    (`StoreError`) or an unclassifiable reading (`ClassificationError`) aborts
    the whole list; partial lists are never returned.
    """
    summaries: list[IsuSummary] = []
    for isu in isu_list:
        latest = await snapshot.get_latest_condition(isu.jia_isu_uuid)
        summaries.append(
            IsuSummary(
                id=isu.id,
                jia_isu_uuid=isu.jia_isu_uuid,
                name=isu.name,
                character=isu.character,
                latest_isu_condition=(
                    summarize_condition(latest, isu.name) if latest is not None else None
                ),
            )
        )

    logger.debug(
        "latest_conditions_joined",
        isu_count=len(summaries),
        without_condition=sum(1 for s in summaries if s.latest_isu_condition is None),
    )
    return summaries
