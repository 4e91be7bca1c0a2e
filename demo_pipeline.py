"""
End-to-end walkthrough of the condition pipeline.

This script:
1. Seeds a temporary SQLite store with two Isu and a day of readings
2. Lists the Isu with their latest condition
3. Builds today's graph for the Isu that reported
4. Shows how a malformed condition is rejected

Run with: uv run python demo_pipeline.py
"""

import asyncio
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from isucondition.adapters.sql_store import SqlConditionStore
from isucondition.config import (
    APIConfig,
    AppConfig,
    DatabaseConfig,
    LoggingConfig,
    validate_config,
)
from isucondition.domain.models import IsuCondition
from isucondition.log import configure_logging
from isucondition.services.isu_service import IsuConditionService

console = Console()

USER_ID = "demo-user"

# One reading every 20 minutes, cycling through the severity levels
CONDITION_CYCLE = [
    "is_dirty=false,is_overweight=false,is_broken=false",
    "is_dirty=true,is_overweight=false,is_broken=false",
    "is_dirty=true,is_overweight=true,is_broken=false",
    "is_dirty=true,is_overweight=true,is_broken=true",
]


def demo_readings(jia_isu_uuid: str, day_start: datetime, hours: int) -> list[IsuCondition]:
    readings = []
    for i in range(hours * 3):
        readings.append(
            IsuCondition(
                jia_isu_uuid=jia_isu_uuid,
                timestamp=day_start + timedelta(minutes=20 * i),
                is_sitting=i % 2 == 0,
                condition=CONDITION_CYCLE[(i // 3) % len(CONDITION_CYCLE)],
                message="demo reading",
            )
        )
    return readings


async def seed(service: IsuConditionService) -> str:
    """Register two Isu and post readings for the first one."""
    active = await service.register_isu(USER_ID, "isu-active", "Pochi", "Kind")
    await service.register_isu(USER_ID, "isu-new", "Tama", None)

    day_start = datetime.now(service.tz).replace(hour=0, minute=0, second=0, microsecond=0)
    result = await service.post_conditions(
        active.jia_isu_uuid, demo_readings(active.jia_isu_uuid, day_start, hours=10)
    )
    console.print(f"Posted {result.unwrap()} readings for {active.name}", style="green")
    return active.jia_isu_uuid


async def show_isu_list(service: IsuConditionService) -> None:
    console.print(Panel("Isu list", style="blue"))

    table = Table(title="Isu")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Level", style="yellow")
    table.add_column("Latest condition")

    for summary in await service.list_isu(USER_ID):
        latest = summary.latest_isu_condition
        table.add_row(
            str(summary.id),
            summary.name,
            latest.condition_level.value if latest else "-",
            latest.condition if latest else "no data yet",
        )
    console.print(table)


async def show_graph(service: IsuConditionService, jia_isu_uuid: str) -> None:
    console.print(Panel("Today's graph", style="blue"))

    isu_graph = (await service.get_isu_graph(USER_ID, jia_isu_uuid, datetime.now(UTC))).unwrap()
    graph = isu_graph.graph

    table = Table(title=f"{isu_graph.day} overall score {graph.overall_score}")
    for column in ("Time", "Score", "Sitting", "Dirty", "Overweight", "Broken"):
        table.add_column(column)

    for label, tooltip, sitting in zip(
        graph.time_labels, graph.tooltips, graph.sitting_series, strict=True
    ):
        table.add_row(
            label,
            tooltip.score,
            str(sitting),
            tooltip.is_dirty,
            tooltip.is_overweight,
            tooltip.is_broken,
        )
    console.print(table)


async def show_rejection(service: IsuConditionService, jia_isu_uuid: str) -> None:
    console.print(Panel("Malformed condition", style="blue"))

    result = await service.post_conditions(
        jia_isu_uuid,
        [
            IsuCondition(
                jia_isu_uuid=jia_isu_uuid,
                timestamp=datetime.now(UTC),
                is_sitting=False,
                condition="is_dirty=maybe",
            )
        ],
    )
    console.print(f"Rejected: {result.unwrap_err()}", style="yellow")


async def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        config = AppConfig(
            database=DatabaseConfig(url=f"sqlite+aiosqlite:///{Path(tmp) / 'demo.db'}"),
            api=APIConfig(post_isucondition_target_base_url="http://localhost:3000"),
            logging=LoggingConfig(level="WARNING", format="console"),
        )
        configure_logging(config.logging)
        validate_config(config)

        store = SqlConditionStore(config.database)
        await store.create_schema()
        service = IsuConditionService(store, config)

        try:
            jia_isu_uuid = await seed(service)
            await show_isu_list(service)
            await show_graph(service, jia_isu_uuid)
            await show_rejection(service, jia_isu_uuid)
        finally:
            await store.dispose()


if __name__ == "__main__":
    asyncio.run(main())
