"""
Relational condition store on SQLAlchemy's async engine.

Timestamps are persisted as naive UTC and returned as aware UTC datetimes.
Every SQLAlchemy failure is re-raised as `StoreError` so callers never see
driver exceptions.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    insert,
    select,
)
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from isucondition.config import DatabaseConfig
from isucondition.domain.models import Isu, IsuCondition
from isucondition.errors import StoreError
from isucondition.log import get_logger

logger = get_logger(__name__)

metadata = MetaData()

isu_table = Table(
    "isu",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("jia_isu_uuid", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("image", LargeBinary, nullable=True),
    Column("character", String(255), nullable=True),
    Column("jia_user_id", String(255), nullable=False, index=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now(), onupdate=func.now()),
)

isu_condition_table = Table(
    "isu_condition",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "jia_isu_uuid", String(255), ForeignKey("isu.jia_isu_uuid"), nullable=False, index=True
    ),
    Column("timestamp", DateTime, nullable=False),
    Column("is_sitting", Boolean, nullable=False),
    Column("condition", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    UniqueConstraint("jia_isu_uuid", "timestamp", name="uq_isu_condition_uuid_timestamp"),
)


def _to_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def _isu_from_row(row: RowMapping) -> Isu:
    return Isu(
        id=row["id"],
        jia_isu_uuid=row["jia_isu_uuid"],
        name=row["name"],
        character=row["character"],
        jia_user_id=row["jia_user_id"],
        created_at=_from_db_time(row["created_at"]),
    )


def _condition_from_row(row: RowMapping) -> IsuCondition:
    return IsuCondition(
        jia_isu_uuid=row["jia_isu_uuid"],
        timestamp=_from_db_time(row["timestamp"]),
        is_sitting=bool(row["is_sitting"]),
        condition=row["condition"],
        message=row["message"],
    )


_CONDITION_COLUMNS = (
    isu_condition_table.c.jia_isu_uuid,
    isu_condition_table.c.timestamp,
    isu_condition_table.c.is_sitting,
    isu_condition_table.c.condition,
    isu_condition_table.c.message,
)

_ISU_COLUMNS = (
    isu_table.c.id,
    isu_table.c.jia_isu_uuid,
    isu_table.c.name,
    isu_table.c.character,
    isu_table.c.jia_user_id,
    isu_table.c.created_at,
)


class SqlReadSnapshot:
    """Reads bound to one open transaction."""

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def _fetch(self, statement: Any, operation: str) -> Sequence[RowMapping]:
        try:
            result = await self._connection.execute(statement)
            return result.mappings().all()
        except SQLAlchemyError as e:
            raise StoreError(f"{operation} failed: {e}") from e

    async def list_isu(self, jia_user_id: str) -> list[Isu]:
        rows = await self._fetch(
            select(*_ISU_COLUMNS)
            .where(isu_table.c.jia_user_id == jia_user_id)
            .order_by(isu_table.c.id.desc()),
            "list_isu",
        )
        return [_isu_from_row(row) for row in rows]

    async def get_isu(self, jia_user_id: str, jia_isu_uuid: str) -> Isu | None:
        rows = await self._fetch(
            select(*_ISU_COLUMNS).where(
                isu_table.c.jia_user_id == jia_user_id,
                isu_table.c.jia_isu_uuid == jia_isu_uuid,
            ),
            "get_isu",
        )
        return _isu_from_row(rows[0]) if rows else None

    async def isu_exists(self, jia_isu_uuid: str) -> bool:
        rows = await self._fetch(
            select(isu_table.c.id).where(isu_table.c.jia_isu_uuid == jia_isu_uuid), "isu_exists"
        )
        return bool(rows)

    async def get_latest_condition(self, jia_isu_uuid: str) -> IsuCondition | None:
        rows = await self._fetch(
            select(*_CONDITION_COLUMNS)
            .where(isu_condition_table.c.jia_isu_uuid == jia_isu_uuid)
            .order_by(isu_condition_table.c.timestamp.desc())
            .limit(1),
            "get_latest_condition",
        )
        return _condition_from_row(rows[0]) if rows else None

    async def get_conditions(
        self, jia_isu_uuid: str, start: datetime, end: datetime
    ) -> list[IsuCondition]:
        rows = await self._fetch(
            select(*_CONDITION_COLUMNS)
            .where(
                isu_condition_table.c.jia_isu_uuid == jia_isu_uuid,
                isu_condition_table.c.timestamp >= _to_db_time(start),
                isu_condition_table.c.timestamp < _to_db_time(end),
            )
            .order_by(isu_condition_table.c.timestamp.asc()),
            "get_conditions",
        )
        return [_condition_from_row(row) for row in rows]

    async def get_conditions_before(
        self, jia_isu_uuid: str, end: datetime, start: datetime | None = None
    ) -> list[IsuCondition]:
        statement = select(*_CONDITION_COLUMNS).where(
            isu_condition_table.c.jia_isu_uuid == jia_isu_uuid,
            isu_condition_table.c.timestamp < _to_db_time(end),
        )
        if start is not None:
            statement = statement.where(isu_condition_table.c.timestamp >= _to_db_time(start))
        rows = await self._fetch(
            statement.order_by(isu_condition_table.c.timestamp.desc()), "get_conditions_before"
        )
        return [_condition_from_row(row) for row in rows]


class SqlConditionStore:
    """
    `ConditionStore` backed by any SQLAlchemy async dialect.

    The default configuration uses aiosqlite; production deployments point
    `DatabaseConfig.url` at MySQL (`mysql+aiomysql://...`) and set
    `snapshot_isolation_level` to "REPEATABLE READ".
    """

    def __init__(self, config: DatabaseConfig, engine: AsyncEngine | None = None) -> None:
        self.config = config
        self.engine = engine or create_async_engine(config.url, **self._engine_options(config))
        self.logger = logger.bind(component="sql_condition_store")

    @staticmethod
    def _engine_options(config: DatabaseConfig) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": config.echo, "pool_pre_ping": True}
        # SQLite uses a pool without size limits
        if not config.url.startswith("sqlite"):
            options.update(
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout,
            )
        return options

    async def create_schema(self) -> None:
        try:
            async with self.engine.begin() as connection:
                await connection.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise StoreError(f"create_schema failed: {e}") from e

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[SqlReadSnapshot]:
        """
        Read transaction shared by every read made through the yielded snapshot.
        """
        try:
            async with self.engine.connect() as connection:
                if self.config.snapshot_isolation_level:
                    connection = await connection.execution_options(
                        isolation_level=self.config.snapshot_isolation_level
                    )
                async with connection.begin():
                    yield SqlReadSnapshot(connection)
        except SQLAlchemyError as e:
            self.logger.error("snapshot_failed", error=str(e))
            raise StoreError(f"snapshot failed: {e}") from e

    async def add_isu(
        self, jia_user_id: str, jia_isu_uuid: str, name: str, character: str | None = None
    ) -> Isu:
        try:
            async with self.engine.begin() as connection:
                await connection.execute(
                    insert(isu_table).values(
                        jia_isu_uuid=jia_isu_uuid,
                        name=name,
                        character=character,
                        jia_user_id=jia_user_id,
                    )
                )
                result = await connection.execute(
                    select(*_ISU_COLUMNS).where(isu_table.c.jia_isu_uuid == jia_isu_uuid)
                )
                row = result.mappings().one()
        except SQLAlchemyError as e:
            raise StoreError(f"add_isu failed: {e}") from e

        self.logger.info("isu_added", jia_isu_uuid=jia_isu_uuid, jia_user_id=jia_user_id)
        return _isu_from_row(row)

    async def add_conditions(self, readings: Sequence[IsuCondition]) -> int:
        if not readings:
            return 0

        values = [
            {
                "jia_isu_uuid": reading.jia_isu_uuid,
                "timestamp": _to_db_time(reading.timestamp),
                "is_sitting": reading.is_sitting,
                "condition": reading.condition,
                "message": reading.message,
            }
            for reading in readings
        ]
        try:
            async with self.engine.begin() as connection:
                await connection.execute(insert(isu_condition_table), values)
        except SQLAlchemyError as e:
            raise StoreError(f"add_conditions failed: {e}") from e

        self.logger.info("conditions_added", count=len(values))
        return len(values)
