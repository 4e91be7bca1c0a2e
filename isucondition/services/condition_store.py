"""
Store contracts the condition pipeline depends on.

Why Protocol over ABC: structural typing, so tests can pass plain in-memory
doubles and the SQL adapter needs no base class.
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol

from isucondition.domain.models import Isu, IsuCondition


class ReadSnapshot(Protocol):
    """
    Reads that observe one consistent point in time.

    Obtained from `ConditionStore.snapshot()`; every read fails with
    `StoreError` when the underlying storage does.
    """

    async def list_isu(self, jia_user_id: str) -> list[Isu]:
        """Isu owned by the user, most recently registered first."""
        ...

    async def get_isu(self, jia_user_id: str, jia_isu_uuid: str) -> Isu | None: ...

    async def isu_exists(self, jia_isu_uuid: str) -> bool:
        """Whether the Isu is registered, regardless of owner."""
        ...

    async def get_latest_condition(self, jia_isu_uuid: str) -> IsuCondition | None:
        """The reading with the greatest timestamp, or None if the Isu never reported."""
        ...

    async def get_conditions(
        self, jia_isu_uuid: str, start: datetime, end: datetime
    ) -> list[IsuCondition]:
        """Readings with start <= timestamp < end, oldest first."""
        ...

    async def get_conditions_before(
        self, jia_isu_uuid: str, end: datetime, start: datetime | None = None
    ) -> list[IsuCondition]:
        """Readings with start <= timestamp < end, newest first."""
        ...


class ConditionStore(Protocol):
    """Relational persistence of Isu and their condition readings."""

    def snapshot(self) -> AbstractAsyncContextManager[ReadSnapshot]:
        """Open a read transaction; reads made through it share one snapshot."""
        ...

    async def add_isu(
        self, jia_user_id: str, jia_isu_uuid: str, name: str, character: str | None = None
    ) -> Isu: ...

    async def add_conditions(self, readings: Sequence[IsuCondition]) -> int:
        """Append readings in one transaction and return how many were written."""
        ...
