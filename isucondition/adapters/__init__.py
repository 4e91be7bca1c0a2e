"""Storage adapters implementing the `ConditionStore` protocol."""

from .sql_store import SqlConditionStore

__all__ = ["SqlConditionStore"]
