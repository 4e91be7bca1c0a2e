"""
Core services for the application.

This package contains the condition pipeline: level classification, the
latest-condition join, hourly bucketing, graph aggregation and the
request-level service composing them.
"""

from .condition_level import calculate_condition_level, parse_condition_flags
from .condition_store import ConditionStore, ReadSnapshot
from .graph_aggregator import aggregate
from .graph_buckets import build_hour_buckets
from .isu_service import IsuConditionService
from .latest_condition import join_latest_conditions

__all__ = [
    "calculate_condition_level",
    "parse_condition_flags",
    "ConditionStore",
    "ReadSnapshot",
    "aggregate",
    "build_hour_buckets",
    "IsuConditionService",
    "join_latest_conditions",
]
