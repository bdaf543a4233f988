"""Call-center performance metrics: filtering, aggregation and the HTTP API."""

from .errors import (
    ApplicationError,
    MalformedRecordError,
    RecordLoadError,
    ValidationError,
    error_response,
)
from .filters import DateRange, FilterSpec, filter_records
from .metrics import MetricsResult, aggregate, aggregate_by_agent, round_metrics
from .records import CallInfo, CallStats, ConversationRecord, RecordStore, load_records
from .settings import Settings, get_settings

__all__ = [
    "ApplicationError",
    "CallInfo",
    "CallStats",
    "ConversationRecord",
    "DateRange",
    "FilterSpec",
    "MalformedRecordError",
    "MetricsResult",
    "RecordLoadError",
    "RecordStore",
    "Settings",
    "ValidationError",
    "aggregate",
    "aggregate_by_agent",
    "error_response",
    "filter_records",
    "get_settings",
    "load_records",
    "round_metrics",
]
