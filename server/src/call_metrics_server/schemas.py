"""Pydantic schemas exposed by the call metrics API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .metrics import MetricsResult, round_metrics
from .records import ConversationRecord
from .settings import APP_VERSION


class HealthStatus(BaseModel):
    status: str = Field(default="ok")
    timestamp: datetime = Field(default_factory=lambda: datetime.now().astimezone())
    version: str = Field(default=APP_VERSION)
    records: int = Field(default=0, description="Number of conversation records loaded")


class MetricsResponse(BaseModel):
    """Rounded call metrics as consumed by the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    avg_cost_per_call: float = Field(alias="avgCostPerCall")
    avg_cost_per_min: float = Field(alias="avgCostPerMin")
    success_rate: float = Field(alias="successRate")
    failure_rate: float = Field(alias="failureRate")
    transfer_rate: float = Field(alias="transferRate")
    abandonment_rate: float = Field(alias="abandonmentRate")
    avg_interruptions: float = Field(alias="avgInterruptions")
    avg_llm_latency: int = Field(alias="avgLLMLatency")
    avg_tts_latency: int = Field(alias="avgTTSLatency")
    avg_total_latency: int = Field(alias="avgTotalLatency")
    first_call_resolution_rate: float = Field(alias="firstCallResolutionRate")
    avg_cost_per_successful_call: float = Field(alias="avgCostPerSuccessfulCall")
    avg_handle_time: int = Field(alias="avgHandleTime")
    total_calls: int = Field(alias="totalCalls")
    total_cost: float = Field(alias="totalCost")

    @classmethod
    def from_result(cls, result: MetricsResult) -> "MetricsResponse":
        rounded = round_metrics(result)
        return cls.model_validate(rounded.to_dict())


class DateRangeResponse(BaseModel):
    """Earliest and latest call dates (UTC) present in the dataset."""

    min: Optional[date] = None
    max: Optional[date] = None


class CallStatsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    llm_latency: Union[int, float] = Field(alias="llmLatency")
    tts_latency: Union[int, float] = Field(alias="ttsLatency")
    interruptions: Union[int, float]


class CallInfoModel(BaseModel):
    type: str
    caller: Optional[str] = None
    callee: Optional[str] = None
    stats: Optional[CallStatsModel] = None


class ConversationModel(BaseModel):
    """Conversation record in its at-rest JSON shape."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    agent: str
    start_time: Union[int, float] = Field(alias="startTime")
    duration: Union[int, float]
    cost: Union[int, float]
    status: str
    call_info: CallInfoModel = Field(alias="callInfo")

    @classmethod
    def from_record(cls, record: ConversationRecord) -> "ConversationModel":
        return cls.model_validate(record.to_dict())


class DebugFilterResponse(BaseModel):
    """Diagnostic view of how a query narrowed the dataset."""

    model_config = ConfigDict(populate_by_name=True)

    original_count: int = Field(alias="originalCount")
    filtered_count: int = Field(alias="filteredCount")
    filters: Dict[str, Any]
    sample_record: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="sampleRecord",
        description="First matching record in its at-rest shape, null when nothing matched",
    )


AgentMetricsResponse = Dict[str, MetricsResponse]


__all__ = [
    "AgentMetricsResponse",
    "CallInfoModel",
    "CallStatsModel",
    "ConversationModel",
    "DateRangeResponse",
    "DebugFilterResponse",
    "HealthStatus",
    "MetricsResponse",
]
