"""Call metrics computed over a collection of conversation records.

Outcome classification used by every rate:

* ``success``   -> success (also first call resolution)
* ``transfer``  -> transfer
* ``dropped`` / ``no_answer`` -> abandonment
* ``busy`` and any status outside the buckets above -> failure

Each record lands in exactly one bucket, so for a non-empty collection the
four outcome rates add up to 100.

Values are kept at full precision.  :func:`round_metrics` applies the
dashboard rounding policy and is only called where results are serialized.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Sequence

from .records import ConversationRecord, ensure_valid_record

ABANDONED_STATUSES: frozenset[str] = frozenset({"dropped", "no_answer"})

CURRENCY_FIELDS: tuple[str, ...] = (
    "total_cost",
    "avg_cost_per_call",
    "avg_cost_per_min",
    "avg_cost_per_successful_call",
)
PERCENT_FIELDS: tuple[str, ...] = (
    "success_rate",
    "failure_rate",
    "transfer_rate",
    "abandonment_rate",
    "first_call_resolution_rate",
)
WHOLE_UNIT_FIELDS: tuple[str, ...] = (
    "avg_llm_latency",
    "avg_tts_latency",
    "avg_total_latency",
    "avg_handle_time",
)

_CAMEL_NAMES: dict[str, str] = {
    "total_calls": "totalCalls",
    "total_cost": "totalCost",
    "avg_cost_per_call": "avgCostPerCall",
    "avg_cost_per_min": "avgCostPerMin",
    "success_rate": "successRate",
    "failure_rate": "failureRate",
    "transfer_rate": "transferRate",
    "abandonment_rate": "abandonmentRate",
    "avg_interruptions": "avgInterruptions",
    "avg_llm_latency": "avgLLMLatency",
    "avg_tts_latency": "avgTTSLatency",
    "avg_total_latency": "avgTotalLatency",
    "first_call_resolution_rate": "firstCallResolutionRate",
    "avg_cost_per_successful_call": "avgCostPerSuccessfulCall",
    "avg_handle_time": "avgHandleTime",
}


@dataclass(frozen=True)
class MetricsResult:
    """Derived statistics for one record collection."""

    total_calls: int = 0
    total_cost: float = 0.0
    avg_cost_per_call: float = 0.0
    avg_cost_per_min: float = 0.0
    success_rate: float = 0.0
    failure_rate: float = 0.0
    transfer_rate: float = 0.0
    abandonment_rate: float = 0.0
    avg_interruptions: float = 0.0
    avg_llm_latency: float = 0.0
    avg_tts_latency: float = 0.0
    avg_total_latency: float = 0.0
    first_call_resolution_rate: float = 0.0
    avg_cost_per_successful_call: float = 0.0
    avg_handle_time: float = 0.0

    def to_dict(self) -> dict[str, float | int]:
        """Return the metrics keyed by their wire (camelCase) names."""

        return {_CAMEL_NAMES[name]: value for name, value in asdict(self).items()}


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _percent(count: int, total: int) -> float:
    return count / total * 100 if total > 0 else 0.0


def aggregate(records: Sequence[ConversationRecord]) -> MetricsResult:
    """Compute the full statistic set over ``records``.

    An empty collection yields an all-zero result.  Raises
    :class:`~call_metrics_server.errors.MalformedRecordError` when any record
    lacks a valid ``cost``, ``duration`` or ``status``; no partial result is
    returned in that case.
    """

    for record in records:
        ensure_valid_record(record)

    total_calls = len(records)
    if total_calls == 0:
        return MetricsResult()

    answered = [record for record in records if record.duration > 0]
    successful = [record for record in records if record.status == "success"]
    transfer_count = sum(1 for record in records if record.status == "transfer")
    abandoned_count = sum(1 for record in records if record.status in ABANDONED_STATUSES)
    failure_count = total_calls - len(successful) - transfer_count - abandoned_count
    instrumented = [record.stats for record in records if record.stats is not None]

    total_cost = sum(record.cost for record in records)
    answered_duration = sum(record.duration for record in answered)

    avg_llm_latency = _ratio(sum(stats.llm_latency for stats in instrumented), len(instrumented))
    avg_tts_latency = _ratio(sum(stats.tts_latency for stats in instrumented), len(instrumented))
    success_rate = _percent(len(successful), total_calls)

    return MetricsResult(
        total_calls=total_calls,
        total_cost=total_cost,
        avg_cost_per_call=total_cost / total_calls,
        avg_cost_per_min=_ratio(total_cost, answered_duration / 60),
        success_rate=success_rate,
        failure_rate=_percent(failure_count, total_calls),
        transfer_rate=_percent(transfer_count, total_calls),
        abandonment_rate=_percent(abandoned_count, total_calls),
        avg_interruptions=_ratio(
            sum(stats.interruptions for stats in instrumented), len(instrumented)
        ),
        avg_llm_latency=avg_llm_latency,
        avg_tts_latency=avg_tts_latency,
        avg_total_latency=avg_llm_latency + avg_tts_latency,
        first_call_resolution_rate=success_rate,
        avg_cost_per_successful_call=_ratio(
            sum(record.cost for record in successful), len(successful)
        ),
        avg_handle_time=_ratio(answered_duration, len(answered)),
    )


def group_by_agent(
    records: Sequence[ConversationRecord],
) -> dict[str, list[ConversationRecord]]:
    """Partition ``records`` by agent, preserving record order inside each group."""

    groups: dict[str, list[ConversationRecord]] = {}
    for record in records:
        groups.setdefault(record.agent, []).append(record)
    return groups


def aggregate_by_agent(records: Sequence[ConversationRecord]) -> dict[str, MetricsResult]:
    """Aggregate each agent's records independently.

    Only agents present in ``records`` appear in the result.
    """

    return {agent: aggregate(group) for agent, group in group_by_agent(records).items()}


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like the dashboard client (``Math.round``), halves towards +inf."""

    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_metrics(result: MetricsResult) -> MetricsResult:
    """Apply the presentation rounding policy.

    Currency fields keep 2 decimals, percentages 1, latencies and handle
    time whole units and interruptions 2 decimals.
    """

    changes: dict[str, float | int] = {}
    for item in fields(result):
        value = getattr(result, item.name)
        if item.name in CURRENCY_FIELDS or item.name == "avg_interruptions":
            changes[item.name] = round_half_up(value, 2)
        elif item.name in PERCENT_FIELDS:
            changes[item.name] = round_half_up(value, 1)
        elif item.name in WHOLE_UNIT_FIELDS:
            changes[item.name] = int(round_half_up(value))
    return replace(result, **changes)


__all__ = [
    "ABANDONED_STATUSES",
    "MetricsResult",
    "aggregate",
    "aggregate_by_agent",
    "group_by_agent",
    "round_half_up",
    "round_metrics",
]
