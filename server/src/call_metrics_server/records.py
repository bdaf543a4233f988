"""Conversation records and the in-memory record store.

Records are loaded once from a JSON array whose items follow the dashboard
data contract (camelCase keys, ``callInfo.stats`` optional).  Every record is
validated while it is parsed so that the aggregation layer never has to
coerce or skip malformed entries.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from .errors import MalformedRecordError, RecordLoadError
from .logging import get_logger

logger = get_logger(__name__)

STATUSES: tuple[str, ...] = ("success", "dropped", "transfer", "busy", "no_answer")
CALL_TYPES: tuple[str, ...] = ("inbound", "outbound")


@dataclass(frozen=True)
class CallStats:
    """Per-call instrumentation captured by the voice pipeline."""

    llm_latency: float
    tts_latency: float
    interruptions: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "llmLatency": self.llm_latency,
            "ttsLatency": self.tts_latency,
            "interruptions": self.interruptions,
        }


@dataclass(frozen=True)
class CallInfo:
    type: str
    caller: str | None = None
    callee: str | None = None
    stats: CallStats | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.caller is not None:
            payload["caller"] = self.caller
        if self.callee is not None:
            payload["callee"] = self.callee
        if self.stats is not None:
            payload["stats"] = self.stats.to_dict()
        return payload


@dataclass(frozen=True)
class ConversationRecord:
    """One completed or attempted call."""

    id: str
    agent: str
    start_time: float
    duration: float
    cost: float
    status: str
    call_info: CallInfo

    @property
    def stats(self) -> CallStats | None:
        return self.call_info.stats

    @property
    def call_type(self) -> str:
        return self.call_info.type

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ConversationRecord":
        """Parse a record in the at-rest JSON shape.

        Raises
        ------
        MalformedRecordError
            If a required field is missing or holds an invalid value.  The
            error names the record id when one is available.
        """

        if not isinstance(payload, Mapping):
            raise MalformedRecordError("conversation record must be an object")

        record_id = _require_str(payload, "id", None)
        agent = _require_str(payload, "agent", record_id)
        start_time = _require_timestamp(payload, "startTime", record_id)
        duration = _require_number(payload, "duration", record_id)
        cost = _require_number(payload, "cost", record_id)
        status = _require_str(payload, "status", record_id)

        call_info_raw = payload.get("callInfo")
        if not isinstance(call_info_raw, Mapping):
            raise MalformedRecordError(
                f"Record {record_id!r} is missing 'callInfo'",
                record_id=record_id,
                field="callInfo",
            )
        call_type = _require_str(call_info_raw, "type", record_id, prefix="callInfo.")
        if call_type not in CALL_TYPES:
            raise MalformedRecordError(
                f"Record {record_id!r} has unknown call type {call_type!r}",
                record_id=record_id,
                field="callInfo.type",
            )

        stats_raw = call_info_raw.get("stats")
        stats: CallStats | None = None
        if stats_raw is not None:
            if not isinstance(stats_raw, Mapping):
                raise MalformedRecordError(
                    f"Record {record_id!r} has invalid 'callInfo.stats'",
                    record_id=record_id,
                    field="callInfo.stats",
                )
            stats = CallStats(
                llm_latency=_require_number(
                    stats_raw, "llmLatency", record_id, prefix="callInfo.stats."
                ),
                tts_latency=_require_number(
                    stats_raw, "ttsLatency", record_id, prefix="callInfo.stats."
                ),
                interruptions=_require_number(
                    stats_raw, "interruptions", record_id, prefix="callInfo.stats."
                ),
            )

        record = cls(
            id=record_id,
            agent=agent,
            start_time=start_time,
            duration=duration,
            cost=cost,
            status=status,
            call_info=CallInfo(
                type=call_type,
                caller=_optional_str(call_info_raw, "caller"),
                callee=_optional_str(call_info_raw, "callee"),
                stats=stats,
            ),
        )
        ensure_valid_record(record)
        return record

    def to_dict(self) -> dict[str, Any]:
        """Return the record in its at-rest JSON shape."""

        return {
            "id": self.id,
            "agent": self.agent,
            "startTime": self.start_time,
            "duration": self.duration,
            "cost": self.cost,
            "status": self.status,
            "callInfo": self.call_info.to_dict(),
        }


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _require_str(
    payload: Mapping[str, Any], key: str, record_id: str | None, *, prefix: str = ""
) -> str:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value
    label = f"Record {record_id!r}" if record_id else "Record"
    raise MalformedRecordError(
        f"{label} is missing required field '{prefix}{key}'",
        record_id=record_id,
        field=f"{prefix}{key}",
    )


def _require_number(
    payload: Mapping[str, Any], key: str, record_id: str | None, *, prefix: str = ""
) -> float:
    value = payload.get(key)
    if _is_number(value):
        return value
    raise MalformedRecordError(
        f"Record {record_id!r} is missing numeric field '{prefix}{key}'",
        record_id=record_id,
        field=f"{prefix}{key}",
    )


def _require_timestamp(payload: Mapping[str, Any], key: str, record_id: str | None) -> float:
    value = _require_number(payload, key, record_id)
    try:
        _utc_date(value)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedRecordError(
            f"Record {record_id!r} has out of range '{key}': {value!r}",
            record_id=record_id,
            field=key,
        ) from exc
    return value


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def ensure_valid_record(record: ConversationRecord) -> None:
    """Check the fields every aggregation depends on.

    Raises :class:`MalformedRecordError` identifying the record and field.
    """

    record_id = getattr(record, "id", None)
    for name in ("cost", "duration"):
        value = getattr(record, name, None)
        if not _is_number(value):
            raise MalformedRecordError(
                f"Record {record_id!r} is missing numeric field '{name}'",
                record_id=record_id,
                field=name,
            )
        if value < 0:
            raise MalformedRecordError(
                f"Record {record_id!r} has negative '{name}': {value!r}",
                record_id=record_id,
                field=name,
            )
    status = getattr(record, "status", None)
    if status not in STATUSES:
        raise MalformedRecordError(
            f"Record {record_id!r} has invalid status {status!r}",
            record_id=record_id,
            field="status",
        )
    stats = getattr(getattr(record, "call_info", None), "stats", None)
    if stats is not None:
        for name in ("llm_latency", "tts_latency", "interruptions"):
            value = getattr(stats, name, None)
            if not _is_number(value) or value < 0:
                raise MalformedRecordError(
                    f"Record {record_id!r} has invalid stats field '{name}'",
                    record_id=record_id,
                    field=f"callInfo.stats.{name}",
                )


def parse_records(items: Iterable[Any]) -> tuple[ConversationRecord, ...]:
    """Parse raw mappings into records, rejecting duplicate identifiers."""

    records: list[ConversationRecord] = []
    seen: set[str] = set()
    for item in items:
        record = ConversationRecord.from_mapping(item)
        if record.id in seen:
            raise MalformedRecordError(
                f"Duplicate record id {record.id!r}",
                record_id=record.id,
                field="id",
            )
        seen.add(record.id)
        records.append(record)
    return tuple(records)


def load_records(path: Path) -> tuple[ConversationRecord, ...]:
    """Load the conversation dataset stored at ``path``.

    A missing file yields an empty collection so the API can still start;
    unreadable JSON or a document that is not an array raises
    :class:`RecordLoadError`.
    """

    if not path.exists():
        logger.warning("conversation_data_missing", data_path=str(path))
        return ()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RecordLoadError(
            f"Could not read conversation data: {exc}", details={"data_path": str(path)}
        ) from exc

    if not isinstance(payload, list):
        raise RecordLoadError(
            "Conversation data must be a JSON array", details={"data_path": str(path)}
        )

    records = parse_records(payload)
    logger.info("conversation_data_loaded", data_path=str(path), records=len(records))
    return records


def _utc_date(epoch_ms: float) -> date:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).date()


@dataclass(frozen=True)
class RecordStore:
    """Immutable record collection shared by every request."""

    records: tuple[ConversationRecord, ...] = ()
    source: Path | None = None

    @classmethod
    def from_path(cls, path: Path) -> "RecordStore":
        return cls(records=load_records(path), source=path)

    @classmethod
    def from_records(cls, records: Iterable[ConversationRecord]) -> "RecordStore":
        return cls(records=tuple(records))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ConversationRecord]:
        return iter(self.records)

    def agents(self) -> list[str]:
        """Distinct agent identifiers, sorted."""

        return sorted({record.agent for record in self.records})

    def call_types(self) -> list[str]:
        """Distinct call types, sorted."""

        return sorted({record.call_type for record in self.records if record.call_type})

    def date_bounds(self) -> tuple[date, date] | None:
        """UTC calendar dates of the earliest and latest call, if any."""

        if not self.records:
            return None
        timestamps = [record.start_time for record in self.records]
        return _utc_date(min(timestamps)), _utc_date(max(timestamps))


__all__ = [
    "CALL_TYPES",
    "STATUSES",
    "CallInfo",
    "CallStats",
    "ConversationRecord",
    "RecordStore",
    "ensure_valid_record",
    "load_records",
    "parse_records",
]
