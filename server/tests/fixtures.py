from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from call_metrics_server.records import CallInfo, CallStats, ConversationRecord

DAY_MS = 86_400_000


def epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp()) * 1000 + value.microsecond // 1000


BASE_TS = epoch_ms(datetime(2025, 6, 2, 9, 15, tzinfo=timezone.utc))


@dataclass(frozen=True)
class SampleConversation:
    id: str
    agent: str
    cost: float
    status: str
    duration: float
    start_time: int = BASE_TS
    call_type: str = "inbound"
    llm_latency: float | None = None
    tts_latency: float | None = None
    interruptions: float | None = None

    def to_record(self) -> ConversationRecord:
        stats = None
        if self.llm_latency is not None:
            stats = CallStats(
                llm_latency=self.llm_latency,
                tts_latency=self.tts_latency or 0,
                interruptions=self.interruptions or 0,
            )
        return ConversationRecord(
            id=self.id,
            agent=self.agent,
            start_time=self.start_time,
            duration=self.duration,
            cost=self.cost,
            status=self.status,
            call_info=CallInfo(type=self.call_type, stats=stats),
        )

    def to_payload(self) -> dict[str, object]:
        return self.to_record().to_dict()


def make_record(record_id: str = "r-1", **overrides: object) -> ConversationRecord:
    values: dict[str, object] = {
        "id": record_id,
        "agent": "a1",
        "cost": 1.0,
        "status": "success",
        "duration": 60,
    }
    values.update(overrides)
    return SampleConversation(**values).to_record()  # type: ignore[arg-type]


SCENARIO_A = (
    SampleConversation(
        id="call-1",
        agent="a1",
        cost=10,
        status="success",
        duration=60,
        start_time=BASE_TS,
        call_type="inbound",
        llm_latency=800,
        tts_latency=300,
        interruptions=1,
    ),
    SampleConversation(
        id="call-2",
        agent="a1",
        cost=20,
        status="transfer",
        duration=30,
        start_time=BASE_TS + 5 * 3_600_000,
        call_type="outbound",
        llm_latency=1000,
        tts_latency=200,
        interruptions=3,
    ),
    SampleConversation(
        id="call-3",
        agent="a2",
        cost=5,
        status="dropped",
        duration=0,
        start_time=BASE_TS + DAY_MS,
        call_type="outbound",
    ),
    SampleConversation(
        id="call-4",
        agent="a2",
        cost=15,
        status="success",
        duration=90,
        start_time=BASE_TS + 2 * DAY_MS,
        call_type="inbound",
        llm_latency=900,
        tts_latency=250,
        interruptions=2,
    ),
)


def scenario_records() -> list[ConversationRecord]:
    return [sample.to_record() for sample in SCENARIO_A]
