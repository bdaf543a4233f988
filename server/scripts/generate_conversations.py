"""Generate a synthetic conversation dataset for local development."""

from __future__ import annotations

import argparse
import json
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import structlog

LOGGER = structlog.get_logger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_OUTPUT = REPO_ROOT / "data" / "conversations.json"

AGENTS: tuple[str, ...] = ("agent_alpha", "agent_beta", "agent_gamma", "agent_delta")
STATUS_WEIGHTS: dict[str, float] = {
    "success": 0.55,
    "transfer": 0.15,
    "dropped": 0.12,
    "no_answer": 0.1,
    "busy": 0.08,
}
COST_PER_MINUTE = 0.3
CONNECTION_FEE = 0.03


@dataclass(frozen=True)
class GeneratorOptions:
    """Parameters controlling the synthetic dataset."""

    count: int
    days: int
    start: datetime
    seed: int
    stats_ratio: float


def _phone(rng: random.Random) -> str:
    return f"+1415555{rng.randint(0, 9999):04d}"


def _duration(rng: random.Random, status: str) -> int:
    if status in {"no_answer", "busy"}:
        return 0
    if status == "dropped":
        return rng.randint(0, 60)
    return rng.randint(30, 600)


def generate_conversations(options: GeneratorOptions) -> list[dict[str, object]]:
    """Return ``options.count`` records sorted by start time."""

    rng = random.Random(options.seed)
    statuses = list(STATUS_WEIGHTS)
    weights = list(STATUS_WEIGHTS.values())
    records: list[dict[str, object]] = []
    for index in range(options.count):
        started = options.start + timedelta(
            days=rng.randrange(options.days), seconds=rng.randrange(86_400)
        )
        status = rng.choices(statuses, weights=weights)[0]
        duration = _duration(rng, status)
        call_type = rng.choice(("inbound", "outbound"))
        own_number, other_number = "+14155559000", _phone(rng)
        call_info: dict[str, object] = {
            "caller": other_number if call_type == "inbound" else own_number,
            "callee": own_number if call_type == "inbound" else other_number,
            "type": call_type,
        }
        if duration > 0 and rng.random() < options.stats_ratio:
            call_info["stats"] = {
                "llmLatency": rng.randint(500, 1400),
                "ttsLatency": rng.randint(180, 450),
                "interruptions": rng.randint(0, 5),
            }
        records.append(
            {
                "id": f"conv-{index + 1:05d}",
                "agent": rng.choice(AGENTS),
                "startTime": int(started.timestamp() * 1000),
                "duration": duration,
                "cost": round(CONNECTION_FEE + duration / 60 * COST_PER_MINUTE, 2),
                "status": status,
                "callInfo": call_info,
            }
        )
    records.sort(key=lambda record: record["startTime"])
    return records


def write_dataset(records: list[dict[str, object]], output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")
    LOGGER.info("conversation_dataset_written", output=str(output), records=len(records))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic conversations.json for the call metrics API.",
    )
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT)
    parser.add_argument("--count", type=int, default=500)
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument(
        "--start",
        type=lambda value: datetime.fromisoformat(value).replace(tzinfo=timezone.utc),
        default=datetime(2025, 6, 1, tzinfo=timezone.utc),
        help="First UTC day of the dataset (YYYY-MM-DD).",
    )
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument(
        "--stats-ratio",
        type=float,
        default=0.85,
        help="Share of answered calls that carry latency instrumentation.",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.count < 0 or args.days < 1:
        parser.error("--count must be >= 0 and --days >= 1")

    options = GeneratorOptions(
        count=args.count,
        days=args.days,
        start=args.start,
        seed=args.seed,
        stats_ratio=args.stats_ratio,
    )
    write_dataset(generate_conversations(options), args.output)


if __name__ == "__main__":
    main()
