"""CSV export of the per-agent metrics breakdown."""

from __future__ import annotations

import csv
import io
from typing import Mapping

from .metrics import MetricsResult, round_metrics

EXPORT_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Total Calls", "total_calls"),
    ("Total Cost ($)", "total_cost"),
    ("Avg Cost per Call ($)", "avg_cost_per_call"),
    ("Avg Cost per Min ($)", "avg_cost_per_min"),
    ("Success Rate (%)", "success_rate"),
    ("Failure Rate (%)", "failure_rate"),
    ("Transfer Rate (%)", "transfer_rate"),
    ("Abandonment Rate (%)", "abandonment_rate"),
    ("Avg Interruptions", "avg_interruptions"),
    ("Avg LLM Latency (ms)", "avg_llm_latency"),
    ("Avg TTS Latency (ms)", "avg_tts_latency"),
    ("Total Latency (ms)", "avg_total_latency"),
    ("First Call Resolution Rate (%)", "first_call_resolution_rate"),
    ("Avg Cost per Successful Call ($)", "avg_cost_per_successful_call"),
    ("Avg Handle Time (s)", "avg_handle_time"),
)

EXPORT_FILENAME = "agent-metrics.csv"


def render_agent_metrics_csv(agent_metrics: Mapping[str, MetricsResult]) -> str:
    """Render one CSV row per agent, sorted by agent id, with rounded values."""

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(["Agent", *(header for header, _ in EXPORT_COLUMNS)])
    for agent in sorted(agent_metrics):
        rounded = round_metrics(agent_metrics[agent])
        writer.writerow([agent, *(getattr(rounded, name) for _, name in EXPORT_COLUMNS)])
    return output.getvalue()


__all__ = ["EXPORT_COLUMNS", "EXPORT_FILENAME", "render_agent_metrics_csv"]
