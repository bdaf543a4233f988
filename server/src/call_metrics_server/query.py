"""Translate raw request query parameters into a :class:`FilterSpec`.

Dashboard clients serialize filters in several ways: flattened object keys
(``dateRange[start]``), bracketed arrays (``agents[]=a&agents[]=b``),
repeated keys and comma-joined strings.  All of them normalize to the same
spec here so the filter engine only ever sees one shape.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Any, Iterable, Mapping

from .filters import FilterSpec

_DATE_START_KEYS: tuple[str, ...] = ("dateRange[start]", "dateRange.start")
_DATE_END_KEYS: tuple[str, ...] = ("dateRange[end]", "dateRange.end")


def _getlist(params: Any, key: str) -> list[str]:
    if hasattr(params, "getlist"):
        return [str(value) for value in params.getlist(key)]
    value = params.get(key)
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item) for item in value]
    return [str(value)]


def _collect(params: Any, name: str) -> list[str]:
    values: list[str] = []
    for key in (name, f"{name}[]"):
        for raw in _getlist(params, key):
            values.extend(part.strip() for part in raw.split(","))
    indexed_prefix = f"{name}["
    for key in _keys(params):
        if key.startswith(indexed_prefix) and key[len(indexed_prefix) : -1].isdigit():
            for raw in _getlist(params, key):
                values.extend(part.strip() for part in raw.split(","))
    return [value for value in dict.fromkeys(values) if value]


def _keys(params: Any) -> Iterable[str]:
    if hasattr(params, "multi_items"):
        return dict.fromkeys(key for key, _ in params.multi_items())
    return list(params.keys())


def _first(params: Any, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        for value in _getlist(params, key):
            if value.strip():
                return value.strip()
    return None


def filter_spec_from_query(
    params: Mapping[str, Any], *, hour_timezone: tzinfo | None = None
) -> FilterSpec:
    """Build a validated filter spec from request query parameters.

    The date dimension is only applied when both bounds are supplied.
    Raises :class:`~call_metrics_server.errors.ValidationError` for malformed
    dates or time range tokens.
    """

    start = _first(params, _DATE_START_KEYS)
    end = _first(params, _DATE_END_KEYS)

    return FilterSpec.build(
        date_range={"start": start, "end": end} if start and end else None,
        agents=_collect(params, "agents"),
        call_types=_collect(params, "callTypes"),
        time_ranges=_collect(params, "timeRanges"),
        hour_timezone=hour_timezone,
    )


__all__ = ["filter_spec_from_query"]
