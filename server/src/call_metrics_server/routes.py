"""FastAPI routes exposing call metrics to the dashboard."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request, Response

from .exports import EXPORT_FILENAME, render_agent_metrics_csv
from .filters import FilterSpec, filter_records
from .logging import get_logger
from .metrics import aggregate, aggregate_by_agent
from .query import filter_spec_from_query
from .records import ConversationRecord, RecordStore
from .schemas import (
    AgentMetricsResponse,
    ConversationModel,
    DateRangeResponse,
    DebugFilterResponse,
    HealthStatus,
    MetricsResponse,
)
from .settings import Settings

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


def get_record_store(request: Request) -> RecordStore:
    """Dependency returning the record store loaded at startup."""

    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_filter_spec(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> FilterSpec:
    """Dependency parsing the request query string into a filter spec."""

    return filter_spec_from_query(request.query_params, hour_timezone=settings.hour_tzinfo)


def _apply(store: RecordStore, spec: FilterSpec) -> list[ConversationRecord]:
    filtered = filter_records(store.records, spec)
    logger.debug(
        "records_filtered",
        filters=spec.to_dict(),
        original_count=len(store),
        filtered_count=len(filtered),
    )
    return filtered


@router.get("/healthz", response_model=HealthStatus)
def healthcheck(store: RecordStore = Depends(get_record_store)) -> HealthStatus:
    return HealthStatus(records=len(store))


@router.get("/metrics", response_model=MetricsResponse)
def read_metrics(
    store: RecordStore = Depends(get_record_store),
    spec: FilterSpec = Depends(get_filter_spec),
) -> MetricsResponse:
    """Return aggregated metrics for the filtered conversations."""

    return MetricsResponse.from_result(aggregate(_apply(store, spec)))


@router.get("/agent-metrics", response_model=AgentMetricsResponse)
def read_agent_metrics(
    store: RecordStore = Depends(get_record_store),
    spec: FilterSpec = Depends(get_filter_spec),
) -> AgentMetricsResponse:
    """Return one metrics block per agent present in the filtered conversations."""

    breakdown = aggregate_by_agent(_apply(store, spec))
    return {agent: MetricsResponse.from_result(result) for agent, result in breakdown.items()}


@router.get("/agent-metrics/export")
def export_agent_metrics(
    store: RecordStore = Depends(get_record_store),
    spec: FilterSpec = Depends(get_filter_spec),
) -> Response:
    """Render the per-agent breakdown as a CSV download."""

    breakdown = aggregate_by_agent(_apply(store, spec))
    document = render_agent_metrics_csv(breakdown)
    logger.info("agent_metrics_exported", agents=len(breakdown))
    return Response(
        content=document,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/agents", response_model=List[str])
def list_agents(store: RecordStore = Depends(get_record_store)) -> List[str]:
    return store.agents()


@router.get("/call-types", response_model=List[str])
def list_call_types(store: RecordStore = Depends(get_record_store)) -> List[str]:
    return store.call_types()


@router.get("/date-range", response_model=DateRangeResponse)
def read_date_range(store: RecordStore = Depends(get_record_store)) -> DateRangeResponse:
    """Return the first and last UTC call dates in the dataset."""

    bounds = store.date_bounds()
    if bounds is None:
        return DateRangeResponse()
    return DateRangeResponse(min=bounds[0], max=bounds[1])


@router.get(
    "/conversations",
    response_model=List[ConversationModel],
    response_model_exclude_none=True,
)
def list_conversations(
    store: RecordStore = Depends(get_record_store),
) -> List[ConversationModel]:
    return [ConversationModel.from_record(record) for record in store]


@router.get(
    "/raw-data",
    response_model=List[ConversationModel],
    response_model_exclude_none=True,
)
def read_raw_data(store: RecordStore = Depends(get_record_store)) -> List[ConversationModel]:
    logger.info("raw_data_requested", records=len(store))
    return [ConversationModel.from_record(record) for record in store]


@router.get("/debug-filter", response_model=DebugFilterResponse)
def debug_filter(
    store: RecordStore = Depends(get_record_store),
    spec: FilterSpec = Depends(get_filter_spec),
) -> DebugFilterResponse:
    """Report how the supplied filters narrowed the dataset."""

    filtered = _apply(store, spec)
    return DebugFilterResponse(
        original_count=len(store),
        filtered_count=len(filtered),
        filters=spec.to_dict(),
        sample_record=filtered[0].to_dict() if filtered else None,
    )


__all__ = ["router", "get_record_store", "get_filter_spec"]
