"""HTTP routes for the store service.

Store failures propagate as :class:`~mdbench.store.StoreError` and are
rendered by the application's exception handler.
"""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse

from mdbench.records import Event
from mdbench.store import MetadataStore

from . import auth
from .api_schemas import (
    ArtifactModel,
    ArtifactsResponse,
    EventModel,
    EventsResponse,
    ExecutionModel,
    ExecutionsResponse,
    HealthResponse,
    PutArtifactsRequest,
    PutArtifactsResponse,
    PutEventsRequest,
    PutEventsResponse,
    PutExecutionsRequest,
    PutExecutionsResponse,
)
from .metrics import METRICS

router = APIRouter()
store_router = APIRouter(dependencies=[Depends(auth.require_api_key)])


def get_store(request: Request) -> MetadataStore:
    return cast(MetadataStore, request.app.state.store)


@store_router.post(
    "/artifacts", status_code=status.HTTP_201_CREATED, response_model=PutArtifactsResponse
)
async def post_artifacts(
    payload: PutArtifactsRequest,
    store: MetadataStore = Depends(get_store),  # noqa: B008
) -> PutArtifactsResponse:
    return PutArtifactsResponse(artifact_ids=store.put_artifacts(payload.uris))


@store_router.post(
    "/executions", status_code=status.HTTP_201_CREATED, response_model=PutExecutionsResponse
)
async def post_executions(
    payload: PutExecutionsRequest,
    store: MetadataStore = Depends(get_store),  # noqa: B008
) -> PutExecutionsResponse:
    return PutExecutionsResponse(execution_ids=store.put_executions(payload.names))


@store_router.get("/artifacts", response_model=ArtifactsResponse)
async def get_artifacts(
    limit: int | None = Query(default=None, ge=1),  # noqa: B008
    store: MetadataStore = Depends(get_store),  # noqa: B008
) -> ArtifactsResponse:
    return ArtifactsResponse(
        artifacts=[
            ArtifactModel(id=artifact.id, uri=artifact.uri)
            for artifact in store.get_artifacts(limit=limit)
        ]
    )


@store_router.get("/executions", response_model=ExecutionsResponse)
async def get_executions(
    limit: int | None = Query(default=None, ge=1),  # noqa: B008
    store: MetadataStore = Depends(get_store),  # noqa: B008
) -> ExecutionsResponse:
    return ExecutionsResponse(
        executions=[
            ExecutionModel(id=execution.id, name=execution.name)
            for execution in store.get_executions(limit=limit)
        ]
    )


@store_router.get("/events", response_model=EventsResponse)
async def get_events(
    artifact_id: list[int] = Query(default=[]),  # noqa: B008
    store: MetadataStore = Depends(get_store),  # noqa: B008
) -> EventsResponse:
    events = store.get_events_by_artifact_ids(artifact_id)
    return EventsResponse(events=[EventModel(**event.as_dict()) for event in events])


@store_router.put("/events", response_model=PutEventsResponse)
async def put_events(
    payload: PutEventsRequest,
    store: MetadataStore = Depends(get_store),  # noqa: B008
) -> PutEventsResponse:
    events = [Event.from_dict(item.model_dump()) for item in payload.events]
    store.put_events(events)
    METRICS.record_events(event.type for event in events)
    return PutEventsResponse(written=len(events))


@router.get("/metrics")
async def get_metrics() -> PlainTextResponse:
    return PlainTextResponse(METRICS.render())


@router.get("/healthz", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


router.include_router(store_router)
