"""Pydantic models shared by the HTTP API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class PathStepModel(BaseModel):
    key: str | None = None
    index: int | None = None

    @model_validator(mode="after")
    def ensure_one_of(self) -> PathStepModel:
        if (self.key is None) == (self.index is None):
            raise ValueError("A path step carries exactly one of 'key' or 'index'.")
        return self


class EventModel(BaseModel):
    type: Literal["INPUT", "OUTPUT"] = Field(..., description="Event type.")
    artifact_id: int = Field(..., ge=1)
    execution_id: int = Field(..., ge=1)
    path: list[PathStepModel] = Field(default_factory=list)
    milliseconds_since_epoch: int | None = None


class PutEventsRequest(BaseModel):
    events: list[EventModel] = Field(..., min_length=1)


class PutEventsResponse(BaseModel):
    written: int


class EventsResponse(BaseModel):
    events: list[EventModel]


class PutArtifactsRequest(BaseModel):
    uris: list[str] = Field(..., min_length=1)


class PutArtifactsResponse(BaseModel):
    artifact_ids: list[int]


class PutExecutionsRequest(BaseModel):
    names: list[str] = Field(..., min_length=1)


class PutExecutionsResponse(BaseModel):
    execution_ids: list[int]


class ArtifactModel(BaseModel):
    id: int
    uri: str


class ExecutionModel(BaseModel):
    id: int
    name: str


class ArtifactsResponse(BaseModel):
    artifacts: list[ArtifactModel]


class ExecutionsResponse(BaseModel):
    executions: list[ExecutionModel]


class HealthResponse(BaseModel):
    status: str = "ok"
