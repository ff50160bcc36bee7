"""Metadata records exchanged with the store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, cast

EventType = Literal["INPUT", "OUTPUT"]
EVENT_TYPES: tuple[EventType, ...] = ("INPUT", "OUTPUT")


@dataclass(frozen=True, slots=True)
class Artifact:
    id: int
    uri: str = ""


@dataclass(frozen=True, slots=True)
class Execution:
    id: int
    name: str = ""


Node = Artifact | Execution


def artifact_id_of(node: Node) -> int:
    match node:
        case Artifact(id=node_id):
            return node_id
        case Execution():
            raise TypeError(f"Expected an artifact node, got execution {node.id}")
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


def execution_id_of(node: Node) -> int:
    match node:
        case Execution(id=node_id):
            return node_id
        case Artifact():
            raise TypeError(f"Expected an execution node, got artifact {node.id}")
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


@dataclass(frozen=True, slots=True)
class PathStep:
    key: str | None = None
    index: int | None = None

    def as_dict(self) -> dict[str, Any]:
        if self.key is not None:
            return {"key": self.key}
        return {"index": self.index}


@dataclass(frozen=True, slots=True)
class Event:
    type: EventType
    artifact_id: int
    execution_id: int
    path: tuple[PathStep, ...] = field(default_factory=tuple)
    milliseconds_since_epoch: int | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type,
            "artifact_id": self.artifact_id,
            "execution_id": self.execution_id,
            "path": [step.as_dict() for step in self.path],
        }
        if self.milliseconds_since_epoch is not None:
            payload["milliseconds_since_epoch"] = self.milliseconds_since_epoch
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Event:
        event_type = str(payload["type"]).upper()
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type '{payload['type']}'")
        steps = tuple(
            PathStep(key=step.get("key"), index=step.get("index"))
            for step in payload.get("path") or []
        )
        return cls(
            type=cast(EventType, event_type),
            artifact_id=int(payload["artifact_id"]),
            execution_id=int(payload["execution_id"]),
            path=steps,
            milliseconds_since_epoch=payload.get("milliseconds_since_epoch"),
        )


@dataclass(frozen=True, slots=True)
class EventBatch:
    """One write request: the events plus their estimated payload size."""

    events: tuple[Event, ...]
    transferred_bytes: int

    def __len__(self) -> int:
        return len(self.events)
