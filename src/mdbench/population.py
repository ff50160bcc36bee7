"""Existing artifact/execution nodes that synthetic events reference."""

from __future__ import annotations

from dataclasses import dataclass

from .records import Artifact, Execution
from .store import MetadataStore


@dataclass(frozen=True, slots=True)
class Population:
    artifacts: tuple[Artifact, ...]
    executions: tuple[Execution, ...]

    @property
    def is_empty(self) -> bool:
        return not self.artifacts or not self.executions


def discover_population(
    store: MetadataStore,
    max_artifacts: int | None = None,
    max_executions: int | None = None,
) -> Population:
    return Population(
        artifacts=tuple(store.get_artifacts(limit=max_artifacts)),
        executions=tuple(store.get_executions(limit=max_executions)),
    )


def seed_population(
    store: MetadataStore,
    num_artifacts: int,
    num_executions: int,
    prefix: str = "bench",
) -> Population:
    """Create fresh nodes in ``store`` and return them as a population."""

    if num_artifacts < 0 or num_executions < 0:
        raise ValueError("Node counts must be non-negative.")
    uris = [f"{prefix}://artifact/{i}" for i in range(num_artifacts)]
    names = [f"{prefix}-execution-{i}" for i in range(num_executions)]
    artifact_ids = store.put_artifacts(uris)
    execution_ids = store.put_executions(names)
    return Population(
        artifacts=tuple(Artifact(id=i, uri=uri) for i, uri in zip(artifact_ids, uris)),
        executions=tuple(Execution(id=i, name=name) for i, name in zip(execution_ids, names)),
    )
