from collections.abc import Iterable

import pytest

from mdbench.guard import OutputArtifactGuard
from mdbench.population import Population
from mdbench.records import Event, PathStep
from mdbench.store import NotFoundError, SqliteMetadataStore, StoreError


class FailingStore(SqliteMetadataStore):
    def __init__(self) -> None:
        super().__init__(":memory:")
        self.queries = 0

    def get_events_by_artifact_ids(self, artifact_ids: Iterable[int]) -> list[Event]:
        self.queries += 1
        raise StoreError("connection reset")


class CountingStore(SqliteMetadataStore):
    def __init__(self) -> None:
        super().__init__(":memory:")
        self.queries = 0

    def get_events_by_artifact_ids(self, artifact_ids: Iterable[int]) -> list[Event]:
        self.queries += 1
        return super().get_events_by_artifact_ids(artifact_ids)


def _event(event_type: str, artifact_id: int, execution_id: int) -> Event:
    return Event(
        type=event_type,  # type: ignore[arg-type]
        artifact_id=artifact_id,
        execution_id=execution_id,
        path=(PathStep(key="foo"),),
    )


def test_was_used_this_run_checks_and_inserts(store: SqliteMetadataStore) -> None:
    guard = OutputArtifactGuard(store)
    assert guard.was_used_this_run(5) is False
    assert guard.was_used_this_run(5) is True
    assert guard.used_this_run == frozenset({5})


def test_not_found_means_unused(store: SqliteMetadataStore, population: Population) -> None:
    guard = OutputArtifactGuard(store)
    artifact_id = population.artifacts[0].id
    with pytest.raises(NotFoundError):
        store.get_events_by_artifact_ids([artifact_id])
    assert guard.was_used_in_store(artifact_id) is False


def test_input_events_do_not_mark_artifact_used(
    store: SqliteMetadataStore, population: Population
) -> None:
    artifact_id = population.artifacts[0].id
    store.put_events([_event("INPUT", artifact_id, population.executions[0].id)])
    guard = OutputArtifactGuard(store)
    assert guard.was_used_in_store(artifact_id) is False
    assert guard.claim(artifact_id) is True


def test_output_in_store_blocks_claim(store: SqliteMetadataStore, population: Population) -> None:
    artifact_id = population.artifacts[1].id
    store.put_events([_event("OUTPUT", artifact_id, population.executions[0].id)])
    guard = OutputArtifactGuard(store)
    assert guard.was_used_in_store(artifact_id) is True
    assert guard.claim(artifact_id) is False
    assert artifact_id not in guard.used_this_run
    assert guard.known_in_store == frozenset({artifact_id})


def test_claim_is_exclusive_within_run(store: SqliteMetadataStore, population: Population) -> None:
    guard = OutputArtifactGuard(store)
    artifact_id = population.artifacts[2].id
    assert guard.claim(artifact_id) is True
    assert guard.claim(artifact_id) is False
    assert guard.used_this_run == frozenset({artifact_id})


def test_store_rejections_are_cached() -> None:
    counting = CountingStore()
    population_ids = counting.put_artifacts(["a://0"])
    execution_ids = counting.put_executions(["e-0"])
    counting.put_events([_event("OUTPUT", population_ids[0], execution_ids[0])])
    guard = OutputArtifactGuard(counting)
    assert guard.claim(population_ids[0]) is False
    assert guard.claim(population_ids[0]) is False
    assert counting.queries == 1


def test_store_failure_propagates() -> None:
    guard = OutputArtifactGuard(FailingStore())
    with pytest.raises(StoreError):
        guard.claim(1)
    assert guard.used_this_run == frozenset()


def test_reset_forgets_claims_and_rebinds(
    store: SqliteMetadataStore, population: Population
) -> None:
    guard = OutputArtifactGuard(store)
    taken = population.artifacts[0].id
    store.put_events([_event("OUTPUT", taken, population.executions[0].id)])
    claimed = population.artifacts[1].id
    assert guard.claim(claimed)
    assert not guard.claim(taken)
    guard.reset()
    assert guard.used_this_run == frozenset()
    assert guard.known_in_store == frozenset()
    assert guard.claim(claimed)

    counting = CountingStore()
    guard.reset(counting)
    assert guard.claim(taken)
    assert counting.queries == 1
