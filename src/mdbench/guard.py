"""Enforces that an artifact is the OUTPUT of at most one event."""

from __future__ import annotations

import logging

from .store import MetadataStore, NotFoundError

logger = logging.getLogger(__name__)


class OutputArtifactGuard:
    """Tracks which artifacts may still become the target of an OUTPUT event.

    Two sources are consulted: the ids claimed by this run and the events
    already persisted in the store. An id enters the run-scoped set only
    after the store has confirmed it was never outputted, so the set holds
    exactly the artifacts this run emits OUTPUT events for. Ids the store
    reports as used are cached separately and never queried twice.
    """

    def __init__(self, store: MetadataStore) -> None:
        self._store = store
        self._used_this_run: set[int] = set()
        self._known_in_store: set[int] = set()

    @property
    def used_this_run(self) -> frozenset[int]:
        return frozenset(self._used_this_run)

    @property
    def known_in_store(self) -> frozenset[int]:
        return frozenset(self._known_in_store)

    def reset(self, store: MetadataStore | None = None) -> None:
        """Forget every claim, optionally binding the guard to another store."""
        if store is not None:
            self._store = store
        self._used_this_run.clear()
        self._known_in_store.clear()

    def was_used_this_run(self, artifact_id: int) -> bool:
        """Check membership and mark the artifact as used in one step."""
        if artifact_id in self._used_this_run:
            return True
        self._used_this_run.add(artifact_id)
        return False

    def was_used_in_store(self, artifact_id: int) -> bool:
        try:
            events = self._store.get_events_by_artifact_ids([artifact_id])
        except NotFoundError:
            return False
        return any(event.type == "OUTPUT" for event in events)

    def claim(self, artifact_id: int) -> bool:
        """Reserve ``artifact_id`` as an OUTPUT target; False if it is ineligible."""
        if artifact_id in self._used_this_run or artifact_id in self._known_in_store:
            return False
        if self.was_used_in_store(artifact_id):
            logger.debug(f"Artifact {artifact_id} already has an OUTPUT event in the store")
            self._known_in_store.add(artifact_id)
            return False
        return not self.was_used_this_run(artifact_id)
