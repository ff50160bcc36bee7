"""Synthesis of event write requests by rejection sampling."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from .distributions import CategoricalDistribution
from .guard import OutputArtifactGuard
from .population import Population
from .records import Event, EventBatch, EventType, PathStep, artifact_id_of, execution_id_of

logger = logging.getLogger(__name__)

# Two 8-byte node ids plus a 1-byte event type tag.
EVENT_FIXED_BYTES = 8 * 2 + 1
DEFAULT_PATH_STEP_KEY = "foo"
# Eligible artifacts whose combined sampling probability falls below this are
# treated as unreachable: finding one would take about 1e6 draws per event.
MIN_ELIGIBLE_MASS = 1e-6


class ArtifactStarvationError(RuntimeError):
    """Raised when no artifact can accept another OUTPUT event."""


def transferred_bytes(event: Event) -> int:
    """Approximate payload size of ``event``; used for throughput reporting only."""
    return EVENT_FIXED_BYTES + sum(len(step.key or "") for step in event.path)


def build_event(
    event_type: EventType,
    artifact_id: int,
    execution_id: int,
    step_key: str = DEFAULT_PATH_STEP_KEY,
) -> Event:
    if event_type not in ("INPUT", "OUTPUT"):
        raise ValueError(f"Wrong specification for FillEvents: {event_type!r}")
    return Event(
        type=event_type,
        artifact_id=artifact_id,
        execution_id=execution_id,
        path=(PathStep(key=step_key),),
    )


@dataclass
class EventSynthesizer:
    """Draws events over a population until a batch holds the requested count.

    OUTPUT events are subject to the guard: a draw whose artifact was already
    outputted (in this run or in the store) is discarded and redrawn. Every
    artifact the guard rules out removes its sampling probability from the
    eligible mass. Once no artifact is left, or the ones left are drawn with
    probability below ``min_eligible_mass``, the loop fails fast instead of
    spinning. ``max_draws_per_event`` additionally bounds the draws for a
    single event when set.
    """

    event_type: EventType
    population: Population
    artifact_dist: CategoricalDistribution
    execution_dist: CategoricalDistribution
    rng: random.Random
    guard: OutputArtifactGuard
    step_key: str = DEFAULT_PATH_STEP_KEY
    max_draws_per_event: int | None = None
    min_eligible_mass: float = MIN_ELIGIBLE_MASS
    rejections: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if len(self.artifact_dist) != len(self.population.artifacts):
            raise ValueError("Artifact distribution does not match the artifact population.")
        if len(self.execution_dist) != len(self.population.executions):
            raise ValueError("Execution distribution does not match the execution population.")
        self._mass_by_id: dict[int, float] = {}
        for node, probability in zip(
            self.population.artifacts, self.artifact_dist.probabilities()
        ):
            artifact_id = artifact_id_of(node)
            self._mass_by_id[artifact_id] = self._mass_by_id.get(artifact_id, 0.0) + probability
        self._ruled_out: set[int] = set()
        self._eligible_mass = sum(self._mass_by_id.values())
        for artifact_id in (self.guard.used_this_run | self.guard.known_in_store) & set(
            self._mass_by_id
        ):
            self._rule_out(artifact_id)

    @property
    def eligible_artifacts(self) -> int:
        return len(self._mass_by_id) - len(self._ruled_out)

    @property
    def eligible_mass(self) -> float:
        return max(self._eligible_mass, 0.0)

    def _rule_out(self, artifact_id: int) -> None:
        if artifact_id in self._ruled_out:
            return
        self._ruled_out.add(artifact_id)
        self._eligible_mass -= self._mass_by_id[artifact_id]

    def _check_starvation(self) -> None:
        if not self.eligible_artifacts:
            raise ArtifactStarvationError(
                f"All {len(self._mass_by_id)} artifacts already have an OUTPUT event."
            )
        if self._eligible_mass < self.min_eligible_mass:
            raise ArtifactStarvationError(
                f"Remaining {self.eligible_artifacts} artifacts unreachable: their combined "
                f"sampling probability is {self.eligible_mass:.3g}."
            )

    def _draw(self) -> tuple[int, int]:
        artifact = self.population.artifacts[self.artifact_dist.sample(self.rng)]
        execution = self.population.executions[self.execution_dist.sample(self.rng)]
        return artifact_id_of(artifact), execution_id_of(execution)

    def _next_event(self) -> Event:
        draws = 0
        while True:
            if self.max_draws_per_event is not None and draws >= self.max_draws_per_event:
                raise ArtifactStarvationError(
                    f"No eligible OUTPUT artifact found after {draws} draws."
                )
            draws += 1
            artifact_id, execution_id = self._draw()
            if self.event_type == "OUTPUT":
                claimed = self.guard.claim(artifact_id)
                # Claimed or not, the artifact cannot be an OUTPUT target again.
                self._rule_out(artifact_id)
                if not claimed:
                    self.rejections += 1
                    self._check_starvation()
                    continue
            return build_event(self.event_type, artifact_id, execution_id, self.step_key)

    def synthesize(self, num_events: int) -> EventBatch:
        events: list[Event] = []
        total_bytes = 0
        while len(events) < num_events:
            event = self._next_event()
            events.append(event)
            total_bytes += transferred_bytes(event)
        return EventBatch(events=tuple(events), transferred_bytes=total_bytes)
