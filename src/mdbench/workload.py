"""Benchmark workload lifecycle and the FillEvents workload."""

from __future__ import annotations

import enum
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from .config import FillEventsSettings, PopulationSettings
from .distributions import dirichlet_categorical
from .guard import OutputArtifactGuard
from .population import Population, discover_population
from .records import EventBatch
from .store import MetadataStore
from .synthesizer import EventSynthesizer

logger = logging.getLogger(__name__)

WorkItemT = TypeVar("WorkItemT")


class WorkloadStateError(RuntimeError):
    """Raised when a lifecycle method is called out of order."""


class WorkloadState(enum.Enum):
    UNSTARTED = "unstarted"
    READY = "ready"
    DONE = "done"


@dataclass(slots=True)
class OpStats:
    elapsed_seconds: float
    transferred_bytes: int


class Workload(ABC, Generic[WorkItemT]):
    """Prepares work items in ``set_up`` and replays one per ``run_op``."""

    def __init__(self, num_operations: int) -> None:
        if num_operations < 1:
            raise ValueError("num_operations must be a positive integer.")
        self.num_operations = num_operations
        self.state = WorkloadState.UNSTARTED
        self._work_items: list[tuple[WorkItemT, int]] = []

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def _set_up_impl(self, store: MetadataStore) -> list[tuple[WorkItemT, int]]:
        """Return ``num_operations`` work items paired with their byte estimates."""

    @abstractmethod
    def _run_op_impl(self, work_item: WorkItemT, store: MetadataStore) -> None: ...

    @property
    def work_items(self) -> tuple[WorkItemT, ...]:
        return tuple(item for item, _ in self._work_items)

    def set_up(self, store: MetadataStore) -> None:
        if self.state is WorkloadState.READY:
            raise WorkloadStateError(f"{self.name} is already set up; call tear_down first.")
        self._work_items = []
        work_items = self._set_up_impl(store)
        if len(work_items) != self.num_operations:
            raise WorkloadStateError(
                f"{self.name} prepared {len(work_items)} work items, "
                f"expected {self.num_operations}."
            )
        self._work_items = work_items
        self.state = WorkloadState.READY

    def run_op(self, index: int, store: MetadataStore) -> OpStats:
        if self.state is not WorkloadState.READY:
            raise WorkloadStateError(f"{self.name} must be set up before run_op.")
        if not 0 <= index < len(self._work_items):
            raise IndexError(
                f"Operation index {index} out of range [0, {len(self._work_items)})."
            )
        work_item, transferred_bytes = self._work_items[index]
        start = time.perf_counter()
        self._run_op_impl(work_item, store)
        return OpStats(
            elapsed_seconds=time.perf_counter() - start,
            transferred_bytes=transferred_bytes,
        )

    def tear_down(self) -> None:
        self._work_items = []
        if self.state is WorkloadState.READY:
            self.state = WorkloadState.DONE


def _clock_seed() -> int:
    return time.time_ns() // 1_000_000


class FillEvents(Workload[EventBatch]):
    """Pre-generates batches of INPUT or OUTPUT events over existing nodes."""

    def __init__(
        self,
        settings: FillEventsSettings,
        population: Population | None = None,
        population_settings: PopulationSettings | None = None,
    ) -> None:
        super().__init__(settings.num_operations)
        self.settings = settings
        self.population = population
        self.population_settings = population_settings or PopulationSettings()
        self.guard: OutputArtifactGuard | None = None
        self.rng: random.Random | None = None
        self._name = f"FILL_EVENTS_{settings.specification}"

    @property
    def name(self) -> str:
        return self._name

    def _resolve_population(self, store: MetadataStore) -> Population:
        population = self.population
        if population is None:
            population = discover_population(
                store,
                max_artifacts=self.population_settings.max_artifacts,
                max_executions=self.population_settings.max_executions,
            )
        if population.is_empty:
            raise ValueError(
                f"{self.name} requires existing artifacts and executions; found "
                f"{len(population.artifacts)} artifacts and "
                f"{len(population.executions)} executions."
            )
        return population

    def _warn_on_starvation_risk(self, population: Population) -> None:
        if self.settings.specification != "OUTPUT":
            return
        demand = self.num_operations * self.settings.num_events.maximum
        supply = len({artifact.id for artifact in population.artifacts})
        if demand > supply:
            logger.warning(
                f"{self.name} may request up to {demand} OUTPUT events but only {supply} "
                "artifacts exist; generation stalls or fails once every artifact is used."
            )

    def _set_up_impl(self, store: MetadataStore) -> list[tuple[EventBatch, int]]:
        logger.info(f"Setting up {self.name} ...")
        settings = self.settings
        population = self._resolve_population(store)
        self._warn_on_starvation_risk(population)

        seed = settings.seed if settings.seed is not None else _clock_seed()
        self.rng = random.Random(seed)
        # Output-artifact bookkeeping is scoped to a single set-up.
        if self.guard is None:
            self.guard = OutputArtifactGuard(store)
        else:
            self.guard.reset(store)

        artifact_dist = dirichlet_categorical(
            len(population.artifacts),
            settings.artifact_node_popularity.dirichlet_alpha,
            self.rng,
        )
        execution_dist = dirichlet_categorical(
            len(population.executions),
            settings.execution_node_popularity.dirichlet_alpha,
            self.rng,
        )
        synthesizer = EventSynthesizer(
            event_type=settings.specification,
            population=population,
            artifact_dist=artifact_dist,
            execution_dist=execution_dist,
            rng=self.rng,
            guard=self.guard,
            step_key=settings.path_step_key,
            max_draws_per_event=settings.max_draws_per_event,
        )

        work_items: list[tuple[EventBatch, int]] = []
        for index in range(self.num_operations):
            num_events = self.rng.randint(
                settings.num_events.minimum, settings.num_events.maximum
            )
            batch = synthesizer.synthesize(num_events)
            logger.debug(
                f"Generated batch {index} with {len(batch)} events "
                f"({batch.transferred_bytes} bytes)"
            )
            work_items.append((batch, batch.transferred_bytes))
        logger.info(
            f"Set up {self.name}: {len(work_items)} batches, seed={seed}, "
            f"rejected draws={synthesizer.rejections}"
        )
        return work_items

    def _run_op_impl(self, work_item: EventBatch, store: MetadataStore) -> None:
        store.put_events(work_item.events)
