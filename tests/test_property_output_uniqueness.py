import hypothesis.strategies as st
from hypothesis import given, settings

from mdbench.config import FillEventsSettings
from mdbench.population import seed_population
from mdbench.store import SqliteMetadataStore
from mdbench.synthesizer import ArtifactStarvationError
from mdbench.workload import FillEvents


def _workload_strategy() -> st.SearchStrategy[tuple[int, int, int, float, int]]:
    artifacts = st.integers(min_value=1, max_value=12)
    operations = st.integers(min_value=1, max_value=6)
    max_events = st.integers(min_value=1, max_value=4)
    alphas = st.sampled_from([0.01, 0.5, 1.0, 50.0])
    seeds = st.integers(min_value=0, max_value=2**31 - 1)
    return st.tuples(artifacts, operations, max_events, alphas, seeds)


@given(params=_workload_strategy())
@settings(max_examples=40, deadline=None)
def test_output_workloads_never_reuse_artifacts(params: tuple[int, int, int, float, int]) -> None:
    num_artifacts, num_operations, max_events, alpha, seed = params
    with SqliteMetadataStore(":memory:") as store:
        population = seed_population(store, num_artifacts, num_executions=3)
        settings_ = FillEventsSettings(
            specification="OUTPUT",
            num_operations=num_operations,
            num_events={"minimum": 1, "maximum": max_events},
            artifact_node_popularity={"dirichlet_alpha": alpha},
            seed=seed,
            max_draws_per_event=2_000,
        )
        workload = FillEvents(settings_, population=population)
        try:
            workload.set_up(store)
        except ArtifactStarvationError:
            assert workload.work_items == ()
            assert workload.guard is not None
            claimed = workload.guard.used_this_run
            assert claimed <= {artifact.id for artifact in population.artifacts}
            return
        artifact_ids = [
            event.artifact_id for batch in workload.work_items for event in batch.events
        ]
        assert len(artifact_ids) == len(set(artifact_ids))
        for index in range(num_operations):
            workload.run_op(index, store)
        assert store.count_events() == len(artifact_ids)
