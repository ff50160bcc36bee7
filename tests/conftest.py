import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent
SRC_ROOT = REPO_ROOT / "src"
for path in (SRC_ROOT, REPO_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from mdbench.population import Population, seed_population  # noqa: E402
from mdbench.store import SqliteMetadataStore  # noqa: E402


@pytest.fixture(autouse=True)
def configure_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    data_dir = tmp_path / "data"
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("SERVICE_API_KEY", "test-key")
    monkeypatch.setenv("BENCH_SEED", "20200731")
    for name in (
        "SERVICE_URL",
        "FILL_EVENTS_SPECIFICATION",
        "NUM_OPERATIONS",
        "NUM_EVENTS_MIN",
        "NUM_EVENTS_MAX",
        "ARTIFACT_DIRICHLET_ALPHA",
        "EXECUTION_DIRICHLET_ALPHA",
        "MAX_DRAWS_PER_EVENT",
        "MAX_ARTIFACTS",
        "MAX_EXECUTIONS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SqliteMetadataStore]:
    with SqliteMetadataStore(tmp_path / "store" / "metadata.sqlite") as sqlite_store:
        yield sqlite_store


@pytest.fixture
def population(store: SqliteMetadataStore) -> Population:
    return seed_population(store, num_artifacts=20, num_executions=10)
