from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mdbench.http_store import HttpMetadataStore
from mdbench.records import Event
from mdbench.store import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    SqliteMetadataStore,
    StoreError,
)
from mdbench.synthesizer import build_event
from store_service.app import create_app

HEADERS = {"X-API-Key": "test-key"}


@pytest.fixture
def client(tmp_path: Path) -> Iterator[TestClient]:
    app = create_app(store=SqliteMetadataStore(tmp_path / "service.sqlite"))
    with TestClient(app) as test_client:
        yield test_client
    app.state.store.close()


def _seed(client: TestClient) -> tuple[list[int], list[int]]:
    artifacts = client.post("/artifacts", headers=HEADERS, json={"uris": ["a://0", "a://1"]})
    executions = client.post("/executions", headers=HEADERS, json={"names": ["e-0"]})
    assert artifacts.status_code == 201
    assert executions.status_code == 201
    return artifacts.json()["artifact_ids"], executions.json()["execution_ids"]


def test_requests_without_api_key_are_rejected(client: TestClient) -> None:
    response = client.get("/artifacts")
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"
    assert response.headers["www-authenticate"] == "API-Key"
    wrong = client.get("/artifacts", headers={"X-API-Key": "nope"})
    assert wrong.status_code == 401


def test_health_does_not_require_key(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_nodes_are_listed_in_creation_order(client: TestClient) -> None:
    artifact_ids, execution_ids = _seed(client)
    listed = client.get("/artifacts", headers=HEADERS).json()["artifacts"]
    assert [item["id"] for item in listed] == artifact_ids
    assert [item["uri"] for item in listed] == ["a://0", "a://1"]
    limited = client.get("/artifacts", params={"limit": 1}, headers=HEADERS).json()
    assert [item["id"] for item in limited["artifacts"]] == artifact_ids[:1]
    executions = client.get("/executions", headers=HEADERS).json()["executions"]
    assert [item["id"] for item in executions] == execution_ids


def test_event_write_and_lookup(client: TestClient) -> None:
    artifact_ids, execution_ids = _seed(client)
    payload = {"events": [build_event("OUTPUT", artifact_ids[0], execution_ids[0]).as_dict()]}
    written = client.put("/events", headers=HEADERS, json=payload)
    assert written.status_code == 200
    assert written.json() == {"written": 1}

    found = client.get("/events", params={"artifact_id": artifact_ids[0]}, headers=HEADERS)
    assert found.status_code == 200
    (event,) = found.json()["events"]
    assert event["type"] == "OUTPUT"
    assert event["path"] == [{"key": "foo", "index": None}]

    missing = client.get("/events", params={"artifact_id": artifact_ids[1]}, headers=HEADERS)
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_second_output_event_conflicts(client: TestClient) -> None:
    artifact_ids, execution_ids = _seed(client)
    payload = {"events": [build_event("OUTPUT", artifact_ids[0], execution_ids[0]).as_dict()]}
    assert client.put("/events", headers=HEADERS, json=payload).status_code == 200
    conflict = client.put("/events", headers=HEADERS, json=payload)
    assert conflict.status_code == 409
    assert conflict.json()["error"] == "already_exists"


def test_malformed_and_unknown_events_are_bad_requests(client: TestClient) -> None:
    artifact_ids, execution_ids = _seed(client)
    empty = client.put("/events", headers=HEADERS, json={"events": []})
    assert empty.status_code == 400
    assert empty.json()["error"] == "invalid_request"
    bad_step = {
        "events": [
            {
                "type": "INPUT",
                "artifact_id": artifact_ids[0],
                "execution_id": execution_ids[0],
                "path": [{"key": "foo", "index": 1}],
            }
        ]
    }
    assert client.put("/events", headers=HEADERS, json=bad_step).status_code == 400
    unknown = {"events": [build_event("INPUT", 999, execution_ids[0]).as_dict()]}
    response = client.put("/events", headers=HEADERS, json=unknown)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_argument"


def test_http_store_speaks_the_store_contract(client: TestClient) -> None:
    store = HttpMetadataStore(api_key="test-key", client=client)
    artifact_ids = store.put_artifacts(["h://0", "h://1", "h://2"])
    execution_ids = store.put_executions(["h-e-0"])
    assert [artifact.id for artifact in store.get_artifacts(limit=2)] == artifact_ids[:2]
    assert [execution.name for execution in store.get_executions()] == ["h-e-0"]

    with pytest.raises(NotFoundError):
        store.get_events_by_artifact_ids([artifact_ids[0]])

    event = build_event("OUTPUT", artifact_ids[0], execution_ids[0])
    store.put_events([event])
    (stored,) = store.get_events_by_artifact_ids(artifact_ids)
    assert (stored.type, stored.artifact_id, stored.execution_id, stored.path) == (
        event.type,
        event.artifact_id,
        event.execution_id,
        event.path,
    )
    assert stored.milliseconds_since_epoch is not None

    with pytest.raises(AlreadyExistsError):
        store.put_events([event])
    with pytest.raises(InvalidArgumentError):
        store.put_events([Event(type="INPUT", artifact_id=999, execution_id=execution_ids[0])])


def test_http_store_surfaces_auth_failures(client: TestClient) -> None:
    store = HttpMetadataStore(api_key="wrong", client=client)
    with pytest.raises(StoreError):
        store.get_artifacts()


def test_http_store_requires_a_target() -> None:
    with pytest.raises(ValueError):
        HttpMetadataStore()
