import json
import os
from pathlib import Path

from fastapi.testclient import TestClient
from typer.testing import CliRunner

from cli import mdbench
from mdbench.http_store import HttpMetadataStore
from mdbench.store import SqliteMetadataStore
from store_service.app import create_app


def _report(output: str) -> dict[str, object]:
    return json.loads(output[output.index("{") :])


def test_cli_seed_and_fill_local_store() -> None:
    runner = CliRunner()
    result = runner.invoke(mdbench.app, ["seed-nodes", "--artifacts", "30", "--executions", "5"])
    assert result.exit_code == 0, result.output
    assert "Created 30 artifacts and 5 executions." in result.output

    result = runner.invoke(
        mdbench.app,
        [
            "fill-events",
            "--specification",
            "output",
            "--num-operations",
            "4",
            "--min-events",
            "2",
            "--max-events",
            "2",
            "--seed",
            "7",
        ],
    )
    assert result.exit_code == 0, result.output
    report = _report(result.stdout)
    assert report["name"] == "FILL_EVENTS_OUTPUT"
    assert report["num_operations"] == 4
    assert report["total_bytes"] == 4 * 2 * (17 + 3)

    database = Path(os.environ["DATA_DIR"]) / "metadata.sqlite"
    with SqliteMetadataStore(database) as store:
        assert store.count_events() == 8


def test_cli_reports_starvation() -> None:
    runner = CliRunner()
    assert runner.invoke(mdbench.app, ["seed-nodes", "-a", "1", "-e", "1"]).exit_code == 0
    args = ["fill-events", "-s", "OUTPUT", "-n", "1", "--min-events", "1", "--max-events", "1"]
    assert runner.invoke(mdbench.app, args).exit_code == 0
    result = runner.invoke(mdbench.app, args)
    assert result.exit_code == 1


def test_cli_rejects_invalid_ranges() -> None:
    runner = CliRunner()
    result = runner.invoke(mdbench.app, ["fill-events", "--min-events", "5", "--max-events", "2"])
    assert result.exit_code == 1


def test_cli_fails_without_population() -> None:
    runner = CliRunner()
    result = runner.invoke(mdbench.app, ["fill-events", "-s", "INPUT", "-n", "1"])
    assert result.exit_code == 1


def test_cli_fill_events_over_http(tmp_path: Path, monkeypatch) -> None:
    app = create_app(store=SqliteMetadataStore(tmp_path / "remote.sqlite"))
    test_client = TestClient(app)

    def http_store(base_url: str, api_key: str | None) -> HttpMetadataStore:
        assert base_url == "http://testserver"
        return HttpMetadataStore(api_key=api_key, client=test_client)

    monkeypatch.setattr(mdbench, "HttpMetadataStore", http_store)
    runner = CliRunner()
    common = ["--host", "http://testserver/", "--api-key", "test-key"]
    result = runner.invoke(mdbench.app, ["seed-nodes", "-a", "10", "-e", "3", *common])
    assert result.exit_code == 0, result.output

    result = runner.invoke(mdbench.app, ["fill-events", "-s", "INPUT", "-n", "3", *common])
    assert result.exit_code == 0, result.output
    assert _report(result.stdout)["name"] == "FILL_EVENTS_INPUT"
    assert app.state.store.count_events() > 0


def test_cli_version() -> None:
    result = CliRunner().invoke(mdbench.app, ["--version"])
    assert result.exit_code == 0
    assert "mdbench version" in result.stdout
