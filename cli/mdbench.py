# ruff: noqa: B008
"""Command-line entry point for the metadata store event benchmark."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from pydantic import ValidationError

from mdbench import config as config_module
from mdbench.http_store import HttpMetadataStore
from mdbench.population import seed_population
from mdbench.runner import run_workload
from mdbench.store import MetadataStore, SqliteMetadataStore, StoreError
from mdbench.synthesizer import ArtifactStarvationError
from mdbench.workload import FillEvents

__version__ = "0.1.0"


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mdbench version {__version__}")
        raise typer.Exit()


app = typer.Typer(help="Benchmark the event write path of a metadata store.")


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    """Metadata store event benchmark CLI."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _config() -> config_module.AppConfig:
    return config_module.AppConfig.from_env()


def _resolve_host(provided: str | None) -> str | None:
    candidate = provided or os.environ.get("SERVICE_URL")
    if not candidate:
        return None
    if config_module.PLACEHOLDER_PATTERN.fullmatch(candidate.strip()):
        return None
    return candidate.rstrip("/")


def _resolve_api_key(provided: str | None) -> str | None:
    candidate = provided or os.environ.get("SERVICE_API_KEY")
    if not candidate:
        return None
    if config_module.PLACEHOLDER_PATTERN.fullmatch(str(candidate).strip()):
        return None
    return str(candidate)


@contextmanager
def _open_store(
    cfg: config_module.AppConfig, host: str | None, api_key: str | None
) -> Iterator[MetadataStore]:
    resolved_host = _resolve_host(host)
    store: MetadataStore
    if resolved_host:
        store = HttpMetadataStore(resolved_host, _resolve_api_key(api_key))
    else:
        store = SqliteMetadataStore(cfg.storage.database_path)
    try:
        yield store
    finally:
        store.close()


@app.command(name="seed-nodes")
def seed_nodes(
    artifacts: int = typer.Option(100, "--artifacts", "-a", min=0, help="Artifacts to create"),
    executions: int = typer.Option(100, "--executions", "-e", min=0, help="Executions to create"),
    prefix: str = typer.Option("bench", "--prefix", help="URI / name prefix for new nodes"),
    host: str | None = typer.Option(
        None, "--host", help="Store service URL (default: {{SERVICE_URL}} or local SQLite)"
    ),
    api_key: str | None = typer.Option(None, "--api-key", help="X-API-Key header"),
) -> None:
    """Create the artifact/execution population events will reference."""

    cfg = _config()
    with _open_store(cfg, host, api_key) as store:
        try:
            population = seed_population(store, artifacts, executions, prefix=prefix)
        except StoreError as exc:
            typer.echo(f"Failed to seed nodes: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(
        f"Created {len(population.artifacts)} artifacts and "
        f"{len(population.executions)} executions."
    )


@app.command(name="fill-events")
def fill_events(
    specification: str | None = typer.Option(
        None,
        "--specification",
        "-s",
        help="INPUT or OUTPUT (default: {{FILL_EVENTS_SPECIFICATION}})",
    ),
    num_operations: int | None = typer.Option(
        None, "--num-operations", "-n", min=1, help="Write requests to pre-generate"
    ),
    min_events: int | None = typer.Option(
        None, "--min-events", min=1, help="Events per request, minimum"
    ),
    max_events: int | None = typer.Option(
        None, "--max-events", min=1, help="Events per request, maximum"
    ),
    artifact_alpha: float | None = typer.Option(
        None, "--artifact-alpha", help="Dirichlet concentration for artifact popularity"
    ),
    execution_alpha: float | None = typer.Option(
        None, "--execution-alpha", help="Dirichlet concentration for execution popularity"
    ),
    seed: int | None = typer.Option(None, "--seed", help="Random seed (default: wall clock)"),
    max_draws_per_event: int | None = typer.Option(
        None, "--max-draws-per-event", min=1, help="Give up on an event after this many draws"
    ),
    host: str | None = typer.Option(
        None, "--host", help="Store service URL (default: {{SERVICE_URL}} or local SQLite)"
    ),
    api_key: str | None = typer.Option(None, "--api-key", help="X-API-Key header"),
) -> None:
    """Generate and replay event write requests, then print a throughput report."""

    cfg = _config()
    overrides: dict[str, object] = {}
    if specification is not None:
        overrides["specification"] = specification
    if num_operations is not None:
        overrides["num_operations"] = num_operations
    if seed is not None:
        overrides["seed"] = seed
    if max_draws_per_event is not None:
        overrides["max_draws_per_event"] = max_draws_per_event
    if min_events is not None or max_events is not None:
        overrides["num_events"] = {
            "minimum": min_events if min_events is not None else cfg.fill_events.num_events.minimum,
            "maximum": max_events if max_events is not None else cfg.fill_events.num_events.maximum,
        }
    if artifact_alpha is not None:
        overrides["artifact_node_popularity"] = {"dirichlet_alpha": artifact_alpha}
    if execution_alpha is not None:
        overrides["execution_node_popularity"] = {"dirichlet_alpha": execution_alpha}
    try:
        settings = config_module.FillEventsSettings(
            **{**cfg.fill_events.model_dump(), **overrides}
        )
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    workload = FillEvents(settings, population_settings=cfg.population)
    with _open_store(cfg, host, api_key) as store:
        try:
            report = run_workload(workload, store)
        except (StoreError, ArtifactStarvationError, ValueError) as exc:
            typer.echo(f"{workload.name} failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    typer.echo(
        (
            f"[{report.name}] ops={report.num_operations} "
            f"bytes={report.total_bytes} "
            f"ops/s={report.ops_per_second:.1f}"
        ),
        err=True,
    )
    typer.echo(json.dumps(report.as_dict(), indent=2))


if __name__ == "__main__":
    app()
