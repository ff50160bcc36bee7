"""Synthetic event workload generator for benchmarking a metadata store."""

from .config import AppConfig, FillEventsSettings, PopulationSettings
from .runner import WorkloadReport, run_workload
from .store import MetadataStore, SqliteMetadataStore
from .workload import FillEvents

__all__ = [
    "AppConfig",
    "FillEventsSettings",
    "PopulationSettings",
    "MetadataStore",
    "SqliteMetadataStore",
    "FillEvents",
    "WorkloadReport",
    "run_workload",
]
