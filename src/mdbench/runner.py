"""Drives a single workload through its lifecycle and reports throughput."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .store import MetadataStore
from .workload import Workload

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkloadReport:
    name: str
    num_operations: int
    total_bytes: int
    elapsed_seconds: float

    @property
    def ops_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.num_operations / self.elapsed_seconds

    @property
    def bytes_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.total_bytes / self.elapsed_seconds

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "num_operations": self.num_operations,
            "total_bytes": self.total_bytes,
            "elapsed_seconds": self.elapsed_seconds,
            "ops_per_second": self.ops_per_second,
            "bytes_per_second": self.bytes_per_second,
        }


def run_workload(workload: Workload[Any], store: MetadataStore) -> WorkloadReport:
    """Set up ``workload``, run every operation in order, then tear it down.

    Only time spent inside ``run_op`` counts towards the report; set-up cost
    (including duplicate-output lookups) is excluded.
    """

    workload.set_up(store)
    try:
        total_bytes = 0
        elapsed = 0.0
        for index in range(workload.num_operations):
            stats = workload.run_op(index, store)
            total_bytes += stats.transferred_bytes
            elapsed += stats.elapsed_seconds
    finally:
        workload.tear_down()
    report = WorkloadReport(
        name=workload.name,
        num_operations=workload.num_operations,
        total_bytes=total_bytes,
        elapsed_seconds=elapsed,
    )
    logger.info(
        f"{report.name}: {report.num_operations} ops in {report.elapsed_seconds:.4f}s "
        f"({report.ops_per_second:.1f} ops/s, {report.bytes_per_second:.1f} bytes/s)"
    )
    return report
