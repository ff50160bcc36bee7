"""Locust load test exercising the store service event write path."""

from __future__ import annotations

import json
import os
import random
from typing import Any

from locust import HttpUser, between, task

from mdbench.distributions import CategoricalDistribution, dirichlet_categorical
from mdbench.synthesizer import build_event


def _headers() -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv("SERVICE_API_KEY")
    if api_key:
        headers["X-API-Key"] = api_key
    return headers


class EventWriter(HttpUser):
    """Writes INPUT events over the existing population with skewed popularity."""

    wait_time = between(0.01, 0.1)

    def on_start(self) -> None:
        self.headers = _headers()
        self.rng = random.Random(int(os.getenv("LOAD_TEST_SEED", "20200731")))
        self.batch_size = int(os.getenv("LOAD_TEST_BATCH_SIZE", "10"))
        artifacts = self.client.get("/artifacts", headers=self.headers).json()["artifacts"]
        executions = self.client.get("/executions", headers=self.headers).json()["executions"]
        if not artifacts or not executions:
            raise RuntimeError("Seed the store (mdbench seed-nodes) before running the load test.")
        self.artifact_ids = [item["id"] for item in artifacts]
        self.execution_ids = [item["id"] for item in executions]
        self.artifact_dist: CategoricalDistribution = dirichlet_categorical(
            len(self.artifact_ids),
            float(os.getenv("ARTIFACT_DIRICHLET_ALPHA", "1.0")),
            self.rng,
        )
        self.execution_dist: CategoricalDistribution = dirichlet_categorical(
            len(self.execution_ids),
            float(os.getenv("EXECUTION_DIRICHLET_ALPHA", "1.0")),
            self.rng,
        )

    def _sample_batch(self) -> list[dict[str, Any]]:
        events = []
        for _ in range(self.batch_size):
            artifact_id = self.artifact_ids[self.artifact_dist.sample(self.rng)]
            execution_id = self.execution_ids[self.execution_dist.sample(self.rng)]
            events.append(build_event("INPUT", artifact_id, execution_id).as_dict())
        return events

    @task(5)
    def put_events(self) -> None:
        self.client.put(
            "/events",
            data=json.dumps({"events": self._sample_batch()}),
            headers=self.headers,
            name="PUT /events",
        )

    @task(1)
    def get_events(self) -> None:
        artifact_id = self.artifact_ids[self.artifact_dist.sample(self.rng)]
        with self.client.get(
            "/events",
            params={"artifact_id": artifact_id},
            headers=self.headers,
            name="GET /events",
            catch_response=True,
        ) as response:
            if response.status_code == 404:
                response.success()
