"""HTTP client implementing the store contract against the store service."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import httpx

from .records import Artifact, Event, Execution
from .store import (
    AlreadyExistsError,
    InvalidArgumentError,
    MetadataStore,
    NotFoundError,
    StoreError,
)

HTTP_TIMEOUT = 30.0


def _api_headers(api_key: str | None) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["X-API-Key"] = api_key
    return headers


def _error_hint(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        return str(payload.get("hint") or payload.get("error") or payload)
    return str(payload)


class HttpMetadataStore(MetadataStore):
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        if client is None:
            if not base_url:
                raise ValueError("Either base_url or client must be provided.")
            client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client
        self._headers = _api_headers(api_key)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc
        if response.status_code < 400:
            return response
        hint = _error_hint(response)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(hint)
        if response.status_code == httpx.codes.CONFLICT:
            raise AlreadyExistsError(hint)
        if response.status_code in {httpx.codes.BAD_REQUEST, httpx.codes.UNPROCESSABLE_ENTITY}:
            raise InvalidArgumentError(hint)
        raise StoreError(f"{method} {path} returned {response.status_code}: {hint}")

    def put_artifacts(self, uris: Sequence[str]) -> list[int]:
        response = self._request("POST", "/artifacts", json={"uris": list(uris)})
        return [int(value) for value in response.json()["artifact_ids"]]

    def put_executions(self, names: Sequence[str]) -> list[int]:
        response = self._request("POST", "/executions", json={"names": list(names)})
        return [int(value) for value in response.json()["execution_ids"]]

    def get_artifacts(self, limit: int | None = None) -> list[Artifact]:
        params = {"limit": limit} if limit is not None else None
        response = self._request("GET", "/artifacts", params=params)
        return [
            Artifact(id=int(item["id"]), uri=item.get("uri", ""))
            for item in response.json()["artifacts"]
        ]

    def get_executions(self, limit: int | None = None) -> list[Execution]:
        params = {"limit": limit} if limit is not None else None
        response = self._request("GET", "/executions", params=params)
        return [
            Execution(id=int(item["id"]), name=item.get("name", ""))
            for item in response.json()["executions"]
        ]

    def get_events_by_artifact_ids(self, artifact_ids: Iterable[int]) -> list[Event]:
        params = [("artifact_id", str(artifact_id)) for artifact_id in artifact_ids]
        response = self._request("GET", "/events", params=params)
        return [Event.from_dict(item) for item in response.json()["events"]]

    def put_events(self, events: Sequence[Event]) -> None:
        self._request("PUT", "/events", json={"events": [event.as_dict() for event in events]})

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
