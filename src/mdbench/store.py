"""Metadata store contract and a SQLite-backed implementation."""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import cast

from .records import Artifact, Event, EventType, Execution, PathStep


class StoreError(Exception):
    """Base class for failures reported by a metadata store."""


class NotFoundError(StoreError):
    """Raised when a query matches no records."""


class AlreadyExistsError(StoreError):
    """Raised when a write conflicts with records already in the store."""


class InvalidArgumentError(StoreError):
    """Raised when a request references unknown records or is malformed."""


class MetadataStore(ABC):
    """Operations the benchmark needs from a metadata store."""

    @abstractmethod
    def put_artifacts(self, uris: Sequence[str]) -> list[int]: ...

    @abstractmethod
    def put_executions(self, names: Sequence[str]) -> list[int]: ...

    @abstractmethod
    def get_artifacts(self, limit: int | None = None) -> list[Artifact]: ...

    @abstractmethod
    def get_executions(self, limit: int | None = None) -> list[Execution]: ...

    @abstractmethod
    def get_events_by_artifact_ids(self, artifact_ids: Iterable[int]) -> list[Event]:
        """Return every event referencing the artifacts; raise NotFoundError if none do."""

    @abstractmethod
    def put_events(self, events: Sequence[Event]) -> None:
        """Persist all events atomically or none of them."""

    def close(self) -> None:
        return None

    def __enter__(self) -> MetadataStore:
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class SqliteMetadataStore(MetadataStore):
    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._conn.row_factory = sqlite3.Row
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS artifacts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                uri TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS executions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                artifact_id INTEGER NOT NULL REFERENCES artifacts(id),
                execution_id INTEGER NOT NULL REFERENCES executions(id),
                type TEXT NOT NULL,
                milliseconds_since_epoch INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS event_path_steps (
                event_id INTEGER NOT NULL REFERENCES events(id),
                position INTEGER NOT NULL,
                step_key TEXT,
                step_index INTEGER,
                PRIMARY KEY (event_id, position)
            );

            CREATE INDEX IF NOT EXISTS idx_events_artifact ON events (artifact_id);

            CREATE UNIQUE INDEX IF NOT EXISTS idx_events_single_output
                ON events (artifact_id) WHERE type = 'OUTPUT';
            """
        )
        self._conn.commit()

    def put_artifacts(self, uris: Sequence[str]) -> list[int]:
        ids: list[int] = []
        with self._conn:
            for uri in uris:
                cur = self._conn.execute("INSERT INTO artifacts (uri) VALUES (?)", (uri,))
                ids.append(int(cast(int, cur.lastrowid)))
        return ids

    def put_executions(self, names: Sequence[str]) -> list[int]:
        ids: list[int] = []
        with self._conn:
            for name in names:
                cur = self._conn.execute("INSERT INTO executions (name) VALUES (?)", (name,))
                ids.append(int(cast(int, cur.lastrowid)))
        return ids

    def get_artifacts(self, limit: int | None = None) -> list[Artifact]:
        cur = self._conn.execute(
            "SELECT id, uri FROM artifacts ORDER BY id ASC LIMIT ?",
            (-1 if limit is None else limit,),
        )
        return [Artifact(id=int(row["id"]), uri=row["uri"]) for row in cur.fetchall()]

    def get_executions(self, limit: int | None = None) -> list[Execution]:
        cur = self._conn.execute(
            "SELECT id, name FROM executions ORDER BY id ASC LIMIT ?",
            (-1 if limit is None else limit,),
        )
        return [Execution(id=int(row["id"]), name=row["name"]) for row in cur.fetchall()]

    def _path_for(self, event_id: int) -> tuple[PathStep, ...]:
        cur = self._conn.execute(
            """
            SELECT step_key, step_index FROM event_path_steps
            WHERE event_id = ? ORDER BY position ASC
            """,
            (event_id,),
        )
        return tuple(
            PathStep(key=row["step_key"], index=row["step_index"]) for row in cur.fetchall()
        )

    def get_events_by_artifact_ids(self, artifact_ids: Iterable[int]) -> list[Event]:
        ids = list(artifact_ids)
        if not ids:
            raise NotFoundError("No artifact ids given.")
        placeholders = ", ".join("?" for _ in ids)
        cur = self._conn.execute(
            f"""
            SELECT id, artifact_id, execution_id, type, milliseconds_since_epoch
            FROM events WHERE artifact_id IN ({placeholders}) ORDER BY id ASC
            """,
            ids,
        )
        rows = cur.fetchall()
        if not rows:
            raise NotFoundError(f"No events found for artifact ids {ids}.")
        return [
            Event(
                type=cast(EventType, row["type"]),
                artifact_id=int(row["artifact_id"]),
                execution_id=int(row["execution_id"]),
                path=self._path_for(int(row["id"])),
                milliseconds_since_epoch=int(row["milliseconds_since_epoch"]),
            )
            for row in rows
        ]

    def _missing_ids(self, table: str, ids: set[int]) -> set[int]:
        if not ids:
            return set()
        placeholders = ", ".join("?" for _ in ids)
        cur = self._conn.execute(f"SELECT id FROM {table} WHERE id IN ({placeholders})", list(ids))
        return ids - {int(row["id"]) for row in cur.fetchall()}

    def put_events(self, events: Sequence[Event]) -> None:
        missing_artifacts = self._missing_ids("artifacts", {e.artifact_id for e in events})
        if missing_artifacts:
            raise InvalidArgumentError(f"Unknown artifact ids: {sorted(missing_artifacts)}")
        missing_executions = self._missing_ids("executions", {e.execution_id for e in events})
        if missing_executions:
            raise InvalidArgumentError(f"Unknown execution ids: {sorted(missing_executions)}")
        now = _now_millis()
        try:
            with self._conn:
                for event in events:
                    cur = self._conn.execute(
                        """
                        INSERT INTO events
                            (artifact_id, execution_id, type, milliseconds_since_epoch)
                        VALUES (?, ?, ?, ?)
                        """,
                        (
                            event.artifact_id,
                            event.execution_id,
                            event.type,
                            event.milliseconds_since_epoch or now,
                        ),
                    )
                    event_id = cur.lastrowid
                    self._conn.executemany(
                        """
                        INSERT INTO event_path_steps (event_id, position, step_key, step_index)
                        VALUES (?, ?, ?, ?)
                        """,
                        [
                            (event_id, position, step.key, step.index)
                            for position, step in enumerate(event.path)
                        ],
                    )
        except sqlite3.IntegrityError as exc:
            raise AlreadyExistsError(
                "An artifact in the batch has already been outputted by another output event."
            ) from exc

    def count_events(self) -> int:
        (count,) = self._conn.execute("SELECT COUNT(*) FROM events").fetchone()
        return int(count)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SqliteMetadataStore:
        return self
