"""Centralised configuration models leveraging Pydantic."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, cast

from pydantic import BaseModel, Field, field_validator, model_validator

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Z0-9_]+)\}\}")

EVENT_SPECIFICATIONS = ("INPUT", "OUTPUT")


def _is_placeholder(value: object) -> bool:
    return isinstance(value, str) and PLACEHOLDER_PATTERN.fullmatch(value.strip()) is not None


def _as_path(value: str | Path) -> Path:
    return value if isinstance(value, Path) else Path(value).expanduser()


def _resolve_numeric(value: object, placeholder: str, default: float) -> float:
    if value is None or _is_placeholder(value):
        return default
    if isinstance(value, (int, float, str)):
        return float(value)
    raise TypeError(f"{placeholder} must resolve to a numeric value")


def _resolve_int(value: object, placeholder: str, default: int) -> int:
    if value is None or _is_placeholder(value):
        return default
    if isinstance(value, (int, str)):
        return int(value)
    raise TypeError(f"{placeholder} must resolve to an integer value")


def _resolve_optional_int(value: object, placeholder: str) -> int | None:
    if value is None or _is_placeholder(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, (int, str)):
        resolved = int(value)
        if resolved <= 0:
            raise ValueError(f"{placeholder} must be a positive integer")
        return resolved
    raise TypeError(f"{placeholder} must resolve to an integer value")


def _resolve_string(value: object, placeholder: str, default: str | None = None) -> str:
    if value is None:
        if default is not None:
            return default
        raise ValueError(f"{placeholder} must be provided")
    if _is_placeholder(value):
        if default is not None:
            return default
        raise ValueError(f"{placeholder} must be replaced with a concrete value")
    return str(value)


class UniformRange(BaseModel):
    """Inclusive integer range sampled uniformly."""

    minimum: int = Field(default=1)
    maximum: int = Field(default=10)

    @field_validator("minimum", mode="before")
    def _v_minimum(cls, v: object) -> int:
        value = _resolve_int(v, "{{NUM_EVENTS_MIN}}", 1)
        if value < 1:
            raise ValueError("{{NUM_EVENTS_MIN}} must be at least 1")
        return value

    @field_validator("maximum", mode="before")
    def _v_maximum(cls, v: object) -> int:
        return _resolve_int(v, "{{NUM_EVENTS_MAX}}", 10)

    @model_validator(mode="after")
    def _v_bounds(self) -> UniformRange:
        if self.minimum > self.maximum:
            raise ValueError(
                f"num_events minimum ({self.minimum}) must not exceed maximum ({self.maximum})"
            )
        return self


class PopularitySettings(BaseModel):
    """Concentration of the Dirichlet prior over node popularity."""

    dirichlet_alpha: float = Field(default=1.0)

    @field_validator("dirichlet_alpha", mode="before")
    def _v_alpha(cls, v: object) -> float:
        value = _resolve_numeric(v, "{{DIRICHLET_ALPHA}}", 1.0)
        if not value > 0:
            raise ValueError("dirichlet_alpha must be strictly positive")
        return value


class FillEventsSettings(BaseModel):
    specification: Literal["INPUT", "OUTPUT"] = Field(default="OUTPUT")
    num_events: UniformRange = Field(default_factory=UniformRange)
    artifact_node_popularity: PopularitySettings = Field(default_factory=PopularitySettings)
    execution_node_popularity: PopularitySettings = Field(default_factory=PopularitySettings)
    num_operations: int = Field(default=100)
    seed: int | None = Field(default=None)
    path_step_key: str = Field(default="foo")
    max_draws_per_event: int | None = Field(default=None)

    @field_validator("specification", mode="before")
    def _v_specification(cls, v: object) -> str:
        value = _resolve_string(v, "{{FILL_EVENTS_SPECIFICATION}}", "OUTPUT").strip().upper()
        if value not in EVENT_SPECIFICATIONS:
            raise ValueError("{{FILL_EVENTS_SPECIFICATION}} must be one of 'INPUT', 'OUTPUT'")
        return value

    @field_validator("num_operations", mode="before")
    def _v_num_operations(cls, v: object) -> int:
        value = _resolve_int(v, "{{NUM_OPERATIONS}}", 100)
        if value < 1:
            raise ValueError("{{NUM_OPERATIONS}} must be a positive integer")
        return value

    @field_validator("seed", mode="before")
    def _v_seed(cls, v: object) -> int | None:
        if v is None or _is_placeholder(v):
            return None
        if isinstance(v, str) and not v.strip():
            return None
        return int(cast(int | str, v))

    @field_validator("path_step_key", mode="before")
    def _v_step_key(cls, v: object) -> str:
        value = _resolve_string(v, "{{PATH_STEP_KEY}}", "foo")
        if not value:
            raise ValueError("{{PATH_STEP_KEY}} must be a non-empty string")
        return value

    @field_validator("max_draws_per_event", mode="before")
    def _v_max_draws(cls, v: object) -> int | None:
        return _resolve_optional_int(v, "{{MAX_DRAWS_PER_EVENT}}")


class PopulationSettings(BaseModel):
    max_artifacts: int | None = Field(default=None)
    max_executions: int | None = Field(default=None)

    @field_validator("max_artifacts", mode="before")
    def _v_max_artifacts(cls, v: object) -> int | None:
        return _resolve_optional_int(v, "{{MAX_ARTIFACTS}}")

    @field_validator("max_executions", mode="before")
    def _v_max_executions(cls, v: object) -> int | None:
        return _resolve_optional_int(v, "{{MAX_EXECUTIONS}}")


class StorageSettings(BaseModel):
    data_dir: Path = Field(default=Path("./data"))
    database_name: str = Field(default="metadata.sqlite")

    @field_validator("data_dir", mode="before")
    def _v_data_dir(cls, v: object) -> Path:
        value = _resolve_string(v, "{{DATA_DIR}}", "./data")
        return _as_path(value)

    @field_validator("database_name", mode="before")
    def _v_database_name(cls, v: object) -> str:
        return _resolve_string(v, "{{DATABASE_NAME}}", "metadata.sqlite")

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_name


class ServiceSettings(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    api_key: str | None = Field(default="{{SERVICE_API_KEY}}")

    @field_validator("port", mode="before")
    def _v_port(cls, v: object) -> int:
        return _resolve_int(v, "{{SERVICE_PORT}}", 8000)

    @field_validator("api_key", mode="before")
    def _v_api_key(cls, v: object) -> str | None:
        if v is None or _is_placeholder(v):
            return None
        return str(v)


class AppConfig(BaseModel):
    fill_events: FillEventsSettings = Field(default_factory=FillEventsSettings)
    population: PopulationSettings = Field(default_factory=PopulationSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)

    @classmethod
    def from_env(cls) -> AppConfig:
        env = os.environ
        num_events_kwargs = {
            "minimum": env.get("NUM_EVENTS_MIN"),
            "maximum": env.get("NUM_EVENTS_MAX"),
        }
        fill_events_kwargs: dict[str, object] = {
            "specification": env.get("FILL_EVENTS_SPECIFICATION"),
            "num_operations": env.get("NUM_OPERATIONS"),
            "seed": env.get("BENCH_SEED"),
            "path_step_key": env.get("PATH_STEP_KEY"),
            "max_draws_per_event": env.get("MAX_DRAWS_PER_EVENT"),
        }
        if any(value is not None for value in num_events_kwargs.values()):
            fill_events_kwargs["num_events"] = {
                k: v for k, v in num_events_kwargs.items() if v is not None
            }
        if env.get("ARTIFACT_DIRICHLET_ALPHA") is not None:
            fill_events_kwargs["artifact_node_popularity"] = {
                "dirichlet_alpha": env["ARTIFACT_DIRICHLET_ALPHA"]
            }
        if env.get("EXECUTION_DIRICHLET_ALPHA") is not None:
            fill_events_kwargs["execution_node_popularity"] = {
                "dirichlet_alpha": env["EXECUTION_DIRICHLET_ALPHA"]
            }
        population_kwargs = {
            "max_artifacts": env.get("MAX_ARTIFACTS"),
            "max_executions": env.get("MAX_EXECUTIONS"),
        }
        storage_kwargs = {
            "data_dir": env.get("DATA_DIR"),
            "database_name": env.get("DATABASE_NAME"),
        }
        service_kwargs = {
            "host": env.get("SERVICE_HOST"),
            "port": env.get("SERVICE_PORT"),
            "api_key": env.get("SERVICE_API_KEY"),
        }
        payload: dict[str, object] = {}
        if any(value is not None for value in fill_events_kwargs.values()):
            payload["fill_events"] = {k: v for k, v in fill_events_kwargs.items() if v is not None}
        if any(value is not None for value in population_kwargs.values()):
            payload["population"] = {k: v for k, v in population_kwargs.items() if v is not None}
        if any(value is not None for value in storage_kwargs.values()):
            payload["storage"] = {k: v for k, v in storage_kwargs.items() if v is not None}
        if any(value is not None for value in service_kwargs.values()):
            payload["service"] = {k: v for k, v in service_kwargs.items() if v is not None}
        return cls(**payload)
