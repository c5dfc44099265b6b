"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating required fields and providing actionable error messages.
"""

import os
import re
from typing import Literal, TypeVar

import dotenv
from pydantic import BaseModel, Field, field_validator

_T = TypeVar("_T", int, float)

# Column type names such as "VARCHAR", "VARCHAR(256)" or "CHARACTER VARYING".
_TYPE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z ]*(\(\s*\d+\s*(,\s*\d+\s*)?\))?$")


def _get_required_env(name: str) -> str:
    """Read a required env var or raise a helpful error."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required. Please set it in your .env file.")
    if value.startswith("your_") and value.endswith("_here"):
        raise ValueError(f"{name} is required. Please replace the placeholder value in your .env file.")
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


class MetricStoreConfig(BaseModel):
    """Connection and behavior settings for the metric store."""

    driver: Literal["duckdb", "sqlite"] = Field(default="duckdb", description="Store driver")
    url: str = Field(..., description="Database path (or ':memory:')")
    username: str = Field(default="", description="Store user (ignored by embedded drivers)")
    password: str = Field(default="", description="Store password (ignored by embedded drivers)")
    text_type: str | None = Field(default=None, description="Column type for text values; dialect default when unset")
    record_all_metrics: bool = Field(default=False, description="Record every metric key, not only the allow-list")

    connect_timeout_s: float = Field(default=5.0, description="Connect/busy timeout (seconds)")
    statement_timeout_s: float | None = Field(default=10.0, description="Per-statement timeout (seconds); None disables")

    @field_validator("url")
    def validate_url(cls, v: str) -> str:
        """Validate the database location is set (not empty/placeholder)."""
        v = v.strip()
        if not v or v == "your_metrics_db_url_here":
            raise ValueError("METRICS_DB_URL is required. Please set it in your .env file.")
        return v

    @field_validator("text_type")
    def validate_text_type(cls, v: str | None) -> str | None:
        """Reject text types that could not be a plain column type name."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not _TYPE_NAME_RE.match(v):
            raise ValueError(f"METRICS_DB_TEXT_TYPE must be a column type name like VARCHAR(256). Got: {v!r}")
        return v.upper()

    @field_validator("connect_timeout_s")
    def validate_connect_timeout(cls, v: float) -> float:
        """Connect timeout must be positive."""
        if v <= 0:
            raise ValueError(f"METRICS_DB_CONNECT_TIMEOUT must be > 0. Got: {v}")
        return v

    @field_validator("statement_timeout_s")
    def validate_statement_timeout(cls, v: float | None) -> float | None:
        """Zero (or less) disables the statement timeout."""
        if v is None or v <= 0:
            return None
        return v


class Config(BaseModel):
    """Top-level application configuration."""

    metrics: MetricStoreConfig = Field(..., description="Metric store configuration")


def load_config() -> Config:
    """Load application configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when required configuration is
      missing or still contains placeholder values.
    """
    # Load variables from `.env` into the process environment (without overriding
    # already-set env vars).
    dotenv.load_dotenv()

    metrics = MetricStoreConfig(
        driver=os.getenv("METRICS_DB_DRIVER", "duckdb").strip().lower() or "duckdb",
        url=_get_required_env("METRICS_DB_URL"),
        username=os.getenv("METRICS_DB_USERNAME", ""),
        password=os.getenv("METRICS_DB_PASSWORD", ""),
        text_type=os.getenv("METRICS_DB_TEXT_TYPE") or None,
        record_all_metrics=_get_env_bool("METRICS_RECORD_ALL", False),
        connect_timeout_s=_get_env_number("METRICS_DB_CONNECT_TIMEOUT", 5.0, float),
        statement_timeout_s=_get_env_number("METRICS_DB_STATEMENT_TIMEOUT", 10.0, float),
    )
    return Config(metrics=metrics)
