"""Metric sample model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MetricSample(BaseModel):
    """One `(timestamp, key, tags, value)` observation to persist.

    Tag order is significant: it determines generated column order.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    timestamp: datetime
    key: str
    tags: dict[str, Any] = Field(default_factory=dict)
    value: Any
