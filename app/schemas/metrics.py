"""
app/schemas/metrics.py

Response schemas for derived ESG section metrics.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class MetricValueResponse(BaseModel):
    """
    One derived metric as rendered on a card chip.
    """

    metric: str = Field(..., min_length=1)
    value: float | None = None
    display: str
    defined: bool


class SectionMetricsResponse(BaseModel):
    """
    All derived metrics and soft warnings for one wizard section.
    """

    section: str = Field(..., min_length=1)
    metrics: list[MetricValueResponse] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    flags: dict[str, bool] = Field(default_factory=dict)
    rows: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    undefined_count: int = Field(0, ge=0)

    def value_of(self, metric: str) -> float | None:
        """Return the numeric value of *metric* (``None`` if undefined or absent)."""
        for item in self.metrics:
            if item.metric == metric:
                return item.value
        return None
