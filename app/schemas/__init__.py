"""
app/schemas package marker.
"""

from app.schemas.metrics import MetricValueResponse, SectionMetricsResponse

__all__ = [
    "MetricValueResponse",
    "SectionMetricsResponse",
]
