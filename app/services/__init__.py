"""
app/services package marker.
"""

from app.services.metrics_orchestrator import MetricsOrchestrator, UnknownSectionError
from app.services.metrics_service import MetricResult, MetricsService

__all__ = [
    "MetricResult",
    "MetricsOrchestrator",
    "MetricsService",
    "UnknownSectionError",
]
