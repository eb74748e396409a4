"""
Observability Package
=====================

Metrics for the AI Core gateway.

Example Usage:
--------------
from devportal.observability import get_metrics
body, content_type = get_metrics().export()
"""

from .metrics import MetricsCollector, get_metrics

__all__ = [
    'MetricsCollector',
    'get_metrics',
]
