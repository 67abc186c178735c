"""
Monitoring and observability package.
"""

from spreadmaker.monitoring.metrics_rich import RichMetrics, start_metrics_server

__all__ = [
    "RichMetrics",
    "start_metrics_server",
]
