"""
Fusion Portal Observability Module.

Provides in-process metrics collection for backend calls, errors, and verifications.
"""

from fusion_portal.observability.metrics import MetricsStore, get_metrics_store

__all__ = ["MetricsStore", "get_metrics_store"]
