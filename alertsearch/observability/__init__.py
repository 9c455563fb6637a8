"""Observability module for metrics and monitoring."""

from alertsearch.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    track_cache_lookup,
    track_embedding_request,
    track_llm_request,
    track_retrieval,
    track_summary,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "track_cache_lookup",
    "track_embedding_request",
    "track_llm_request",
    "track_retrieval",
    "track_summary",
]
