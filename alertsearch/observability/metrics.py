"""Prometheus metrics for alert search.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Query latency and retrieval mode (semantic or keyword fallback)
- Embedding request latency and embedding cache effectiveness
- Ranked result counts and top similarity
- LLM latency and token usage
- Summarization fallbacks
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from alertsearch.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Query Metrics
QUERY_DURATION = Histogram(
    "alert_query_duration_seconds",
    "Alert query duration in seconds",
    ["mode"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

RETRIEVAL_MODE_TOTAL = Counter(
    "alert_retrieval_mode_total",
    "Retrievals by strategy that produced the result",
    ["mode"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)

EMBEDDING_CACHE_LOOKUPS = Counter(
    "embedding_cache_lookups_total",
    "Embedding cache lookups",
    ["result"],  # hit, miss, coalesced, failure
)

# Ranking Metrics
RANKED_RESULTS_RETURNED = Histogram(
    "ranked_alerts_returned",
    "Number of alerts returned per retrieval",
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

RANKED_TOP_SIMILARITY = Histogram(
    "ranked_top_similarity",
    "Top similarity score per semantic retrieval",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# LLM Metrics
LLM_REQUEST_DURATION = Histogram(
    "llm_request_duration_seconds",
    "LLM request duration in seconds",
    ["model", "status"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

LLM_TOKENS_TOTAL = Counter(
    "llm_tokens_total",
    "Total LLM tokens used",
    ["model", "type"],  # "type" label values: prompt, completion
)

LLM_REQUEST_TOTAL = Counter(
    "llm_requests_total",
    "Total LLM requests",
    ["model", "status"],
)

# Summarization Metrics
SUMMARY_TOTAL = Counter(
    "alert_summaries_total",
    "Answers by summarizer used",
    ["summarizer"],  # llm, template
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        if path.startswith("/api/v1/"):
            parts = path.split("/")
            if len(parts) >= 4:
                return f"/api/v1/{parts[3]}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_cache_lookup(result: str) -> None:
    """Count one embedding cache lookup outcome."""
    EMBEDDING_CACHE_LOOKUPS.labels(result=result).inc()


def track_retrieval(
    mode: str,
    duration: float,
    results_returned: int,
    top_similarity: float | None = None,
) -> None:
    """Track a completed retrieval.

    Args:
        mode: Strategy that produced the result ("semantic" or "keyword").
        duration: Retrieval duration in seconds.
        results_returned: Number of ranked alerts returned.
        top_similarity: Best similarity score, semantic mode only.
    """
    QUERY_DURATION.labels(mode=mode).observe(duration)
    RETRIEVAL_MODE_TOTAL.labels(mode=mode).inc()
    RANKED_RESULTS_RETURNED.observe(results_returned)
    if top_similarity is not None and top_similarity > 0:
        RANKED_TOP_SIMILARITY.observe(top_similarity)


def track_summary(summarizer: str) -> None:
    """Count which summarizer produced an answer."""
    SUMMARY_TOTAL.labels(summarizer=summarizer).inc()


def track_llm_request(
    model: str,
    duration: float,
    prompt_tokens: int,
    completion_tokens: int,
    success: bool = True,
) -> None:
    """Track LLM request metrics.

    Args:
        model: LLM model name.
        duration: Request duration in seconds.
        prompt_tokens: Number of prompt tokens.
        completion_tokens: Number of completion tokens.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    LLM_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    LLM_REQUEST_TOTAL.labels(model=model, status=status).inc()

    if success:
        LLM_TOKENS_TOTAL.labels(model=model, type="prompt").inc(prompt_tokens)
        LLM_TOKENS_TOTAL.labels(model=model, type="completion").inc(completion_tokens)
