"""Embedding service and per-alert embedding cache."""

from alertsearch.embeddings.cache import CacheStats, EmbedFn, EmbeddingCache
from alertsearch.embeddings.models import EmbeddingRecord, EmbeddingResult
from alertsearch.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "CacheStats",
    "EmbedFn",
    "EmbeddingCache",
    "EmbeddingRecord",
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
]
