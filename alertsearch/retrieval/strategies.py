"""Retrieval strategies, tried in order by the pipeline.

Each strategy declares whether it can serve a request; the first one that
can, does. Semantic ranking needs a query embedding; keyword matching only
needs query tokens.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.alerts.store import AlertStore
from alertsearch.embeddings.cache import EmbeddingCache
from alertsearch.embeddings.service import EmbeddingService
from alertsearch.exceptions import EmbeddingUnavailable
from alertsearch.logging_config import get_logger
from alertsearch.retrieval.models import Candidate, MatchMode, RankedResult, RankingOptions
from alertsearch.retrieval.ranker import RelevanceRanker

logger = get_logger(__name__)

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "any", "are", "at", "be", "for", "from", "how", "in",
        "is", "it", "me", "my", "near", "of", "on", "or", "the", "there", "to",
        "what", "when", "where", "which", "with",
    }
)


def tokenize(text: str) -> list[str]:
    """Lowercased query words, minus stop words and single characters.

    Order of first appearance is kept and duplicates dropped.
    """
    tokens: list[str] = []
    for word in re.findall(r"\w+", text.lower()):
        if len(word) < 2 or word in STOP_WORDS or word in tokens:
            continue
        tokens.append(word)
    return tokens


def matches_tokens(alert: Alert, tokens: list[str]) -> bool:
    """True when any token occurs in the alert's title, description or location."""
    haystack = " ".join((alert.title, alert.description, alert.location)).lower()
    return any(token in haystack for token in tokens)


@dataclass
class RetrievalContext:
    """State of one retrieval request shared by the strategies."""

    query: str
    options: RankingOptions
    requester_location: Coordinate | None = None
    query_embedding: list[float] | None = None
    tokens: list[str] = field(default_factory=list)


class RetrievalStrategy(ABC):
    """One way of producing ranked alerts for a request."""

    mode: MatchMode

    @abstractmethod
    def can_handle(self, context: RetrievalContext) -> bool:
        """Whether this strategy has what it needs for the request."""
        ...

    @abstractmethod
    async def run(self, context: RetrievalContext) -> list[RankedResult]:
        """Produce ranked results.

        Raises:
            Exception: Store or ranking failures propagate to the pipeline.
        """
        ...


class SemanticStrategy(RetrievalStrategy):
    """Rank every active alert by embedding similarity and distance."""

    mode = MatchMode.SEMANTIC

    def __init__(
        self,
        store: AlertStore,
        embedding_service: EmbeddingService,
        cache: EmbeddingCache,
        ranker: RelevanceRanker,
        concurrency: int = 8,
    ) -> None:
        self._store = store
        self._embedding_service = embedding_service
        self._cache = cache
        self._ranker = ranker
        self._concurrency = concurrency

    def can_handle(self, context: RetrievalContext) -> bool:
        return bool(context.query_embedding)

    async def run(self, context: RetrievalContext) -> list[RankedResult]:
        alerts = await self._store.fetch_active_alerts()
        candidates = await self._embed_candidates(alerts)

        missing = sum(1 for c in candidates if not c.has_embedding)
        if missing:
            logger.warning(
                f"{missing} of {len(candidates)} alerts have no embedding",
                extra={"missing": missing, "candidates": len(candidates)},
            )

        results = self._ranker.rank(
            query_embedding=context.query_embedding or [],
            candidates=candidates,
            requester_location=context.requester_location,
            options=context.options,
        )
        if missing and context.options.similarity_floor > 0:
            results += self._keyword_matches_without_embedding(candidates, results, context)
        return results

    def _keyword_matches_without_embedding(
        self,
        candidates: list[Candidate],
        ranked: list[RankedResult],
        context: RetrievalContext,
    ) -> list[RankedResult]:
        """Keyword matches among alerts the floor dropped for lack of an embedding.

        Appended after the semantic results, within the remaining room.
        """
        room = context.options.max_results - len(ranked)
        if room <= 0 or not context.tokens:
            return []

        ranked_ids = {r.alert.id for r in ranked}
        matches = [
            c.alert
            for c in candidates
            if not c.has_embedding
            and c.alert.id not in ranked_ids
            and matches_tokens(c.alert, context.tokens)
        ]
        return self._ranker.order_matches(
            matches,
            requester_location=context.requester_location,
            max_results=room,
        )

    async def _embed_candidates(self, alerts: list[Alert]) -> list[Candidate]:
        """Ensure an embedding per alert; failures leave that alert without one."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def embed_one(alert: Alert) -> Candidate:
            async with semaphore:
                try:
                    record = await self._cache.ensure(alert, self._embedding_service.embed_vector)
                except EmbeddingUnavailable as e:
                    logger.warning(
                        f"Alert embedding unavailable: {e.message}",
                        extra={"alert_id": alert.id, "error_code": e.code.value},
                    )
                    return Candidate(alert=alert)
                return Candidate(alert=alert, embedding=record.vector)

        return list(await asyncio.gather(*(embed_one(a) for a in alerts)))


class KeywordStrategy(RetrievalStrategy):
    """Case-insensitive match of query words in title, description or location."""

    mode = MatchMode.KEYWORD

    def __init__(self, store: AlertStore, ranker: RelevanceRanker) -> None:
        self._store = store
        self._ranker = ranker

    def can_handle(self, context: RetrievalContext) -> bool:
        return bool(context.tokens)

    async def run(self, context: RetrievalContext) -> list[RankedResult]:
        alerts = await self._store.fetch_active_alerts()
        matches = [a for a in alerts if matches_tokens(a, context.tokens)]

        logger.debug(
            f"Keyword search matched {len(matches)} alerts",
            extra={"tokens": context.tokens},
        )

        return self._ranker.order_matches(
            matches,
            requester_location=context.requester_location,
            max_results=context.options.max_results,
        )
