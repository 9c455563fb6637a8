"""Alert retrieval pipeline.

Embeds the query, then hands the request to the first strategy that can
serve it: semantic ranking when the query embedding is available, keyword
matching otherwise. A failed query embedding is recovered here; store and
ranking failures surface as RetrievalFailed.
"""

import time

from alertsearch.alerts.models import Coordinate
from alertsearch.alerts.store import AlertStore
from alertsearch.config import RetrievalSettings, get_settings
from alertsearch.embeddings.cache import EmbeddingCache
from alertsearch.embeddings.service import EmbeddingService
from alertsearch.exceptions import RetrievalFailed
from alertsearch.logging_config import get_logger
from alertsearch.observability.metrics import track_retrieval
from alertsearch.retrieval.models import (
    MatchMode,
    RankedResult,
    RankingOptions,
    RetrievalResponse,
    SummaryInput,
)
from alertsearch.retrieval.ranker import RelevanceRanker
from alertsearch.retrieval.strategies import (
    KeywordStrategy,
    RetrievalContext,
    RetrievalStrategy,
    SemanticStrategy,
    tokenize,
)

logger = get_logger(__name__)


class RetrievalPipeline:
    """Orchestrates query embedding, candidate embedding and ranking."""

    def __init__(
        self,
        store: AlertStore,
        embedding_service: EmbeddingService,
        cache: EmbeddingCache | None = None,
        ranker: RelevanceRanker | None = None,
        settings: RetrievalSettings | None = None,
        strategies: list[RetrievalStrategy] | None = None,
    ) -> None:
        """Initialize the retrieval pipeline.

        Args:
            store: Source of active alerts.
            embedding_service: Embedding backend for queries and alerts.
            cache: Shared embedding cache. A private one is created if omitted.
            ranker: Relevance ranker.
            settings: Ranking defaults.
            strategies: Strategies in priority order. Defaults to semantic
                then keyword.
        """
        self._embedding_service = embedding_service
        self._settings = settings or get_settings().retrieval
        self.cache = cache if cache is not None else EmbeddingCache()
        ranker = ranker or RelevanceRanker()
        self._strategies = strategies or [
            SemanticStrategy(
                store=store,
                embedding_service=embedding_service,
                cache=self.cache,
                ranker=ranker,
                concurrency=self._settings.embedding_concurrency,
            ),
            KeywordStrategy(store=store, ranker=ranker),
        ]

    async def retrieve(
        self,
        query: str,
        requester_location: Coordinate | None = None,
        options: RankingOptions | None = None,
    ) -> RetrievalResponse:
        """Find and rank the alerts relevant to a query.

        Args:
            query: Natural-language query.
            requester_location: Where the requester is, if known.
            options: Ranking options. Defaults to the configured query floor,
                cap and weights.

        Returns:
            Ranked alerts and the matching summary input.

        Raises:
            RetrievalFailed: If the alert store or ranking fails.
        """
        options = options or RankingOptions.from_settings(self._settings)

        if not query.strip():
            return self._response(query, [], requester_location, MatchMode.SEMANTIC)

        start = time.perf_counter()
        context = RetrievalContext(
            query=query,
            options=options,
            requester_location=requester_location,
            query_embedding=await self._embed_query(query),
            tokens=tokenize(query),
        )

        for strategy in self._strategies:
            if not strategy.can_handle(context):
                continue

            try:
                results = await strategy.run(context)
            except RetrievalFailed:
                raise
            except Exception as e:
                logger.error(f"Retrieval failed: {e}", extra={"mode": strategy.mode.value})
                raise RetrievalFailed(
                    f"Failed to retrieve alerts: {e}",
                    details={
                        "query": query[:100],
                        "mode": strategy.mode.value,
                        "error": str(e),
                    },
                ) from e

            top_similarity = None
            if strategy.mode == MatchMode.SEMANTIC and results:
                top_similarity = max(r.similarity_score for r in results)
            track_retrieval(
                mode=strategy.mode.value,
                duration=time.perf_counter() - start,
                results_returned=len(results),
                top_similarity=top_similarity,
            )

            logger.info(
                "Retrieved alerts",
                extra={
                    "mode": strategy.mode.value,
                    "results_count": len(results),
                    "has_location": requester_location is not None,
                },
            )
            return self._response(query, results, requester_location, strategy.mode)

        logger.warning("No retrieval strategy could handle the query", extra={"query": query[:100]})
        return self._response(query, [], requester_location, MatchMode.KEYWORD)

    async def _embed_query(self, query: str) -> list[float] | None:
        """Embed the query, or None when the backend cannot."""
        try:
            vector = await self._embedding_service.embed_vector(query)
        except Exception as e:
            logger.warning(
                f"Query embedding failed, falling back to keyword search: {e}",
                extra={"error": str(e)},
            )
            return None

        if not vector:
            logger.warning("Query embedding is empty, falling back to keyword search")
            return None
        return vector

    @staticmethod
    def _response(
        query: str,
        results: list[RankedResult],
        requester_location: Coordinate | None,
        mode: MatchMode,
    ) -> RetrievalResponse:
        return RetrievalResponse(
            relevant_alerts=results,
            summary_input=SummaryInput.from_results(query, results, requester_location),
            mode=mode,
        )
