"""Alert retrieval: similarity, ranking, strategies and pipeline."""

from alertsearch.retrieval.models import (
    KEYWORD_MATCH_SCORE,
    Candidate,
    MatchMode,
    RankedResult,
    RankingOptions,
    RetrievalResponse,
    SummaryAlert,
    SummaryInput,
)
from alertsearch.retrieval.pipeline import RetrievalPipeline
from alertsearch.retrieval.ranker import RelevanceRanker, normalized_ranks
from alertsearch.retrieval.similarity import cosine_similarity
from alertsearch.retrieval.strategies import (
    KeywordStrategy,
    RetrievalContext,
    RetrievalStrategy,
    SemanticStrategy,
    tokenize,
)

__all__ = [
    "KEYWORD_MATCH_SCORE",
    "Candidate",
    "KeywordStrategy",
    "MatchMode",
    "RankedResult",
    "RankingOptions",
    "RelevanceRanker",
    "RetrievalContext",
    "RetrievalPipeline",
    "RetrievalResponse",
    "RetrievalStrategy",
    "SemanticStrategy",
    "SummaryAlert",
    "SummaryInput",
    "cosine_similarity",
    "normalized_ranks",
    "tokenize",
]
