"""Relevance ranking that blends similarity with distance to the requester.

Scores are rank-based: within one batch, each candidate's similarity and
distance are turned into positions scaled to [0, 1] (best = 1.0), so a
[0, 1] similarity and a distance in kilometers weigh in on the same scale.
Candidates with a known distance always come before those without one.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.geo.distance import try_distance_km
from alertsearch.logging_config import get_logger
from alertsearch.retrieval.models import (
    KEYWORD_MATCH_SCORE,
    Candidate,
    MatchMode,
    RankedResult,
    RankingOptions,
)
from alertsearch.retrieval.similarity import cosine_similarity

logger = get_logger(__name__)


@dataclass
class _Scored:
    alert: Alert
    similarity: float
    distance: float | None = None
    combined: float = 0.0


def normalized_ranks(values: list[float], higher_is_better: bool) -> list[float]:
    """Scale each value's rank position to [0, 1], best = 1.0.

    Equal values share the rank of the first of them. A single value
    gets 1.0.

    Args:
        values: Values to rank.
        higher_is_better: Rank descending when True, ascending otherwise.

    Returns:
        Normalized rank per input value, in input order.
    """
    n = len(values)
    if n == 0:
        return []
    if n == 1:
        return [1.0]

    order = sorted(range(n), key=lambda i: values[i], reverse=higher_is_better)
    ranks = [0.0] * n
    position = 0
    for pos, idx in enumerate(order):
        if pos > 0 and values[idx] != values[order[pos - 1]]:
            position = pos
        ranks[idx] = 1.0 - position / (n - 1)
    return ranks


def _ordered(scored: list[_Scored]) -> list[_Scored]:
    """Distance-known first, then combined score, recency, and id."""
    # Two stable passes: id ascending is the last tie-break.
    by_id = sorted(scored, key=lambda s: s.alert.id)
    return sorted(
        by_id,
        key=lambda s: (s.distance is not None, s.combined, s.alert.time_issued),
        reverse=True,
    )


class RelevanceRanker:
    """Orders candidates by blended relevance and distance."""

    def rank(
        self,
        query_embedding: list[float],
        candidates: Iterable[Candidate],
        requester_location: Coordinate | None = None,
        options: RankingOptions | None = None,
    ) -> list[RankedResult]:
        """Rank candidates against a query embedding.

        Args:
            query_embedding: Embedding of the query text.
            candidates: Alerts to rank, each with its embedding if known.
            requester_location: Where the requester is, if known.
            options: Floor, cap and weights.

        Returns:
            At most ``options.max_results`` results, best first, with no
            repeated alert ids.
        """
        options = options or RankingOptions()
        keep_all = options.similarity_floor == 0

        survivors: list[_Scored] = []
        seen: set[str] = set()
        for candidate in candidates:
            alert_id = candidate.alert.id
            if alert_id in seen:
                continue
            seen.add(alert_id)

            if candidate.has_embedding:
                similarity = cosine_similarity(query_embedding, candidate.embedding or [])
            elif keep_all:
                similarity = 0.0
            else:
                continue

            if not keep_all and similarity < options.similarity_floor:
                continue

            distance = None
            if requester_location is not None:
                distance = try_distance_km(requester_location, candidate.alert.position)
            survivors.append(_Scored(candidate.alert, similarity, distance))

        similarity_ranks = normalized_ranks(
            [s.similarity for s in survivors], higher_is_better=True
        )
        with_distance = [s for s in survivors if s.distance is not None]
        distance_ranks = dict(
            zip(
                (id(s) for s in with_distance),
                normalized_ranks(
                    [s.distance for s in with_distance],  # type: ignore[misc]
                    higher_is_better=False,
                ),
            )
        )

        for scored, similarity_rank in zip(survivors, similarity_ranks):
            if scored.distance is None:
                scored.combined = scored.similarity
            else:
                scored.combined = (
                    options.relevance_weight * similarity_rank
                    + options.distance_weight * distance_ranks[id(scored)]
                )

        ranked = _ordered(survivors)[: options.max_results]

        logger.debug(
            f"Ranked {len(ranked)} of {len(seen)} candidates",
            extra={
                "survivors": len(survivors),
                "with_distance": len(with_distance),
                "similarity_floor": options.similarity_floor,
            },
        )

        return [
            RankedResult(
                alert=s.alert,
                similarity_score=s.similarity,
                distance_km=s.distance,
                combined_score=s.combined,
                matched_by=MatchMode.SEMANTIC,
            )
            for s in ranked
        ]

    def order_matches(
        self,
        alerts: Iterable[Alert],
        requester_location: Coordinate | None = None,
        max_results: int = 10,
    ) -> list[RankedResult]:
        """Order keyword matches, which carry no similarity.

        Most recent first, then by id. Distance is attached when both the
        requester and the alert have a position.

        Args:
            alerts: Matched alerts.
            requester_location: Where the requester is, if known.
            max_results: Maximum results returned.

        Returns:
            Results with the keyword sentinel as similarity.
        """
        unique: dict[str, Alert] = {}
        for alert in alerts:
            unique.setdefault(alert.id, alert)

        by_id = sorted(unique.values(), key=lambda a: a.id)
        ordered = sorted(by_id, key=lambda a: a.time_issued, reverse=True)

        results: list[RankedResult] = []
        for alert in ordered[:max_results]:
            distance = None
            if requester_location is not None:
                distance = try_distance_km(requester_location, alert.position)
            results.append(
                RankedResult(
                    alert=alert,
                    similarity_score=KEYWORD_MATCH_SCORE,
                    distance_km=distance,
                    combined_score=0.0,
                    matched_by=MatchMode.KEYWORD,
                )
            )
        return results
