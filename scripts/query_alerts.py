#!/usr/bin/env python
"""Query a set of alerts from the command line.

Usage:
    python -m scripts.query_alerts --seed data/alerts.json --query "road closures" \
        --lat -37.81 --lng 144.96

Alerts are loaded from a JSON file into an in-memory store; embeddings and
summaries use the configured backends. Without a reachable embedding backend
the query falls back to keyword matching.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.alerts.store import InMemoryAlertStore
from alertsearch.config import get_settings
from alertsearch.embeddings.service import HTTPEmbeddingService
from alertsearch.exceptions import AlertSearchError
from alertsearch.geo.geocoder import NominatimGeocoder, enrich_alert_position
from alertsearch.llm.client import OpenAICompatibleClient
from alertsearch.logging_config import get_logger, setup_logging
from alertsearch.query.models import QueryAnswer
from alertsearch.query.service import AlertQueryService
from alertsearch.retrieval.models import MatchMode, RankingOptions
from alertsearch.retrieval.pipeline import RetrievalPipeline
from alertsearch.summary.summarizer import LLMSummarizer

logger = get_logger(__name__)


def load_alerts(path: Path) -> list[Alert]:
    """Load alerts from a JSON array (or {"alerts": [...]}) file."""
    data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("alerts", [])
    return [Alert.model_validate(item) for item in data]


def print_answer(answer: QueryAnswer) -> None:
    """Print an answer and its ranked alerts."""
    print("\n" + "=" * 60)
    print(f"MODE: {answer.mode.value}  SUMMARIZED BY: {answer.summarized_by}")
    print("=" * 60)
    print(answer.answer)
    print("-" * 60)
    for i, result in enumerate(answer.relevant_alerts, start=1):
        distance = (
            f"{result.distance_km:.1f} km" if result.distance_km is not None else "n/a"
        )
        score = (
            "keyword"
            if result.matched_by == MatchMode.KEYWORD
            else f"similarity {result.similarity_score:.3f}"
        )
        print(f"{i:>2}. [{result.alert.id}] {result.alert.title} ({score}, distance {distance})")
    print("=" * 60)


async def run_query(
    seed_path: Path,
    query: str,
    location: Coordinate | None,
    floor: float | None,
    max_results: int | None,
    use_llm: bool,
    geocode_missing: bool,
) -> QueryAnswer:
    """Load alerts, run one query, and return the answer.

    Args:
        seed_path: Path to the alerts JSON file.
        query: Natural-language query.
        location: Requester location, if any.
        floor: Similarity floor override.
        max_results: Result cap override.
        use_llm: Summarize with the configured LLM instead of the template.
        geocode_missing: Geocode alerts that have no position.

    Returns:
        The query answer.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)

    alerts = load_alerts(seed_path)
    logger.info(f"Loaded {len(alerts)} alerts from {seed_path}")

    closeables = []
    if geocode_missing:
        geocoder = NominatimGeocoder(settings=settings.geocoding)
        closeables.append(geocoder)
        alerts = [await enrich_alert_position(alert, geocoder) for alert in alerts]

    embedding_service = HTTPEmbeddingService(settings=settings.embedding)
    closeables.append(embedding_service)

    summarizer = None
    if use_llm:
        llm_client = OpenAICompatibleClient(settings=settings.llm)
        closeables.append(llm_client)
        summarizer = LLMSummarizer(llm_client)

    options = RankingOptions.from_settings(settings.retrieval)
    overrides = {}
    if floor is not None:
        overrides["similarity_floor"] = floor
    if max_results is not None:
        overrides["max_results"] = max_results
    options = RankingOptions(**{**options.model_dump(), **overrides})

    service = AlertQueryService(
        pipeline=RetrievalPipeline(
            store=InMemoryAlertStore(alerts),
            embedding_service=embedding_service,
            settings=settings.retrieval,
        ),
        summarizer=summarizer,
    )

    try:
        return await service.answer(query, requester_location=location, options=options)
    finally:
        for resource in closeables:
            await resource.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Query alerts semantically, optionally near a location",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--seed",
        type=Path,
        required=True,
        help="Path to alerts JSON file",
    )
    parser.add_argument(
        "--query",
        required=True,
        help="Natural-language query",
    )
    parser.add_argument("--lat", type=float, default=None, help="Requester latitude")
    parser.add_argument("--lng", type=float, default=None, help="Requester longitude")
    parser.add_argument(
        "--floor",
        type=float,
        default=None,
        help="Similarity floor (0 keeps every alert)",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Maximum alerts returned",
    )
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Use the templated summary instead of the LLM",
    )
    parser.add_argument(
        "--geocode-missing",
        action="store_true",
        help="Geocode alerts that have no position",
    )

    args = parser.parse_args()

    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    location = None
    if args.lat is not None:
        location = Coordinate(latitude=args.lat, longitude=args.lng)

    try:
        answer = asyncio.run(
            run_query(
                seed_path=args.seed,
                query=args.query,
                location=location,
                floor=args.floor,
                max_results=args.max_results,
                use_llm=not args.no_llm,
                geocode_missing=args.geocode_missing,
            )
        )
    except AlertSearchError as e:
        logger.error(f"Query failed: {e.message}", extra={"error_code": e.code.value})
        sys.exit(1)

    print_answer(answer)


if __name__ == "__main__":
    main()
