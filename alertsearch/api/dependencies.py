"""Service wiring for the HTTP layer."""

from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException, Request, status

from alertsearch.alerts.store import AlertStore, QdrantAlertStore
from alertsearch.config import Settings
from alertsearch.embeddings.cache import EmbeddingCache
from alertsearch.embeddings.service import HTTPEmbeddingService
from alertsearch.geo.geocoder import Geocoder, NominatimGeocoder
from alertsearch.llm.client import OpenAICompatibleClient
from alertsearch.query.service import AlertQueryService
from alertsearch.retrieval.pipeline import RetrievalPipeline
from alertsearch.summary.summarizer import LLMSummarizer


@dataclass
class AppServices:
    """Long-lived services shared by all requests.

    Attributes:
        query_service: Answers natural-language queries.
        store: Alert store.
        geocoder: Geocoding backend.
        closeables: Clients to close on shutdown.
    """

    query_service: AlertQueryService
    store: AlertStore
    geocoder: Geocoder
    closeables: list[Any] = field(default_factory=list)

    async def aclose(self) -> None:
        """Close every owned client."""
        for resource in self.closeables:
            await resource.close()
        self.closeables.clear()


def build_services(settings: Settings) -> AppServices:
    """Build production services from settings.

    One embedding cache is created here and shared by every request.
    """
    store = QdrantAlertStore(settings=settings.qdrant)
    embedding_service = HTTPEmbeddingService(settings=settings.embedding)
    llm_client = OpenAICompatibleClient(settings=settings.llm)
    geocoder = NominatimGeocoder(settings=settings.geocoding)

    pipeline = RetrievalPipeline(
        store=store,
        embedding_service=embedding_service,
        cache=EmbeddingCache(),
        settings=settings.retrieval,
    )
    query_service = AlertQueryService(
        pipeline=pipeline,
        summarizer=LLMSummarizer(llm_client),
    )

    return AppServices(
        query_service=query_service,
        store=store,
        geocoder=geocoder,
        closeables=[store, embedding_service, llm_client, geocoder],
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the application's services."""
    services: AppServices | None = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Services not configured",
                "message": "Alert search backends have not been initialized",
            },
        )
    return services
