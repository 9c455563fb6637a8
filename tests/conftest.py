"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.alerts.store import InMemoryAlertStore
from alertsearch.api.app import app
from alertsearch.api.dependencies import AppServices
from alertsearch.embeddings.models import EmbeddingResult
from alertsearch.embeddings.service import EmbeddingService
from alertsearch.exceptions import EmbeddingUnavailable
from alertsearch.geo.geocoder import Geocoder
from alertsearch.query.service import AlertQueryService
from alertsearch.retrieval.pipeline import RetrievalPipeline


class FakeEmbeddingService(EmbeddingService):
    """Embedding service returning preset vectors.

    Texts without a preset vector get ``default``; with no default they
    fail the way an unreachable backend does.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        fail: bool = False,
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = default
        self.fail = fail
        self.calls: list[str] = []

    @property
    def model_name(self) -> str:
        return "fake-embedder"

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        vector = self.vectors.get(text, self.default)
        if self.fail or vector is None:
            raise EmbeddingUnavailable("Embedding backend unreachable")
        return EmbeddingResult(
            text=text,
            embedding=vector,
            model=self.model_name,
            dimensions=len(vector),
        )

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        return [await self.embed(text) for text in texts]


@pytest.fixture
def make_alert() -> Callable[..., Alert]:
    """Factory for alerts with sensible defaults."""

    def _make(
        alert_id: str,
        title: str = "Alert",
        position: tuple[float, float] | None = None,
        issued: datetime | None = None,
        **kwargs: Any,
    ) -> Alert:
        return Alert(
            id=alert_id,
            title=title,
            position=(
                Coordinate(latitude=position[0], longitude=position[1])
                if position is not None
                else None
            ),
            time_issued=issued or datetime(2024, 6, 1, 12, 0, tzinfo=UTC),
            **kwargs,
        )

    return _make


@pytest.fixture
def fake_embeddings() -> Callable[..., FakeEmbeddingService]:
    """Factory for fake embedding services."""
    return FakeEmbeddingService


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def install_services() -> Iterator[Callable[..., AppServices]]:
    """Install in-memory services on the app for the duration of a test."""

    def _install(
        alerts: list[Alert],
        embedding_service: EmbeddingService,
        geocoder: Geocoder,
    ) -> AppServices:
        store = InMemoryAlertStore(alerts)
        services = AppServices(
            query_service=AlertQueryService(
                pipeline=RetrievalPipeline(store=store, embedding_service=embedding_service)
            ),
            store=store,
            geocoder=geocoder,
        )
        app.state.services = services
        return services

    yield _install
    app.state.services = None
