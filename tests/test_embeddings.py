"""Tests for the embedding service and embedding cache."""

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from alertsearch.alerts.models import Alert
from alertsearch.config import EmbeddingSettings
from alertsearch.embeddings.cache import EmbeddingCache
from alertsearch.embeddings.models import EmbeddingRecord, EmbeddingResult
from alertsearch.embeddings.service import HTTPEmbeddingService
from alertsearch.exceptions import EmbeddingUnavailable, ErrorCode


def _create_mock_response(embeddings: list[list[float]]) -> MagicMock:
    """Create a mock embeddings API response."""
    mock_response = MagicMock()
    mock_response.json.return_value = {"data": [{"embedding": e} for e in embeddings]}
    mock_response.raise_for_status = MagicMock()
    return mock_response


def _create_error_response(status: int) -> MagicMock:
    """Create a mock response that fails with an HTTP status."""
    mock_response = MagicMock()
    mock_response.status_code = status
    mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "Error",
        request=MagicMock(),
        response=mock_response,
    )
    return mock_response


class TestEmbeddingResult:
    """Tests for EmbeddingResult model."""

    def test_valid_result(self) -> None:
        """Valid embedding result is created."""
        result = EmbeddingResult(
            text="test",
            embedding=[0.1, 0.2, 0.3],
            model="test-model",
            dimensions=3,
        )
        assert result.dimensions == 3

    def test_dimensions_mismatch(self) -> None:
        """Mismatched dimensions raise error."""
        with pytest.raises(ValueError, match="dimensions"):
            EmbeddingResult(
                text="test",
                embedding=[0.1, 0.2, 0.3],
                model="test-model",
                dimensions=5,
            )


class TestEmbeddingRecord:
    """Tests for EmbeddingRecord model."""

    def test_matches_source_text(self) -> None:
        """Record matches only its exact source text."""
        record = EmbeddingRecord(alert_id="a1", vector=[1.0], source_text="Fire. Smoke.")
        assert record.matches("Fire. Smoke.")
        assert not record.matches("Fire. Smoke!")

    def test_last_updated_is_set(self) -> None:
        """Timestamp defaults to now in UTC."""
        record = EmbeddingRecord(alert_id="a1", vector=[1.0], source_text="x")
        assert record.last_updated.tzinfo is not None


class TestHTTPEmbeddingService:
    """Tests for HTTPEmbeddingService."""

    def test_model_name(self) -> None:
        """Service returns configured model name."""
        settings = EmbeddingSettings(model="test-model")
        service = HTTPEmbeddingService(settings=settings)
        assert service.model_name == "test-model"

    @pytest.mark.asyncio
    async def test_embed_single(self) -> None:
        """Single text embedding works."""
        settings = EmbeddingSettings(base_url="http://test:8080", model="test-model")
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_mock_response([[0.1, 0.2, 0.3]])

        service = HTTPEmbeddingService(settings=settings, client=mock_client)
        result = await service.embed("test text")

        assert result.text == "test text"
        assert result.embedding == [0.1, 0.2, 0.3]
        assert result.model == "test-model"
        assert mock_client.post.call_args.args[0] == "http://test:8080/embeddings"

    @pytest.mark.asyncio
    async def test_embed_vector(self) -> None:
        """embed_vector returns only the vector."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_mock_response([[0.5, 0.5]])

        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )

        assert await service.embed_vector("text") == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_sends_bearer_token_when_configured(self) -> None:
        """API key is sent as a bearer token."""
        settings = EmbeddingSettings(base_url="http://test:8080", api_key="sekret")
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_mock_response([[0.1]])

        service = HTTPEmbeddingService(settings=settings, client=mock_client)
        await service.embed("text")

        headers = mock_client.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sekret"

    @pytest.mark.asyncio
    async def test_embed_empty_list(self) -> None:
        """Empty list returns empty results."""
        service = HTTPEmbeddingService(settings=EmbeddingSettings(base_url="http://test:8080"))
        assert await service.embed_batch([]) == []

    @pytest.mark.asyncio
    async def test_embed_http_error(self) -> None:
        """HTTP error raises EmbeddingUnavailable."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_error_response(500)

        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )

        with pytest.raises(EmbeddingUnavailable) as exc_info:
            await service.embed("test")
        assert exc_info.value.code == ErrorCode.EMBEDDING_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_embed_rate_limited(self) -> None:
        """429 maps to the rate limit code."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_error_response(429)

        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )

        with pytest.raises(EmbeddingUnavailable) as exc_info:
            await service.embed("test")
        assert exc_info.value.code == ErrorCode.EMBEDDING_RATE_LIMIT

    @pytest.mark.asyncio
    async def test_embed_connection_error(self) -> None:
        """Connection error raises EmbeddingUnavailable."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = httpx.RequestError("Connection failed")

        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )

        with pytest.raises(EmbeddingUnavailable):
            await service.embed("test")

    @pytest.mark.asyncio
    async def test_count_mismatch_rejected(self) -> None:
        """Fewer vectors than inputs is an invalid response."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_mock_response([[0.1]])

        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )

        with pytest.raises(EmbeddingUnavailable, match="expected 2"):
            await service.embed_batch(["a", "b"])

    @pytest.mark.asyncio
    async def test_empty_vector_rejected(self) -> None:
        """An empty vector is an invalid response."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _create_mock_response([[]])

        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )

        with pytest.raises(EmbeddingUnavailable, match="empty embedding"):
            await service.embed("text")

    @pytest.mark.asyncio
    async def test_batch_chunking(self) -> None:
        """Large batches are chunked correctly."""
        settings = EmbeddingSettings(base_url="http://test:8080", batch_size=2)
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = lambda *_a, **_k: _create_mock_response([[0.1], [0.2]])

        service = HTTPEmbeddingService(settings=settings, client=mock_client)
        results = await service.embed_batch(["t1", "t2", "t3", "t4"])

        assert len(results) == 4
        assert mock_client.post.call_count == 2

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """Service closes owned client."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        service = HTTPEmbeddingService(
            settings=EmbeddingSettings(base_url="http://test:8080"),
            client=mock_client,
        )
        service._owns_client = True

        await service.close()

        mock_client.aclose.assert_awaited_once()


class TestEmbeddingCache:
    """Tests for EmbeddingCache."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, make_alert: Callable[..., Alert]) -> None:
        """First call computes, second call reuses the record."""
        cache = EmbeddingCache()
        alert = make_alert("a1", title="Bushfire")
        embed_fn = AsyncMock(return_value=[1.0, 0.0])

        first = await cache.ensure(alert, embed_fn)
        second = await cache.ensure(alert, embed_fn)

        assert first is second
        assert first.source_text == alert.embedding_text()
        embed_fn.assert_awaited_once_with(alert.embedding_text())
        assert cache.stats.misses == 1
        assert cache.stats.hits == 1
        assert "a1" in cache

    @pytest.mark.asyncio
    async def test_stale_text_is_recomputed(self, make_alert: Callable[..., Alert]) -> None:
        """An edited alert gets a fresh vector for its new text."""
        cache = EmbeddingCache()
        original = make_alert("a1", title="Road closed")
        edited = original.model_copy(update={"description": "Reopened at noon"})
        embed_fn = AsyncMock(side_effect=[[1.0, 0.0], [0.0, 1.0]])

        await cache.ensure(original, embed_fn)
        record = await cache.ensure(edited, embed_fn)

        assert record.vector == [0.0, 1.0]
        assert record.source_text == edited.embedding_text()
        assert embed_fn.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_computation(
        self, make_alert: Callable[..., Alert]
    ) -> None:
        """Concurrent ensure calls for one alert run the backend once."""
        cache = EmbeddingCache()
        alert = make_alert("a1", title="Flood warning")
        release = asyncio.Event()
        calls = 0

        async def embed_fn(_text: str) -> list[float]:
            nonlocal calls
            calls += 1
            await release.wait()
            return [0.6, 0.8]

        tasks = [asyncio.create_task(cache.ensure(alert, embed_fn)) for _ in range(10)]
        await asyncio.sleep(0)
        assert cache.in_flight("a1")
        release.set()
        records = await asyncio.gather(*tasks)

        assert calls == 1
        assert all(r is records[0] for r in records)
        assert cache.stats.misses == 1
        assert cache.stats.coalesced == 9
        assert not cache.in_flight("a1")

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, make_alert: Callable[..., Alert]) -> None:
        """A failed computation leaves no record and is retried next time."""
        cache = EmbeddingCache()
        alert = make_alert("a1")
        embed_fn = AsyncMock(side_effect=[EmbeddingUnavailable("down"), [1.0]])

        with pytest.raises(EmbeddingUnavailable):
            await cache.ensure(alert, embed_fn)
        assert cache.get("a1") is None
        assert cache.stats.failures == 1

        record = await cache.ensure(alert, embed_fn)
        assert record.vector == [1.0]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, make_alert: Callable[..., Alert]) -> None:
        """Backend errors of any type surface as EmbeddingUnavailable."""
        cache = EmbeddingCache()
        embed_fn = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(EmbeddingUnavailable, match="boom"):
            await cache.ensure(make_alert("a1"), embed_fn)

    @pytest.mark.asyncio
    async def test_empty_vector_is_failure(self, make_alert: Callable[..., Alert]) -> None:
        """An empty vector is never stored."""
        cache = EmbeddingCache()
        embed_fn = AsyncMock(return_value=[])

        with pytest.raises(EmbeddingUnavailable):
            await cache.ensure(make_alert("a1"), embed_fn)
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_computation(
        self, make_alert: Callable[..., Alert]
    ) -> None:
        """The record still lands in the cache when the only caller goes away."""
        cache = EmbeddingCache()
        alert = make_alert("a1")
        release = asyncio.Event()

        async def embed_fn(_text: str) -> list[float]:
            await release.wait()
            return [1.0, 1.0]

        caller = asyncio.create_task(cache.ensure(alert, embed_fn))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        for _ in range(5):
            await asyncio.sleep(0)

        record = cache.get("a1")
        assert record is not None
        assert record.vector == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_invalidate(self, make_alert: Callable[..., Alert]) -> None:
        """Invalidated records are recomputed."""
        cache = EmbeddingCache()
        alert = make_alert("a1")
        embed_fn = AsyncMock(return_value=[1.0])

        await cache.ensure(alert, embed_fn)
        assert cache.invalidate("a1") is True
        assert cache.invalidate("a1") is False

        await cache.ensure(alert, embed_fn)
        assert embed_fn.await_count == 2

    @pytest.mark.asyncio
    async def test_separate_alerts_computed_independently(
        self, make_alert: Callable[..., Alert]
    ) -> None:
        """Different alerts each get their own record."""
        cache = EmbeddingCache()
        embed_fn = AsyncMock(side_effect=[[1.0], [2.0]])

        first = await cache.ensure(make_alert("a1", title="One"), embed_fn)
        second = await cache.ensure(make_alert("a2", title="Two"), embed_fn)

        assert first.vector == [1.0]
        assert second.vector == [2.0]
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_edit_during_computation_waits_for_old_text(
        self, make_alert: Callable[..., Alert]
    ) -> None:
        """An edit while the old text is embedding recomputes after it finishes."""
        cache = EmbeddingCache()
        original = make_alert("a1", title="Road closed")
        edited = original.model_copy(update={"title": "Road reopened"})
        release = asyncio.Event()
        calls: list[str] = []

        async def embed_fn(text: str) -> list[float]:
            calls.append(text)
            await release.wait()
            return [1.0, 0.0] if text == original.embedding_text() else [0.0, 1.0]

        first = asyncio.create_task(cache.ensure(original, embed_fn))
        await asyncio.sleep(0)
        second = asyncio.create_task(cache.ensure(edited, embed_fn))
        await asyncio.sleep(0)
        assert calls == [original.embedding_text()]

        release.set()
        old_record, new_record = await asyncio.gather(first, second)

        assert calls == [original.embedding_text(), edited.embedding_text()]
        assert old_record.source_text == original.embedding_text()
        assert new_record.vector == [0.0, 1.0]
        record = cache.get("a1")
        assert record is not None
        assert record.source_text == edited.embedding_text()

    @pytest.mark.asyncio
    async def test_invalidate_during_computation_is_not_undone(
        self, make_alert: Callable[..., Alert]
    ) -> None:
        """A record finished after invalidate is returned but not stored."""
        cache = EmbeddingCache()
        alert = make_alert("a1")
        release = asyncio.Event()

        async def embed_fn(_text: str) -> list[float]:
            await release.wait()
            return [1.0]

        caller = asyncio.create_task(cache.ensure(alert, embed_fn))
        await asyncio.sleep(0)
        assert cache.in_flight("a1")

        cache.invalidate("a1")
        release.set()
        record = await caller

        assert record.vector == [1.0]
        assert cache.get("a1") is None
        assert not cache.in_flight("a1")

    @pytest.mark.asyncio
    async def test_non_finite_vector_is_failure(self, make_alert: Callable[..., Alert]) -> None:
        """Vectors with inf or nan values are never stored."""
        cache = EmbeddingCache()
        embed_fn = AsyncMock(side_effect=[[float("inf"), 1.0], [float("nan")]])

        with pytest.raises(EmbeddingUnavailable, match="non-finite"):
            await cache.ensure(make_alert("a1"), embed_fn)
        with pytest.raises(EmbeddingUnavailable):
            await cache.ensure(make_alert("a2"), embed_fn)
        assert len(cache) == 0
