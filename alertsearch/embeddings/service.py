"""Embedding service interface and implementations."""

import time
from abc import ABC, abstractmethod

import httpx

from alertsearch.config import EmbeddingSettings, get_settings
from alertsearch.embeddings.models import EmbeddingResult
from alertsearch.exceptions import EmbeddingUnavailable, ErrorCode
from alertsearch.logging_config import get_logger
from alertsearch.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingUnavailable: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed.

        Returns:
            List of EmbeddingResult objects.

        Raises:
            EmbeddingUnavailable: If embedding fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    async def embed_vector(self, text: str) -> list[float]:
        """Embed a text and return only the vector."""
        result = await self.embed(text)
        return result.embedding


class HTTPEmbeddingService(EmbeddingService):
    """Embedding service using HTTP API.

    Compatible with OpenAI-style embedding APIs and
    text-embeddings-inference (TEI) servers.
    """

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    async def embed(self, text: str) -> EmbeddingResult:
        results = await self.embed_batch([text])
        if not results:
            raise EmbeddingUnavailable(
                "Embedding service returned no vectors",
                details={"model": self._settings.model},
            )
        return results[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        if not texts:
            return []

        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"

        all_results: list[EmbeddingResult] = []
        batch_size = self._settings.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            start = time.perf_counter()
            try:
                batch_results = await self._embed_batch_request(client, url, batch)
            except EmbeddingUnavailable:
                track_embedding_request(
                    model=self._settings.model,
                    duration=time.perf_counter() - start,
                    batch_size=len(batch),
                    success=False,
                )
                raise
            track_embedding_request(
                model=self._settings.model,
                duration=time.perf_counter() - start,
                batch_size=len(batch),
            )
            all_results.extend(batch_results)

        return all_results

    async def _embed_batch_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
    ) -> list[EmbeddingResult]:
        """Make embedding request for a batch.

        Args:
            client: HTTP client.
            url: Embedding endpoint URL.
            texts: Batch of texts.

        Returns:
            List of EmbeddingResult objects.

        Raises:
            EmbeddingUnavailable: If request fails.
        """
        payload = {
            "input": texts,
            "model": self._settings.model,
        }

        headers = {}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key.get_secret_value()}"

        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(
                f"Embedding request failed: {status}",
                extra={"url": url, "status": status},
            )
            raise EmbeddingUnavailable(
                f"Embedding service returned {status}",
                code=(
                    ErrorCode.EMBEDDING_RATE_LIMIT
                    if status == 429
                    else ErrorCode.EMBEDDING_UNAVAILABLE
                ),
                details={"status_code": status},
            ) from e
        except httpx.RequestError as e:
            logger.error(
                f"Embedding request error: {e}",
                extra={"url": url},
            )
            raise EmbeddingUnavailable(
                f"Failed to connect to embedding service: {e}",
                details={"url": url},
            ) from e

        try:
            data = response.json()
            embeddings = data["data"]
            if len(embeddings) != len(texts):
                raise ValueError(
                    f"expected {len(texts)} embeddings, got {len(embeddings)}"
                )

            results: list[EmbeddingResult] = []
            for i, emb_data in enumerate(embeddings):
                embedding = emb_data["embedding"]
                if not embedding:
                    raise ValueError(f"empty embedding at index {i}")

                results.append(
                    EmbeddingResult(
                        text=texts[i],
                        embedding=embedding,
                        model=self._settings.model,
                        dimensions=len(embedding),
                    )
                )

            return results

        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingUnavailable(
                f"Invalid response from embedding service: {e}",
                details={"error": str(e)},
            ) from e
