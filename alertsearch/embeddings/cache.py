"""Per-alert embedding cache with request coalescing.

At most one embedding computation runs per alert id at any time. Concurrent
callers for the same alert and text await the same task. Callers are shielded
from the task, so a cancelled caller never cancels the computation; the
finished record still lands in the cache for later requests.

Records live until the alert is removed (``invalidate``) and are recomputed
whenever the alert's embedding text no longer matches ``source_text``.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from alertsearch.alerts.models import Alert
from alertsearch.embeddings.models import EmbeddingRecord
from alertsearch.exceptions import EmbeddingUnavailable
from alertsearch.logging_config import get_logger
from alertsearch.observability.metrics import track_cache_lookup

logger = get_logger(__name__)

EmbedFn = Callable[[str], Awaitable[list[float]]]


@dataclass
class CacheStats:
    """Counters for cache lookups."""

    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    failures: int = 0


class EmbeddingCache:
    """Maps alert ids to their embedding records."""

    def __init__(self) -> None:
        self._records: dict[str, EmbeddingRecord] = {}
        # alert id -> (source text, task computing it)
        self._inflight: dict[str, tuple[str, asyncio.Task[EmbeddingRecord]]] = {}
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, alert_id: object) -> bool:
        return alert_id in self._records

    def get(self, alert_id: str) -> EmbeddingRecord | None:
        """Return the cached record for an alert, if any."""
        return self._records.get(alert_id)

    def invalidate(self, alert_id: str) -> bool:
        """Drop an alert's record. Returns True if one existed.

        A computation still running for the alert completes for its callers
        but its result is not stored.
        """
        self._inflight.pop(alert_id, None)
        return self._records.pop(alert_id, None) is not None

    def in_flight(self, alert_id: str) -> bool:
        """True while an embedding computation for the alert is running."""
        return alert_id in self._inflight

    async def ensure(self, alert: Alert, embed_fn: EmbedFn) -> EmbeddingRecord:
        """Return an up-to-date record for the alert, computing it if needed.

        Args:
            alert: Alert whose embedding is needed.
            embed_fn: Coroutine function turning text into a vector.

        Returns:
            Record whose source text matches the alert's current text.

        Raises:
            EmbeddingUnavailable: If the vector could not be computed. Nothing
                is cached in that case.
        """
        text = alert.embedding_text()

        while True:
            record = self._records.get(alert.id)
            if record is not None and record.matches(text):
                self.stats.hits += 1
                track_cache_lookup("hit")
                return record

            pending = self._inflight.get(alert.id)
            if pending is None:
                break

            pending_text, task = pending
            if pending_text == text:
                self.stats.coalesced += 1
                track_cache_lookup("coalesced")
                return await asyncio.shield(task)

            # An older text is still being embedded; let it finish first so
            # writes for one alert stay ordered.
            await asyncio.wait({task})

        self.stats.misses += 1
        track_cache_lookup("miss")
        if record is not None:
            logger.debug("Embedding is stale, recomputing", extra={"alert_id": alert.id})

        task = asyncio.create_task(self._compute(alert.id, text, embed_fn))
        task.add_done_callback(self._retrieve_exception)
        self._inflight[alert.id] = (text, task)
        return await asyncio.shield(task)

    async def _compute(self, alert_id: str, text: str, embed_fn: EmbedFn) -> EmbeddingRecord:
        try:
            try:
                vector = await embed_fn(text)
            except EmbeddingUnavailable:
                raise
            except Exception as e:
                raise EmbeddingUnavailable(
                    f"Embedding backend failed: {e}",
                    details={"alert_id": alert_id, "error": str(e)},
                ) from e

            if not vector:
                raise EmbeddingUnavailable(
                    "Embedding backend returned an empty vector",
                    details={"alert_id": alert_id},
                )
            if not all(math.isfinite(x) for x in vector):
                raise EmbeddingUnavailable(
                    "Embedding backend returned non-finite values",
                    details={"alert_id": alert_id},
                )

            record = EmbeddingRecord(alert_id=alert_id, vector=vector, source_text=text)
            pending = self._inflight.get(alert_id)
            if pending is not None and pending[1] is asyncio.current_task():
                self._records[alert_id] = record
            return record

        except EmbeddingUnavailable:
            self.stats.failures += 1
            track_cache_lookup("failure")
            raise

        finally:
            pending = self._inflight.get(alert_id)
            if pending is not None and pending[1] is asyncio.current_task():
                del self._inflight[alert_id]

    @staticmethod
    def _retrieve_exception(task: asyncio.Task[EmbeddingRecord]) -> None:
        # Every caller may have been cancelled; mark the failure as seen.
        if not task.cancelled():
            task.exception()
