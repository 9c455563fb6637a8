"""Alert store interface and implementations."""

from abc import ABC, abstractmethod
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import FieldCondition, Filter, MatchValue

from alertsearch.alerts.models import Alert
from alertsearch.config import QdrantSettings, get_settings
from alertsearch.exceptions import AlertStoreError, ErrorCode
from alertsearch.logging_config import get_logger

logger = get_logger(__name__)


class AlertStore(ABC):
    """Abstract base class for alert stores.

    Read-only view of the alerts the retrieval engine ranks.
    """

    @abstractmethod
    async def fetch_active_alerts(self) -> list[Alert]:
        """Fetch every active alert.

        Returns:
            Active alerts, newest first.

        Raises:
            AlertStoreError: If the store cannot be read.
        """
        ...

    @abstractmethod
    async def fetch_alert(self, alert_id: str) -> Alert | None:
        """Fetch a single alert by id.

        Args:
            alert_id: Alert identifier.

        Returns:
            The alert, or None if it does not exist.

        Raises:
            AlertStoreError: If the store cannot be read.
        """
        ...


class InMemoryAlertStore(AlertStore):
    """Dict-backed alert store for development and tests."""

    def __init__(self, alerts: list[Alert] | None = None) -> None:
        self._alerts: dict[str, Alert] = {}
        for alert in alerts or []:
            self.add(alert)

    def __len__(self) -> int:
        return len(self._alerts)

    def add(self, alert: Alert) -> None:
        """Insert or replace an alert."""
        self._alerts[alert.id] = alert

    def remove(self, alert_id: str) -> bool:
        """Remove an alert. Returns True if it existed."""
        return self._alerts.pop(alert_id, None) is not None

    async def fetch_active_alerts(self) -> list[Alert]:
        active = [a for a in self._alerts.values() if a.active]
        return sorted(active, key=lambda a: a.time_issued, reverse=True)

    async def fetch_alert(self, alert_id: str) -> Alert | None:
        return self._alerts.get(alert_id)


class QdrantAlertStore(AlertStore):
    """Alert store backed by Qdrant point payloads.

    Each point's payload is a serialized Alert; vectors are not read here
    since embeddings are owned by the embedding cache.
    """

    SCROLL_PAGE_SIZE = 256

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant alert store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def fetch_active_alerts(self) -> list[Alert]:
        """Scroll every point whose payload has active == true."""
        client = await self._get_client()
        collection = self._settings.collection_name
        active_filter = Filter(
            must=[FieldCondition(key="active", match=MatchValue(value=True))]
        )

        alerts: list[Alert] = []
        offset: Any = None
        try:
            while True:
                points, offset = await client.scroll(
                    collection_name=collection,
                    scroll_filter=active_filter,
                    limit=self.SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                alerts.extend(self._to_alert(point.id, point.payload) for point in points)
                if offset is None:
                    break
        except AlertStoreError:
            raise
        except Exception as e:
            raise AlertStoreError(
                f"Failed to fetch active alerts: {e}",
                code=ErrorCode.ALERT_STORE_ERROR,
                details={"collection": collection, "error": str(e)},
            ) from e

        logger.debug(
            f"Fetched {len(alerts)} active alerts",
            extra={"collection": collection},
        )
        return sorted(alerts, key=lambda a: a.time_issued, reverse=True)

    async def fetch_alert(self, alert_id: str) -> Alert | None:
        """Retrieve one point by id."""
        client = await self._get_client()
        collection = self._settings.collection_name

        try:
            points = await client.retrieve(
                collection_name=collection,
                ids=[alert_id],
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise AlertStoreError(
                f"Failed to fetch alert: {e}",
                code=ErrorCode.ALERT_STORE_ERROR,
                details={"collection": collection, "alert_id": alert_id},
            ) from e

        if not points:
            return None
        return self._to_alert(points[0].id, points[0].payload)

    @staticmethod
    def _to_alert(point_id: Any, payload: dict[str, Any] | None) -> Alert:
        """Build an Alert from a point payload, defaulting id to the point id."""
        data = dict(payload or {})
        data.setdefault("id", str(point_id))
        try:
            return Alert.model_validate(data)
        except ValueError as e:
            raise AlertStoreError(
                f"Malformed alert payload: {e}",
                code=ErrorCode.ALERT_STORE_ERROR,
                details={"point_id": str(point_id)},
            ) from e
