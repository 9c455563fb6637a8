"""Alert records and alert store access."""

from alertsearch.alerts.models import Alert, Category, Coordinate, Severity
from alertsearch.alerts.store import AlertStore, InMemoryAlertStore, QdrantAlertStore

__all__ = [
    "Alert",
    "AlertStore",
    "Category",
    "Coordinate",
    "InMemoryAlertStore",
    "QdrantAlertStore",
    "Severity",
]
