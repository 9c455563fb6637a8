"""Natural-language alert queries."""

from alertsearch.query.models import QueryAnswer
from alertsearch.query.service import AlertQueryService

__all__ = [
    "AlertQueryService",
    "QueryAnswer",
]
