"""Alert query service: retrieval plus summarization."""

from alertsearch.alerts.models import Coordinate
from alertsearch.exceptions import SummarizationUnavailable
from alertsearch.logging_config import get_logger
from alertsearch.observability.metrics import track_summary
from alertsearch.query.models import QueryAnswer
from alertsearch.retrieval.models import RankingOptions
from alertsearch.retrieval.pipeline import RetrievalPipeline
from alertsearch.summary.summarizer import NO_RESULTS_ANSWER, Summarizer, TemplateSummarizer

logger = get_logger(__name__)


class AlertQueryService:
    """Answers natural-language questions about current alerts.

    Retrieval failures propagate; summarization failures fall back to a
    templated answer so ranked alerts are always returned.
    """

    def __init__(
        self,
        pipeline: RetrievalPipeline,
        summarizer: Summarizer | None = None,
        fallback: TemplateSummarizer | None = None,
    ) -> None:
        """Initialize the query service.

        Args:
            pipeline: Retrieval pipeline.
            summarizer: Preferred summarizer. Only the template is used if omitted.
            fallback: Template summarizer used when the preferred one fails.
        """
        self._pipeline = pipeline
        self._fallback = fallback or TemplateSummarizer()
        self._summarizer = summarizer or self._fallback

    async def answer(
        self,
        query: str,
        requester_location: Coordinate | None = None,
        options: RankingOptions | None = None,
    ) -> QueryAnswer:
        """Answer a query.

        Args:
            query: Natural-language query.
            requester_location: Where the requester is, if known.
            options: Ranking options override.

        Returns:
            QueryAnswer with prose and ranked alerts.

        Raises:
            RetrievalFailed: If alerts could not be retrieved.
        """
        logger.info(
            "Processing alert query",
            extra={"query_length": len(query), "has_location": requester_location is not None},
        )

        retrieval = await self._pipeline.retrieve(
            query,
            requester_location=requester_location,
            options=options,
        )

        if not retrieval.relevant_alerts:
            return QueryAnswer(
                answer=NO_RESULTS_ANSWER,
                relevant_alerts=[],
                mode=retrieval.mode,
                summarized_by="none",
            )

        summarizer = self._summarizer
        try:
            text = await summarizer.summarize(retrieval.summary_input)
        except SummarizationUnavailable as e:
            logger.warning(
                f"Summarization unavailable, using template: {e.message}",
                extra={"details": e.details},
            )
            summarizer = self._fallback
            text = await summarizer.summarize(retrieval.summary_input)

        track_summary(summarizer.name)

        return QueryAnswer(
            answer=text,
            relevant_alerts=retrieval.relevant_alerts,
            mode=retrieval.mode,
            summarized_by=summarizer.name,
        )
