"""Alert summarization."""

from alertsearch.summary.summarizer import (
    NO_RESULTS_ANSWER,
    LLMSummarizer,
    Summarizer,
    TemplateSummarizer,
)

__all__ = [
    "NO_RESULTS_ANSWER",
    "LLMSummarizer",
    "Summarizer",
    "TemplateSummarizer",
]
