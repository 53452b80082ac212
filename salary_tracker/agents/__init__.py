"""AI Agents package."""

from salary_tracker.agents.gemini_agents import (
    EMPTY_HISTORY_MESSAGE,
    INSIGHT_FALLBACK_MESSAGE,
    ExtractionAgent,
    ExtractionFailedError,
    InsightAgent,
    InsightFailedError,
    InsightReport,
    insight_lines,
    parse_extraction,
)

__all__ = [
    "EMPTY_HISTORY_MESSAGE",
    "INSIGHT_FALLBACK_MESSAGE",
    "ExtractionAgent",
    "ExtractionFailedError",
    "InsightAgent",
    "InsightFailedError",
    "InsightReport",
    "insight_lines",
    "parse_extraction",
]
