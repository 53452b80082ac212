"""
Gemini Agents for Salary Tracker

Two narrow clients for the generative model:

1. EXTRACTION AGENT:
   - CAN: Read a pay stub (image or PDF) into proposed entry fields
   - CANNOT: Persist anything; its output only pre-fills an EntryDraft
   - NEVER raises: any failure yields an empty ExtractedEntryData so the
     user falls back to manual entry

2. INSIGHT AGENT:
   - CAN: Turn recent entries into a few short career insights
   - NEVER raises: any failure yields a fixed fallback message

Neither agent computes figures shown on the dashboard. Those come from
the analytics engine only.
"""

import json
import re
from typing import Any, Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError

from salary_tracker.analytics import recent_entries
from salary_tracker.config import AppSettings, GeminiSettings, get_settings
from salary_tracker.models.entry import ExtractedEntryData, FinancialEntry


logger = structlog.get_logger(__name__)


EMPTY_HISTORY_MESSAGE = (
    "Add some transactions to see your financial growth analysis."
)
INSIGHT_FALLBACK_MESSAGE = (
    "Career analysis engine paused. Retrying connectivity..."
)
NO_INSIGHTS_MESSAGE = "No insights available."

MAX_INSIGHT_LINES = 4

# Leading bullets, dashes and "1." style numbering on a model-written line.
_BULLET_PREFIX = re.compile(r"^[*\-\s\d.]+\s*")

EXTRACTION_PROMPT = """Extract ALL salary details from this document.
Be extremely granular. Extract:
1. Basic info: source (employer), date (YYYY-MM-DD), currency (must be a 3-letter ISO code like USD, GBP, EUR), taxCode.
2. Career info: jobTitle (e.g. Senior Engineer), department (e.g. Sales).
3. Metrics: workedHours (number of hours worked).
4. Summary: grossAmount (current), amount (net pay current), tax (current), deductions (total current).
5. YTD: ytdGross, ytdNet.
6. Line Items: an array "lineItems" of objects with {name, amount, ytd, type: 'earning'|'deduction'|'benefit'}.
7. Disbursements: an array "disbursements" of objects from the bank details table with {bankCode, bankName, accountNo, amount}. This describes where the net pay was sent.

Respond with ONLY a JSON object using exactly these keys:
source, date, currency, taxCode, jobTitle, department, workedHours,
grossAmount, amount, tax, deductions, ytdGross, ytdNet, lineItems, disbursements.
Omit any field you cannot read. Do not guess."""

INSIGHT_SYSTEM_INSTRUCTION = (
    "You are an elite personal wealth manager. "
    "Provide high-impact, brief, and actionable advice."
)

INSIGHT_PROMPT_TEMPLATE = """You are a high-end wealth strategist. Analyze these career and financial entries.
Focus on income growth, hourly rate trends (if hours provided), and career progression.
Provide {count} powerful insights, one per line.

History:
{history}"""


class ExtractionFailedError(Exception):
    """The model response could not be turned into extracted fields."""
    pass


class InsightFailedError(Exception):
    """The insight request failed or returned nothing usable."""
    pass


def insight_lines(text: str, limit: int = MAX_INSIGHT_LINES) -> list[str]:
    """
    Split insight text into display lines.

    Blank lines are dropped, leading bullets and numbering are removed and
    at most ``limit`` lines are kept.
    """
    lines = []
    for raw in text.split("\n"):
        if not raw.strip():
            continue
        cleaned = _BULLET_PREFIX.sub("", raw).strip()
        if cleaned:
            lines.append(cleaned)
    return lines[:limit]


class InsightReport(BaseModel):
    """Narrative insights as returned to the insights view."""

    text: str = Field(..., description="Raw text from the model or a fixed message")
    lines: list[str] = Field(default_factory=list)
    is_fallback: bool = Field(
        default=False,
        description="True when the request failed and the fallback text is shown"
    )

    @classmethod
    def from_text(cls, text: str, is_fallback: bool = False) -> 'InsightReport':
        return cls(text=text, lines=insight_lines(text), is_fallback=is_fallback)


def _plain_number(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"{value:.2f}".rstrip("0").rstrip(".")


def summarize_entry(entry: FinancialEntry) -> str:
    """One history line for the insight prompt."""
    items = ", ".join(
        f"{item.name}: {_plain_number(item.amount)}" for item in entry.line_items
    )
    hours = _plain_number(entry.worked_hours) if entry.worked_hours else "N/A"
    return (
        f"{entry.entry_date.isoformat()} [{entry.type.value.upper()}] "
        f"{entry.source}: {_plain_number(entry.amount)} "
        f"(Role: {entry.job_title or 'N/A'}, Dept: {entry.department or 'N/A'}, "
        f"Hours: {hours}). Items: {items}"
    )


def parse_extraction(text: str) -> ExtractedEntryData:
    """
    Parse the model's JSON answer into ExtractedEntryData.

    Markdown fences and chatter around the JSON object are tolerated.
    Malformed line items and disbursements are dropped individually.

    Raises:
        ExtractionFailedError: If no JSON object can be read
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ExtractionFailedError("No JSON object in model response")

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ExtractionFailedError(f"Malformed JSON in model response: {e}")

    if not isinstance(data, dict):
        raise ExtractionFailedError("Model response is not a JSON object")

    try:
        return ExtractedEntryData.model_validate(data)
    except ValidationError as e:
        raise ExtractionFailedError(f"Unexpected response shape: {e}")


class ExtractionAgent:
    """
    Reads pay stubs with Gemini.

    The result is a proposal to pre-fill the entry form. The user reviews
    it before anything is saved.
    """

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        """
        Args:
            model: Object with an async generate_content_async(); a
                   configured genai.GenerativeModel when omitted
            settings: Gemini settings, loaded from the environment if omitted
            app_settings: Upload limits, loaded from the environment if omitted
        """
        self._app_settings = app_settings or get_settings().app
        if model is None:
            self._settings = settings or get_settings().gemini
            model = self._configure_genai()
        self._model = model

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.extraction_model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def check_document(self, document_bytes: bytes, mime_type: str) -> Optional[str]:
        """Return why a document cannot be sent, or None if it can."""
        if not document_bytes:
            return "Document is empty"
        if mime_type not in self._app_settings.supported_types_list:
            return f"Unsupported document type: {mime_type or 'unknown'}"
        if len(document_bytes) > self._app_settings.max_upload_size_bytes:
            return (
                f"Document exceeds {self._app_settings.max_upload_size_mb} MB limit"
            )
        return None

    async def _request(self, document_bytes: bytes, mime_type: str) -> str:
        try:
            response = await self._model.generate_content_async([
                {"mime_type": mime_type, "data": document_bytes},
                EXTRACTION_PROMPT,
            ])
            text = response.text
        except Exception as e:
            raise ExtractionFailedError(f"Gemini request failed: {e}") from e

        if not text or not text.strip():
            raise ExtractionFailedError("Empty response from model")
        return text

    async def extract(
        self,
        document_bytes: bytes,
        mime_type: str,
    ) -> ExtractedEntryData:
        """
        Extract entry fields from a document.

        Returns an empty ExtractedEntryData when the document is refused or
        nothing could be read. Never raises.
        """
        mime_type = (mime_type or "").strip().lower()

        problem = self.check_document(document_bytes, mime_type)
        if problem:
            logger.warning("extraction_skipped", reason=problem, mime_type=mime_type)
            return ExtractedEntryData()

        try:
            text = await self._request(document_bytes, mime_type)
            extracted = parse_extraction(text)
        except ExtractionFailedError as e:
            logger.warning("extraction_failed", error=str(e), mime_type=mime_type)
            return ExtractedEntryData()

        logger.info(
            "extraction_completed",
            mime_type=mime_type,
            line_items=len(extracted.line_items),
            disbursements=len(extracted.disbursements),
        )
        return extracted


class InsightAgent:
    """
    Writes short career insights from recent entries.

    Only the most recent entries are sent (10 by default). Failures are
    reported as the fallback message, never as an exception.
    """

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
        history_size: Optional[int] = None,
    ):
        if history_size is None:
            history_size = get_settings().app.insight_history_size
        self._history_size = history_size
        if model is None:
            self._settings = settings or get_settings().gemini
            model = self._configure_genai()
        self._model = model

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.insight_model_name,
            generation_config={
                "temperature": self._settings.insight_temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
            system_instruction=INSIGHT_SYSTEM_INSTRUCTION,
        )

    def build_prompt(self, entries: Sequence[FinancialEntry]) -> str:
        history = "\n".join(
            summarize_entry(entry)
            for entry in recent_entries(entries, limit=self._history_size)
        )
        return INSIGHT_PROMPT_TEMPLATE.format(count=MAX_INSIGHT_LINES, history=history)

    async def _request(self, prompt: str) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
            return response.text or ""
        except Exception as e:
            raise InsightFailedError(f"Gemini request failed: {e}") from e

    async def summarize(self, entries: Sequence[FinancialEntry]) -> InsightReport:
        """
        Generate insights for the given entries.

        An empty history returns a prompt to add data without calling the
        model. Never raises.
        """
        if not entries:
            return InsightReport.from_text(EMPTY_HISTORY_MESSAGE)

        try:
            text = await self._request(self.build_prompt(entries))
        except InsightFailedError as e:
            logger.warning("insight_failed", error=str(e), entry_count=len(entries))
            return InsightReport.from_text(INSIGHT_FALLBACK_MESSAGE, is_fallback=True)

        if not text.strip():
            return InsightReport.from_text(NO_INSIGHTS_MESSAGE)

        report = InsightReport.from_text(text)
        logger.info("insight_generated", line_count=len(report.lines))
        return report
