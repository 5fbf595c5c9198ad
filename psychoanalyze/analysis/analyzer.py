"""Analysis call — sends an evidence batch plus the current profile to Gemini."""

from __future__ import annotations

import asyncio
import json
import logging

from pydantic import ValidationError

from psychoanalyze.analysis.prompts import (
    ANALYSIS_INSTRUCTIONS,
    ANALYSIS_SYSTEM,
    RESPONSE_SCHEMA,
    build_context_prompt,
    build_user_context,
)
from psychoanalyze.errors import AnalysisError
from psychoanalyze.evidence import EvidenceBatch
from psychoanalyze.llm.client import GeminiClient, LLMResponse, inline_part
from psychoanalyze.metrics import MetricsTracker
from psychoanalyze.models import AnalysisDelta, Profile

log = logging.getLogger(__name__)


class Analyzer:
    """Turns one evidence batch into an ``AnalysisDelta``.

    Fails atomically: any error is raised as ``AnalysisError`` and no partial
    delta is returned.
    """

    def __init__(self, client: GeminiClient | None = None, tracker: MetricsTracker | None = None):
        self.client = client or GeminiClient()
        self.tracker = tracker
        self.last_response: LLMResponse | None = None

    def analyze(self, batch: EvidenceBatch, current: Profile | None, context: str = "") -> AnalysisDelta:
        if not batch.items:
            raise AnalysisError("No evidence to analyze")
        if self.tracker is None:
            return self._analyze(batch, current, context)
        with self.tracker.track(
            "analyze",
            profile_id=current.id if current else None,
            media_type=batch.media_type.value,
            size_bytes=batch.size_bytes,
        ) as metrics:
            metrics.files_processed = len(batch.items)
            metrics.model = self.client.model
            delta = self._analyze(batch, current, context)
            if self.last_response is not None:
                metrics.input_tokens = self.last_response.input_tokens
                metrics.output_tokens = self.last_response.output_tokens
            return delta

    async def analyze_async(
        self, batch: EvidenceBatch, current: Profile | None, context: str = ""
    ) -> AnalysisDelta:
        """Async wrapper to avoid blocking the event loop during network calls."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.analyze(batch, current, context))

    def _analyze(self, batch: EvidenceBatch, current: Profile | None, context: str) -> AnalysisDelta:
        self.last_response = None
        try:
            parts = [
                build_context_prompt(current),
                build_user_context(context),
                ANALYSIS_INSTRUCTIONS,
                *(inline_part(item) for item in batch.items),
            ]
            response = self.client.generate_json(parts, system=ANALYSIS_SYSTEM, schema=RESPONSE_SCHEMA)
        except AnalysisError:
            raise
        except Exception as e:
            log.error("Gemini analysis error: %s", e)
            raise AnalysisError(f"Analysis request failed: {e}") from e
        self.last_response = response

        if not response.content.strip():
            raise AnalysisError("No response from AI")
        return self._parse_delta(response.content)

    def _extract_json(self, content: str) -> dict:
        """Extract JSON from model output, handling optional markdown fences."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            start = content.find("{")
            end = content.rfind("}") + 1
            data = None
            if start >= 0 and end > start:
                try:
                    data = json.loads(content[start:end])
                except json.JSONDecodeError:
                    pass
            if data is None:
                raise AnalysisError(f"Could not parse analysis JSON from response: {content[:200]}")
        if not isinstance(data, dict):
            raise AnalysisError(f"Expected a JSON object from the model, got {type(data).__name__}")
        return data

    def _parse_delta(self, content: str) -> AnalysisDelta:
        data = self._extract_json(content)
        try:
            return AnalysisDelta.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(f"Analysis response did not match the expected schema: {e}") from e
