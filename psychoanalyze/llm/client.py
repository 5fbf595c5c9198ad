"""Gemini client wrapper — structured JSON generation with token tracking."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from google import genai
from google.genai import types

from psychoanalyze.config import ANALYSIS_MODEL, load_api_key
from psychoanalyze.errors import AnalysisError
from psychoanalyze.models import EvidenceItem

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from a model call with usage tracking."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""


def inline_part(item: EvidenceItem) -> types.Part:
    """Inline-data part for one encoded evidence item."""
    return types.Part.from_bytes(data=base64.b64decode(item.data), mime_type=item.mime_type)


class GeminiClient:
    """Wrapper around the google-genai SDK. One call per request, no retries."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.model = model or ANALYSIS_MODEL
        self._api_key = api_key or load_api_key()
        self._client: genai.Client | None = None
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise AnalysisError("GEMINI_API_KEY not set. Export it or run: psychoanalyze auth")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def generate_json(
        self,
        parts: list[str | types.Part],
        system: str = "",
        schema: dict | None = None,
    ) -> LLMResponse:
        """Request a JSON response constrained by ``schema``."""
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            response_mime_type="application/json",
            response_schema=schema,
        )
        contents = [types.Part.from_text(text=p) if isinstance(p, str) else p for p in parts]
        response = self.client.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )

        usage = response.usage_metadata
        input_tokens = (getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        output_tokens = (getattr(usage, "candidates_token_count", 0) or 0) if usage else 0
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        logger.debug("Gemini %s: %d in / %d out tokens", self.model, input_tokens, output_tokens)

        return LLMResponse(
            content=response.text or "",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=self.model,
        )
