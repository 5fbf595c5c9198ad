"""Shared test fixtures."""

from __future__ import annotations

import base64
import copy
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from psychoanalyze.evidence import EvidenceBatch
from psychoanalyze.llm.client import LLMResponse
from psychoanalyze.models import AnalysisDelta, EvidenceItem, MediaType
from psychoanalyze.storage import KeyValueStorage
from psychoanalyze.store import ProfileStore


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage(tmp_path):
    """Fresh key-value storage per test."""
    return KeyValueStorage(tmp_path / "store")


@pytest.fixture
def profile_store(storage):
    return ProfileStore(storage)


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# Analysis payloads
# ---------------------------------------------------------------------------


DELTA_JSON = {
    "bigFive": {
        "openness": 81,
        "conscientiousness": 42,
        "extraversion": 35,
        "agreeableness": 60,
        "neuroticism": 71,
    },
    "mbti": "INFJ",
    "enneagram": "4w5",
    "attachmentStyle": "Anxious-Preoccupied",
    "summary": "Introspective and guarded; seeks reassurance in close ties.",
    "keyTraits": ["introspective", "guarded", "witty"],
    "newObservations": "Long pauses before replying to direct questions.",
}


@pytest.fixture
def delta_json():
    """Raw model output (camelCase), deep-copied per test."""
    return copy.deepcopy(DELTA_JSON)


@pytest.fixture
def make_delta():
    """Build an AnalysisDelta with overrides in camelCase keys."""

    def _factory(**overrides) -> AnalysisDelta:
        data = {**DELTA_JSON, **overrides}
        return AnalysisDelta.model_validate(data)

    return _factory


@pytest.fixture
def make_batch():
    """Build an EvidenceBatch from file names without touching disk."""

    def _factory(*names: str, media_type: MediaType = MediaType.IMAGE) -> EvidenceBatch:
        names = names or ("photo.jpg",)
        items = tuple(
            EvidenceItem(
                mime_type="image/jpeg",
                data=base64.b64encode(f"bytes of {n}".encode()).decode(),
                name=n,
            )
            for n in names
        )
        return EvidenceBatch(items=items, media_type=media_type)

    return _factory


@pytest.fixture
def mock_client():
    """A stand-in GeminiClient returning a configurable JSON body."""

    def _factory(content: str = "", error: Exception | None = None):
        client = MagicMock()
        client.model = "gemini-test"
        if error is not None:
            client.generate_json.side_effect = error
        else:
            client.generate_json.return_value = LLMResponse(
                content=content, input_tokens=1200, output_tokens=300, model="gemini-test"
            )
        return client

    return _factory
