"""Pydantic models shared across all layers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from uuid_extensions import uuid7

from psychoanalyze.time import now_ms

PENDING_SUMMARY = (
    "Profile pending. Upload evidence (text screenshots, photos, videos, audio) "
    "to begin the psychological profiling process."
)


class MediaType(str, Enum):
    """Kind of evidence a history entry was derived from."""

    IMAGE = "IMAGE"
    PDF = "PDF"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    TEXT_FILE = "TEXT_FILE"
    HTML = "HTML"


class _CamelModel(BaseModel):
    """Persisted records keep the camelCase keys of the stored JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class BigFiveScores(_CamelModel):
    """Five-factor scores, each 0-100."""

    openness: float = Field(default=50.0, ge=0, le=100)
    conscientiousness: float = Field(default=50.0, ge=0, le=100)
    extraversion: float = Field(default=50.0, ge=0, le=100)
    agreeableness: float = Field(default=50.0, ge=0, le=100)
    neuroticism: float = Field(default=50.0, ge=0, le=100)


class AnalysisHistoryItem(_CamelModel):
    """One successful analysis call, as logged on the profile."""

    id: str
    timestamp: int  # epoch milliseconds
    media_type: MediaType = Field(alias="type")
    summary: str
    file_name: str | None = None


class Profile(_CamelModel):
    """Accumulated psychological assessment for one subject."""

    id: str
    first_name: str = "New"
    last_name: str = "Subject"
    date_of_birth: str = ""
    last_updated: int = Field(default_factory=now_ms)
    big_five: BigFiveScores = Field(default_factory=BigFiveScores)
    mbti: str = "Unknown"
    enneagram: str = "Unknown"
    attachment_style: str = "Unknown"
    summary: str = PENDING_SUMMARY
    key_traits: list[str] = Field(default_factory=list)
    body_language_notes: list[str] = Field(default_factory=list)  # append-only
    tone_voice_notes: list[str] = Field(default_factory=list)  # append-only
    history: list[AnalysisHistoryItem] = Field(default_factory=list)  # append-only

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_record(self) -> dict:
        """Serialize to the persisted camelCase record."""
        return self.model_dump(mode="json", by_alias=True)


def new_profile(now: int | None = None) -> Profile:
    """Build a fresh default profile with a newly generated id."""
    return Profile(id=str(uuid7()), last_updated=now if now is not None else now_ms())


# ---------------------------------------------------------------------------
# Analysis call contract
# ---------------------------------------------------------------------------


class CandidateProfile(_CamelModel):
    """Identity fields the model found in the evidence, if any."""

    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: str | None = None


class AnalysisDelta(_CamelModel):
    """Structured output of one analysis call."""

    candidate_profile: CandidateProfile | None = None
    big_five: BigFiveScores
    mbti: str
    enneagram: str
    attachment_style: str
    summary: str  # synthesized summary of the person, not just the latest files
    key_traits: list[str]
    new_observations: str  # specific to the latest evidence batch
    body_language_analysis: str | None = None
    tone_analysis: str | None = None


class EvidenceItem(BaseModel):
    """One encoded file handed to the analysis call."""

    mime_type: str
    data: str  # base64 payload
    name: str = ""


class EvidenceTag(BaseModel):
    """What a history entry records about the evidence batch."""

    media_type: MediaType
    file_label: str


# ---------------------------------------------------------------------------
# Store snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Store:
    """Immutable snapshot of every tracked profile plus the active pointer.

    ``order`` lists profile ids in insertion order and always holds exactly
    the keys of ``profiles``.
    """

    profiles: Mapping[str, Profile] = field(default_factory=dict)
    order: tuple[str, ...] = ()
    active_id: str | None = None

    def __post_init__(self) -> None:
        if set(self.order) != set(self.profiles) or len(self.order) != len(self.profiles):
            raise ValueError("Store order must list exactly the profile ids")
        object.__setattr__(self, "profiles", MappingProxyType(dict(self.profiles)))

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in self.profiles

    def __len__(self) -> int:
        return len(self.order)

    def get(self, profile_id: str | None) -> Profile | None:
        if profile_id is None:
            return None
        return self.profiles.get(profile_id)

    def ordered(self) -> list[Profile]:
        return [self.profiles[pid] for pid in self.order]

    @classmethod
    def of(cls, profiles: list[Profile], active_id: str | None = None) -> Store:
        """Build a store from profiles in insertion order."""
        return cls(
            profiles={p.id: p for p in profiles},
            order=tuple(p.id for p in profiles),
            active_id=active_id,
        )
