"""Profile merge engine — folds one analysis delta into a profile.

Field policy:

- Scores, labels, summary and key traits are replaced wholesale. The model
  has already integrated the prior profile before producing the delta, so no
  smoothing happens here.
- Body-language and tone notes are append-only; a note is appended only when
  the delta carries one.
- Identity fields are fill-once: first/last name replace only empty or
  placeholder values, date of birth only an empty value.
- Every merge appends exactly one history entry and bumps ``last_updated``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from uuid_extensions import uuid7

from psychoanalyze.models import AnalysisDelta, AnalysisHistoryItem, EvidenceTag, Profile, Store
from psychoanalyze.time import now_ms

log = logging.getLogger(__name__)

# Placeholder values a candidate name may overwrite
FIRST_NAME_DEFAULTS = frozenset({"", "New", "Subject"})
LAST_NAME_DEFAULTS = frozenset({"", "Subject", "001"})


def file_label_for(names: Sequence[str]) -> str:
    """History label for an evidence batch: the filename, or a count."""
    if len(names) > 1:
        return f"{len(names)} files uploaded"
    return names[0] if names else ""


def _fill(current: str, candidate: str | None, defaults: frozenset[str]) -> str:
    if candidate and (not current or current in defaults):
        return candidate
    return current


def merge(
    current: Profile,
    delta: AnalysisDelta,
    tag: EvidenceTag,
    now: int | None = None,
) -> Profile:
    """Return ``current`` updated with ``delta``. ``current`` is not modified."""
    ts = now if now is not None else now_ms()

    first_name, last_name, dob = current.first_name, current.last_name, current.date_of_birth
    candidate = delta.candidate_profile
    if candidate is not None:
        first_name = _fill(first_name, candidate.first_name, FIRST_NAME_DEFAULTS)
        last_name = _fill(last_name, candidate.last_name, LAST_NAME_DEFAULTS)
        if candidate.date_of_birth and not dob:
            dob = candidate.date_of_birth

    body_notes = list(current.body_language_notes)
    if delta.body_language_analysis:
        body_notes.append(delta.body_language_analysis)
    tone_notes = list(current.tone_voice_notes)
    if delta.tone_analysis:
        tone_notes.append(delta.tone_analysis)

    entry = AnalysisHistoryItem(
        id=str(uuid7()),
        timestamp=ts,
        media_type=tag.media_type,
        summary=delta.new_observations,
        file_name=tag.file_label,
    )

    return current.model_copy(
        update={
            "first_name": first_name,
            "last_name": last_name,
            "date_of_birth": dob,
            "last_updated": ts,
            "big_five": delta.big_five,
            "mbti": delta.mbti,
            "enneagram": delta.enneagram,
            "attachment_style": delta.attachment_style,
            "summary": delta.summary,
            "key_traits": list(delta.key_traits),
            "body_language_notes": body_notes,
            "tone_voice_notes": tone_notes,
            "history": [*current.history, entry],
        }
    )


def apply_analysis(
    store: Store,
    profile_id: str | None,
    delta: AnalysisDelta,
    tag: EvidenceTag,
    now: int | None = None,
) -> Store:
    """Merge ``delta`` into the profile ``profile_id`` and return the new store.

    A missing profile is a no-op: the delta is dropped rather than applied to
    some other profile.
    """
    current = store.get(profile_id)
    if current is None:
        log.warning("Profile %s no longer exists, analysis result dropped", profile_id)
        return store
    merged = merge(current, delta, tag, now=now)
    profiles = dict(store.profiles)
    profiles[current.id] = merged
    return Store(profiles=profiles, order=store.order, active_id=store.active_id)
