"""Session controller — which profile is active, and create/switch/delete.

The module-level functions are pure transitions: each takes a ``Store``
snapshot and returns a new one. ``Session`` wraps them with write-through
persistence for callers that hold one long-lived store (the CLI).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from psychoanalyze.merge import apply_analysis
from psychoanalyze.models import AnalysisDelta, Profile, Store, new_profile
from psychoanalyze.time import now_ms

if TYPE_CHECKING:
    from psychoanalyze.analysis.analyzer import Analyzer
    from psychoanalyze.evidence import EvidenceBatch
    from psychoanalyze.store import ProfileStore

log = logging.getLogger(__name__)

# Fields a user may edit directly; everything else changes only through merge
EDITABLE_FIELDS = frozenset({"first_name", "last_name", "date_of_birth"})


def create_profile(store: Store, now: int | None = None) -> tuple[Store, str]:
    """Insert a fresh default profile and make it active."""
    profile = new_profile(now)
    profiles = dict(store.profiles)
    profiles[profile.id] = profile
    new_store = Store(profiles=profiles, order=(*store.order, profile.id), active_id=profile.id)
    return new_store, profile.id


def switch_profile(store: Store, profile_id: str) -> Store:
    """Point the session at ``profile_id``. The id is not validated."""
    return Store(profiles=store.profiles, order=store.order, active_id=profile_id)


def delete_profile(store: Store, profile_id: str) -> Store:
    """Remove a profile. Confirming intent is the caller's job.

    The store never ends up empty: removing the last profile creates a fresh
    one. The active pointer moves only when it no longer names a profile,
    to the first remaining one in insertion order.
    """
    if profile_id not in store:
        return store
    profiles = {pid: p for pid, p in store.profiles.items() if pid != profile_id}
    order = tuple(pid for pid in store.order if pid != profile_id)
    if not order:
        fresh = new_profile()
        return Store.of([fresh], active_id=fresh.id)
    active_id = store.active_id if store.active_id in profiles else order[0]
    return Store(profiles=profiles, order=order, active_id=active_id)


def update_profile(store: Store, profile_id: str, **fields: str) -> Store:
    """Apply direct edits (name, date of birth) to a profile."""
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
    current = store.get(profile_id)
    if current is None:
        return store
    profiles = dict(store.profiles)
    profiles[profile_id] = current.model_copy(update={**fields, "last_updated": now_ms()})
    return Store(profiles=profiles, order=store.order, active_id=store.active_id)


def active_profile(store: Store) -> Profile:
    """The active profile, or an unsaved default one if the pointer is stale."""
    profile = store.get(store.active_id)
    if profile is None:
        return new_profile()
    return profile


class Session:
    """Holds the current store snapshot and persists every change."""

    def __init__(self, profile_store: ProfileStore):
        self.profile_store = profile_store
        self.store = profile_store.load()

    @property
    def active_id(self) -> str | None:
        return self.store.active_id

    @property
    def active(self) -> Profile:
        return active_profile(self.store)

    def _commit(self, store: Store) -> None:
        self.store = store
        self.profile_store.save(store)

    def create(self) -> str:
        store, profile_id = create_profile(self.store)
        self._commit(store)
        log.info("Created profile %s", profile_id)
        return profile_id

    def switch(self, profile_id: str) -> None:
        self._commit(switch_profile(self.store, profile_id))

    def delete(self, profile_id: str) -> None:
        self._commit(delete_profile(self.store, profile_id))
        log.info("Deleted profile %s, active is now %s", profile_id, self.store.active_id)

    def update(self, **fields: str) -> None:
        if self.store.active_id is None:
            return
        self._commit(update_profile(self.store, self.store.active_id, **fields))

    def apply(self, profile_id: str | None, delta: AnalysisDelta, batch: EvidenceBatch) -> Profile | None:
        """Merge a finished analysis into ``profile_id`` and persist."""
        store = apply_analysis(self.store, profile_id, delta, batch.tag)
        if store is self.store:
            return None
        self._commit(store)
        return store.get(profile_id)

    def analyze(self, batch: EvidenceBatch, analyzer: Analyzer, context: str = "") -> Profile | None:
        """Analyze evidence against the active profile and merge the result.

        The target is fixed when the call starts. Raises ``AnalysisError`` on
        failure, in which case the store is untouched.
        """
        target_id = self.store.active_id
        current = self.store.get(target_id)
        delta = analyzer.analyze(batch, current, context)
        return self.apply(target_id, delta, batch)

    async def analyze_async(
        self, batch: EvidenceBatch, analyzer: Analyzer, context: str = ""
    ) -> Profile | None:
        """Awaitable :meth:`analyze`. Overlapping calls are not serialized."""
        target_id = self.store.active_id
        current = self.store.get(target_id)
        delta = await analyzer.analyze_async(batch, current, context)
        return self.apply(target_id, delta, batch)
