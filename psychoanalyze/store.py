"""Profile store — load, save and legacy migration of the profile map.

The store lives under three storage keys:

- ``psycho_profiles_db``: JSON object mapping profile id to profile record,
  written in insertion order.
- ``psycho_active_id``: JSON string naming the active profile.
- ``psycho_profile_v3``: legacy single-profile record, migrated on first load
  and then removed.

Corrupt payloads are never raised to the caller. They are logged (raw payload
included) and replaced by a single fresh profile.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError
from uuid_extensions import uuid7

from psychoanalyze.models import Profile, Store, new_profile
from psychoanalyze.storage import ACTIVE_ID_KEY, LEGACY_KEY, PROFILES_KEY, KeyValueStorage

log = logging.getLogger(__name__)


def fresh_store() -> Store:
    """A store holding one default profile, which is active."""
    profile = new_profile()
    return Store.of([profile], active_id=profile.id)


def migrate_legacy(record: dict) -> Profile:
    """Convert a legacy single-profile record into a current profile.

    Missing structured name fields are derived from the combined ``name``
    by splitting on the first space.
    """
    name = record.get("name")
    name = name if isinstance(name, str) else ""
    first, _, rest = name.partition(" ")

    data = new_profile().to_record()
    # null legacy values fall back to the defaults
    data.update({k: v for k, v in record.items() if v is not None})
    data["id"] = str(uuid7())
    data["firstName"] = record.get("firstName") or first or "Subject"
    data["lastName"] = record.get("lastName") or rest or "001"
    return Profile.model_validate(data)


class ProfileStore:
    """Reads and writes the profile map through a key-value storage."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def load(self) -> Store:
        """Read persisted state, migrating or resetting as needed.

        The resulting store is written back before it is returned.
        """
        raw = self.storage.get_item(PROFILES_KEY)
        if raw is not None:
            store = self._load_current(raw)
        else:
            legacy_raw = self.storage.get_item(LEGACY_KEY)
            if legacy_raw is not None:
                store = self._load_legacy(legacy_raw)
            else:
                log.info("No saved profiles, starting fresh")
                store = fresh_store()
        self.save(store)
        return store

    def save(self, store: Store) -> None:
        """Persist the profile map, then the active id.

        The two writes are independent; a crash between them is repaired by
        :meth:`load` falling back to the first profile.
        """
        records = {pid: store.profiles[pid].to_record() for pid in store.order}
        self.storage.set_item(PROFILES_KEY, json.dumps(records))
        if store.active_id is not None:
            self.storage.set_item(ACTIVE_ID_KEY, json.dumps(store.active_id))

    def _load_current(self, raw: str) -> Store:
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            profiles = [Profile.model_validate(record) for record in data.values()]
        except (ValueError, ValidationError) as exc:
            log.warning(
                "Profile store corrupt (%s); discarding %d bytes: %s", exc, len(raw), raw
            )
            return fresh_store()

        if not profiles:
            log.info("Profile store empty, starting fresh")
            return fresh_store()

        # Keys are authoritative for ids; a record whose id disagrees with its key
        # keeps the key so the active pointer stays resolvable.
        profiles = [
            p if p.id == key else p.model_copy(update={"id": key})
            for key, p in zip(data.keys(), profiles)
        ]
        store = Store.of(profiles)
        active_id = self._read_active_id()
        if active_id not in store:
            active_id = store.order[0]
        return Store(profiles=store.profiles, order=store.order, active_id=active_id)

    def _read_active_id(self) -> str | None:
        raw = self.storage.get_item(ACTIVE_ID_KEY)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            value = raw.strip()  # bare id written without JSON quoting
        return value if isinstance(value, str) else None

    def _load_legacy(self, raw: str) -> Store:
        try:
            record = json.loads(raw)
            if not isinstance(record, dict):
                raise ValueError(f"expected a JSON object, got {type(record).__name__}")
            profile = migrate_legacy(record)
        except (ValueError, ValidationError) as exc:
            log.warning("Legacy profile corrupt (%s); discarding %d bytes: %s", exc, len(raw), raw)
            store = fresh_store()
        else:
            log.info("Migrated legacy profile to %s (%s)", profile.id, profile.display_name)
            store = Store.of([profile], active_id=profile.id)
        self.storage.remove_item(LEGACY_KEY)
        return store
