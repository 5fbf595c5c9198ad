"""Tests for the profile store: load, save, corruption recovery, legacy migration."""

from __future__ import annotations

import json
import logging

import pytest

from psychoanalyze.models import Profile, Store, new_profile
from psychoanalyze.storage import ACTIVE_ID_KEY, LEGACY_KEY, PROFILES_KEY
from psychoanalyze.store import ProfileStore, migrate_legacy


def _assert_single_fresh(store: Store) -> Profile:
    assert len(store) == 1
    profile = store.ordered()[0]
    assert store.active_id == profile.id
    assert (profile.first_name, profile.last_name) == ("New", "Subject")
    assert profile.history == []
    return profile


# --- Fresh start ---


def test_empty_storage_creates_one_fresh_profile(profile_store, storage):
    store = profile_store.load()
    profile = _assert_single_fresh(store)

    persisted = json.loads(storage.get_item(PROFILES_KEY))
    assert list(persisted) == [profile.id]
    assert json.loads(storage.get_item(ACTIVE_ID_KEY)) == profile.id


def test_round_trip_preserves_profiles_order_and_active(profile_store):
    profiles = [new_profile(), new_profile(), new_profile()]
    store = Store.of(profiles, active_id=profiles[1].id)
    profile_store.save(store)

    loaded = profile_store.load()

    assert loaded.order == store.order
    assert loaded.active_id == profiles[1].id
    assert loaded.ordered() == profiles


def test_save_writes_camel_case_records(profile_store, storage):
    profile = new_profile()
    profile_store.save(Store.of([profile], active_id=profile.id))

    record = json.loads(storage.get_item(PROFILES_KEY))[profile.id]
    assert record["firstName"] == "New"
    assert record["bigFive"]["openness"] == 50
    assert "first_name" not in record


# --- Active id recovery ---


def test_stale_active_id_falls_back_to_first(profile_store, storage):
    a, b = new_profile(), new_profile()
    profile_store.save(Store.of([a, b], active_id=b.id))
    storage.set_item(ACTIVE_ID_KEY, json.dumps("does-not-exist"))

    assert profile_store.load().active_id == a.id


def test_missing_active_id_falls_back_to_first(profile_store, storage):
    a, b = new_profile(), new_profile()
    profile_store.save(Store.of([a, b], active_id=b.id))
    storage.remove_item(ACTIVE_ID_KEY)

    assert profile_store.load().active_id == a.id


def test_bare_active_id_is_accepted(profile_store, storage):
    a, b = new_profile(), new_profile()
    profile_store.save(Store.of([a, b], active_id=a.id))
    storage.set_item(ACTIVE_ID_KEY, b.id)

    assert profile_store.load().active_id == b.id


# --- Corruption ---


@pytest.mark.parametrize(
    "payload",
    ["{not json", "[1, 2, 3]", '"just a string"', '{"x": {"firstName": 5}}'],
    ids=["syntax", "array", "string", "invalid_record"],
)
def test_corrupt_profile_map_resets_without_raising(profile_store, storage, payload, caplog):
    storage.set_item(PROFILES_KEY, payload)

    with caplog.at_level(logging.WARNING, logger="psychoanalyze.store"):
        store = profile_store.load()

    _assert_single_fresh(store)
    assert payload in caplog.text


def test_corrupt_map_is_overwritten_on_load(profile_store, storage):
    storage.set_item(PROFILES_KEY, "{not json")
    store = profile_store.load()
    assert list(json.loads(storage.get_item(PROFILES_KEY))) == list(store.order)


def test_empty_profile_map_creates_fresh_profile(profile_store, storage):
    storage.set_item(PROFILES_KEY, "{}")
    _assert_single_fresh(profile_store.load())


def test_profile_map_wins_over_legacy(profile_store, storage):
    a = new_profile()
    profile_store.save(Store.of([a], active_id=a.id))
    storage.set_item(LEGACY_KEY, json.dumps({"name": "Jane Doe"}))

    store = profile_store.load()

    assert store.order == (a.id,)
    assert storage.get_item(LEGACY_KEY) is not None


# --- Legacy migration ---


def test_legacy_name_is_split_and_key_removed(profile_store, storage):
    storage.set_item(
        LEGACY_KEY,
        json.dumps({"id": "legacy-1", "name": "Jane Doe", "mbti": "ENFP", "summary": "Old notes."}),
    )

    store = profile_store.load()

    profile = store.ordered()[0]
    assert profile.first_name == "Jane"
    assert profile.last_name == "Doe"
    assert profile.id != "legacy-1"
    assert profile.mbti == "ENFP"
    assert profile.summary == "Old notes."
    assert store.active_id == profile.id
    assert storage.get_item(LEGACY_KEY) is None
    assert profile.id in json.loads(storage.get_item(PROFILES_KEY))


def test_legacy_null_fields_take_defaults(profile_store, storage):
    storage.set_item(
        LEGACY_KEY,
        json.dumps({"name": "Jane Doe", "dateOfBirth": None, "keyTraits": None, "mbti": "INTJ"}),
    )

    profile = profile_store.load().ordered()[0]

    assert (profile.first_name, profile.last_name, profile.mbti) == ("Jane", "Doe", "INTJ")
    assert profile.date_of_birth == ""
    assert profile.key_traits == []
    assert storage.get_item(LEGACY_KEY) is None


def test_legacy_multi_word_surname_keeps_rest():
    profile = migrate_legacy({"name": "Mary Ann van Dyke"})
    assert profile.first_name == "Mary"
    assert profile.last_name == "Ann van Dyke"


def test_legacy_structured_names_take_precedence():
    profile = migrate_legacy({"name": "Jane Doe", "firstName": "Janet", "lastName": "Doe-Smith"})
    assert (profile.first_name, profile.last_name) == ("Janet", "Doe-Smith")


def test_legacy_without_name_uses_placeholders():
    profile = migrate_legacy({"mbti": "ISTJ"})
    assert (profile.first_name, profile.last_name) == ("Subject", "001")
    assert profile.big_five.openness == 50
    assert profile.history == []


def test_legacy_single_word_name():
    profile = migrate_legacy({"name": "Cher"})
    assert (profile.first_name, profile.last_name) == ("Cher", "001")


def test_corrupt_legacy_starts_fresh_and_is_removed(profile_store, storage):
    storage.set_item(LEGACY_KEY, "{broken")

    store = profile_store.load()

    _assert_single_fresh(store)
    assert storage.get_item(LEGACY_KEY) is None
