"""Tests for the key-value storage."""

from __future__ import annotations

import pytest

from psychoanalyze.storage import KeyValueStorage


def test_missing_key_reads_none(storage):
    assert storage.get_item("absent") is None


def test_set_get_remove(storage):
    storage.set_item("psycho_active_id", '"abc"')
    assert storage.get_item("psycho_active_id") == '"abc"'
    assert storage.keys() == ["psycho_active_id"]

    storage.remove_item("psycho_active_id")
    assert storage.get_item("psycho_active_id") is None
    storage.remove_item("psycho_active_id")  # idempotent


def test_overwrite_leaves_no_temp_files(storage):
    storage.set_item("k", "one")
    storage.set_item("k", "two")
    assert storage.get_item("k") == "two"
    assert [p.name for p in storage.root.iterdir()] == ["k.json"]


def test_persists_across_instances(tmp_path):
    KeyValueStorage(tmp_path).set_item("k", "v")
    assert KeyValueStorage(tmp_path).get_item("k") == "v"


@pytest.mark.parametrize("key", ["../escape", "a/b", "", ".."])
def test_rejects_unsafe_keys(storage, key):
    with pytest.raises(ValueError):
        storage.set_item(key, "x")


def test_undecodable_file_reads_none(storage):
    (storage.root / "bad.json").write_bytes(b"\xff\xfe\xfa")
    assert storage.get_item("bad") is None
