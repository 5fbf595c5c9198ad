"""Key-value storage with one file per key under the data directory."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

log = logging.getLogger(__name__)

# Current multi-profile map: JSON object of profile id -> profile record
PROFILES_KEY = "psycho_profiles_db"
# JSON string of the active profile id
ACTIVE_ID_KEY = "psycho_active_id"
# Pre-multi-profile single record, consumed once by migration
LEGACY_KEY = "psycho_profile_v3"

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStorage:
    """String key-value store with localStorage semantics.

    Values are opaque strings. Missing keys read as ``None``; unreadable
    files are logged and also read as ``None``.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key) or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Could not read %s: %s", path, exc)
            return None

    def set_item(self, key: str, value: str) -> None:
        """Write ``value`` atomically: temp sibling, then ``os.replace``."""
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.root.glob("*.json"))
