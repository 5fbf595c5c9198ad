"""Report export — write a formatted profile to a deterministic filename."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

from psychoanalyze.distribution.formatters import format_profile
from psychoanalyze.models import Profile

log = logging.getLogger(__name__)

EXTENSIONS = {
    "json": "json",
    "text": "txt",
    "html": "doc",  # HTML saved as .doc opens in word processors
}

_UNSAFE = re.compile(r"[\s/\\]+")


def export_filename(profile: Profile, fmt: str, on: date | None = None) -> str:
    """``PsychProfile_{first}_{last}_{YYYY-MM-DD}.{ext}`` with whitespace and path separators stripped."""
    if fmt not in EXTENSIONS:
        raise ValueError(f"Unknown format: {fmt!r}")
    day = (on or date.today()).isoformat()
    first = _UNSAFE.sub("", profile.first_name)
    last = _UNSAFE.sub("", profile.last_name)
    return f"PsychProfile_{first}_{last}_{day}.{EXTENSIONS[fmt]}"


def export_profile(profile: Profile, target_dir: str | Path, fmt: str = "json", on: date | None = None) -> Path:
    """Write ``profile`` as ``fmt`` into ``target_dir`` and return the file path."""
    target = Path(target_dir)
    target.mkdir(parents=True, exist_ok=True)

    content = format_profile(profile, fmt)
    file_path = target / export_filename(profile, fmt, on)
    file_path.write_text(content, encoding="utf-8")
    log.info("Exported %s report for %s to %s", fmt, profile.id, file_path)
    return file_path
