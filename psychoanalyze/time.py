"""Clock and timestamp formatting.

Profiles store epoch milliseconds (UTC). Everything human-facing is
converted to the user's local timezone at render time.
"""

from __future__ import annotations

import logging
import os
from contextlib import suppress
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

log = logging.getLogger(__name__)

PSYCHO_TIMEZONE_ENV = "PSYCHO_TIMEZONE"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _detect_system_tz() -> tzinfo:
    """Best-effort system timezone. Prefers IANA name over fixed offset."""
    with suppress(Exception):
        link = Path("/etc/localtime").resolve()
        parts = link.parts
        if "zoneinfo" in parts:
            idx = parts.index("zoneinfo")
            iana_key = "/".join(parts[idx + 1 :])
            return ZoneInfo(iana_key)
    return datetime.now().astimezone().tzinfo or timezone.utc


def resolve_user_tz() -> tzinfo:
    """Resolve user timezone. Precedence: PSYCHO_TIMEZONE env > auto-detect.

    Falls back to auto-detect if the env value is not a valid IANA timezone.
    """
    raw = os.getenv(PSYCHO_TIMEZONE_ENV, "auto").strip()
    if raw.lower() in ("", "auto", "local", "system"):
        return _detect_system_tz()
    try:
        return ZoneInfo(raw)
    except (KeyError, ValueError):
        log.warning("Invalid %s '%s', falling back to auto-detect", PSYCHO_TIMEZONE_ENV, raw)
        return _detect_system_tz()


def to_local(ms: int, user_tz: tzinfo | None = None) -> datetime:
    """Convert epoch milliseconds to an aware datetime in the user's timezone."""
    tz = user_tz or resolve_user_tz()
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone(tz)


def format_timestamp(ms: int, user_tz: tzinfo | None = None) -> str:
    """Full local date and time, e.g. 'Mar 04, 2026 10:15 PM PST'."""
    local = to_local(ms, user_tz)
    tz_abbrev = local.strftime("%Z") or "UTC"
    return f"{local.strftime('%b %d, %Y %I:%M %p')} {tz_abbrev}"


def format_date(ms: int, user_tz: tzinfo | None = None) -> str:
    """Local calendar date, e.g. '2026-03-04'."""
    return to_local(ms, user_tz).strftime("%Y-%m-%d")


def format_for_human(ms: int, user_tz: tzinfo | None = None) -> str:
    """Format for CLI display: relative labels (today/yesterday) + time."""
    local = to_local(ms, user_tz)
    now = datetime.now(timezone.utc).astimezone(local.tzinfo)
    time_str = local.strftime("%H:%M:%S")
    if local.date() == now.date():
        return f"today {time_str}"
    if local.date() == (now - timedelta(days=1)).date():
        return f"yesterday {time_str}"
    return local.strftime("%b %d %H:%M:%S")
