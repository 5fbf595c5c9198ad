"""Configuration — .env loading, paths, data dirs, model settings."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Home directory (persisted config, credentials)
PSYCHO_HOME = Path.home() / ".psychoanalyze"

# Load .env files: ~/.psychoanalyze/.env first (persisted credentials), then project .env
_home_env = PSYCHO_HOME / ".env"
if _home_env.exists():
    load_dotenv(_home_env)
load_dotenv()  # project .env (won't overwrite already-set vars)


def _default_data_dir() -> Path:
    """Resolve data directory: env var override or ~/.psychoanalyze/data."""
    env = os.getenv("PSYCHO_DATA_DIR")
    if env:
        return Path(env).resolve()
    return PSYCHO_HOME / "data"


# Data directory (profile store, logs, metrics)
DATA_DIR = _default_data_dir()


# ── Analysis settings (all env-overridable) ────────────────────────────────
ANALYSIS_MODEL: str = os.getenv("PSYCHO_MODEL", "gemini-2.5-flash")
MAX_INLINE_MB: float = float(os.getenv("PSYCHO_MAX_INLINE_MB", "20"))

# Report settings
HISTORY_PREVIEW_CHARS: int = 100


def data_dir(override: str | Path | None = None) -> Path:
    """Return the data directory, creating it if needed."""
    d = Path(override).resolve() if override else DATA_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d


def save_api_key(api_key: str) -> Path:
    """Persist GEMINI_API_KEY to ~/.psychoanalyze/.env (chmod 600).

    Lets later invocations find the key without it being exported in
    the shell.
    """
    PSYCHO_HOME.mkdir(parents=True, exist_ok=True)
    env_file = PSYCHO_HOME / ".env"
    env_file.write_text(f"GEMINI_API_KEY={api_key}\n")
    os.chmod(env_file, 0o600)
    return env_file


def load_api_key() -> str:
    """Load API key: env var first, then ~/.psychoanalyze/.env fallback."""
    key = os.environ.get("GEMINI_API_KEY", "")
    if key:
        return key
    env_file = PSYCHO_HOME / ".env"
    if env_file.exists():
        for line in env_file.read_text().splitlines():
            if line.startswith("GEMINI_API_KEY="):
                return line.split("=", 1)[1].strip()
    return ""
