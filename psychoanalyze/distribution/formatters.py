"""Report formatters — JSON, plain-text and HTML renderings of a profile.

All three are pure functions of the profile (plus the report timestamp for
HTML). Every profile field appears in every format.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from psychoanalyze.config import HISTORY_PREVIEW_CHARS
from psychoanalyze.models import Profile
from psychoanalyze.time import format_date, format_timestamp, now_ms

FORMATS = ("json", "text", "html")

BIG_FIVE_LABELS = [
    ("openness", "Openness"),
    ("conscientiousness", "Conscientiousness"),
    ("extraversion", "Extraversion"),
    ("agreeableness", "Agreeableness"),
    ("neuroticism", "Neuroticism"),
]

templates_dir = Path(__file__).resolve().parent.parent / "templates"
jinja_env = Environment(
    loader=FileSystemLoader(str(templates_dir)),
    autoescape=select_autoescape(["html"]),
)


def _score(value: float) -> str:
    return f"{value:g}"


def _bullets(notes: list[str], empty: str) -> str:
    if not notes:
        return empty
    return "\n".join(f"- {n}" for n in notes)


def _preview(text: str) -> str:
    return f"{text[:HISTORY_PREVIEW_CHARS]}..."


def format_json(profile: Profile) -> str:
    return profile.model_dump_json(by_alias=True, indent=2)


def format_text(profile: Profile) -> str:
    """Fixed-section plain-text report; history newest first, previews only."""
    p = profile
    big_five = "\n".join(
        f"{label}: {_score(getattr(p.big_five, attr))}" for attr, label in BIG_FIVE_LABELS
    )
    history = "\n".join(
        f"[{format_date(h.timestamp)}] {h.media_type.value} ({h.file_name or 'unnamed'}): {_preview(h.summary)}"
        for h in reversed(p.history)
    ) or "No analyses yet."

    return f"""
PSYCHOLOGICAL PROFILE REPORT
============================
SUBJECT: {p.first_name} {p.last_name}
DOB: {p.date_of_birth or "Unknown"}
LAST UPDATED: {format_timestamp(p.last_updated)}
PROFILE ID: {p.id}

EXECUTIVE SUMMARY
-----------------
{p.summary}

PERSONALITY ARCHETYPE
---------------------
MBTI: {p.mbti}
Enneagram: {p.enneagram}
Attachment Style: {p.attachment_style}

BIG FIVE METRICS (0-100)
------------------------
{big_five}

KEY OBSERVED TRAITS
-------------------
{_bullets(p.key_traits, "None recorded.")}

DETAILED ANALYSIS
-----------------
[Body Language & Kinesics]
{_bullets(p.body_language_notes, "No specific body language data.")}

[Voice & Tone]
{_bullets(p.tone_voice_notes, "No specific voice data.")}

ANALYSIS HISTORY
----------------
{history}
""".strip()


def format_html(profile: Profile, generated_at: int | None = None) -> str:
    """Word-openable HTML report with full history entries."""
    template = jinja_env.get_template("report.html")
    return template.render(
        p=profile,
        big_five=[(label, _score(getattr(profile.big_five, attr))) for attr, label in BIG_FIVE_LABELS],
        history=list(reversed(profile.history)),
        last_updated=format_timestamp(profile.last_updated),
        generated=format_timestamp(generated_at if generated_at is not None else now_ms()),
        format_date=format_date,
    )


def format_profile(profile: Profile, fmt: str = "json", generated_at: int | None = None) -> str:
    """Render ``profile`` in one of :data:`FORMATS`."""
    if fmt == "json":
        return format_json(profile)
    if fmt == "text":
        return format_text(profile)
    if fmt == "html":
        return format_html(profile, generated_at)
    raise ValueError(f"Unknown format: {fmt!r} (expected one of {', '.join(FORMATS)})")
