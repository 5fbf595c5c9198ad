"""Exception types surfaced to callers."""

from __future__ import annotations


class PsychoError(Exception):
    """Base class for psychoanalyze errors."""


class AnalysisError(PsychoError):
    """An analysis attempt failed; nothing was merged into the profile."""


class EvidenceError(AnalysisError):
    """Evidence could not be read or is unsuitable for the analysis call."""
