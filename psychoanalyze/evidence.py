"""Evidence intake: files and recordings in, encoded evidence batches out."""

from __future__ import annotations

import base64
import logging
import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from psychoanalyze.config import MAX_INLINE_MB
from psychoanalyze.errors import EvidenceError
from psychoanalyze.merge import file_label_for
from psychoanalyze.models import EvidenceItem, EvidenceTag, MediaType

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"

# Extensions the stdlib table misses or maps inconsistently across platforms
_EXTRA_TYPES = {
    ".webm": "video/webm",
    ".m4a": "audio/mp4",
    ".opus": "audio/ogg",
    ".md": "text/markdown",
}


def guess_mime(path: str | Path) -> str:
    suffix = Path(path).suffix.lower()
    if suffix in _EXTRA_TYPES:
        return _EXTRA_TYPES[suffix]
    mime, _ = mimetypes.guess_type(str(path))
    return mime or DEFAULT_MIME


def media_type_for(mime: str) -> MediaType:
    """Classify a batch by its first file's MIME type."""
    if "image" in mime:
        return MediaType.IMAGE
    if "pdf" in mime:
        return MediaType.PDF
    if "audio" in mime:
        return MediaType.AUDIO
    if "video" in mime:
        return MediaType.VIDEO
    if "html" in mime or "text" in mime:
        return MediaType.HTML
    return MediaType.TEXT_FILE


@dataclass(frozen=True)
class EvidenceBatch:
    """One submission: ordered encoded items plus how the history logs it."""

    items: tuple[EvidenceItem, ...]
    media_type: MediaType

    @property
    def names(self) -> list[str]:
        return [item.name for item in self.items]

    @property
    def file_label(self) -> str:
        return file_label_for(self.names)

    @property
    def tag(self) -> EvidenceTag:
        return EvidenceTag(media_type=self.media_type, file_label=self.file_label)

    @property
    def size_bytes(self) -> int:
        """Decoded payload size."""
        return sum(len(base64.b64decode(item.data)) for item in self.items)


def _encode(path: Path, mime: str) -> EvidenceItem:
    try:
        payload = path.read_bytes()
    except OSError as exc:
        raise EvidenceError(f"Could not read {path}: {exc}") from exc
    return EvidenceItem(
        mime_type=mime,
        data=base64.b64encode(payload).decode("ascii"),
        name=path.name,
    )


def _check_size(paths: Sequence[Path]) -> None:
    limit = int(MAX_INLINE_MB * 1024 * 1024)
    try:
        total = sum(p.stat().st_size for p in paths)
    except OSError as exc:
        raise EvidenceError(f"Could not read evidence: {exc}") from exc
    if total > limit:
        raise EvidenceError(
            f"Evidence is {total / 1_048_576:.1f} MB, over the {MAX_INLINE_MB:g} MB "
            "inline limit. Try shorter clips or fewer files."
        )


class BaseEvidenceSource(ABC):
    """Produces one evidence batch. Capture mechanics stay outside the core."""

    @abstractmethod
    def collect(self) -> EvidenceBatch:
        ...


class FileEvidenceSource(BaseEvidenceSource):
    """Evidence from files on disk (photos, documents, audio, video, html)."""

    def __init__(self, paths: Sequence[str | Path], media_type: MediaType | None = None):
        self.paths = [Path(p) for p in paths]
        self.media_type = media_type

    def collect(self) -> EvidenceBatch:
        if not self.paths:
            raise EvidenceError("No evidence files given")
        _check_size(self.paths)
        items = tuple(_encode(p, guess_mime(p)) for p in self.paths)
        media_type = self.media_type or media_type_for(items[0].mime_type)
        logger.debug(
            "Collected %d file(s) as %s: %s", len(items), media_type.value, ", ".join(p.name for p in self.paths)
        )
        return EvidenceBatch(items=items, media_type=media_type)


# kind -> (mime type, file name, media type)
_RECORDING_KINDS = {
    "screen": ("video/webm", "screen-capture.webm", MediaType.VIDEO),
    "audio": ("audio/webm", "voice-note.webm", MediaType.AUDIO),
}


class RecordingEvidenceSource(BaseEvidenceSource):
    """A finished screen or voice recording, logged under its capture name."""

    def __init__(self, path: str | Path, kind: Literal["screen", "audio"]):
        if kind not in _RECORDING_KINDS:
            raise EvidenceError(f"Unknown recording kind: {kind!r}")
        self.path = Path(path)
        self.kind = kind

    def collect(self) -> EvidenceBatch:
        mime, name, media_type = _RECORDING_KINDS[self.kind]
        _check_size([self.path])
        item = _encode(self.path, mime).model_copy(update={"name": name})
        return EvidenceBatch(items=(item,), media_type=media_type)
