"""Metrics and logging — tracks timing, tokens and outcome of analysis calls."""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

# Structured logger
logger = logging.getLogger("psychoanalyze")


def setup_logging(data_dir: Path, verbose: bool = False) -> None:
    """Configure logging with file and console handlers."""
    level = logging.DEBUG if verbose else logging.WARNING

    # Console handler: warnings only unless verbose
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(message)s"))

    # File handler with timestamps
    file_handler = logging.FileHandler(data_dir / "psychoanalyze.log")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )

    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.addHandler(console)
    logger.addHandler(file_handler)


@dataclass
class RunMetrics:
    """Metrics for a single analysis call."""

    operation: str
    profile_id: str | None = None
    started_at: str = ""
    completed_at: str = ""
    duration_seconds: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    files_processed: int = 0
    model: str = ""
    success: bool = True
    error: str | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


class MetricsTracker:
    """Tracks and persists operational metrics to metrics.jsonl."""

    def __init__(self, data_dir: Path):
        self.metrics_file = Path(data_dir) / "metrics.jsonl"

    def record(self, metrics: RunMetrics) -> None:
        """Record a completed operation's metrics."""
        self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.metrics_file, "a") as f:
            f.write(json.dumps(metrics.to_dict()) + "\n")
        logger.info(
            f"[metrics] {metrics.operation}: {metrics.duration_seconds:.1f}s, "
            f"{metrics.input_tokens + metrics.output_tokens} tokens, "
            f"{'ok' if metrics.success else 'failed'}"
        )

    @contextmanager
    def track(self, operation: str, profile_id: str | None = None, **details):
        """Context manager to track an operation's metrics."""
        metrics = RunMetrics(
            operation=operation,
            profile_id=profile_id,
            started_at=datetime.now(UTC).isoformat(),
            details=details,
        )
        start = time.monotonic()
        try:
            yield metrics
            metrics.success = True
        except Exception as e:
            metrics.success = False
            metrics.error = str(e)
            raise
        finally:
            metrics.duration_seconds = time.monotonic() - start
            metrics.completed_at = datetime.now(UTC).isoformat()
            self.record(metrics)

    def get_summary(self) -> dict:
        """Load all metrics and produce a summary."""
        runs = self._load_all()

        total_tokens = sum(r.get("input_tokens", 0) + r.get("output_tokens", 0) for r in runs)
        total_files = sum(r.get("files_processed", 0) for r in runs)

        by_operation: dict[str, dict] = {}
        for r in runs:
            op = r.get("operation", "unknown")
            if op not in by_operation:
                by_operation[op] = {"count": 0, "total_tokens": 0, "errors": 0}
            by_operation[op]["count"] += 1
            by_operation[op]["total_tokens"] += r.get("input_tokens", 0) + r.get("output_tokens", 0)
            if not r.get("success", True):
                by_operation[op]["errors"] += 1

        return {
            "total_runs": len(runs),
            "total_tokens": total_tokens,
            "total_files_processed": total_files,
            "by_operation": by_operation,
            "last_run": runs[-1] if runs else None,
        }

    def _load_all(self) -> list[dict]:
        """Load all metric records from the JSONL file."""
        if not self.metrics_file.exists():
            return []
        runs = []
        for line in self.metrics_file.read_text().splitlines():
            if line.strip():
                try:
                    runs.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
        return runs
