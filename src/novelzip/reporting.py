from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

if TYPE_CHECKING:
    from .batch import BatchReport, FileOutcome

_DEBUG_LOG = False


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def debug_log(message: str) -> None:
    if _DEBUG_LOG:
        print(f"[novelzip debug] {message}")


def _kib(size: int) -> str:
    return f"{size / 1024:.2f} KB"


def format_outcome(outcome: "FileOutcome") -> str:
    from .batch import OutcomeStatus

    if outcome.status is OutcomeStatus.SUCCESS and outcome.metrics is not None:
        metrics = outcome.metrics
        output_name = outcome.output.name if outcome.output is not None else outcome.name
        return " | ".join(
            [
                f"✓ {output_name}",
                f"Size: {_kib(metrics.original_size)} → {_kib(metrics.compressed_size)}",
                f"Ratio: {metrics.ratio * 100:.1f}%",
                f"Time: {metrics.elapsed * 1000:.2f} ms",
            ]
        )
    if outcome.status is OutcomeStatus.WARNING:
        return f"⚠ {outcome.name}: {outcome.message or 'skipped'}"
    return f"✗ Error processing {outcome.name}: {outcome.message or 'failed'}"


def format_summary(report: "BatchReport") -> str:
    return (
        f"{len(report.succeeded)} archived, {len(report.warnings)} skipped, "
        f"{len(report.errors)} failed in {report.elapsed:.2f}s"
    )


class BatchProgress:
    """Rich progress bar fed by orchestrator events; a no-op off a terminal."""

    def __init__(self, *, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        self.enabled = self.console.is_terminal
        self.lock = threading.Lock()
        self.progress: Progress | None = None
        self.task_id: TaskID | None = None

    def _start(self, total: int) -> None:
        if total <= 0:
            return
        self.progress = Progress(
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("{task.fields[detail]}", justify="left"),
            console=self.console,
            transient=True,
        )
        self.progress.start()
        self.task_id = self.progress.add_task("All files", total=total, detail="")

    def handle(self, event: dict[str, object]) -> bool:
        if not self.enabled:
            return False
        event_type = event.get("event")
        with self.lock:
            if event_type == "run_start":
                total = event.get("total")
                self._start(total if isinstance(total, int) else 0)
                return True
            if self.progress is None or self.task_id is None:
                return False
            if event_type == "file_start":
                self.progress.update(self.task_id, detail=str(event.get("source") or ""))
            elif event_type in {"file_done", "file_skipped", "file_failed"}:
                self.progress.advance(self.task_id, 1)
            else:
                return False
        return True

    def close(self) -> None:
        with self.lock:
            if self.progress is None:
                return
            self.progress.stop()
            self.progress = None
            self.task_id = None


__all__ = [
    "BatchProgress",
    "debug_log",
    "format_outcome",
    "format_summary",
    "set_debug_logging",
]
