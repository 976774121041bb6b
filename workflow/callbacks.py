"""Generation progress callbacks for monitoring and real-time reporting."""

import logging
from typing import Optional, Protocol, runtime_checkable

from models.enums import RunOutcome
from workflow.state import RunResult

logger = logging.getLogger(__name__)


@runtime_checkable
class GenerationCallback(Protocol):
    """Protocol for run progress callbacks.

    Implement this protocol to observe a planning or streak run.
    """

    def on_progress(self, current: int, total: int) -> None:
        """Called after each completed batch or chapter."""
        ...

    def on_log(self, message: str) -> None:
        """Human-readable status line."""
        ...

    def on_run_complete(self, result: RunResult) -> None:
        """Called once when the run reaches a terminal state."""
        ...


class LoggingCallback:
    """Lightweight callback that logs progress to the standard logger."""

    def on_progress(self, current: int, total: int) -> None:
        logger.info("Progress %d/%d", current, total)

    def on_log(self, message: str) -> None:
        logger.info(message)

    def on_run_complete(self, result: RunResult) -> None:
        if result.outcome == RunOutcome.FAILED:
            logger.error("Run failed after %d/%d: %s", result.completed, result.total, result.error)
        else:
            logger.info("Run %s: %d/%d", result.outcome.value, result.completed, result.total)


class RecordingCallback:
    """Keeps every event in memory; the status log shows the last few lines."""

    def __init__(self, max_log_lines: int = 5):
        self.max_log_lines = max_log_lines
        self.progress: list[tuple[int, int]] = []
        self.logs: list[str] = []
        self.result: Optional[RunResult] = None

    @property
    def in_progress(self) -> bool:
        return self.result is None

    @property
    def recent_logs(self) -> list[str]:
        return self.logs[-self.max_log_lines:]

    def on_progress(self, current: int, total: int) -> None:
        self.progress.append((current, total))

    def on_log(self, message: str) -> None:
        self.logs.append(message)

    def on_run_complete(self, result: RunResult) -> None:
        self.result = result


class RichProgressCallback:
    """Progress callback that renders a Rich live progress display in the terminal."""

    def __init__(self, console=None, description: str = "生成中", total: int = 0):
        """
        Args:
            console: Rich Console instance. Creates one if not provided.
            description: Label shown next to the progress bar.
            total: Planned total (for progress bar max).
        """
        self._console = console
        self._description = description
        self._total = total
        self._progress = None
        self._task_id = None

    def start(self):
        """Start the progress display. Call before running the workflow."""
        from rich.console import Console
        from rich.progress import (
            Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn,
        )

        console = self._console or Console()
        self._console = console

        self._progress = Progress(
            SpinnerColumn("dots"),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(
            self._description,
            total=self._total if self._total > 0 else None,
        )

    def stop(self):
        """Stop the progress display."""
        if self._progress:
            self._progress.stop()
            self._progress = None

    def on_progress(self, current: int, total: int) -> None:
        if not self._progress:
            return
        self._progress.update(self._task_id, completed=current, total=total or None)

    def on_log(self, message: str) -> None:
        if self._progress:
            self._progress.console.print(f"  [dim]--[/] {message}")
        elif self._console:
            self._console.print(message)

    def on_run_complete(self, result: RunResult) -> None:
        if not self._progress:
            return
        if result.outcome == RunOutcome.COMPLETED:
            description = f"[bold green]完成！共 {result.completed} 项[/]"
        elif result.outcome == RunOutcome.CANCELLED:
            description = f"[yellow]已停止（完成 {result.completed} 项）[/]"
        else:
            description = f"[red]中断（完成 {result.completed} 项）: {result.error[:80]}[/]"
        self._progress.update(self._task_id, description=description)
