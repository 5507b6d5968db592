"""Rich-based progress reporter and logging setup."""
from __future__ import annotations

import logging
import sys
import time
from collections import Counter, deque
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    Progress,
    ProgressColumn,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TimeElapsedColumn,
    MofNCompleteColumn,
    TaskID,
    Task,
)
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

from ..core.models import (
    ImportCancelled,
    ImportComplete,
    ImportEvent,
    ImportProgress,
    ImportStats,
    MediaFile,
    ThumbnailResult,
)
from ..services.deduplicator import DestinationIndex
from ..services.progress import EtaEstimator, format_duration, format_size


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route the ``offload`` loggers through a RichHandler."""
    logger = logging.getLogger("offload")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    ))


class FilesPerSecondColumn(ProgressColumn):
    """Renders files per second as a rolling average."""

    def __init__(self, window_size: int = 10):
        """Initialize with rolling window size.

        Args:
            window_size: Number of samples for rolling average.
        """
        super().__init__()
        self._window_size = window_size
        self._samples: deque[tuple[float, int]] = deque(maxlen=window_size)
        self._last_completed = 0
        self._start_time: Optional[float] = None

    def render(self, task: Task) -> Text:
        """Render the speed column."""
        completed = int(task.completed)
        current_time = time.time()

        if self._start_time is None:
            self._start_time = current_time
            self._last_completed = completed
            return Text("-- f/s", style="magenta")

        if completed > self._last_completed:
            self._samples.append((current_time, completed))
            self._last_completed = completed

        if len(self._samples) >= 2:
            oldest_time, oldest_completed = self._samples[0]
            newest_time, newest_completed = self._samples[-1]

            time_diff = newest_time - oldest_time
            completed_diff = newest_completed - oldest_completed

            if time_diff > 0:
                speed = completed_diff / time_diff
                return Text(f"{speed:.1f} f/s", style="magenta")

        # Fallback to overall average
        elapsed = current_time - self._start_time
        if elapsed > 0 and completed > 0:
            speed = completed / elapsed
            return Text(f"{speed:.1f} f/s", style="magenta")

        return Text("-- f/s", style="magenta")


class RichProgressReporter:
    """Progress reporter using Rich for terminal output.

    Renders import events as a progress bar with copied bytes and an
    ETA from the rolling average of recent per-file durations.
    """

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        eta_window: int = 20,
        console: Optional[Console] = None,
    ):
        """Initialize the reporter.

        Args:
            verbose: Enable verbose output.
            quiet: Suppress all non-essential output.
            eta_window: Number of recent durations averaged for the ETA.
            console: Console to print to (stderr by default).
        """
        self._console = console or Console(stderr=True)
        self._verbose = verbose
        self._quiet = quiet
        self._progress: Optional[Progress] = None
        self._current_task_id: Optional[TaskID] = None
        self._phase_name: str = ""
        self._eta = EtaEstimator(eta_window)

    @property
    def console(self) -> Console:
        return self._console

    # --- Phase Management ---

    def start_phase(self, name: str, total: int) -> None:
        """Start a new processing phase with progress bar."""
        self._phase_name = name
        self._eta.reset()

        if self._quiet:
            return

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TextColumn("[cyan]•"),
            FilesPerSecondColumn(),
            TextColumn("[cyan]•"),
            TextColumn("{task.fields[copied]}"),
            TextColumn("[cyan]•"),
            TimeElapsedColumn(),
            TextColumn("[cyan]• ETR"),
            TextColumn("{task.fields[eta]}"),
            console=self._console,
            transient=False,
        )
        self._progress.start()
        self._current_task_id = self._progress.add_task(
            name,
            total=total,
            copied=format_size(0),
            eta=format_duration(None),
        )

    def advance_phase(self, amount: int = 1) -> None:
        """Advance the current phase by amount."""
        if self._progress and self._current_task_id is not None:
            self._progress.advance(self._current_task_id, amount)

    def end_phase(self) -> None:
        """End the current phase."""
        if self._progress:
            self._progress.stop()
            self._progress = None
            self._current_task_id = None

    # --- Import Events ---

    def handle_event(self, event: ImportEvent) -> None:
        """Render an import event."""
        if isinstance(event, ImportProgress):
            self._eta.record(event.last_file_duration)
            if self._progress and self._current_task_id is not None:
                self._progress.update(
                    self._current_task_id,
                    completed=event.processed,
                    description=event.file_name or self._phase_name,
                    copied=format_size(event.bytes_processed),
                    eta=format_duration(self._eta.estimate(event.remaining)),
                )
            if event.file_name:
                self.debug(f"Copied {event.file_name}")
        elif isinstance(event, ImportComplete):
            self.end_phase()
            self.success(f"Import finished: {event.succeeded} succeeded, {event.failed} failed")
        elif isinstance(event, ImportCancelled):
            self.end_phase()
            self.warning(
                f"Import cancelled after {event.processed} files "
                f"({event.succeeded} succeeded, {event.failed} failed)"
            )

    def estimate_remaining(self, remaining: int) -> Optional[float]:
        return self._eta.estimate(remaining)

    # --- Logging Methods ---

    def info(self, message: str) -> None:
        """Log an info message."""
        if not self._quiet:
            self._console.print(f"[blue]ℹ[/blue] {message}")

    def success(self, message: str) -> None:
        """Log a success message."""
        if not self._quiet:
            self._console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self._console.print(f"[yellow]⚠[/yellow] {message}")

    def error(self, message: str) -> None:
        """Log an error message."""
        self._console.print(f"[red]✗[/red] {message}", style="red")

    def debug(self, message: str) -> None:
        """Log a debug message (only in verbose mode)."""
        if self._verbose:
            self._console.print(f"[dim]  {message}[/dim]")

    # --- Specialized Output ---

    def print_header(self, title: str) -> None:
        """Print a styled header."""
        if self._quiet:
            return

        text = Text(title, style="bold cyan")
        self._console.print(Panel(text, border_style="cyan"))

    def print_config(self, config_items: dict) -> None:
        """Print configuration as a table."""
        if self._quiet:
            return

        table = Table(title="Configuration", show_header=True, header_style="bold")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")

        for key, value in config_items.items():
            table.add_row(key, str(value))

        self._console.print(table)

    def print_files(
        self,
        files: Iterable[MediaFile],
        index: Optional[DestinationIndex] = None,
    ) -> None:
        """Print scanned files, marking those already in the destination."""
        if self._quiet:
            return

        table = Table(title="Media Files", show_header=True, header_style="bold")
        table.add_column("Name", style="cyan")
        table.add_column("Size", justify="right")
        table.add_column("Path", style="dim")
        if index is not None:
            table.add_column("Status")

        for media in files:
            row = [media.name, format_size(media.size), str(media.path.parent)]
            if index is not None:
                row.append("[yellow]EXISTING[/yellow]" if index.contains(media) else "[green]new[/green]")
            table.add_row(*row)

        self._console.print(table)

    def print_thumbnail_summary(self, results: Iterable[ThumbnailResult]) -> None:
        """Print how many thumbnails ended in each status."""
        if self._quiet:
            return

        counts = Counter(result.status.value for result in results)
        table = Table(title="Thumbnails", show_header=False)
        table.add_column("Status", style="cyan")
        table.add_column("Count", style="green", justify="right")
        for status, count in sorted(counts.items()):
            table.add_row(status, str(count))
        self._console.print(table)

    def print_stats(
        self,
        stats: ImportStats,
        elapsed_seconds: float = 0.0,
        cancelled: bool = False,
    ) -> None:
        """Print import statistics."""
        if self._quiet:
            return

        title = "Import Cancelled" if cancelled else "Import Complete"
        table = Table(title=title, show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="green", justify="right")

        table.add_row("Files Selected", str(stats.total))
        table.add_row("Files Processed", str(stats.processed))
        table.add_row("Succeeded", str(stats.succeeded))
        table.add_row("Failed", str(stats.failed))
        table.add_row("Copied", format_size(stats.bytes_processed))

        if elapsed_seconds > 0:
            rate = stats.processed / elapsed_seconds
            table.add_row("", "")
            table.add_row("Time Elapsed", f"{elapsed_seconds:.1f}s")
            table.add_row("Processing Rate", f"{rate:.1f} files/sec")

        self._console.print(table)

    # --- Context Managers ---

    def __enter__(self) -> "RichProgressReporter":
        return self

    def __exit__(self, *args) -> None:
        self.end_phase()


class QuietProgressReporter:
    """Minimal progress reporter that only shows errors."""

    def start_phase(self, name: str, total: int) -> None:
        pass

    def advance_phase(self, amount: int = 1) -> None:
        pass

    def end_phase(self) -> None:
        pass

    def handle_event(self, event: ImportEvent) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        print(f"ERROR: {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        pass

    def print_header(self, title: str) -> None:
        pass

    def print_config(self, config_items: dict) -> None:
        pass

    def print_files(self, files, index=None) -> None:
        pass

    def print_thumbnail_summary(self, results) -> None:
        pass

    def print_stats(self, stats: ImportStats, elapsed_seconds: float = 0.0, cancelled: bool = False) -> None:
        pass

    def __enter__(self) -> "QuietProgressReporter":
        return self

    def __exit__(self, *args) -> None:
        pass
