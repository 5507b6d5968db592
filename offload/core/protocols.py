"""Protocol definitions (interfaces) for dependency injection."""
from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Optional, Protocol

from .models import ImportEvent, MediaDate


class MetadataResolver(Protocol):
    """Interface for resolving the capture date of a file."""

    @abstractmethod
    def resolve_date(self, path: Path) -> MediaDate:
        """Return the best-known capture date. Never raises."""
        ...


class ThumbnailStrategy(Protocol):
    """One way of turning a source file into a square JPEG preview.

    Implementations:
    - PillowThumbnailer: decodes with Pillow (universal path)
    - SipsThumbnailer: shells out to macOS ``sips``
    - ExifToolPreviewThumbnailer: extracts the preview embedded in RAW files
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name for logging."""
        ...

    @abstractmethod
    def generate(self, source: Path, target: Path) -> None:
        """Write a preview of ``source`` to ``target``.

        Raises:
            ThumbnailError: the preview could not be produced.
        """
        ...


class DirectoryPicker(Protocol):
    """Interface for the directory chooser supplied by a presentation layer."""

    @abstractmethod
    def pick(self, title: str) -> Optional[Path]:
        """Return the chosen directory, or None when nothing was chosen."""
        ...


class ImportListener(Protocol):
    """Callable receiving import events in emission order."""

    def __call__(self, event: ImportEvent) -> None:
        ...


class ProgressReporter(Protocol):
    """Interface for progress reporting."""

    @abstractmethod
    def start_phase(self, name: str, total: int) -> None:
        """Start a new processing phase."""
        ...

    @abstractmethod
    def advance_phase(self, amount: int = 1) -> None:
        """Advance the current phase by an amount."""
        ...

    @abstractmethod
    def end_phase(self) -> None:
        """Complete current phase."""
        ...

    @abstractmethod
    def handle_event(self, event: ImportEvent) -> None:
        """Render an import event."""
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        """Log an info message."""
        ...

    @abstractmethod
    def warning(self, message: str) -> None:
        """Log a warning message."""
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        """Log an error message."""
        ...
