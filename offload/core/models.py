"""Domain models - immutable data classes and import run state."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional


IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})
RAW_EXTENSIONS = frozenset({".arw", ".cr2", ".nef", ".dng"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi"})
SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS | RAW_EXTENSIONS | VIDEO_EXTENSIONS

# Files created next to media by macOS on non-HFS volumes
SIDECAR_PREFIX = "._"


def is_video(path: Path) -> bool:
    return path.suffix.lower() in VIDEO_EXTENSIONS


def is_raw(path: Path) -> bool:
    return path.suffix.lower() in RAW_EXTENSIONS


def is_still_image(path: Path) -> bool:
    """Images that may carry EXIF, RAW formats included."""
    suffix = path.suffix.lower()
    return suffix in IMAGE_EXTENSIONS or suffix in RAW_EXTENSIONS


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


@dataclass(frozen=True, slots=True)
class MediaFile:
    """A media file found by a scan."""
    path: Path
    name: str
    size: int
    capture_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"Size must be non-negative: {self.size}")

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def is_video(self) -> bool:
        return self.extension in VIDEO_EXTENSIONS

    @property
    def is_raw(self) -> bool:
        return self.extension in RAW_EXTENSIONS

    @property
    def index_key(self) -> str:
        """Composite key used by the destination index."""
        return f"{self.name}_{self.size}"


class DateSource(Enum):
    """Where a resolved capture date came from."""
    EXIF = "exif"
    FILESYSTEM = "filesystem"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class MediaDate:
    """Best-known capture date of a file."""
    display_date: str
    original_date: Optional[datetime]
    source: DateSource

    @classmethod
    def from_datetime(cls, value: datetime, source: DateSource) -> "MediaDate":
        return cls(
            display_date=value.strftime("%Y-%m-%d"),
            original_date=value,
            source=source,
        )


class ThumbnailStatus(Enum):
    """Outcome of a thumbnail request."""
    GENERATED = "generated"
    CACHED = "cached"
    FALLBACK = "fallback"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ThumbnailResult:
    """Result of a thumbnail request."""
    source: Path
    status: ThumbnailStatus
    path: Optional[Path] = None
    strategy: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.path is not None

    @property
    def uri(self) -> Optional[str]:
        """``file://`` reference for UIs that load images by URL."""
        return self.path.as_uri() if self.path else None


class ImportState(Enum):
    """Lifecycle of the import controller."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FileAction(Enum):
    """What happened to a single file during an import."""
    COPIED = "copied"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FileOutcome:
    """Result of importing a single file."""
    source: Path
    action: FileAction
    target: Optional[Path] = None
    size: int = 0
    duration: float = 0.0
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.action == FileAction.COPIED


@dataclass(frozen=True, slots=True)
class ImportProgress:
    """Emitted once per processed file."""
    kind: ClassVar[str] = "import-progress"

    processed: int
    total: int
    succeeded: int
    failed: int
    bytes_processed: int
    last_file_duration: float
    file_name: Optional[str] = None

    @property
    def remaining(self) -> int:
        return max(self.total - self.processed, 0)

    def to_dict(self) -> dict:
        """Wire form; durations in milliseconds."""
        data = {
            "processed": self.processed,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "bytesProcessed": self.bytes_processed,
            "lastFileDuration": round(self.last_file_duration * 1000),
        }
        if self.file_name is not None:
            data["fileName"] = self.file_name
        return data


@dataclass(frozen=True, slots=True)
class ImportComplete:
    """Emitted once when every file has been processed."""
    kind: ClassVar[str] = "import-complete"

    succeeded: int
    failed: int

    def to_dict(self) -> dict:
        return {"succeeded": self.succeeded, "failed": self.failed}


@dataclass(frozen=True, slots=True)
class ImportCancelled:
    """Emitted once when cancellation stopped the job early."""
    kind: ClassVar[str] = "import-cancelled"

    succeeded: int
    failed: int
    processed: int

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "processed": self.processed,
        }


ImportEvent = ImportProgress | ImportComplete | ImportCancelled


@dataclass(frozen=True, slots=True)
class ImportAck:
    """Returned by start_import before any file is copied."""
    status: str
    total: int


@dataclass(frozen=True, slots=True)
class CancelAck:
    """Returned by cancel_import."""
    status: str


@dataclass(slots=True)
class ImportStats:
    """Mutable counters for one import run."""
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    bytes_processed: int = 0
    last_file_duration: float = 0.0
    file_name: Optional[str] = None

    def record(self, outcome: FileOutcome) -> None:
        """Record a single file result."""
        self.processed += 1
        self.last_file_duration = outcome.duration
        if outcome.is_success:
            self.succeeded += 1
            self.bytes_processed += outcome.size
            self.file_name = outcome.target.name if outcome.target else None
        else:
            self.failed += 1
            self.file_name = None

    def progress(self) -> ImportProgress:
        return ImportProgress(
            processed=self.processed,
            total=self.total,
            succeeded=self.succeeded,
            failed=self.failed,
            bytes_processed=self.bytes_processed,
            last_file_duration=self.last_file_duration,
            file_name=self.file_name,
        )


@dataclass(slots=True)
class CancellationToken:
    """Flag set by a caller and polled by a job between files.

    Backed by ``threading.Event`` so it may be set from a signal handler
    or another thread.
    """
    _event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
