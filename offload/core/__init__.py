"""Core domain models, configuration and protocols."""
from .config import OffloadConfig, CacheKeyMode
from .errors import OffloadError, ScanError, ImportInProgressError, ThumbnailError
from .models import (
    MediaFile,
    MediaDate,
    DateSource,
    ThumbnailResult,
    ThumbnailStatus,
    ImportState,
    ImportStats,
    ImportProgress,
    ImportComplete,
    ImportCancelled,
    ImportAck,
    CancelAck,
    FileOutcome,
    FileAction,
    CancellationToken,
)
from .protocols import (
    MetadataResolver,
    ThumbnailStrategy,
    DirectoryPicker,
    ImportListener,
    ProgressReporter,
)

__all__ = [
    # Config
    "OffloadConfig",
    "CacheKeyMode",
    # Errors
    "OffloadError",
    "ScanError",
    "ImportInProgressError",
    "ThumbnailError",
    # Models
    "MediaFile",
    "MediaDate",
    "DateSource",
    "ThumbnailResult",
    "ThumbnailStatus",
    "ImportState",
    "ImportStats",
    "ImportProgress",
    "ImportComplete",
    "ImportCancelled",
    "ImportAck",
    "CancelAck",
    "FileOutcome",
    "FileAction",
    "CancellationToken",
    # Protocols
    "MetadataResolver",
    "ThumbnailStrategy",
    "DirectoryPicker",
    "ImportListener",
    "ProgressReporter",
]
