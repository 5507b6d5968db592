"""Media import package: scan a card, preview thumbnails, copy into dated folders."""

__version__ = "1.0.0"

# Core exports
from .core.config import OffloadConfig, CacheKeyMode
from .core.errors import OffloadError, ScanError, ImportInProgressError
from .core.models import (
    MediaFile,
    MediaDate,
    ThumbnailResult,
    ImportProgress,
    ImportComplete,
    ImportCancelled,
    ImportStats,
)

# Engine exports
from .engines.metadata import ExifDateResolver
from .engines.thumbnail import ThumbnailGenerator

# Service exports
from .services.scanner import DirectoryScanner
from .services.thumbnails import ThumbnailCache, ThumbnailService
from .services.importer import ImportController
from .services.deduplicator import DestinationIndex
from .services.app_context import ImportSession, create_session

# Logging exports
from .logging.rich_logger import RichProgressReporter

__all__ = [
    # Core
    "OffloadConfig",
    "CacheKeyMode",
    "OffloadError",
    "ScanError",
    "ImportInProgressError",
    "MediaFile",
    "MediaDate",
    "ThumbnailResult",
    "ImportProgress",
    "ImportComplete",
    "ImportCancelled",
    "ImportStats",
    # Engines
    "ExifDateResolver",
    "ThumbnailGenerator",
    # Services
    "DirectoryScanner",
    "ThumbnailCache",
    "ThumbnailService",
    "ImportController",
    "DestinationIndex",
    "ImportSession",
    "create_session",
    # Logging
    "RichProgressReporter",
]
