"""Service layer - scanning, thumbnails, imports and the session facade."""
from .scanner import DirectoryScanner
from .deduplicator import DestinationIndex
from .file_ops import FileManager
from .thumbnails import ThumbnailCache, ThumbnailService
from .importer import ImportJob, ImportController
from .progress import EtaEstimator, format_duration, format_size
from .app_context import ImportSession, create_session

__all__ = [
    "DirectoryScanner",
    "DestinationIndex",
    "FileManager",
    "ThumbnailCache",
    "ThumbnailService",
    "ImportJob",
    "ImportController",
    "EtaEstimator",
    "format_duration",
    "format_size",
    "ImportSession",
    "create_session",
]
