"""Import session - the operations a presentation layer calls.

This module wires the scanner, metadata resolver, thumbnail service and
import controller together behind one object. Every operation is
awaitable so a UI event loop is never blocked by filesystem work.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ..core.config import OffloadConfig
from ..core.models import (
    CancelAck,
    ImportAck,
    ImportEvent,
    ImportProgress,
    ImportStats,
    MediaDate,
    MediaFile,
    ThumbnailResult,
)
from ..core.protocols import DirectoryPicker, ImportListener, MetadataResolver
from ..engines.metadata import ExifDateResolver
from .deduplicator import DestinationIndex
from .importer import ImportController
from .scanner import DirectoryScanner
from .thumbnails import ThumbnailService


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ImportSession:
    """Session object exposing pick/scan/thumbnail/metadata/import operations.

    Usage:
        session = create_session(OffloadConfig())
        files = await session.scan_directory(source)
        await session.refresh_destination(destination)
        new_files = session.destination_index.select_new(files)
        await session.start_import([f.path for f in new_files], destination)
        stats = await session.wait_for_import()
    """

    def __init__(
        self,
        config: OffloadConfig,
        scanner: DirectoryScanner,
        resolver: MetadataResolver,
        thumbnails: ThumbnailService,
        controller: Optional[ImportController] = None,
        picker: Optional[DirectoryPicker] = None,
    ):
        """Initialize the session.

        Args:
            config: Application configuration.
            scanner: Source and destination scanner.
            resolver: Capture date resolver.
            thumbnails: Bounded thumbnail service.
            controller: Import controller (one is created if omitted).
            picker: Directory chooser of the presentation layer.
        """
        self._config = config
        self._scanner = scanner
        self._resolver = resolver
        self._thumbnails = thumbnails
        self._controller = controller or ImportController()
        self._picker = picker
        self._destination: Optional[Path] = None
        self._index = DestinationIndex()
        self._follow_up: Optional[asyncio.Task] = None

        self._controller.add_listener(self._track_imported)

    @property
    def config(self) -> OffloadConfig:
        return self._config

    @property
    def destination_index(self) -> DestinationIndex:
        return self._index

    @property
    def controller(self) -> ImportController:
        return self._controller

    def add_listener(self, listener: ImportListener) -> Callable[[], None]:
        """Subscribe to import events. Returns an unsubscribe function."""
        return self._controller.add_listener(listener)

    # --- Operations ---

    def pick_directory(self, title: str = "Select directory") -> Optional[Path]:
        """Ask the presentation layer for a directory. None if nothing chosen."""
        if self._picker is None:
            return None
        chosen = self._picker.pick(title)
        return chosen.expanduser().absolute() if chosen else None

    async def scan_directory(self, root: Optional[PathLike]) -> list[MediaFile]:
        """Scan a directory tree for media files."""
        return await asyncio.to_thread(self._scanner.scan, root)

    async def refresh_destination(self, destination: Optional[PathLike] = None) -> DestinationIndex:
        """Rebuild the destination index by scanning the destination again."""
        if destination is not None:
            self._destination = Path(destination).expanduser().absolute()
        if self._destination is None:
            return self._index

        if not self._destination.exists():
            self._index = DestinationIndex()
            return self._index

        files = await self.scan_directory(self._destination)
        self._index = DestinationIndex.build(files)
        logger.debug("Destination index for %s has %d keys", self._destination, len(self._index))
        return self._index

    async def get_thumbnail(self, source: PathLike) -> Optional[Path]:
        """Preview path for a file, or None when unavailable."""
        return await self._thumbnails.get_thumbnail(Path(source))

    async def fetch_thumbnail(self, source: PathLike) -> ThumbnailResult:
        return await self._thumbnails.fetch(Path(source))

    async def get_metadata(self, source: PathLike) -> MediaDate:
        """Best-known capture date of a file."""
        return await asyncio.to_thread(self._resolver.resolve_date, Path(source))

    async def start_import(
        self,
        paths: Iterable[PathLike],
        destination: PathLike,
    ) -> ImportAck:
        """Start an import in the background and acknowledge immediately."""
        self._destination = Path(destination).expanduser().absolute()
        ack = await self._controller.start_import(paths, self._destination)
        self._follow_up = asyncio.get_running_loop().create_task(self._refresh_after_import())
        return ack

    def cancel_import(self) -> CancelAck:
        """Request cancellation at the next file boundary."""
        return self._controller.cancel_import()

    async def wait_for_import(self) -> Optional[ImportStats]:
        """Wait for the running import and the destination refresh after it."""
        if self._follow_up is None:
            return await self._controller.wait()
        return await self._follow_up

    # --- Internals ---

    def _track_imported(self, event: ImportEvent) -> None:
        if isinstance(event, ImportProgress) and event.file_name:
            self._index.add(event.file_name)

    async def _refresh_after_import(self) -> Optional[ImportStats]:
        stats = await self._controller.wait()
        try:
            await self.refresh_destination()
        except Exception as e:
            logger.warning("Failed to refresh destination after import: %s", e)
        return stats


def create_session(
    config: Optional[OffloadConfig] = None,
    picker: Optional[DirectoryPicker] = None,
    listeners: Optional[Iterable[ImportListener]] = None,
) -> ImportSession:
    """Create a session with the default services for a configuration.

    Args:
        config: Application configuration (defaults if omitted).
        picker: Directory chooser of the presentation layer.
        listeners: Initial import event listeners.

    Returns:
        Configured ImportSession instance
    """
    config = config or OffloadConfig()
    return ImportSession(
        config=config,
        scanner=DirectoryScanner(follow_symlinks=config.follow_symlinks),
        resolver=ExifDateResolver(timeout=config.utility_timeout),
        thumbnails=ThumbnailService.from_config(config),
        controller=ImportController(listeners),
        picker=picker,
    )
