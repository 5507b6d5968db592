"""Cancellable import job and the controller that runs one job at a time.

The job copies files strictly in input order, one at a time, into
date-bucketed folders. Every filesystem call runs in a worker thread so the
event loop stays responsive. Callers observe the job only through events:
one ``import-progress`` per file, then either ``import-complete`` or
``import-cancelled``.
"""
from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ..core.errors import ImportInProgressError
from ..core.models import (
    CancelAck,
    CancellationToken,
    FileAction,
    FileOutcome,
    ImportAck,
    ImportCancelled,
    ImportComplete,
    ImportEvent,
    ImportState,
    ImportStats,
)
from ..core.protocols import ImportListener
from .file_ops import FileManager


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ImportJob:
    """One import run over a fixed list of files."""

    def __init__(
        self,
        paths: Iterable[PathLike],
        file_manager: FileManager,
        token: CancellationToken,
        emit: Callable[[ImportEvent], None],
    ):
        """Initialize the job.

        Args:
            paths: Source files, processed in this order.
            file_manager: Resolves targets and copies bytes.
            token: Polled before each file.
            emit: Receives every event, in order.
        """
        self._paths = [Path(p) for p in paths]
        self._files = file_manager
        self._token = token
        self._emit = emit
        self.stats = ImportStats(total=len(self._paths))
        self.state = ImportState.IDLE

    async def run(self) -> ImportStats:
        """Process every file unless cancelled first."""
        self.state = ImportState.RUNNING
        logger.info(
            "Importing %d files into %s", self.stats.total, self._files.destination_root
        )

        for path in self._paths:
            if self._token.cancelled:
                self.state = ImportState.CANCELLED
                logger.info(
                    "Import cancelled after %d/%d files", self.stats.processed, self.stats.total
                )
                self._emit(ImportCancelled(
                    succeeded=self.stats.succeeded,
                    failed=self.stats.failed,
                    processed=self.stats.processed,
                ))
                return self.stats

            outcome = await self.import_file(path)
            self.stats.record(outcome)
            self._emit(self.stats.progress())

        self.state = ImportState.COMPLETED
        logger.info(
            "Import complete: %d succeeded, %d failed", self.stats.succeeded, self.stats.failed
        )
        self._emit(ImportComplete(succeeded=self.stats.succeeded, failed=self.stats.failed))
        return self.stats

    async def import_file(self, source: Path) -> FileOutcome:
        """Copy one file. Failures are returned, never raised."""
        started = time.perf_counter()
        try:
            stat = await asyncio.to_thread(source.stat)
            directory = self._files.build_output_directory(stat.st_mtime)
            await asyncio.to_thread(self._files.ensure_directory, directory)
            target = await asyncio.to_thread(self._files.find_unique_path, directory, source.name)
            copied = await asyncio.to_thread(self._files.copy_file, source, target)
        except Exception as e:
            logger.error("Failed to import %s: %s", source, e)
            return FileOutcome(
                source=source,
                action=FileAction.FAILED,
                duration=time.perf_counter() - started,
                error=str(e),
            )

        logger.debug("Imported %s -> %s", source, target)
        return FileOutcome(
            source=source,
            action=FileAction.COPIED,
            target=target,
            size=copied,
            duration=time.perf_counter() - started,
        )


class ImportController:
    """Starts, cancels and reports on a single import job at a time.

    Usage:
        controller = ImportController()
        controller.add_listener(print)
        ack = await controller.start_import(paths, destination)
        ...
        controller.cancel_import()
        stats = await controller.wait()
    """

    def __init__(self, listeners: Optional[Iterable[ImportListener]] = None):
        self._listeners: list[ImportListener] = list(listeners or [])
        self._job: Optional[ImportJob] = None
        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancellationToken] = None

    @property
    def state(self) -> ImportState:
        if self._job is None:
            return ImportState.IDLE
        return self._job.state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stats(self) -> Optional[ImportStats]:
        return self._job.stats if self._job else None

    def add_listener(self, listener: ImportListener) -> Callable[[], None]:
        """Subscribe to events. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self, event: ImportEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Import listener failed on %s", event.kind)

    async def start_import(
        self,
        paths: Iterable[PathLike],
        destination_root: PathLike,
    ) -> ImportAck:
        """Start copying ``paths`` into ``destination_root`` in the background.

        Returns as soon as the job is scheduled.

        Raises:
            ImportInProgressError: another import is still running.
        """
        if self.is_running:
            raise ImportInProgressError("An import is already running")

        self._token = CancellationToken()
        self._job = ImportJob(
            paths,
            FileManager(Path(destination_root).expanduser().absolute()),
            self._token,
            self._emit,
        )
        self._job.state = ImportState.RUNNING
        self._task = asyncio.get_running_loop().create_task(
            self._job.run(), name="offload-import"
        )
        return ImportAck(status="started", total=self._job.stats.total)

    def cancel_import(self) -> CancelAck:
        """Ask the running job to stop before its next file."""
        if not self.is_running or self._token is None:
            return CancelAck(status="idle")
        self._token.cancel()
        return CancelAck(status="cancelling")

    async def wait(self) -> Optional[ImportStats]:
        """Wait for the current job to finish and return its stats."""
        if self._task is None:
            return None
        return await self._task
