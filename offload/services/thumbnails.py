"""Thumbnail cache and the bounded-concurrency service in front of it."""
from __future__ import annotations

import asyncio
import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from ..core.config import CacheKeyMode, OffloadConfig
from ..core.models import ThumbnailResult, ThumbnailStatus, is_video
from ..engines.thumbnail import PillowThumbnailer, ThumbnailGenerator, platform_utility


logger = logging.getLogger(__name__)


class ThumbnailCache:
    """On-disk store of generated previews.

    Entries live at ``<directory>/<md5>.jpg`` where the hash is taken over
    the absolute source path (and its mtime in ``path-mtime`` mode). In
    ``path`` mode an entry is never invalidated when the source changes.
    """

    def __init__(self, directory: Path, key_mode: CacheKeyMode = CacheKeyMode.PATH):
        self._directory = directory
        self._key_mode = key_mode

    @property
    def directory(self) -> Path:
        return self._directory

    def ensure_directory(self) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)

    def key_for(self, source: Path) -> str:
        """Deterministic cache key for a source file."""
        material = str(source.absolute())
        if self._key_mode == CacheKeyMode.PATH_MTIME:
            try:
                material = f"{material}:{source.stat().st_mtime_ns}"
            except OSError:
                pass
        return hashlib.md5(material.encode("utf-8")).hexdigest()

    def path_for(self, source: Path) -> Path:
        return self._directory / f"{self.key_for(source)}.jpg"

    def lookup(self, source: Path) -> Optional[Path]:
        """Return the cached preview if one exists."""
        target = self.path_for(source)
        return target if target.is_file() else None

    def get_or_create(self, source: Path, generator: ThumbnailGenerator) -> ThumbnailResult:
        """Return the cached preview, generating it on a miss.

        The preview is written to a temporary name and moved into place,
        so a reader never sees a half-written entry.
        """
        target = self.path_for(source)
        if target.is_file():
            return ThumbnailResult(source=source, status=ThumbnailStatus.CACHED, path=target)

        self.ensure_directory()
        partial = target.with_suffix(".part")
        result = generator.generate(source, partial)
        if result.path is None:
            return result

        try:
            os.replace(partial, target)
        except OSError as e:
            logger.warning("Could not store thumbnail for %s: %s", source, e)
            partial.unlink(missing_ok=True)
            return ThumbnailResult(source=source, status=ThumbnailStatus.FAILED)

        return ThumbnailResult(
            source=source, status=result.status, path=target, strategy=result.strategy
        )

    def clear(self) -> int:
        """Delete every cached preview. Returns the number removed."""
        removed = 0
        if not self._directory.is_dir():
            return removed
        for entry in self._directory.glob("*.jpg"):
            entry.unlink(missing_ok=True)
            removed += 1
        return removed


class ThumbnailService:
    """Get-or-create thumbnails with at most ``concurrency`` generations in flight.

    Requests beyond the bound wait on a semaphore in arrival order.
    Concurrent requests for the same file share one generation. Decoding
    and encoding run in worker threads so the event loop stays free.
    """

    def __init__(
        self,
        cache: ThumbnailCache,
        generator: ThumbnailGenerator,
        concurrency: int = 2,
    ):
        """Initialize the service.

        Args:
            cache: Where previews are stored.
            generator: Strategy chain used on a cache miss.
            concurrency: Maximum simultaneous generations.
        """
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self._cache = cache
        self._generator = generator
        self._concurrency = concurrency
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight: dict[str, asyncio.Future] = {}

    @classmethod
    def from_config(cls, config: OffloadConfig) -> "ThumbnailService":
        """Build the service with Pillow plus the local platform utility."""
        primary = PillowThumbnailer(config.thumbnail_size, config.thumbnail_quality)
        utility = platform_utility(
            config.thumbnail_size, config.thumbnail_quality, config.utility_timeout
        )
        if utility is None:
            logger.debug("No platform thumbnail utility found, using Pillow only")
        return cls(
            cache=ThumbnailCache(config.thumbnail_dir, config.cache_key),
            generator=ThumbnailGenerator(primary, utility),
            concurrency=config.thumbnail_concurrency,
        )

    @property
    def cache(self) -> ThumbnailCache:
        return self._cache

    @property
    def concurrency(self) -> int:
        return self._concurrency

    def _limiter(self) -> asyncio.Semaphore:
        """Semaphore bound to the running loop."""
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self._concurrency)
            self._loop = loop
            self._in_flight.clear()
        return self._semaphore

    async def fetch(self, source: Path) -> ThumbnailResult:
        """Return a thumbnail result for a source file. Never raises."""
        source = Path(source)
        if is_video(source):
            return ThumbnailResult(source=source, status=ThumbnailStatus.UNSUPPORTED)

        limiter = self._limiter()
        key, cached = await asyncio.to_thread(self._probe, source)
        if cached is not None:
            return ThumbnailResult(source=source, status=ThumbnailStatus.CACHED, path=cached)

        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._generate(source, limiter))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return await asyncio.shield(pending)

    def _probe(self, source: Path) -> tuple[str, Optional[Path]]:
        """Cache key and existing entry for a source. Touches the filesystem."""
        key = self._cache.key_for(source)
        target = self._cache.directory / f"{key}.jpg"
        return key, target if target.is_file() else None

    async def _generate(self, source: Path, limiter: asyncio.Semaphore) -> ThumbnailResult:
        async with limiter:
            try:
                return await asyncio.to_thread(self._cache.get_or_create, source, self._generator)
            except Exception as e:
                logger.warning("Thumbnail generation crashed for %s: %s", source, e)
                return ThumbnailResult(source=source, status=ThumbnailStatus.FAILED)

    async def get_thumbnail(self, source: Path) -> Optional[Path]:
        """Return the preview path, or None when no thumbnail is available."""
        result = await self.fetch(source)
        return result.path

    async def fetch_many(self, sources: list[Path]) -> list[ThumbnailResult]:
        """Request thumbnails for many files at once, bounded by the semaphore."""
        return list(await asyncio.gather(*(self.fetch(s) for s in sources)))
