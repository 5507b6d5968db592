"""Thumbnail strategies and the fallback chain that runs them.

Pillow is the universal path. A platform utility (``sips`` on macOS,
``exiftool`` preview extraction elsewhere) is the fast path for RAW files
and the last resort for anything Pillow cannot decode.
"""
from __future__ import annotations

import io
import logging
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image, ImageFile, ImageOps

from ..core.errors import ThumbnailError
from ..core.models import ThumbnailResult, ThumbnailStatus, is_raw, is_video
from ..core.protocols import ThumbnailStrategy


logger = logging.getLogger(__name__)

# Allow loading truncated images
ImageFile.LOAD_TRUNCATED_IMAGES = True

# Tags holding embedded previews, largest first
PREVIEW_TAGS = ("-PreviewImage", "-JpgFromRaw", "-ThumbnailImage")


def cover_fit(img: Image.Image, target: Path, size: int, quality: int) -> None:
    """Scale and crop to fill a size x size box, then save as JPEG."""
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        img = img.convert("RGB")
    thumb = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS)
    thumb.save(target, "JPEG", quality=quality)


class PillowThumbnailer:
    """Decodes with Pillow. Handles JPEG, PNG and TIFF-based RAW files
    whose main image Pillow understands."""

    def __init__(self, size: int = 200, quality: int = 80):
        self._size = size
        self._quality = quality

    @property
    def name(self) -> str:
        return "pillow"

    def generate(self, source: Path, target: Path) -> None:
        try:
            with Image.open(source) as img:
                # Let the JPEG decoder downscale while decoding
                img.draft("RGB", (self._size * 2, self._size * 2))
                cover_fit(img, target, self._size, self._quality)
        except Exception as e:
            raise ThumbnailError(f"pillow: {e}") from e


class SipsThumbnailer:
    """Converts with macOS ``sips``, then crops with Pillow."""

    def __init__(self, executable: str, size: int = 200, quality: int = 80, timeout: float = 60.0):
        self._executable = executable
        self._size = size
        self._quality = quality
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "sips"

    def generate(self, source: Path, target: Path) -> None:
        with tempfile.TemporaryDirectory(prefix="offload-sips-") as tmp:
            intermediate = Path(tmp) / "preview.jpg"
            args = [
                self._executable,
                "-Z", str(self._size * 2),
                "-s", "format", "jpeg",
                str(source),
                "--out", str(intermediate),
            ]
            try:
                result = subprocess.run(
                    args, capture_output=True, text=True, timeout=self._timeout
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                raise ThumbnailError(f"sips: {e}") from e

            if result.returncode != 0 or not intermediate.exists():
                raise ThumbnailError(f"sips: exit {result.returncode}: {result.stderr.strip()}")

            try:
                with Image.open(intermediate) as img:
                    cover_fit(img, target, self._size, self._quality)
            except Exception as e:
                raise ThumbnailError(f"sips: {e}") from e


class ExifToolPreviewThumbnailer:
    """Extracts the JPEG preview embedded in RAW files with ``exiftool``."""

    def __init__(self, executable: str, size: int = 200, quality: int = 80, timeout: float = 60.0):
        self._executable = executable
        self._size = size
        self._quality = quality
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "exiftool"

    def generate(self, source: Path, target: Path) -> None:
        for tag in PREVIEW_TAGS:
            data = self._extract(source, tag)
            if not data:
                continue
            try:
                with Image.open(io.BytesIO(data)) as img:
                    cover_fit(img, target, self._size, self._quality)
                return
            except Exception as e:
                logger.debug("exiftool %s preview of %s unusable: %s", tag, source.name, e)

        raise ThumbnailError(f"exiftool: no usable preview in {source.name}")

    def _extract(self, source: Path, tag: str) -> bytes:
        try:
            result = subprocess.run(
                [self._executable, "-b", tag, str(source)],
                capture_output=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ThumbnailError(f"exiftool: {e}") from e
        if result.returncode != 0:
            return b""
        return result.stdout


def platform_utility(
    size: int = 200,
    quality: int = 80,
    timeout: float = 60.0,
    platform: Optional[str] = None,
) -> Optional[ThumbnailStrategy]:
    """Pick the utility strategy available on this machine, if any."""
    platform = platform or sys.platform
    if platform == "darwin":
        sips = shutil.which("sips")
        if sips:
            return SipsThumbnailer(sips, size, quality, timeout)
    exiftool = shutil.which("exiftool")
    if exiftool:
        return ExifToolPreviewThumbnailer(exiftool, size, quality, timeout)
    return None


class ThumbnailGenerator:
    """Runs the strategy chain for a file until one strategy succeeds.

    RAW files with a utility available: utility -> pillow -> utility.
    Everything else: pillow -> utility.
    A failed strategy never leaves a partial file behind.
    """

    def __init__(
        self,
        primary: ThumbnailStrategy,
        utility: Optional[ThumbnailStrategy] = None,
    ):
        """Initialize the generator.

        Args:
            primary: General-purpose strategy.
            utility: Platform utility for the RAW fast path and retries.
        """
        self._primary = primary
        self._utility = utility

    def chain_for(self, source: Path) -> list[ThumbnailStrategy]:
        """Strategies to try for a file, in order."""
        if self._utility is None:
            return [self._primary]
        if is_raw(source):
            return [self._utility, self._primary, self._utility]
        return [self._primary, self._utility]

    def generate(self, source: Path, target: Path) -> ThumbnailResult:
        """Generate a thumbnail. Never raises."""
        if is_video(source):
            return ThumbnailResult(source=source, status=ThumbnailStatus.UNSUPPORTED)

        tried = []
        for attempt, strategy in enumerate(self.chain_for(source)):
            try:
                strategy.generate(source, target)
            except (ThumbnailError, OSError) as e:
                tried.append(strategy.name)
                logger.debug("Thumbnail strategy %s failed for %s: %s", strategy.name, source, e)
                target.unlink(missing_ok=True)
                continue

            status = ThumbnailStatus.GENERATED if attempt == 0 else ThumbnailStatus.FALLBACK
            return ThumbnailResult(source=source, status=status, path=target, strategy=strategy.name)

        logger.warning(
            "Failed to generate thumbnail for %s (tried %s)", source, ", ".join(tried)
        )
        return ThumbnailResult(source=source, status=ThumbnailStatus.FAILED)
