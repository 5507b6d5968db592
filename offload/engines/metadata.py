"""Capture date resolution from EXIF and filesystem timestamps."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import ExifTags, Image

from ..core.models import DateSource, MediaDate, is_still_image


logger = logging.getLogger(__name__)

DATETIME_ORIGINAL = ExifTags.Base.DateTimeOriginal  # 36867


def parse_exif_datetime(dt_str: str) -> Optional[datetime]:
    """Parse an EXIF datetime string."""
    formats = [
        "%Y:%m:%d %H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y/%m/%d %H:%M:%S",
    ]
    # Sub-second and timezone suffixes are ignored
    value = dt_str.strip().strip("\x00")[:19]
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def filesystem_created(stat_result: os.stat_result) -> datetime:
    """Creation time where the platform records it, else modification time."""
    birthtime = getattr(stat_result, "st_birthtime", None)
    if birthtime:
        return datetime.fromtimestamp(birthtime)
    return datetime.fromtimestamp(stat_result.st_mtime)


class ExifDateResolver:
    """Resolves capture dates with Pillow, falling back to exiftool for RAW.

    Priority:
    1. EXIF DateTimeOriginal (Pillow, then exiftool when installed)
    2. Filesystem creation time
    3. Today, when the file cannot be stat'ed
    """

    def __init__(self, use_exiftool: bool = True, timeout: float = 10.0):
        """Initialize the resolver.

        Args:
            use_exiftool: Ask exiftool when Pillow finds no date.
            timeout: Seconds to wait for exiftool.
        """
        self._exiftool = shutil.which("exiftool") if use_exiftool else None
        self._timeout = timeout

    def resolve_date(self, path: Path) -> MediaDate:
        """Resolve the best-known capture date of a file. Never raises."""
        try:
            created = filesystem_created(path.stat())
        except OSError as e:
            logger.debug("Cannot stat %s for date: %s", path, e)
            return MediaDate(
                display_date=datetime.now().strftime("%Y-%m-%d"),
                original_date=None,
                source=DateSource.FALLBACK,
            )

        if is_still_image(path):
            taken = self._extract_from_exif(path)
            if taken is None and self._exiftool:
                taken = self._extract_with_exiftool(path)
            if taken is not None:
                return MediaDate.from_datetime(taken, DateSource.EXIF)

        return MediaDate.from_datetime(created, DateSource.FILESYSTEM)

    def _extract_from_exif(self, path: Path) -> Optional[datetime]:
        """Extract DateTimeOriginal from the Exif IFD."""
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                value = exif.get_ifd(ExifTags.IFD.Exif).get(DATETIME_ORIGINAL)
                if value is None:
                    value = exif.get(DATETIME_ORIGINAL)
                if not value:
                    return None
                return parse_exif_datetime(str(value))
        except Exception as e:
            logger.debug("No EXIF date from Pillow for %s: %s", path.name, e)
            return None

    def _extract_with_exiftool(self, path: Path) -> Optional[datetime]:
        """Ask exiftool, which understands every RAW container."""
        try:
            result = subprocess.run(
                [self._exiftool, "-DateTimeOriginal", "-s", "-s", "-s", str(path)],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("exiftool failed for %s: %s", path.name, e)
            return None

        if result.returncode != 0 or not result.stdout.strip():
            return None
        return parse_exif_datetime(result.stdout)
