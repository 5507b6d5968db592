"""Builders for source trees, images and instrumented thumbnail strategies.

Each helper writes real files to disk so tests exercise the same
filesystem paths the CLI does.
"""
from __future__ import annotations

import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import ExifTags, Image

from offload.core.errors import ThumbnailError


def make_image(
    path: Path,
    size: tuple[int, int] = (100, 100),
    color: str = "red",
    date_taken: Optional[datetime] = None,
    mtime: Optional[datetime] = None,
    fmt: str = "JPEG",
) -> Path:
    """Create an image, optionally with EXIF DateTimeOriginal and a set mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", size, color=color)
    if date_taken is not None:
        exif = Image.Exif()
        exif[ExifTags.Base.DateTimeOriginal] = date_taken.strftime("%Y:%m:%d %H:%M:%S")
        img.save(path, fmt, exif=exif)
    else:
        img.save(path, fmt)
    if mtime is not None:
        set_mtime(path, mtime)
    return path


def make_file(path: Path, data: bytes = b"data", mtime: Optional[datetime] = None) -> Path:
    """Create an arbitrary file (fake video, RAW, sidecar...)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    if mtime is not None:
        set_mtime(path, mtime)
    return path


def set_mtime(path: Path, when: datetime) -> None:
    ts = when.timestamp()
    os.utime(path, (ts, ts))


def make_card(root: Path, count: int = 5, when: datetime = datetime(2024, 3, 9, 12, 0, 0)) -> list[Path]:
    """Create a DCIM-like card with ``count`` JPEGs modified at ``when``."""
    folder = root / "DCIM" / "100CANON"
    return [
        make_file(folder / f"IMG_{i:04d}.JPG", data=f"image-{i}".encode() * 100, mtime=when)
        for i in range(1, count + 1)
    ]


class RecordingStrategy:
    """Thumbnail strategy stub that counts calls and peak concurrency."""

    def __init__(self, name: str = "stub", delay: float = 0.0, fail: bool = False):
        self._name = name
        self._delay = delay
        self._fail = fail
        self._lock = threading.Lock()
        self.calls: list[Path] = []
        self.active = 0
        self.peak = 0

    @property
    def name(self) -> str:
        return self._name

    def generate(self, source: Path, target: Path) -> None:
        with self._lock:
            self.calls.append(source)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self._delay:
                time.sleep(self._delay)
            if self._fail:
                # Leave a partial file behind to check it is cleaned up
                target.write_bytes(b"partial")
                raise ThumbnailError(f"{self._name}: forced failure")
            target.write_bytes(b"\xff\xd8thumbnail")
        finally:
            with self._lock:
                self.active -= 1
