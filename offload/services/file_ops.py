"""File operations service."""
from __future__ import annotations

import os
import shutil
from datetime import datetime
from pathlib import Path


DATE_FOLDER_FORMAT = "%Y%m%d"
COPY_SUFFIX = "_copy"
PARTIAL_SUFFIX = ".part"


def date_folder_name(mtime: float) -> str:
    """Destination bucket for a file modified at ``mtime``."""
    return datetime.fromtimestamp(mtime).strftime(DATE_FOLDER_FORMAT)


def copy_name(name: str, counter: int = 1) -> str:
    """Name used when ``name`` is taken: photo.jpg -> photo_copy.jpg,
    then photo_copy_2.jpg, photo_copy_3.jpg, ..."""
    path = Path(name)
    suffix = COPY_SUFFIX if counter <= 1 else f"{COPY_SUFFIX}_{counter}"
    return f"{path.stem}{suffix}{path.suffix}"


class FileManager:
    """Places imported files into ``<destination>/<YYYYMMDD>/``.

    Existing files are never overwritten and never skipped: a colliding
    name is renamed with a ``_copy`` suffix.
    """

    def __init__(self, destination_root: Path, max_copies: int = 1000):
        """Initialize file manager.

        Args:
            destination_root: Root directory of the library.
            max_copies: Give up looking for a free name after this many tries.
        """
        self._destination_root = destination_root
        self._max_copies = max_copies

    @property
    def destination_root(self) -> Path:
        return self._destination_root

    def build_output_directory(self, mtime: float) -> Path:
        """Directory a file with this modification time belongs in."""
        return self._destination_root / date_folder_name(mtime)

    def ensure_directory(self, path: Path) -> None:
        """Ensure directory exists.

        Args:
            path: Directory to create.
        """
        path.mkdir(parents=True, exist_ok=True)

    def find_unique_path(self, directory: Path, name: str) -> Path:
        """Find a free target path for ``name`` in ``directory``.

        Raises:
            FileExistsError: every candidate name is taken.
        """
        candidate = directory / name
        if not candidate.exists():
            return candidate

        for counter in range(1, self._max_copies + 1):
            candidate = directory / copy_name(name, counter)
            if not candidate.exists():
                return candidate

        raise FileExistsError(f"No free name for {name} in {directory}")

    def copy_file(self, source: Path, target: Path) -> int:
        """Copy a file's bytes and timestamps.

        Bytes go to ``<target>.part`` first and are moved into place once
        complete, so a failed copy never leaves a truncated file under the
        real name.

        Args:
            source: Source file path.
            target: Target file path.

        Returns:
            Number of bytes copied.

        Raises:
            OSError: the copy failed.
        """
        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        try:
            shutil.copy2(source, partial)
            os.replace(partial, target)
        except Exception:
            partial.unlink(missing_ok=True)
            raise
        return target.stat().st_size
