"""Directory scanning service."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional, Union

from ..core.errors import ScanError
from ..core.models import MediaFile, SIDECAR_PREFIX, is_supported


logger = logging.getLogger(__name__)


def is_hidden(name: str) -> bool:
    """Dotfiles and ``._`` sidecars are filesystem noise."""
    return name.startswith(SIDECAR_PREFIX) or name.startswith(".")


class DirectoryScanner:
    """Scans a directory tree for supported media files.

    Returns MediaFile records in traversal order. Entries of each directory
    are visited in sorted order so repeated scans are reproducible.
    """

    def __init__(self, follow_symlinks: bool = False):
        """Initialize the scanner.

        Args:
            follow_symlinks: Whether to descend into symlinked directories.
        """
        self._follow_symlinks = follow_symlinks

    def scan(self, root: Optional[Union[str, Path]]) -> list[MediaFile]:
        """Scan a root directory recursively.

        Args:
            root: Directory to scan. An empty value yields no files.

        Returns:
            Every supported, non-hidden file under root.

        Raises:
            ScanError: root does not exist, is not a directory or
                cannot be listed.
        """
        if not root:
            return []

        root_path = Path(root).expanduser().absolute()
        if not root_path.exists():
            raise ScanError(root_path, "does not exist")
        if not root_path.is_dir():
            raise ScanError(root_path, "is not a directory")

        try:
            entries = sorted(root_path.iterdir())
        except OSError as e:
            raise ScanError(root_path, e.strerror or str(e)) from e

        logger.info("Scanning %s", root_path)
        files = list(self._scan_entries(entries))
        logger.info("Scan complete for %s: %d media files", root_path, len(files))
        return files

    def _scan_directory(self, directory: Path) -> Iterator[MediaFile]:
        """Scan a subdirectory, skipping it if it cannot be listed."""
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.warning("Skipping unreadable directory %s: %s", directory, e)
            return

        yield from self._scan_entries(entries)

    def _scan_entries(self, entries: list[Path]) -> Iterator[MediaFile]:
        for entry in entries:
            if entry.is_symlink() and entry.is_dir() and not self._follow_symlinks:
                continue

            if entry.is_dir():
                yield from self._scan_directory(entry)
                continue

            if is_hidden(entry.name) or not is_supported(entry):
                continue

            try:
                size = entry.stat().st_size
            except OSError as e:
                logger.warning("Error statting %s: %s", entry, e)
                continue

            yield MediaFile(path=entry, name=entry.name, size=size)

    def count_files(self, root: Union[str, Path]) -> tuple[int, int]:
        """Count media files and their total size.

        Returns:
            (file_count, total_bytes)
        """
        files = self.scan(root)
        return len(files), sum(f.size for f in files)
