"""Destination index used to tell which source files are already imported."""
from __future__ import annotations

from typing import Iterable

from ..core.models import MediaFile


class DestinationIndex:
    """Set of ``name`` and ``name_size`` keys built from a destination scan.

    A source file counts as existing when either key matches. The index is
    never persisted; rebuild it by scanning the destination again.
    """

    def __init__(self, keys: Iterable[str] = ()):
        self._keys: set[str] = set(keys)

    @classmethod
    def build(cls, files: Iterable[MediaFile]) -> "DestinationIndex":
        """Build an index from the files found in the destination."""
        index = cls()
        for media in files:
            index.add(media.name, media.size)
        return index

    def add(self, name: str, size: int | None = None) -> None:
        """Record a file as present, e.g. after it has been imported."""
        self._keys.add(name)
        if size is not None:
            self._keys.add(f"{name}_{size}")

    def contains(self, media: MediaFile) -> bool:
        return media.name in self._keys or media.index_key in self._keys

    def __contains__(self, media: MediaFile) -> bool:
        return self.contains(media)

    def __len__(self) -> int:
        return len(self._keys)

    def select_new(self, files: Iterable[MediaFile]) -> list[MediaFile]:
        """Files not yet present in the destination, in input order."""
        return [media for media in files if not self.contains(media)]

    def count_new(self, files: Iterable[MediaFile]) -> int:
        return len(self.select_new(files))
