"""Configuration model with validation."""
from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


DEFAULT_THUMBNAIL_DIR = Path("~/.cache/offload/thumbnails")


class CacheKeyMode(str, Enum):
    """How thumbnail cache keys are derived."""
    PATH = "path"              # Never invalidated when the file changes
    PATH_MTIME = "path-mtime"  # Regenerated when the file's mtime changes


class OffloadConfig(BaseModel):
    """Configuration for scanning, previewing and importing media.

    All options can also be supplied via CLI flags. CLI flags override
    config file values.
    """
    thumbnail_dir: Path = Field(
        default=DEFAULT_THUMBNAIL_DIR,
        description="Directory holding generated thumbnails",
    )
    thumbnail_size: int = Field(
        default=200,
        ge=16,
        description="Edge length of the square thumbnail in pixels",
    )
    thumbnail_quality: int = Field(
        default=80,
        ge=1,
        le=95,
        description="JPEG quality for thumbnails",
    )
    thumbnail_concurrency: int = Field(
        default=2,
        ge=1,
        description="Maximum thumbnails generated at the same time",
    )
    cache_key: CacheKeyMode = Field(
        default=CacheKeyMode.PATH,
        description="Key thumbnails by path alone or by path and mtime",
    )
    utility_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for sips/exiftool calls",
    )
    eta_window: int = Field(
        default=20,
        ge=1,
        description="Number of recent file durations averaged for the ETA",
    )
    follow_symlinks: bool = Field(
        default=False,
        description="Follow symlinked directories while scanning",
    )

    @field_validator("thumbnail_dir")
    @classmethod
    def expand_thumbnail_dir(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @classmethod
    def load(cls, path: Path) -> "OffloadConfig":
        """Load configuration from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def with_overrides(self, **kwargs) -> "OffloadConfig":
        """Create a new config with some values overridden.

        ``None`` values are ignored so unset CLI flags keep file values.
        """
        current = self.model_dump()
        current.update({k: v for k, v in kwargs.items() if v is not None})
        return OffloadConfig(**current)
