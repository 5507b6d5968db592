"""Metadata and thumbnail engines."""
from .metadata import ExifDateResolver
from .thumbnail import (
    PillowThumbnailer,
    SipsThumbnailer,
    ExifToolPreviewThumbnailer,
    ThumbnailGenerator,
    platform_utility,
)

__all__ = [
    "ExifDateResolver",
    "PillowThumbnailer",
    "SipsThumbnailer",
    "ExifToolPreviewThumbnailer",
    "ThumbnailGenerator",
    "platform_utility",
]
