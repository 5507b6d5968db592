"""Estimated time remaining and human-readable formatting."""
from __future__ import annotations

from collections import deque
from typing import Optional


class EtaEstimator:
    """Rolling average of recent per-file durations.

    Only positive durations are sampled, so files that failed instantly do
    not drag the estimate towards zero.
    """

    def __init__(self, window_size: int = 20):
        """Initialize with rolling window size.

        Args:
            window_size: Number of samples for rolling average.
        """
        if window_size < 1:
            raise ValueError("Window size must be at least 1")
        self._samples: deque[float] = deque(maxlen=window_size)

    def record(self, duration: float) -> None:
        if duration > 0:
            self._samples.append(duration)

    def reset(self) -> None:
        self._samples.clear()

    @property
    def average(self) -> Optional[float]:
        if not self._samples:
            return None
        return sum(self._samples) / len(self._samples)

    def estimate(self, remaining: int) -> Optional[float]:
        """Seconds left for ``remaining`` files, None before any sample."""
        average = self.average
        if average is None:
            return None
        return average * max(remaining, 0)


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``1h 2m``, ``3m 4s`` or ``5s``."""
    if seconds is None:
        return "Calculating..."
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_size(num_bytes: int) -> str:
    """Format a byte count in MB with one decimal."""
    return f"{num_bytes / 1024 / 1024:.1f} MB"
