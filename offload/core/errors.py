"""Exception hierarchy.

Only failures at the root of an operation are raised. Per-file problems
during a scan, thumbnail run or import are logged and counted instead.
"""


class OffloadError(Exception):
    """Base exception for all offload errors."""
    pass


class ScanError(OffloadError):
    """Raised when the root of a scan cannot be listed."""

    def __init__(self, root, reason: str):
        self.root = root
        self.reason = reason
        super().__init__(f"Cannot scan {root}: {reason}")


class ImportInProgressError(OffloadError):
    """Raised when an import is started while another one is running."""
    pass


class ThumbnailError(OffloadError):
    """Raised by a thumbnail strategy that could not produce a preview."""
    pass
