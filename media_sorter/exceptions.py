"""
Custom exception hierarchy for the media sorter.

Each exception marks the pipeline step that failed, so the per-file loop can
decide whether to skip the rest of a file or carry on with the next step.
"""


class MediaSorterError(Exception):
    """Base exception for all media sorter errors."""
    pass


class ConfigError(MediaSorterError):
    """Raised when the configuration (e.g. the target timezone) is invalid."""
    pass


class MetadataReadError(MediaSorterError):
    """Raised when a metadata tag cannot be read from a file."""
    pass


class MetadataWriteError(MediaSorterError):
    """Raised when the metadata tool reports a hard failure on write."""
    pass


class TimestampResolutionError(MediaSorterError):
    """Raised when no timestamp can be derived for a file (stat failed)."""
    pass


class FileOperationError(MediaSorterError):
    """Raised when a rename or timestamp sync fails."""
    pass


class ScanError(MediaSorterError):
    """Raised when the directory walk itself fails. Aborts the run."""
    pass


class BackupError(MediaSorterError):
    """Raised when the pre-run archive backup cannot be created."""
    pass
