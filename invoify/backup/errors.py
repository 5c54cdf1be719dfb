"""Errors raised by the backup/restore subsystem."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RestoreResult


class BackupError(Exception):
    """Base class for backup and restore failures."""

    pass


class NotFoundError(BackupError):
    """Owner profile or archive entry does not exist."""

    pass


class InvalidRequestError(BackupError):
    """Malformed request: bad restore mode, non-positive retain count, bad filename."""

    pass


class CorruptArchiveError(BackupError):
    """Archive could not be decompressed or parsed into a snapshot."""

    pass


class DeleteFailedError(BackupError):
    """Archive file could not be removed."""

    pass


class PartialRestoreFailure(BackupError):
    """Restore finished but collected per-record errors."""

    def __init__(self, result: "RestoreResult"):
        self.result = result
        super().__init__(
            f"Restore completed with {len(result.errors)} error(s): " + "; ".join(result.errors)
        )
