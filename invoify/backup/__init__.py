from .manager import BackupManager
from .mapper import IdMapper
from .restore import RestoreEngine
from .capture import collect_user_data
from .models import (
    BackupMetadata,
    DataCounts,
    RestoreMode,
    RestoreResult,
    Snapshot,
    SnapshotData,
    SnapshotMetadata,
)
from .errors import (
    BackupError,
    CorruptArchiveError,
    DeleteFailedError,
    InvalidRequestError,
    NotFoundError,
    PartialRestoreFailure,
)

__all__ = [
    "BackupManager",
    "IdMapper",
    "RestoreEngine",
    "collect_user_data",
    "BackupMetadata",
    "DataCounts",
    "RestoreMode",
    "RestoreResult",
    "Snapshot",
    "SnapshotData",
    "SnapshotMetadata",
    "BackupError",
    "CorruptArchiveError",
    "DeleteFailedError",
    "InvalidRequestError",
    "NotFoundError",
    "PartialRestoreFailure",
]
