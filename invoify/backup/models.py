"""Data models for backup/restore operations."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import CorruptArchiveError, PartialRestoreFailure

SNAPSHOT_VERSION = "1.0"


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RestoreMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


class DataCounts(CamelModel):
    """Number of records per kind in a snapshot."""

    clients: int = 0
    invoices: int = 0
    documents: int = 0
    statements: int = 0
    preferences: int = 0
    defaults: int = 0


class SnapshotMetadata(CamelModel):
    """Snapshot header."""

    user_id: str = Field(..., description="Owner identifier at capture time")
    email: str = Field(..., description="Owner contact label")
    backup_date: str = Field(..., description="Capture timestamp (ISO8601)")
    version: str = Field(default=SNAPSHOT_VERSION, description="Format version tag")
    data_counts: DataCounts = Field(default_factory=DataCounts)


class SnapshotData(CamelModel):
    """Snapshot payload: every record owned by one user, grouped by kind."""

    user: Dict[str, Any] = Field(default_factory=dict)
    clients: List[Dict[str, Any]] = Field(default_factory=list)
    invoices: List[Dict[str, Any]] = Field(default_factory=list)
    documents: List[Dict[str, Any]] = Field(default_factory=list)
    statements: List[Dict[str, Any]] = Field(default_factory=list)
    preferences: Optional[Dict[str, Any]] = None
    defaults: List[Dict[str, Any]] = Field(default_factory=list)

    def counts(self) -> DataCounts:
        return DataCounts(
            clients=len(self.clients),
            invoices=len(self.invoices),
            documents=len(self.documents),
            statements=len(self.statements),
            preferences=1 if self.preferences else 0,
            defaults=len(self.defaults),
        )


class Snapshot(CamelModel):
    """One owner's full exportable dataset."""

    metadata: SnapshotMetadata
    data: SnapshotData

    @classmethod
    def build(
        cls,
        user_id: str,
        email: str,
        data: SnapshotData,
        backup_date: Optional[str] = None,
    ) -> "Snapshot":
        """Create a snapshot whose header counts are taken from ``data``."""
        return cls(
            metadata=SnapshotMetadata(
                user_id=user_id,
                email=email,
                backup_date=backup_date or datetime.now(timezone.utc).isoformat(),
                version=SNAPSHOT_VERSION,
                data_counts=data.counts(),
            ),
            data=data,
        )

    def verify_counts(self) -> None:
        """Raise CorruptArchiveError when the payload disagrees with the header."""
        actual = self.data.counts()
        if actual != self.metadata.data_counts:
            raise CorruptArchiveError(
                f"Snapshot counts mismatch: header={self.metadata.data_counts.model_dump()} "
                f"payload={actual.model_dump()}"
            )


class BackupMetadata(CamelModel):
    """Archive entry as listed for an owner."""

    id: str
    filename: str
    user_id: str
    email: str
    backup_date: str
    file_size: int
    data_counts: DataCounts = Field(default_factory=DataCounts)


class RestoredCounts(CamelModel):
    clients: int = 0
    invoices: int = 0
    documents: int = 0
    statements: int = 0
    preferences: int = 0
    defaults: int = 0


class SkippedCounts(CamelModel):
    clients: int = 0
    invoices: int = 0
    documents: int = 0
    statements: int = 0


class RestoreResult(CamelModel):
    """Outcome of one restore.

    ``success`` is False only when the whole operation aborted; per-record
    failures land in ``errors`` and leave it True.
    """

    success: bool = True
    restored: RestoredCounts = Field(default_factory=RestoredCounts)
    skipped: SkippedCounts = Field(default_factory=SkippedCounts)
    errors: List[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def raise_for_errors(self) -> None:
        if self.errors:
            raise PartialRestoreFailure(self)
