"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timezone

from invoify.backup.models import (
    BackupMetadata,
    CamelModel,
    RestoreMode,
    RestoreResult,
    SnapshotMetadata,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CurrentUser(BaseModel):
    user_id: str
    email: Optional[str] = None


class BackupSummary(CamelModel):
    id: str
    filename: str
    created_at: datetime = Field(default_factory=_utcnow)


class CreateBackupResponse(CamelModel):
    message: str = "Backup created successfully"
    backup: BackupSummary


class BackupListResponse(CamelModel):
    backups: List[BackupMetadata]
    count: int


class BackupDetail(BackupMetadata):
    metadata: SnapshotMetadata


class BackupDetailResponse(CamelModel):
    backup: BackupDetail


class CleanupResponse(CamelModel):
    message: str
    deleted_count: int
    kept: int


class RestoreRequest(CamelModel):
    filename: str = Field(..., min_length=1)
    mode: str = RestoreMode.MERGE.value


class RestoreResponse(CamelModel):
    message: str
    result: RestoreResult


class MessageResponse(BaseModel):
    message: str


class HealthStatus(BaseModel):
    status: str  # "healthy", "degraded", "unhealthy"
    storage: bool
    backup_dir: bool
    timestamp: datetime = Field(default_factory=_utcnow)
