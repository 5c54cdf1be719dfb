"""Health check endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Dict
from pathlib import Path
import asyncio
import os

from ..models import HealthStatus
from ..dependencies import get_backup_config, get_datastore
from invoify import DataStore
from invoify.config import BackupConfig

router = APIRouter(prefix="/health", tags=["health"])


async def check_storage(datastore: DataStore) -> bool:
    """Check document store connectivity."""
    try:
        return await datastore.check_health()
    except Exception:
        return False


async def check_backup_dir(backup_config: BackupConfig) -> bool:
    """Check the backup directory exists (or can be created) and is writable."""
    try:
        backup_dir = Path(backup_config.backup_dir)
        await asyncio.to_thread(backup_dir.mkdir, parents=True, exist_ok=True)
        return os.access(backup_dir, os.W_OK)
    except OSError:
        return False


@router.get("", response_model=HealthStatus)
async def health_check(
    datastore: DataStore = Depends(get_datastore),
    backup_config: BackupConfig = Depends(get_backup_config),
) -> HealthStatus:
    """Health of the document store and the archive directory."""
    storage_health, backup_dir_health = await asyncio.gather(
        check_storage(datastore),
        check_backup_dir(backup_config),
        return_exceptions=True
    )

    # Handle exceptions from gather
    storage_ok = storage_health is True
    backup_dir_ok = backup_dir_health is True

    if storage_ok and backup_dir_ok:
        status = "healthy"
    elif not storage_ok and not backup_dir_ok:
        status = "unhealthy"
    else:
        status = "degraded"

    return HealthStatus(
        status=status,
        storage=storage_ok,
        backup_dir=backup_dir_ok
    )


@router.get("/ready")
async def readiness_probe(
    datastore: DataStore = Depends(get_datastore),
    backup_config: BackupConfig = Depends(get_backup_config),
) -> Dict[str, str]:
    """Kubernetes readiness probe."""
    health = await health_check(datastore, backup_config)
    if health.status == "unhealthy":
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready"}


@router.get("/live")
async def liveness_probe() -> Dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
