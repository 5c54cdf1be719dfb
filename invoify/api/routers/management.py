"""Management endpoints."""

from fastapi import APIRouter, Depends
from typing import Dict
import platform
import sys

from ..dependencies import get_backup_config, get_datastore
from ..config import settings
from invoify import DataStore, __version__ as invoify_version
from invoify.config import BackupConfig

router = APIRouter(tags=["management"])


@router.get("/info")
async def get_info(
    datastore: DataStore = Depends(get_datastore),
    backup_config: BackupConfig = Depends(get_backup_config),
) -> Dict:
    """Get system information."""
    return {
        "invoify_version": invoify_version,
        "api_version": settings.api_version,
        "python_version": sys.version,
        "platform": platform.platform(),
        "storage": {
            "backend": datastore.config.storage.backend,
            "working_dir": datastore.working_dir,
        },
        "backup": {
            "backup_dir": backup_config.backup_dir,
            "default_keep": backup_config.default_keep,
            "pdf_max_invoices": backup_config.pdf_max_invoices,
        },
    }
