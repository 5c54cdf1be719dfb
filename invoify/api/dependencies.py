"""Dependency injection for FastAPI."""

from fastapi import Request
from typing import TYPE_CHECKING, Optional

from invoify.config import BackupConfig
from .config import settings
from .exceptions import UnauthorizedError
from .models import CurrentUser

if TYPE_CHECKING:
    from invoify import DataStore
    from invoify.export import InvoiceRenderer


async def get_datastore(request: Request) -> "DataStore":
    """Get DataStore instance from app state."""
    return request.app.state.datastore


async def get_backup_config(request: Request) -> BackupConfig:
    """Get backup configuration from app state, falling back to the environment."""
    return getattr(request.app.state, "backup_config", None) or BackupConfig.from_env()


async def get_invoice_renderer(request: Request) -> Optional["InvoiceRenderer"]:
    """Get the PDF renderer if one is configured."""
    return getattr(request.app.state, "invoice_renderer", None)


async def get_current_user(request: Request) -> CurrentUser:
    """Identify the caller from the headers set by the upstream auth layer."""
    user_id = request.headers.get(settings.user_id_header, "").strip()
    if not user_id:
        raise UnauthorizedError()
    return CurrentUser(
        user_id=user_id,
        email=request.headers.get(settings.user_email_header),
    )
