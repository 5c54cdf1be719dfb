"""Backup and restore API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse, Response
from typing import Optional

from ..models import (
    BackupDetail,
    BackupDetailResponse,
    BackupListResponse,
    BackupSummary,
    CleanupResponse,
    CreateBackupResponse,
    CurrentUser,
    MessageResponse,
    RestoreRequest,
    RestoreResponse,
)
from ..dependencies import (
    get_backup_config,
    get_current_user,
    get_datastore,
    get_invoice_renderer,
)
from ..exceptions import (
    BackupNotFoundError,
    BadRequestError,
    RendererUnavailableError,
    to_http_error,
)
from invoify import DataStore
from invoify.backup import BackupManager, RestoreMode
from invoify.backup.errors import BackupError
from invoify.config import BackupConfig
from invoify.export import build_invoice_zip
from invoify._utils import logger, utc_now

router = APIRouter(prefix="/backup", tags=["backup"])


def get_backup_manager(
    datastore: DataStore = Depends(get_datastore),
    backup_config: BackupConfig = Depends(get_backup_config),
) -> BackupManager:
    """Dependency to get BackupManager instance."""
    return BackupManager(datastore, backup_config.backup_dir)


@router.post("/create", response_model=CreateBackupResponse, status_code=201)
async def create_backup(
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
) -> CreateBackupResponse:
    """Capture the caller's data into a new archive."""
    try:
        metadata = await backup_manager.create_backup(user.user_id)
    except BackupError as e:
        raise to_http_error(e)

    return CreateBackupResponse(
        backup=BackupSummary(
            id=metadata.id,
            filename=metadata.filename,
            created_at=utc_now(),
        )
    )


@router.get("/list", response_model=BackupListResponse)
async def list_backups(
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
) -> BackupListResponse:
    """List the caller's archives, newest first."""
    backups = await backup_manager.list_backups(user.user_id)
    return BackupListResponse(backups=backups, count=len(backups))


@router.get("/export-user")
async def export_user_backup(
    filename: str = Query(default=""),
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
) -> FileResponse:
    """Download one of the caller's archives."""
    if not filename:
        raise BadRequestError("Filename is required")

    try:
        await backup_manager.find_backup(user.user_id, filename)
    except BackupError as e:
        raise to_http_error(e)

    backup_path = await backup_manager.get_backup_path(filename)
    if not backup_path:
        raise BackupNotFoundError(f"Backup not found: {filename}")

    return FileResponse(
        path=backup_path,
        media_type="application/gzip",
        filename=filename,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/pdf-zip")
async def export_invoice_pdfs(
    user: CurrentUser = Depends(get_current_user),
    datastore: DataStore = Depends(get_datastore),
    backup_config: BackupConfig = Depends(get_backup_config),
    renderer=Depends(get_invoice_renderer),
) -> Response:
    """Render all of the caller's invoices and return them as one zip."""
    invoices = await datastore.invoices.find({"userId": user.user_id})

    if not invoices:
        raise BackupNotFoundError("No invoices found")
    if len(invoices) > backup_config.pdf_max_invoices:
        raise BadRequestError(
            f"Too many invoices ({len(invoices)}). "
            f"Maximum {backup_config.pdf_max_invoices} invoices can be exported at once."
        )
    if renderer is None:
        raise RendererUnavailableError()

    archive, rendered = await build_invoice_zip(invoices, renderer, backup_config.pdf_batch_size)
    logger.info(f"PDF export for user {user.user_id}: {rendered}/{len(invoices)} invoices")

    filename = f"invoices-{utc_now().strftime('%Y-%m-%d')}.zip"
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.delete("/cleanup", response_model=CleanupResponse)
async def cleanup_backups(
    keep: Optional[int] = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
    backup_config: BackupConfig = Depends(get_backup_config),
) -> CleanupResponse:
    """Delete all but the ``keep`` newest archives of the caller."""
    if keep is None:
        keep = backup_config.default_keep

    try:
        deleted = await backup_manager.cleanup_old_backups(user.user_id, keep)
    except BackupError as e:
        raise to_http_error(e)

    return CleanupResponse(
        message=f"Cleaned up {deleted} old backup(s)",
        deleted_count=deleted,
        kept=keep,
    )


@router.post("/restore", response_model=RestoreResponse)
async def restore_backup(
    request: RestoreRequest,
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
) -> RestoreResponse:
    """Restore one of the caller's archives into their live data.

    Mode is ``merge`` (default) or ``replace``.
    """
    try:
        mode = RestoreMode(request.mode)
    except ValueError:
        raise BadRequestError('Mode must be either "merge" or "replace"')

    try:
        await backup_manager.find_backup(user.user_id, request.filename)
        result = await backup_manager.restore_backup(request.filename, user.user_id, mode)
    except BackupError as e:
        raise to_http_error(e)

    if not result.success:
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Restore failed",
                "result": result.model_dump(by_alias=True),
            },
        )

    if result.has_errors:
        message = f"Backup restored with {len(result.errors)} error(s)"
    else:
        message = "Backup restored successfully"
    return RestoreResponse(message=message, result=result)


@router.get("/{filename}", response_model=BackupDetailResponse)
async def get_backup(
    filename: str,
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
) -> BackupDetailResponse:
    """Get one of the caller's archive entries with its snapshot header."""
    try:
        entry = await backup_manager.find_backup(user.user_id, filename)
        snapshot = await backup_manager.read_backup(filename)
    except BackupError as e:
        raise to_http_error(e)

    return BackupDetailResponse(
        backup=BackupDetail(**entry.model_dump(), metadata=snapshot.metadata)
    )


@router.delete("/{filename}", response_model=MessageResponse)
async def delete_backup(
    filename: str,
    user: CurrentUser = Depends(get_current_user),
    backup_manager: BackupManager = Depends(get_backup_manager),
) -> MessageResponse:
    """Delete one of the caller's archives."""
    try:
        await backup_manager.find_backup(user.user_id, filename)
        await backup_manager.delete_backup(filename)
    except BackupError as e:
        raise to_http_error(e)

    return MessageResponse(message="Backup deleted successfully")
