"""Custom exceptions for FastAPI application."""

from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_501_NOT_IMPLEMENTED,
)

from invoify.backup.errors import (
    BackupError,
    CorruptArchiveError,
    DeleteFailedError,
    InvalidRequestError,
    NotFoundError,
)


class InvoifyAPIError(HTTPException):
    """Base exception for invoify API errors."""
    pass


class UnauthorizedError(InvoifyAPIError):
    def __init__(self):
        super().__init__(HTTP_401_UNAUTHORIZED, "Unauthorized")


class BackupNotFoundError(InvoifyAPIError):
    def __init__(self, detail: str = "Backup not found"):
        super().__init__(HTTP_404_NOT_FOUND, detail)


class BadRequestError(InvoifyAPIError):
    def __init__(self, detail: str):
        super().__init__(HTTP_400_BAD_REQUEST, detail)


class ArchiveCorruptedError(InvoifyAPIError):
    def __init__(self, detail: str):
        super().__init__(422, detail)


class BackupDeleteError(InvoifyAPIError):
    def __init__(self, detail: str):
        super().__init__(HTTP_500_INTERNAL_SERVER_ERROR, detail)


class RendererUnavailableError(InvoifyAPIError):
    def __init__(self):
        super().__init__(HTTP_501_NOT_IMPLEMENTED, "Invoice PDF rendering is not configured")


def to_http_error(error: BackupError) -> HTTPException:
    """Map a backup-domain error to its HTTP counterpart."""
    if isinstance(error, NotFoundError):
        return BackupNotFoundError(str(error))
    if isinstance(error, InvalidRequestError):
        return BadRequestError(str(error))
    if isinstance(error, CorruptArchiveError):
        return ArchiveCorruptedError(str(error))
    if isinstance(error, DeleteFailedError):
        return BackupDeleteError(str(error))
    return InvoifyAPIError(HTTP_500_INTERNAL_SERVER_ERROR, str(error))
