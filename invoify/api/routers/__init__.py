"""API routers."""

from . import health, management, backup

__all__ = ["health", "management", "backup"]
