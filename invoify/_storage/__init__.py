"""Storage module with lazy loading support."""

from typing import TYPE_CHECKING

from .factory import StorageFactory, _register_backends

if TYPE_CHECKING:
    from .docs_json import JsonDocumentStorage
    from .docs_redis import RedisDocumentStorage


def __getattr__(name):
    """Lazy import storage backends so redis is only loaded when used."""
    if name == "JsonDocumentStorage":
        from .docs_json import JsonDocumentStorage
        return JsonDocumentStorage
    elif name == "RedisDocumentStorage":
        from .docs_redis import RedisDocumentStorage
        return RedisDocumentStorage
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "StorageFactory",
    "_register_backends",
    "JsonDocumentStorage",
    "RedisDocumentStorage",
]
