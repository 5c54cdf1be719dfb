import asyncio
from pathlib import Path
from typing import Dict, Optional

from .config import InvoifyConfig
from ._storage.factory import StorageFactory, _register_backends
from ._utils import logger
from .base import BaseDocumentStorage


# Attribute name -> collection name in the store
COLLECTIONS: Dict[str, str] = {
    "users": "users",
    "clients": "clients",
    "invoices": "invoices",
    "documents": "documents",
    "statements": "statements",
    "preferences": "userPreferences",
    "defaults": "userDefaults",
}


class DataStore:
    """The application's record collections, built from one configuration."""

    users: BaseDocumentStorage
    clients: BaseDocumentStorage
    invoices: BaseDocumentStorage
    documents: BaseDocumentStorage
    statements: BaseDocumentStorage
    preferences: BaseDocumentStorage
    defaults: BaseDocumentStorage

    def __init__(self, config: Optional[InvoifyConfig] = None):
        """Initialize all collections.

        Args:
            config: InvoifyConfig object. If None, uses defaults.
        """
        self.config = config or InvoifyConfig()
        self._init_working_dir()
        self._init_storage()

        logger.info(f"DataStore initialized with {self.config.storage.backend} backend")

    def _init_working_dir(self):
        working_dir = Path(self.config.storage.working_dir)
        if self.config.storage.backend == "json" and not working_dir.exists():
            logger.info(f"Creating working directory {working_dir}")
            working_dir.mkdir(parents=True, exist_ok=True)
        self.working_dir = str(working_dir)

    def _init_storage(self):
        """Initialize storage backends using factory pattern."""
        _register_backends()

        global_config = self.config.to_dict()
        for attr, namespace in COLLECTIONS.items():
            setattr(self, attr, StorageFactory.create_document_storage(
                backend=self.config.storage.backend,
                namespace=namespace,
                global_config=global_config
            ))

    def collection(self, attr: str) -> BaseDocumentStorage:
        return getattr(self, attr)

    async def flush(self) -> None:
        """Persist pending writes in every collection."""
        await asyncio.gather(*[
            self.collection(attr).index_done_callback() for attr in COLLECTIONS
        ])

    async def check_health(self) -> bool:
        return await self.users.check_health()
