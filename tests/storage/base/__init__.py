"""Base test suites for storage types."""

from .document_suite import BaseDocumentStorageTestSuite, DocumentStorageContract
from .fixtures import (
    OWNER_ID,
    OTHER_OWNER_ID,
    standard_user_dataset,
    seed_store,
    owned,
    temp_storage_dir,
    temp_backup_dir,
    mock_global_config,
    datastore,
    seeded_datastore,
)

__all__ = [
    "BaseDocumentStorageTestSuite",
    "DocumentStorageContract",
    "OWNER_ID",
    "OTHER_OWNER_ID",
    "standard_user_dataset",
    "seed_store",
    "owned",
    "temp_storage_dir",
    "temp_backup_dir",
    "mock_global_config",
    "datastore",
    "seeded_datastore",
]
