"""Shared fixtures and test data for storage and backup testing."""

import pytest
import pytest_asyncio
import tempfile
from pathlib import Path
from typing import Dict, Any, List

from invoify import DataStore, InvoifyConfig, StorageConfig, BackupConfig


OWNER_ID = "a1b2c3d4e5f60718293a4b5c"
OTHER_OWNER_ID = "f0e1d2c3b4a5968778695a4b"


def standard_user_dataset(user_id: str = OWNER_ID) -> Dict[str, Any]:
    """One owner with every record kind populated.

    Returns:
        Dict keyed by DataStore collection attribute; ``preferences`` is a
        single record, everything else a list.
    """
    stamp = "2024-03-01T10:00:00+00:00"
    return {
        "users": [{
            "_id": user_id,
            "email": "alice@example.com",
            "name": "Alice Example",
            "password": "$2b$10$hashedsecret",
            "createdAt": stamp,
        }],
        "clients": [
            {"_id": "client-1", "userId": user_id, "name": "Acme Corp",
             "email": "billing@acme.com", "createdAt": stamp, "updatedAt": stamp},
            {"_id": "client-2", "userId": user_id, "name": "Globex",
             "email": "ops@globex.com", "createdAt": stamp, "updatedAt": stamp},
        ],
        "invoices": [
            {"_id": f"invoice-{n}", "userId": user_id, "clientId": "client-1",
             "details": {"invoiceNumber": f"INV-00{n}", "totalAmount": 100 * n},
             "createdAt": stamp, "updatedAt": stamp}
            for n in (1, 2, 3)
        ],
        "documents": [
            {"_id": "doc-1", "userId": user_id, "invoiceId": "invoice-1",
             "fileName": "receipt.pdf", "uploadedBy": user_id, "createdAt": stamp},
            {"_id": "doc-2", "userId": user_id, "invoiceId": "invoice-2",
             "parentDocumentId": "doc-1", "fileName": "receipt-v2.pdf",
             "uploadedBy": user_id, "createdAt": stamp},
        ],
        "statements": [
            {"_id": "statement-1", "userId": user_id, "clientId": "client-1",
             "clientEmail": "billing@acme.com", "period": "2024-02", "createdAt": stamp},
        ],
        "preferences": {"_id": "prefs-1", "userId": user_id, "currency": "EUR", "locale": "nl-NL"},
        "defaults": [
            {"_id": "default-1", "userId": user_id, "name": "standard", "taxRate": 21},
        ],
    }


async def seed_store(datastore: DataStore, dataset: Dict[str, Any]) -> None:
    """Insert a dataset built by ``standard_user_dataset`` into the store."""
    for attr, records in dataset.items():
        if isinstance(records, dict):
            records = [records]
        for record in records:
            await datastore.collection(attr).insert_one(record)
    await datastore.flush()


async def owned(datastore: DataStore, attr: str, user_id: str = OWNER_ID) -> List[dict]:
    return await datastore.collection(attr).find({"userId": user_id})


@pytest.fixture
def temp_storage_dir():
    """Create temporary directory for storage tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_global_config(temp_storage_dir):
    """Global config dict for JSON-backed storages."""
    return {"working_dir": str(temp_storage_dir)}


@pytest.fixture
def temp_backup_dir():
    """Create temporary backup directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def datastore(temp_storage_dir, temp_backup_dir):
    """JSON-backed DataStore in a temp directory."""
    config = InvoifyConfig(
        storage=StorageConfig(backend="json", working_dir=str(temp_storage_dir)),
        backup=BackupConfig(backup_dir=str(temp_backup_dir)),
    )
    return DataStore(config=config)


@pytest_asyncio.fixture
async def seeded_datastore(datastore):
    """DataStore holding ``standard_user_dataset()``."""
    await seed_store(datastore, standard_user_dataset())
    return datastore
