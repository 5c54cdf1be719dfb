"""Tests for backup API endpoints."""

import asyncio
import gzip
import io
import json
import zipfile
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch

from invoify.api.app import create_app
from invoify.api.routers import backup
from invoify.backup.errors import CorruptArchiveError, DeleteFailedError
from invoify.backup.models import BackupMetadata, RestoreResult
from invoify.config import BackupConfig
from tests.storage.base import OWNER_ID, OTHER_OWNER_ID, owned, seed_store, standard_user_dataset

AUTH = {"X-User-Id": OWNER_ID, "X-User-Email": "alice@example.com"}
OTHER_AUTH = {"X-User-Id": OTHER_OWNER_ID}
MISSING = "backup-user-2020-01-01T00-00-00-000Z-a1b2c3d4.json.gz"


class StubRenderer:
    """Renders an invoice as a tiny fake PDF."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)

    async def render(self, invoice: dict) -> bytes:
        if invoice["details"]["invoiceNumber"] in self.fail_on:
            raise RuntimeError("template error")
        return f"%PDF {invoice['details']['invoiceNumber']}".encode()


@pytest.fixture
def test_app(seeded_datastore, temp_backup_dir):
    """App with a real JSON-backed store and a temp archive directory."""
    app = create_app()
    app.state.datastore = seeded_datastore
    app.state.backup_config = BackupConfig(backup_dir=str(temp_backup_dir))
    app.state.invoice_renderer = StubRenderer()
    return app


@pytest.fixture
def client(test_app):
    """Create test client."""
    return TestClient(test_app)


def create(client, headers=AUTH) -> str:
    response = client.post("/api/v1/backup/create", headers=headers)
    assert response.status_code == 201
    return response.json()["backup"]["filename"]


@pytest.mark.parametrize("method,path", [
    ("post", "/api/v1/backup/create"),
    ("get", "/api/v1/backup/list"),
    ("get", "/api/v1/backup/export-user?filename=x"),
    ("get", "/api/v1/backup/pdf-zip"),
    ("delete", "/api/v1/backup/cleanup"),
    ("get", f"/api/v1/backup/{MISSING}"),
    ("delete", f"/api/v1/backup/{MISSING}"),
])
def test_requires_caller_identity(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401


def test_restore_requires_caller_identity(client):
    response = client.post("/api/v1/backup/restore", json={"filename": MISSING})
    assert response.status_code == 401


def test_create_backup_endpoint(client, temp_backup_dir):
    response = client.post("/api/v1/backup/create", headers=AUTH)

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Backup created successfully"
    assert data["backup"]["id"] == data["backup"]["filename"]
    assert "createdAt" in data["backup"]
    assert (temp_backup_dir / data["backup"]["filename"]).exists()


def test_create_backup_unknown_user(client):
    response = client.post("/api/v1/backup/create", headers={"X-User-Id": "ghost"})
    assert response.status_code == 404


def test_list_backups_endpoint(client):
    first = create(client)
    second = create(client)

    response = client.get("/api/v1/backup/list", headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [b["filename"] for b in data["backups"]] == [second, first]
    entry = data["backups"][0]
    assert entry["userId"] == OWNER_ID
    assert entry["dataCounts"]["invoices"] == 3
    assert entry["fileSize"] > 0


def test_list_backups_other_caller_sees_nothing(client):
    create(client)
    response = client.get("/api/v1/backup/list", headers=OTHER_AUTH)
    assert response.json() == {"backups": [], "count": 0}


def test_list_backups_with_mocked_manager(client):
    with patch('invoify.api.routers.backup.BackupManager') as mock_manager_class:
        mock_manager = mock_manager_class.return_value
        mock_manager.list_backups = AsyncMock(return_value=[
            BackupMetadata(
                id="b1", filename="b1", user_id=OWNER_ID, email="alice@example.com",
                backup_date="2024-03-01T00:00:00+00:00", file_size=1024,
            ),
        ])

        response = client.get("/api/v1/backup/list", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["count"] == 1
    mock_manager.list_backups.assert_called_once_with(OWNER_ID)


def test_export_user_backup(client):
    filename = create(client)

    response = client.get(f"/api/v1/backup/export-user?filename={filename}", headers=AUTH)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/gzip"
    assert filename in response.headers["content-disposition"]
    document = json.loads(gzip.decompress(response.content))
    assert document["metadata"]["userId"] == OWNER_ID


def test_export_user_backup_missing_filename(client):
    response = client.get("/api/v1/backup/export-user", headers=AUTH)
    assert response.status_code == 400


def test_export_user_backup_not_owned(client):
    filename = create(client)
    response = client.get(f"/api/v1/backup/export-user?filename={filename}", headers=OTHER_AUTH)
    assert response.status_code == 404


def test_get_backup_details(client):
    filename = create(client)

    response = client.get(f"/api/v1/backup/{filename}", headers=AUTH)

    assert response.status_code == 200
    backup = response.json()["backup"]
    assert backup["filename"] == filename
    assert backup["metadata"]["version"] == "1.0"
    assert backup["metadata"]["dataCounts"]["clients"] == 2


def test_get_backup_not_owned(client):
    filename = create(client)
    assert client.get(f"/api/v1/backup/{filename}", headers=OTHER_AUTH).status_code == 404
    assert client.get(f"/api/v1/backup/{MISSING}", headers=AUTH).status_code == 404


def test_get_backup_corrupt(client, temp_backup_dir):
    (temp_backup_dir / MISSING).write_bytes(b"garbage")
    response = client.get(f"/api/v1/backup/{MISSING}", headers=AUTH)
    assert response.status_code == 422


def test_delete_backup_endpoint(client, temp_backup_dir):
    filename = create(client)

    response = client.delete(f"/api/v1/backup/{filename}", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["message"] == "Backup deleted successfully"
    assert not (temp_backup_dir / filename).exists()


def test_delete_backup_not_owned(client, temp_backup_dir):
    filename = create(client)
    response = client.delete(f"/api/v1/backup/{filename}", headers=OTHER_AUTH)
    assert response.status_code == 404
    assert (temp_backup_dir / filename).exists()


def test_delete_backup_failure(client):
    filename = create(client)
    with patch('invoify.api.routers.backup.BackupManager.delete_backup',
               AsyncMock(side_effect=DeleteFailedError("Failed to delete backup file"))):
        response = client.delete(f"/api/v1/backup/{filename}", headers=AUTH)
    assert response.status_code == 500


def test_cleanup_endpoint(client):
    for _ in range(4):
        create(client)

    response = client.delete("/api/v1/backup/cleanup?keep=1", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {
        "message": "Cleaned up 3 old backup(s)",
        "deletedCount": 3,
        "kept": 1,
    }
    assert client.get("/api/v1/backup/list", headers=AUTH).json()["count"] == 1


@pytest.mark.parametrize("keep", ["0", "-3", "abc"])
def test_cleanup_invalid_keep(client, keep):
    response = client.delete(f"/api/v1/backup/cleanup?keep={keep}", headers=AUTH)
    assert response.status_code == 400


def test_restore_endpoint_merge(client):
    filename = create(client)

    response = client.post("/api/v1/backup/restore", json={"filename": filename}, headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Backup restored successfully"
    assert data["result"]["success"] is True
    assert data["result"]["skipped"]["clients"] == 2
    assert data["result"]["restored"]["documents"] == 2


@pytest.mark.asyncio
async def test_restore_endpoint_replace(client, seeded_datastore):
    filename = create(client)
    await seeded_datastore.clients.insert_one({"userId": OWNER_ID, "email": "stale@x.com"})

    response = client.post(
        "/api/v1/backup/restore", json={"filename": filename, "mode": "replace"}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.json()["result"]["restored"]["clients"] == 2
    assert len(await owned(seeded_datastore, "clients")) == 2


@pytest.mark.asyncio
async def test_restore_invalid_mode_no_mutation(client, seeded_datastore):
    filename = create(client)
    before = await seeded_datastore.clients.find()

    with patch('invoify.api.routers.backup.BackupManager.restore_backup') as mock_restore:
        response = client.post(
            "/api/v1/backup/restore", json={"filename": filename, "mode": "overwrite"}, headers=AUTH
        )
        mock_restore.assert_not_called()

    assert response.status_code == 400
    assert await seeded_datastore.clients.find() == before


def test_restore_missing_filename(client):
    response = client.post("/api/v1/backup/restore", json={"mode": "merge"}, headers=AUTH)
    assert response.status_code == 400


def test_restore_not_owned(client):
    filename = create(client)
    response = client.post("/api/v1/backup/restore", json={"filename": filename}, headers=OTHER_AUTH)
    assert response.status_code == 404


def test_restore_partial_errors_still_ok(client):
    filename = create(client)
    partial = RestoreResult(errors=["Error restoring client: boom"])

    with patch('invoify.api.routers.backup.BackupManager.restore_backup', AsyncMock(return_value=partial)):
        response = client.post("/api/v1/backup/restore", json={"filename": filename}, headers=AUTH)

    assert response.status_code == 200
    assert response.json()["message"] == "Backup restored with 1 error(s)"
    assert response.json()["result"]["errors"] == ["Error restoring client: boom"]


def test_restore_failed_returns_500_with_result(client):
    filename = create(client)
    failed = RestoreResult(success=False, errors=["store down"])

    with patch('invoify.api.routers.backup.BackupManager.restore_backup', AsyncMock(return_value=failed)):
        response = client.post("/api/v1/backup/restore", json={"filename": filename}, headers=AUTH)

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["error"] == "Restore failed"
    assert detail["result"]["success"] is False
    assert detail["result"]["errors"] == ["store down"]


def test_restore_corrupt_archive(client):
    filename = create(client)
    with patch('invoify.api.routers.backup.BackupManager.restore_backup',
               AsyncMock(side_effect=CorruptArchiveError("Could not decompress backup"))):
        response = client.post("/api/v1/backup/restore", json={"filename": filename}, headers=AUTH)
    assert response.status_code == 422


def test_pdf_zip(client):
    response = client.get("/api/v1/backup/pdf-zip", headers=AUTH)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
        assert sorted(zf.namelist()) == ["inv_001.pdf", "inv_002.pdf", "inv_003.pdf"]
        assert zf.read("inv_002.pdf") == b"%PDF INV-002"


def test_pdf_zip_skips_failed_renders(client, test_app):
    test_app.state.invoice_renderer = StubRenderer(fail_on={"INV-002"})

    response = client.get("/api/v1/backup/pdf-zip", headers=AUTH)

    with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
        assert sorted(zf.namelist()) == ["inv_001.pdf", "inv_003.pdf"]


def test_pdf_zip_no_invoices(client):
    assert client.get("/api/v1/backup/pdf-zip", headers=OTHER_AUTH).status_code == 404


def test_pdf_zip_too_many_invoices(client, test_app, temp_backup_dir):
    test_app.state.backup_config = BackupConfig(backup_dir=str(temp_backup_dir), pdf_max_invoices=2)
    response = client.get("/api/v1/backup/pdf-zip", headers=AUTH)
    assert response.status_code == 400
    assert "Maximum 2" in response.json()["detail"]


def test_pdf_zip_without_renderer(client, test_app):
    test_app.state.invoice_renderer = None
    assert client.get("/api/v1/backup/pdf-zip", headers=AUTH).status_code == 501


def test_end_to_end_merge_after_invoice_loss(datastore, temp_backup_dir):
    """Capture, lose all invoices, merge back: clients skipped, invoices restored."""
    dataset = standard_user_dataset()
    dataset["documents"] = []
    asyncio.run(seed_store(datastore, dataset))

    app = FastAPI()
    app.state.datastore = datastore
    app.state.backup_config = BackupConfig(backup_dir=str(temp_backup_dir))
    app.include_router(backup.router, prefix="/api/v1")
    client = TestClient(app)

    filename = create(client)
    asyncio.run(datastore.invoices.delete_many({"userId": OWNER_ID}))

    response = client.post("/api/v1/backup/restore", json={"filename": filename, "mode": "merge"}, headers=AUTH)

    result = response.json()["result"]
    assert result["restored"]["clients"] == 0
    assert result["skipped"]["clients"] == 2
    assert result["restored"]["invoices"] == 3
