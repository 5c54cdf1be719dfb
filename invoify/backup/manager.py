"""Backup archive management and restore orchestration for one store."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Union

from ..datastore import DataStore
from .._utils import logger
from .capture import collect_user_data
from .errors import DeleteFailedError, InvalidRequestError, NotFoundError
from .models import BackupMetadata, DataCounts, RestoreMode, RestoreResult, Snapshot
from .restore import RestoreEngine
from .utils import (
    BACKUP_GLOB,
    deserialize_snapshot,
    generate_backup_filename,
    is_backup_filename,
    parse_backup_date,
    parse_owner_fragment,
    read_archive,
    serialize_snapshot,
    write_archive,
)

# Bounded retries when two backups for one owner land on the same millisecond
_MAX_NAME_ATTEMPTS = 5


class BackupManager:
    """Create, list, read, delete and restore per-user backup archives.

    Archives live as ``backup-user-<timestamp>-<owner fragment>.json.gz`` files
    in one flat directory. Listing is scoped by prefix-matching the 8-character
    owner fragment in the name against the caller id; this is an
    approximation, not an access-control guarantee.
    """

    def __init__(self, datastore: DataStore, backup_dir: Union[str, Path] = "./backups"):
        """Initialize backup manager.

        Args:
            datastore: Live record collections
            backup_dir: Directory for backup archives
        """
        self.datastore = datastore
        self.backup_dir = Path(backup_dir)

    def _ensure_backup_dir(self) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def _archive_path(self, filename: str) -> Path:
        """Resolve a client-supplied archive name, rejecting anything else as not found."""
        if not is_backup_filename(filename) or Path(filename).name != filename:
            raise NotFoundError(f"Backup not found: {filename}")
        return self.backup_dir / filename

    async def create_backup(self, user_id: str) -> BackupMetadata:
        """Capture the user's data and persist it as a new archive.

        Args:
            user_id: Owner identifier

        Returns:
            BackupMetadata of the written archive
        """
        logger.info(f"Starting backup for user {user_id}")

        snapshot = await collect_user_data(self.datastore, user_id)
        payload = serialize_snapshot(snapshot)
        filename = await self.write_backup(user_id, payload)

        logger.info(f"Backup complete: {filename} ({len(payload):,} bytes)")

        return BackupMetadata(
            id=filename,
            filename=filename,
            user_id=snapshot.metadata.user_id,
            email=snapshot.metadata.email,
            backup_date=snapshot.metadata.backup_date,
            file_size=len(payload),
            data_counts=snapshot.metadata.data_counts,
        )

    async def write_backup(self, user_id: str, payload: bytes) -> str:
        """Write serialized snapshot bytes under a freshly generated name.

        Returns:
            Archive filename
        """
        self._ensure_backup_dir()

        now = datetime.now(timezone.utc)
        for _ in range(_MAX_NAME_ATTEMPTS):
            filename = generate_backup_filename(user_id, now)
            try:
                await write_archive(self.backup_dir / filename, payload)
                return filename
            except FileExistsError:
                now += timedelta(milliseconds=1)

        raise FileExistsError(f"Could not allocate a unique backup name for user {user_id}")

    async def read_backup(self, filename: str) -> Snapshot:
        """Load an archive back into a Snapshot.

        Raises:
            NotFoundError: if no such archive exists
            CorruptArchiveError: if it cannot be decoded
        """
        archive_path = self._archive_path(filename)
        if not archive_path.is_file():
            raise NotFoundError(f"Backup not found: {filename}")

        payload = await read_archive(archive_path)
        return deserialize_snapshot(payload)

    async def list_backups(self, user_id: str) -> List[BackupMetadata]:
        """List the user's archives, newest first.

        Unreadable archives are still listed, with filesystem time and zero counts.
        """
        self._ensure_backup_dir()
        backups = []

        for archive_path in self.backup_dir.glob(BACKUP_GLOB):
            filename = archive_path.name
            fragment = parse_owner_fragment(filename)
            if fragment is None or not user_id.startswith(fragment):
                continue

            try:
                stat = archive_path.stat()
            except OSError as e:
                logger.warning(f"Failed to stat backup {filename}: {e}")
                continue

            try:
                snapshot = deserialize_snapshot(await read_archive(archive_path))
                backups.append(BackupMetadata(
                    id=filename,
                    filename=filename,
                    user_id=snapshot.metadata.user_id,
                    email=snapshot.metadata.email,
                    backup_date=snapshot.metadata.backup_date,
                    file_size=stat.st_size,
                    data_counts=snapshot.metadata.data_counts,
                ))
            except Exception as e:
                logger.warning(f"Failed to read backup {filename}, using file metadata: {e}")
                backups.append(BackupMetadata(
                    id=filename,
                    filename=filename,
                    user_id=fragment,
                    email="unknown",
                    backup_date=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                    file_size=stat.st_size,
                    data_counts=DataCounts(),
                ))

        # Sort by capture time (newest first)
        backups.sort(key=lambda b: parse_backup_date(b.backup_date), reverse=True)

        return backups

    async def find_backup(self, user_id: str, filename: str) -> BackupMetadata:
        """Return the user's archive entry by name.

        Raises:
            NotFoundError: if the archive is not listed for this user
        """
        for backup in await self.list_backups(user_id):
            if backup.filename == filename:
                return backup
        raise NotFoundError(f"Backup not found: {filename}")

    async def get_backup_path(self, filename: str) -> Optional[Path]:
        """Get path to backup archive, or None if it does not exist."""
        try:
            archive_path = self._archive_path(filename)
        except NotFoundError:
            return None
        return archive_path if archive_path.is_file() else None

    async def delete_backup(self, filename: str) -> None:
        """Delete backup archive.

        Raises:
            DeleteFailedError: if the file could not be removed
        """
        try:
            archive_path = self._archive_path(filename)
            await asyncio.to_thread(archive_path.unlink)
        except (OSError, NotFoundError) as e:
            logger.error(f"Error deleting backup file {filename}: {e}")
            raise DeleteFailedError(f"Failed to delete backup file: {filename}") from e

        logger.info(f"Deleted backup: {filename}")

    async def cleanup_old_backups(self, user_id: str, keep: int = 10) -> int:
        """Delete all but the ``keep`` most recent archives of a user.

        Returns:
            Number of archives deleted
        """
        if keep < 1:
            raise InvalidRequestError("Keep count must be a positive number")

        backups = await self.list_backups(user_id)
        deleted = 0

        for backup in backups[keep:]:
            try:
                await self.delete_backup(backup.filename)
                deleted += 1
            except DeleteFailedError as e:
                logger.warning(f"Retention sweep could not delete {backup.filename}: {e}")

        logger.info(f"Cleaned up {deleted} old backup(s) for user {user_id}, kept {keep}")
        return deleted

    async def restore_backup(
        self,
        filename: str,
        user_id: str,
        mode: RestoreMode = RestoreMode.MERGE,
    ) -> RestoreResult:
        """Restore an archive into the given user's live data.

        Args:
            filename: Archive to restore
            user_id: Owner that receives the records
            mode: merge or replace

        Returns:
            RestoreResult with per-kind counts and collected errors
        """
        try:
            mode = RestoreMode(mode)
        except ValueError:
            raise InvalidRequestError('Mode must be either "merge" or "replace"')

        snapshot = await self.read_backup(filename)
        logger.info(f"Restoring {filename} into user {user_id} ({mode.value})")
        return await RestoreEngine(self.datastore).restore(snapshot, user_id, mode)
