"""Utility functions for backup/restore operations."""

import asyncio
import gzip
import json
import re
import zlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .._utils import logger
from .errors import CorruptArchiveError
from .models import Snapshot

BACKUP_PREFIX = "backup-user-"
BACKUP_SUFFIX = ".json.gz"
BACKUP_GLOB = f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"
OWNER_FRAGMENT_LENGTH = 8

_BACKUP_NAME_RE = re.compile(
    r"^backup-user-(?P<timestamp>[0-9T\-]+Z)-(?P<owner>[^/\\]+)\.json\.gz$"
)


def generate_backup_filename(user_id: str, now: Optional[datetime] = None) -> str:
    """Generate archive name from timestamp and owner fragment.

    Returns:
        Name in format: backup-user-YYYY-MM-DDTHH-MM-SS-mmmZ-<user_id[:8]>.json.gz
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return f"{BACKUP_PREFIX}{timestamp}-{user_id[:OWNER_FRAGMENT_LENGTH]}{BACKUP_SUFFIX}"


def is_backup_filename(filename: str) -> bool:
    return bool(filename) and _BACKUP_NAME_RE.match(filename) is not None


def parse_owner_fragment(filename: str) -> Optional[str]:
    """Owner-id fragment embedded in an archive name, or None if it is not one."""
    match = _BACKUP_NAME_RE.match(filename)
    return match.group("owner") if match else None


def parse_backup_date(value: str) -> datetime:
    """Parse an ISO8601 capture timestamp for ordering; unparseable sorts oldest."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_snapshot(snapshot: Snapshot) -> bytes:
    """Render a snapshot as gzip-compressed, field-tagged JSON."""
    snapshot.verify_counts()
    text = json.dumps(snapshot.model_dump(by_alias=True), indent=2, ensure_ascii=False)
    return gzip.compress(text.encode("utf-8"))


def deserialize_snapshot(payload: bytes) -> Snapshot:
    """Inverse of serialize_snapshot.

    Raises:
        CorruptArchiveError: on decompression, JSON or structure failure
    """
    try:
        text = gzip.decompress(payload).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise CorruptArchiveError(f"Could not decompress backup: {e}") from e

    try:
        return Snapshot.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as e:
        raise CorruptArchiveError(f"Invalid backup structure: {e}") from e


async def write_archive(path: Path, payload: bytes) -> int:
    """Write archive bytes, refusing to overwrite an existing entry.

    Returns:
        Size of written archive in bytes

    Raises:
        FileExistsError: if ``path`` already exists
    """
    def _write() -> int:
        with open(path, "xb") as f:
            f.write(payload)
        return path.stat().st_size

    size = await asyncio.to_thread(_write)
    logger.debug(f"Archive written: {path} ({size:,} bytes)")
    return size


async def read_archive(path: Path) -> bytes:
    return await asyncio.to_thread(path.read_bytes)
