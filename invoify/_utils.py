import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional
import logging

logger = logging.getLogger("invoify")


def new_object_id() -> str:
    """Mint a fresh record identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def get_field(record: dict, path: str) -> Any:
    """Read a possibly dotted field path (``details.invoiceNumber``) from a record."""
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def matches_filter(record: dict, filter: Optional[dict]) -> bool:
    """Equality match of every filter field against the record."""
    if not filter:
        return True
    return all(get_field(record, key) == expected for key, expected in filter.items())


def load_json(file_name):
    if not os.path.exists(file_name):
        return None
    with open(file_name, encoding="utf-8") as f:
        return json.load(f)


def write_json(json_obj, file_name):
    with open(file_name, "w", encoding="utf-8") as f:
        json.dump(json_obj, f, indent=2, ensure_ascii=False, default=str)
