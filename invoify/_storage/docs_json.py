import copy
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .._utils import load_json, logger, matches_filter, new_object_id, write_json
from ..base import BaseDocumentStorage


@dataclass
class JsonDocumentStorage(BaseDocumentStorage):
    _data: Dict[str, dict] = field(init=False, default_factory=dict)

    def __post_init__(self):
        working_dir = self.global_config["working_dir"]
        self._file_name = os.path.join(working_dir, f"docs_{self.namespace}.json")
        self._data = load_json(self._file_name) or {}
        logger.info(f"Load docs {self.namespace} with {len(self._data)} records")

    async def index_done_callback(self):
        os.makedirs(os.path.dirname(self._file_name) or ".", exist_ok=True)
        write_json(self._data, self._file_name)

    async def find(self, filter: Optional[Dict[str, Any]] = None) -> List[dict]:
        return [
            copy.deepcopy(record)
            for record in self._data.values()
            if matches_filter(record, filter)
        ]

    async def insert_one(self, record: dict) -> str:
        record = copy.deepcopy(record)
        record_id = record.get("_id") or new_object_id()
        if record_id in self._data:
            raise ValueError(f"Duplicate _id {record_id} in {self.namespace}")
        record["_id"] = record_id
        self._data[record_id] = record
        return record_id

    def _first_match(self, filter: Dict[str, Any]) -> Optional[dict]:
        for record in self._data.values():
            if matches_filter(record, filter):
                return record
        return None

    async def update_one(self, filter: Dict[str, Any], fields: Dict[str, Any]) -> bool:
        record = self._first_match(filter)
        if record is None:
            return False
        fields = {k: copy.deepcopy(v) for k, v in fields.items() if k != "_id"}
        record.update(fields)
        return True

    async def replace_one(
        self, filter: Dict[str, Any], record: dict, upsert: bool = False
    ) -> Optional[str]:
        existing = self._first_match(filter)
        if existing is None:
            if not upsert:
                return None
            return await self.insert_one(record)
        replacement = copy.deepcopy(record)
        replacement["_id"] = existing["_id"]
        self._data[existing["_id"]] = replacement
        return existing["_id"]

    async def delete_many(self, filter: Dict[str, Any]) -> int:
        doomed = [k for k, v in self._data.items() if matches_filter(v, filter)]
        for key in doomed:
            del self._data[key]
        return len(doomed)

    async def drop(self):
        self._data = {}
