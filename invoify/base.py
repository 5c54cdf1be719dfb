from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class StorageNameSpace:
    namespace: str
    global_config: dict

    async def index_done_callback(self):
        """Commit the storage operations after writing"""
        pass


@dataclass
class BaseDocumentStorage(StorageNameSpace):
    """Collection of JSON-compatible records keyed by ``_id``.

    Filters are equality matches on (possibly dotted) field paths, e.g.
    ``{"userId": uid, "details.invoiceNumber": "INV-1"}``.
    Returned records are copies; mutating them does not touch the store.
    """

    async def find(self, filter: Optional[Dict[str, Any]] = None) -> List[dict]:
        raise NotImplementedError

    async def find_one(self, filter: Dict[str, Any]) -> Optional[dict]:
        records = await self.find(filter)
        return records[0] if records else None

    async def insert_one(self, record: dict) -> str:
        """Insert a record, minting ``_id`` if absent. Returns the id."""
        raise NotImplementedError

    async def update_one(self, filter: Dict[str, Any], fields: Dict[str, Any]) -> bool:
        """Set ``fields`` on the first matching record."""
        raise NotImplementedError

    async def replace_one(
        self, filter: Dict[str, Any], record: dict, upsert: bool = False
    ) -> Optional[str]:
        """Replace the first matching record, keeping its ``_id``."""
        raise NotImplementedError

    async def delete_many(self, filter: Dict[str, Any]) -> int:
        raise NotImplementedError

    async def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return len(await self.find(filter))

    async def drop(self):
        raise NotImplementedError

    async def check_health(self) -> bool:
        return True
