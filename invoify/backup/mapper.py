"""Per-restore mapping from snapshot-local identifiers to live identifiers."""

from typing import Any, Dict

from .._utils import new_object_id


class IdMapper:
    """Allocate-on-miss remap table.

    ``resolve`` never fails: an unknown id yields a freshly minted one, so a
    dangling or forward reference does not abort a restore. The minted id is
    not remembered. Create one instance per restore call.
    """

    def __init__(self):
        self._mappings: Dict[str, str] = {}

    def assign(self, old_id: Any, new_id: str) -> None:
        self._mappings[str(old_id)] = new_id

    def resolve(self, old_id: Any) -> str:
        if not old_id:
            return new_object_id()
        return self._mappings.get(str(old_id)) or new_object_id()

    def contains(self, old_id: Any) -> bool:
        return str(old_id) in self._mappings

    def clear(self) -> None:
        self._mappings.clear()

    def __len__(self) -> int:
        return len(self._mappings)
