"""Replay a Snapshot into the live store under merge or replace policy."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .._utils import get_field, logger, utc_now_iso
from ..datastore import DataStore
from .mapper import IdMapper
from .models import RestoreMode, RestoreResult, Snapshot


class MergePolicy(str, Enum):
    """What happens to a snapshot record when a live record has the same natural key."""
    SKIP = "skip"  # keep the live record, remap to it
    INSERT = "insert"  # no natural key, always insert
    UPDATE = "update"  # overwrite the live record's fields in place
    REPLACE = "replace"  # one record per owner, replaced wholesale


POLICIES: Dict[RestoreMode, Dict[str, MergePolicy]] = {
    RestoreMode.MERGE: {
        "clients": MergePolicy.SKIP,
        "invoices": MergePolicy.SKIP,
        "statements": MergePolicy.INSERT,
        "documents": MergePolicy.INSERT,
        "preferences": MergePolicy.REPLACE,
        "defaults": MergePolicy.UPDATE,
    },
    # Live records are gone before replay, so nothing can collide
    RestoreMode.REPLACE: {
        "clients": MergePolicy.INSERT,
        "invoices": MergePolicy.INSERT,
        "statements": MergePolicy.INSERT,
        "documents": MergePolicy.INSERT,
        "preferences": MergePolicy.REPLACE,
        "defaults": MergePolicy.INSERT,
    },
}


@dataclass(frozen=True)
class RestoreStage:
    kind: str
    label: str
    depends_on: Tuple[str, ...] = ()


# Later kinds reference earlier ones by identifier
RESTORE_STAGES: Tuple[RestoreStage, ...] = (
    RestoreStage("clients", "client"),
    RestoreStage("invoices", "invoice", depends_on=("clients",)),
    RestoreStage("statements", "statement", depends_on=("clients", "invoices")),
    RestoreStage("documents", "document", depends_on=("invoices",)),
    RestoreStage("preferences", "preferences"),
    RestoreStage("defaults", "default"),
)

OWNED_KINDS = tuple(stage.kind for stage in RESTORE_STAGES)


def validate_stage_order(stages: Tuple[RestoreStage, ...]) -> None:
    """Raise ValueError if a stage runs before one it depends on."""
    seen = set()
    for stage in stages:
        missing = [dep for dep in stage.depends_on if dep not in seen]
        if missing:
            raise ValueError(f"Stage {stage.kind} runs before its dependencies: {missing}")
        seen.add(stage.kind)


validate_stage_order(RESTORE_STAGES)


def _lower_email(value: Any) -> str:
    return str(value or "").strip().lower()


def _client_key(record: dict) -> Optional[Dict[str, Any]]:
    email = _lower_email(record.get("email"))
    return {"email": email} if email else None


def _invoice_key(record: dict) -> Optional[Dict[str, Any]]:
    number = get_field(record, "details.invoiceNumber")
    return {"details.invoiceNumber": number} if number else None


def _default_key(record: dict) -> Optional[Dict[str, Any]]:
    name = record.get("name")
    return {"name": name} if name else None


NATURAL_KEYS: Dict[str, Callable[[dict], Optional[Dict[str, Any]]]] = {
    "clients": _client_key,
    "invoices": _invoice_key,
    "defaults": _default_key,
}


@dataclass
class _RestoreRun:
    """Mutable state of a single restore call."""
    target_user_id: str
    mode: RestoreMode
    mapper: IdMapper = field(default_factory=IdMapper)
    client_emails: Dict[str, str] = field(default_factory=dict)
    result: RestoreResult = field(default_factory=RestoreResult)

    def policy(self, kind: str) -> MergePolicy:
        return POLICIES[self.mode][kind]

    def count(self, bucket: str, kind: str) -> None:
        counts = getattr(self.result, bucket)
        setattr(counts, kind, getattr(counts, kind) + 1)


class RestoreEngine:
    """Replay snapshots into a DataStore.

    Stages run in RESTORE_STAGES order and records of a kind are written one
    at a time so the remap table stays consistent. A failing record is
    reported in ``result.errors`` and the batch moves on; only a failure
    outside per-record handling (e.g. the replace-mode wipe) flips
    ``result.success`` to False.
    """

    def __init__(self, datastore: DataStore):
        self.datastore = datastore

    async def restore(
        self,
        snapshot: Snapshot,
        target_user_id: str,
        mode: RestoreMode = RestoreMode.MERGE,
    ) -> RestoreResult:
        mode = RestoreMode(mode)
        run = _RestoreRun(target_user_id=target_user_id, mode=mode)

        if snapshot.metadata.user_id != target_user_id:
            logger.warning(
                f"Restoring snapshot of user {snapshot.metadata.user_id} into user {target_user_id}"
            )
        logger.info(f"Starting {mode.value} restore for user {target_user_id}")

        try:
            if mode == RestoreMode.REPLACE:
                await self._delete_owned_records(target_user_id)

            for stage in RESTORE_STAGES:
                records = self._records_for(snapshot, stage.kind)
                for record in records:
                    try:
                        await self._restore_record(run, stage.kind, record)
                    except Exception as e:
                        logger.warning(f"Failed to restore {stage.label} {record.get('_id')}: {e}")
                        run.result.errors.append(f"Error restoring {stage.label}: {e}")

            await self.datastore.flush()
        except Exception as e:
            logger.error(f"Restore for user {target_user_id} aborted: {e}")
            run.result.success = False
            run.result.errors.append(str(e) or "Unknown error during restore")

        logger.info(
            f"Restore complete for user {target_user_id}: restored={run.result.restored.model_dump()} "
            f"skipped={run.result.skipped.model_dump()} errors={len(run.result.errors)}"
        )
        return run.result

    async def _delete_owned_records(self, target_user_id: str) -> None:
        owner = {"userId": target_user_id}
        deleted = await asyncio.gather(*[
            self.datastore.collection(kind).delete_many(owner) for kind in OWNED_KINDS
        ])
        logger.info(f"Replace mode: removed {dict(zip(OWNED_KINDS, deleted))} for user {target_user_id}")

    @staticmethod
    def _records_for(snapshot: Snapshot, kind: str) -> List[dict]:
        if kind == "preferences":
            return [snapshot.data.preferences] if snapshot.data.preferences else []
        return getattr(snapshot.data, kind)

    async def _restore_record(self, run: _RestoreRun, kind: str, record: dict) -> None:
        collection = self.datastore.collection(kind)
        old_id = record.get("_id")
        fields = self._prepare(run, kind, record)
        policy = run.policy(kind)

        if policy == MergePolicy.REPLACE:
            await collection.replace_one({"userId": run.target_user_id}, fields, upsert=True)
            run.result.restored.preferences = 1
            return

        natural_key = NATURAL_KEYS[kind](fields) if kind in NATURAL_KEYS else None
        if policy in (MergePolicy.SKIP, MergePolicy.UPDATE) and natural_key:
            existing = await collection.find_one({"userId": run.target_user_id, **natural_key})
            if existing is not None:
                if policy == MergePolicy.SKIP:
                    self._remember(run, kind, old_id, fields, existing["_id"])
                    run.count("skipped", kind)
                    logger.debug(f"Skipped duplicate {kind} {old_id} -> {existing['_id']}")
                else:
                    updates = {k: v for k, v in fields.items() if k != "createdAt"}
                    updates["updatedAt"] = utc_now_iso()
                    await collection.update_one({"_id": existing["_id"]}, updates)
                    logger.debug(f"Updated existing {kind} {existing['_id']}")
                return

        new_id = await collection.insert_one(fields)
        self._remember(run, kind, old_id, fields, new_id)
        run.count("restored", kind)

    @staticmethod
    def _remember(run: _RestoreRun, kind: str, old_id: Any, fields: dict, live_id: str) -> None:
        if old_id:
            run.mapper.assign(old_id, live_id)
        if kind == "clients":
            email = _lower_email(fields.get("email"))
            if email:
                run.client_emails[email] = live_id

    def _prepare(self, run: _RestoreRun, kind: str, record: dict) -> dict:
        """Copy a snapshot record into its live shape for the target owner."""
        fields = {k: v for k, v in record.items() if k not in ("_id", "userId")}
        now = utc_now_iso()
        fields["userId"] = run.target_user_id
        fields["createdAt"] = record.get("createdAt") or now
        fields["updatedAt"] = record.get("updatedAt") or now

        if kind == "clients" and fields.get("email"):
            fields["email"] = _lower_email(fields["email"])

        elif kind == "statements" and record.get("clientId"):
            # Stored client ids are not stable across re-insertion; the
            # captured client email is.
            client_email = _lower_email(record.get("clientEmail"))
            fields["clientId"] = run.client_emails.get(client_email) if client_email else None

        elif kind == "documents":
            for ref in ("invoiceId", "parentDocumentId"):
                if record.get(ref):
                    fields[ref] = run.mapper.resolve(record[ref])
                else:
                    fields.pop(ref, None)
            fields["uploadedBy"] = run.target_user_id

        return fields
