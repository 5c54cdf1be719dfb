"""Collect everything one owner has into a Snapshot."""

import asyncio

from .._utils import logger
from ..datastore import DataStore
from .errors import NotFoundError
from .models import Snapshot, SnapshotData

# Never exported
PROFILE_EXCLUDED_FIELDS = ("_id", "password")


async def collect_user_data(datastore: DataStore, user_id: str) -> Snapshot:
    """Capture the owner profile and its six record sets.

    Args:
        datastore: Live record collections
        user_id: Owner identifier

    Returns:
        Snapshot with header counts computed from the fetched records

    Raises:
        NotFoundError: if the owner profile does not exist
    """
    user = await datastore.users.find_one({"_id": user_id})
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")

    owner = {"userId": user_id}
    clients, invoices, documents, statements, preferences, defaults = await asyncio.gather(
        datastore.clients.find(owner),
        datastore.invoices.find(owner),
        datastore.documents.find(owner),
        datastore.statements.find(owner),
        datastore.preferences.find_one(owner),
        datastore.defaults.find(owner),
    )

    profile = {k: v for k, v in user.items() if k not in PROFILE_EXCLUDED_FIELDS}

    snapshot = Snapshot.build(
        user_id=user_id,
        email=user.get("email", ""),
        data=SnapshotData(
            user=profile,
            clients=clients,
            invoices=invoices,
            documents=documents,
            statements=statements,
            preferences=preferences,
            defaults=defaults,
        ),
    )

    logger.info(
        f"Captured data for user {user_id}: {snapshot.metadata.data_counts.model_dump()}"
    )
    return snapshot
