from __future__ import annotations

import logging
from typing import Literal, TypedDict

from settings import Settings

from .disk_store import DiskKeyValueStore
from .engine import CollectionStats, DocumentStore
from .interfaces import KeyValueSubstrate
from .memory_store import InMemoryKeyValueStore
from .models import TypedModel
from .paths import data_dir, ensure_dir, store_dir
from .records import CategoryRecord, TransactionRecord, default_categories

logger = logging.getLogger(__name__)

TRANSACTIONS = "transactions"
CATEGORIES = "categories"


class HealthReport(TypedDict):
    status: Literal["healthy", "disconnected"]
    message: str


class ConnectionStatus(TypedDict):
    isConnected: bool
    backend: str
    namespace: str
    collections: list[str]


class Database:
    """
    Explicit application context around one document store.

    Callers receive a Database instead of reaching for module-level state; `connect()`
    and `disconnect()` are its setup and teardown.
    """

    def __init__(self, store: DocumentStore, *, backend: str = "memory"):
        self.store = store
        self.backend = backend
        self.transactions: TypedModel[TransactionRecord] = TypedModel(store, TRANSACTIONS, TransactionRecord)
        self.categories: TypedModel[CategoryRecord] = TypedModel(store, CATEGORIES, CategoryRecord)

    @property
    def is_connected(self) -> bool:
        return self.store.is_connected

    async def connect(self) -> "Database":
        await self.store.connect()
        return self

    async def disconnect(self) -> None:
        await self.store.disconnect()

    async def health_check(self) -> HealthReport:
        if not self.store.is_connected:
            return {"status": "disconnected", "message": "document store is not connected"}
        return {"status": "healthy", "message": "document store is available"}

    async def connection_status(self) -> ConnectionStatus:
        collections = await self.store.list_collections() if self.store.is_connected else []
        return {
            "isConnected": self.store.is_connected,
            "backend": self.backend,
            "namespace": self.store.namespace,
            "collections": collections,
        }

    async def collection_stats(self, collection: str) -> CollectionStats:
        return await self.store.stats(collection)

    async def seed_default_categories(self) -> int:
        """Create the system categories unless some default category already exists."""
        existing = await self.categories.count_documents({"isDefault": True})
        if existing:
            logger.info("SEED: %d default categories already present, skipping", existing)
            return 0
        created = 0
        for record in default_categories():
            await self.categories.create_record(record)
            created += 1
        logger.info("SEED: created %d default categories", created)
        return created


def create_substrate(settings: Settings) -> KeyValueSubstrate:
    if settings.db_backend == "disk":
        directory = ensure_dir(settings.db_data_dir) if settings.db_data_dir else store_dir(data_dir())
        logger.info("DOCSTORE: using disk substrate at %s", directory)
        return DiskKeyValueStore(directory)
    return InMemoryKeyValueStore()


def create_database(settings: Settings, substrate: KeyValueSubstrate | None = None) -> Database:
    store = DocumentStore(
        substrate if substrate is not None else create_substrate(settings),
        namespace=settings.db_namespace,
        connect_delay=settings.connect_delay,
    )
    return Database(store, backend=settings.db_backend)
