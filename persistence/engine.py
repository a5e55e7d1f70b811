from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, TypedDict

from .codec import dumps_collection, encoded_size, loads_collection
from .errors import DocumentValidationError, NotConnectedError
from .interfaces import KeyValueSubstrate
from .query import (
    CREATED_AT_FIELD,
    ID_FIELD,
    UPDATED_AT_FIELD,
    Document,
    compile_query,
    matches,
    validate_collection_name,
    validate_patch,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "accounting_app_local"
DEFAULT_CONNECT_DELAY = 0.1

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class DeleteResult(TypedDict):
    deletedCount: int


class ClearResult(TypedDict):
    cleared: bool


class CollectionStats(TypedDict):
    count: int
    size: int
    avgObjectSize: float


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits: list[str] = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """
    Millisecond timestamp in base 36 followed by 16 random hex characters.

    Ids sort roughly by creation time. Uniqueness is best-effort, not cryptographic.
    """
    millis = time.time_ns() // 1_000_000
    return _to_base36(millis) + uuid.uuid4().hex[:16]


class StrictlyIncreasingClock:
    """
    UTC wall clock that never returns the same instant twice.

    Two mutations inside one clock tick still get ordered timestamps, so
    `updatedAt > createdAt` holds after any update.
    """

    def __init__(self) -> None:
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current

    def timestamp(self) -> str:
        return self.now().strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class DocumentStore:
    """
    Document-database emulation over a string key-value substrate.

    Each collection is one substrate entry, `<namespace>_<collection>`, holding the JSON
    array of its documents in insertion order. Every mutation reads the whole array,
    rewrites it and stores it back.

    Known limitation: there is no locking across that read-modify-write cycle. Two
    mutations on the same collection that are not awaited one after the other can
    interleave, and the later write silently discards the earlier one.
    """

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        connect_delay: float = DEFAULT_CONNECT_DELAY,
        clock: StrictlyIncreasingClock | None = None,
    ) -> None:
        if not namespace:
            raise ValueError("namespace must be non-empty")
        self._substrate = substrate
        self._namespace = namespace
        self._connect_delay = max(0.0, float(connect_delay))
        self._clock = clock or StrictlyIncreasingClock()
        self._connected = False
        # Bumped by disconnect() so connects still sleeping do not reconnect afterwards.
        self._generation = 0

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def substrate(self) -> KeyValueSubstrate:
        return self._substrate

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def connect(self) -> "DocumentStore":
        """
        Resolves after the simulated latency. A `disconnect()` issued while this call is
        still waiting wins: the call resolves but the store stays disconnected.
        """
        generation = self._generation
        if self._connect_delay:
            await asyncio.sleep(self._connect_delay)
        if generation != self._generation:
            logger.debug("DOCSTORE: connect superseded by disconnect (namespace=%s)", self._namespace)
            return self
        if not self._connected:
            logger.info("DOCSTORE: connected (namespace=%s)", self._namespace)
        self._connected = True
        return self

    async def disconnect(self) -> None:
        self._generation += 1
        if self._connected:
            logger.info("DOCSTORE: disconnected (namespace=%s)", self._namespace)
        self._connected = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def key_for(self, collection: str) -> str:
        return f"{self._namespace}_{validate_collection_name(collection)}"

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise NotConnectedError()

    async def _load(self, key: str) -> list[Document]:
        raw = await asyncio.to_thread(self._substrate.get, key)
        return loads_collection(raw, key=key)

    async def _persist(self, key: str, documents: list[Document]) -> None:
        # Encode first: a document that cannot be serialized must not reach the substrate.
        payload = dumps_collection(documents)
        await asyncio.to_thread(self._substrate.set, key, payload)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    async def save(self, collection: str, data: Mapping[str, Any]) -> Document:
        self._ensure_connected()
        key = self.key_for(collection)
        if not isinstance(data, Mapping):
            raise DocumentValidationError(f"document must be a mapping, got {type(data).__name__}")

        documents = await self._load(key)
        doc_id = data.get(ID_FIELD)
        if doc_id:
            if not isinstance(doc_id, str):
                raise DocumentValidationError(f"_id must be a string, got {type(doc_id).__name__}")
            if any(d.get(ID_FIELD) == doc_id for d in documents):
                raise DocumentValidationError(f"duplicate _id {doc_id!r} in collection {collection!r}")
        else:
            doc_id = self.generate_id()

        ts = self._clock.timestamp()
        item: Document = {
            **data,
            ID_FIELD: doc_id,
            CREATED_AT_FIELD: ts,
            UPDATED_AT_FIELD: ts,
        }
        documents.append(item)
        await self._persist(key, documents)
        logger.debug("DOCSTORE SAVE: collection=%s _id=%s", collection, item[ID_FIELD])
        return item

    async def find(self, collection: str, query: Mapping[str, Any] | None = None) -> list[Document]:
        self._ensure_connected()
        key = self.key_for(collection)
        pairs = compile_query(query)
        documents = await self._load(key)
        found = [d for d in documents if matches(d, pairs)]
        logger.debug("DOCSTORE FIND: collection=%s matched=%d of %d", collection, len(found), len(documents))
        return found

    async def update(
        self,
        collection: str,
        query: Mapping[str, Any] | None,
        patch: Mapping[str, Any],
    ) -> list[Document]:
        """
        Merge `patch` into every matching document and refresh its `updatedAt`.

        Returns the post-update state of the documents the query matched before the update.
        """
        self._ensure_connected()
        key = self.key_for(collection)
        pairs = compile_query(query)
        changes = validate_patch(patch)

        documents = await self._load(key)
        updated: list[Document] = []
        rewritten: list[Document] = []
        for doc in documents:
            if matches(doc, pairs):
                doc = {**doc, **changes, UPDATED_AT_FIELD: self._clock.timestamp()}
                updated.append(doc)
            rewritten.append(doc)

        await self._persist(key, rewritten)
        logger.debug("DOCSTORE UPDATE: collection=%s modified=%d", collection, len(updated))
        return updated

    async def delete(self, collection: str, query: Mapping[str, Any] | None) -> DeleteResult:
        """Remove every document matching `query`, using the same rule as `find`."""
        self._ensure_connected()
        key = self.key_for(collection)
        pairs = compile_query(query)

        documents = await self._load(key)
        remaining = [d for d in documents if not matches(d, pairs)]
        await self._persist(key, remaining)

        deleted = len(documents) - len(remaining)
        logger.debug("DOCSTORE DELETE: collection=%s deleted=%d", collection, deleted)
        return {"deletedCount": deleted}

    async def stats(self, collection: str) -> CollectionStats:
        self._ensure_connected()
        documents = await self._load(self.key_for(collection))
        if not documents:
            return {"count": 0, "size": 0, "avgObjectSize": 0}
        size = encoded_size(dumps_collection(documents))
        return {"count": len(documents), "size": size, "avgObjectSize": size / len(documents)}

    async def clear(self, collection: str) -> ClearResult:
        self._ensure_connected()
        key = self.key_for(collection)
        await asyncio.to_thread(self._substrate.remove, key)
        logger.info("DOCSTORE: cleared collection %s", collection)
        return {"cleared": True}

    async def list_collections(self) -> list[str]:
        self._ensure_connected()
        prefix = f"{self._namespace}_"
        keys = await asyncio.to_thread(lambda: list(self._substrate.keys()))
        return sorted(k[len(prefix):] for k in keys if k.startswith(prefix) and len(k) > len(prefix))

    def generate_id(self) -> str:
        return generate_id()
