from __future__ import annotations

from typing import Any, Generic, Mapping, TypeVar, TypedDict

from pydantic import BaseModel

from .engine import ClearResult, CollectionStats, DeleteResult, DocumentStore
from .query import Document


class UpdateResult(TypedDict):
    modifiedCount: int


class Model:
    """
    Driver-shaped view of one collection.

    `update_one` and `delete_one` act on every matching document, like the engine
    calls they wrap; the reported counts cover all matches. `update_many` and
    `delete_many` are the same operations under names that say so.
    """

    def __init__(self, store: DocumentStore, collection_name: str):
        self._store = store
        self._collection = collection_name

    @property
    def collection_name(self) -> str:
        return self._collection

    async def find(self, query: Mapping[str, Any] | None = None) -> list[Document]:
        return await self._store.find(self._collection, query)

    async def find_one(self, query: Mapping[str, Any] | None = None) -> Document | None:
        results = await self._store.find(self._collection, query)
        return results[0] if results else None

    async def create(self, data: Mapping[str, Any]) -> Document:
        return await self._store.save(self._collection, data)

    async def update_one(self, query: Mapping[str, Any] | None, patch: Mapping[str, Any]) -> UpdateResult:
        results = await self._store.update(self._collection, query, patch)
        return {"modifiedCount": len(results)}

    async def update_many(self, query: Mapping[str, Any] | None, patch: Mapping[str, Any]) -> UpdateResult:
        return await self.update_one(query, patch)

    async def delete_one(self, query: Mapping[str, Any] | None) -> DeleteResult:
        result = await self._store.delete(self._collection, query)
        return {"deletedCount": result["deletedCount"]}

    async def delete_many(self, query: Mapping[str, Any] | None) -> DeleteResult:
        return await self.delete_one(query)

    async def count_documents(self, query: Mapping[str, Any] | None = None) -> int:
        results = await self._store.find(self._collection, query)
        return len(results)

    async def stats(self) -> CollectionStats:
        return await self._store.stats(self._collection)

    async def clear(self) -> ClearResult:
        return await self._store.clear(self._collection)


RecordT = TypeVar("RecordT", bound=BaseModel)


class TypedModel(Model, Generic[RecordT]):
    """
    Model whose documents are parsed into a pydantic record type.

    The engine stays schema-less; validation happens only here, on the way in and out.
    """

    def __init__(self, store: DocumentStore, collection_name: str, record_type: type[RecordT]):
        super().__init__(store, collection_name)
        self._record_type = record_type

    @property
    def record_type(self) -> type[RecordT]:
        return self._record_type

    def _parse(self, doc: Mapping[str, Any]) -> RecordT:
        return self._record_type.model_validate(doc)

    def _dump(self, data: RecordT | Mapping[str, Any]) -> dict[str, Any]:
        record = data if isinstance(data, self._record_type) else self._record_type.model_validate(data)
        return record.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def find_records(self, query: Mapping[str, Any] | None = None) -> list[RecordT]:
        return [self._parse(d) for d in await self.find(query)]

    async def find_one_record(self, query: Mapping[str, Any] | None = None) -> RecordT | None:
        doc = await self.find_one(query)
        return None if doc is None else self._parse(doc)

    async def create_record(self, data: RecordT | Mapping[str, Any]) -> RecordT:
        return self._parse(await self.create(self._dump(data)))

    async def update_records(self, query: Mapping[str, Any] | None, patch: Mapping[str, Any]) -> list[RecordT]:
        """
        Apply `patch` to every match, then re-validate the results.

        The merged document is validated before anything is written, so a patch that
        would break the record type leaves the collection untouched. Record fields are
        written in their normalized form, the same as `create_record` stores them.
        """
        current = await self.find(query)
        normalized = dict(patch)
        for doc in current:
            dumped = self._dump({**doc, **patch})
            normalized = {
                field: dumped.get(field) if field in self._record_type.model_fields else value
                for field, value in patch.items()
            }
        updated = await self._store.update(self._collection, query, normalized)
        return [self._parse(d) for d in updated]
