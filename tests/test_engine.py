from __future__ import annotations

import asyncio
import json

import pytest

from persistence import DocumentStore, NotConnectedError, SerializationError
from persistence.engine import StrictlyIncreasingClock, generate_id
from persistence.errors import DocumentValidationError


def test_transaction_lifecycle_scenario(store):
    async def _run():
        await store.connect()

        created = await store.save("tx", {"type": "expense", "amount": 12})
        assert created["_id"]
        assert created["createdAt"] == created["updatedAt"]
        assert created["type"] == "expense"
        assert created["amount"] == 12

        found = await store.find("tx", {"type": "expense"})
        assert found == [created]

        updated = await store.update("tx", {"type": "expense"}, {"amount": 20})
        assert len(updated) == 1
        assert updated[0]["amount"] == 20
        assert updated[0]["_id"] == created["_id"]
        assert updated[0]["createdAt"] == created["createdAt"]
        assert updated[0]["updatedAt"] > updated[0]["createdAt"]

        assert await store.delete("tx", {"type": "expense"}) == {"deletedCount": 1}
        assert await store.find("tx", {}) == []

    asyncio.run(_run())


def test_find_by_generated_id_returns_exactly_the_created_document(store):
    async def _run():
        await store.connect()
        await store.save("tx", {"type": "income", "amount": 5})
        created = await store.save("tx", {"type": "expense", "amount": 7, "tags": ["food"]})
        await store.save("tx", {"type": "expense", "amount": 9})

        assert await store.find("tx", {"_id": created["_id"]}) == [created]

    asyncio.run(_run())


def test_find_all_is_insertion_ordered_and_repeatable(store):
    async def _run():
        await store.connect()
        for n in range(5):
            await store.save("tx", {"n": n})
        first = await store.find("tx", {})
        second = await store.find("tx")
        assert [d["n"] for d in first] == [0, 1, 2, 3, 4]
        assert first == second

    asyncio.run(_run())


def test_find_on_absent_collection_is_empty(store, substrate):
    async def _run():
        await store.connect()
        assert await store.find("nothing-here", {"a": 1}) == []
        assert substrate.get(store.key_for("nothing-here")) is None

    asyncio.run(_run())


def test_save_keeps_caller_id_and_does_not_mutate_input(store):
    async def _run():
        await store.connect()
        data = {"_id": "fixed-id", "type": "income"}
        snapshot = dict(data)
        created = await store.save("tx", data)
        assert data == snapshot
        assert created["_id"] == "fixed-id"
        assert created is not data

        generated = await store.save("tx", {"_id": "", "type": "income"})
        assert generated["_id"] != ""

    asyncio.run(_run())


def test_save_overrides_caller_timestamps(store):
    async def _run():
        await store.connect()
        created = await store.save("tx", {"createdAt": "1999", "updatedAt": "1999"})
        assert created["createdAt"] != "1999"
        assert created["updatedAt"] == created["createdAt"]

    asyncio.run(_run())


def test_persisted_representation_is_one_json_array_per_collection(store, substrate):
    async def _run():
        await store.connect()
        a = await store.save("tx", {"n": 1})
        b = await store.save("tx", {"n": 2})
        await store.save("categories", {"name": "food"})

        raw = substrate.get("accounting_app_local_tx")
        assert raw is not None
        assert json.loads(raw) == [a, b]
        assert sorted(substrate.keys()) == ["accounting_app_local_categories", "accounting_app_local_tx"]

    asyncio.run(_run())


def test_update_merges_patch_and_preserves_other_fields(store):
    async def _run():
        await store.connect()
        await store.save("tx", {"type": "expense", "amount": 1, "note": "keep"})
        await store.save("tx", {"type": "income", "amount": 2})

        updated = await store.update("tx", {"type": "expense"}, {"amount": 3, "merchant": "shop"})
        assert [(d["amount"], d["note"], d["merchant"]) for d in updated] == [(3, "keep", "shop")]

        income = await store.find("tx", {"type": "income"})
        assert income[0]["amount"] == 2
        assert "merchant" not in income[0]

    asyncio.run(_run())


def test_update_twice_is_idempotent_except_updated_at(store):
    async def _run():
        await store.connect()
        await store.save("tx", {"type": "expense", "amount": 1})
        first = await store.update("tx", {"type": "expense"}, {"amount": 20})
        second = await store.update("tx", {"type": "expense"}, {"amount": 20})
        assert first[0]["amount"] == second[0]["amount"] == 20
        assert second[0]["updatedAt"] > first[0]["updatedAt"]

    asyncio.run(_run())


def test_update_returns_documents_matched_before_the_patch(store):
    async def _run():
        await store.connect()
        await store.save("tx", {"status": "active"})
        updated = await store.update("tx", {"status": "active"}, {"status": "deleted"})
        assert [d["status"] for d in updated] == ["deleted"]
        assert await store.find("tx", {"status": "active"}) == []

    asyncio.run(_run())


def test_update_rejects_identity_changes(store):
    async def _run():
        await store.connect()
        created = await store.save("tx", {"type": "expense"})
        with pytest.raises(DocumentValidationError):
            await store.update("tx", {"type": "expense"}, {"_id": "other"})
        assert await store.find("tx") == [created]

    asyncio.run(_run())


def test_delete_removes_only_matching_documents(store):
    async def _run():
        await store.connect()
        await store.save("tx", {"type": "expense", "amount": 1})
        await store.save("tx", {"type": "income", "amount": 1})
        await store.save("tx", {"type": "expense", "amount": 2})

        result = await store.delete("tx", {"type": "expense"})
        assert result == {"deletedCount": 2}
        assert await store.find("tx", {"type": "expense"}) == []
        remaining = await store.find("tx")
        assert [d["type"] for d in remaining] == ["income"]

        assert await store.delete("tx", {"type": "expense"}) == {"deletedCount": 0}

    asyncio.run(_run())


def test_delete_with_empty_query_removes_everything(store):
    async def _run():
        await store.connect()
        await store.save("tx", {"a": 1})
        await store.save("tx", {"a": 2})
        assert await store.delete("tx", {}) == {"deletedCount": 2}
        assert await store.find("tx") == []

    asyncio.run(_run())


def test_stats_on_empty_and_absent_collections(store):
    async def _run():
        await store.connect()
        expected = {"count": 0, "size": 0, "avgObjectSize": 0}
        assert await store.stats("absent") == expected

        await store.save("tx", {"a": 1})
        await store.delete("tx", {})
        assert await store.stats("tx") == expected

    asyncio.run(_run())


def test_stats_reports_serialized_size(store, substrate):
    async def _run():
        await store.connect()
        await store.save("tx", {"name": "餐饮"})
        await store.save("tx", {"name": "x"})

        stats = await store.stats("tx")
        raw = substrate.get(store.key_for("tx"))
        assert raw is not None
        assert stats["count"] == 2
        assert stats["size"] == len(raw.encode("utf-8"))
        assert stats["avgObjectSize"] == stats["size"] / 2

    asyncio.run(_run())


def test_clear_removes_collection_entry(store, substrate):
    async def _run():
        await store.connect()
        await store.save("tx", {"a": 1})
        await store.save("other", {"a": 1})
        assert await store.list_collections() == ["other", "tx"]

        assert await store.clear("tx") == {"cleared": True}
        assert substrate.get(store.key_for("tx")) is None
        assert await store.find("tx") == []
        assert await store.list_collections() == ["other"]

    asyncio.run(_run())


def test_list_collections_ignores_other_namespaces(substrate):
    async def _run():
        mine = await DocumentStore(substrate, namespace="mine", connect_delay=0).connect()
        theirs = await DocumentStore(substrate, namespace="theirs", connect_delay=0).connect()
        await mine.save("tx", {"a": 1})
        await theirs.save("budgets", {"a": 1})
        assert await mine.list_collections() == ["tx"]
        assert await theirs.list_collections() == ["budgets"]

    asyncio.run(_run())


def test_operations_fail_fast_when_disconnected(store, substrate):
    async def _run():
        assert store.is_connected is False
        with pytest.raises(NotConnectedError):
            await store.save("tx", {"a": 1})

        await store.connect()
        await store.save("tx", {"a": 1})
        await store.disconnect()
        before = substrate.get(store.key_for("tx"))

        with pytest.raises(NotConnectedError):
            await store.save("tx", {"a": 2})
        with pytest.raises(NotConnectedError):
            await store.find("tx", {})
        with pytest.raises(NotConnectedError):
            await store.update("tx", {"a": 1}, {"a": 3})
        with pytest.raises(NotConnectedError):
            await store.delete("tx", {"a": 1})
        with pytest.raises(NotConnectedError):
            await store.stats("tx")
        with pytest.raises(NotConnectedError):
            await store.clear("tx")

        assert substrate.get(store.key_for("tx")) == before

    asyncio.run(_run())


def test_connect_is_idempotent_and_concurrent_safe(substrate):
    async def _run():
        store = DocumentStore(substrate, connect_delay=0.01)
        results = await asyncio.gather(store.connect(), store.connect(), store.connect())
        assert all(r is store for r in results)
        assert store.is_connected
        assert await store.connect() is store
        await store.disconnect()
        await store.disconnect()
        assert not store.is_connected

    asyncio.run(_run())


def test_corrupt_payload_raises_serialization_error(store, substrate):
    async def _run():
        await store.connect()
        substrate.set(store.key_for("tx"), "{not json")
        with pytest.raises(SerializationError):
            await store.find("tx")
        with pytest.raises(SerializationError):
            await store.save("tx", {"a": 1})
        # no repair attempted
        assert substrate.get(store.key_for("tx")) == "{not json"

        substrate.set(store.key_for("tx"), '{"a": 1}')
        with pytest.raises(SerializationError):
            await store.find("tx")

    asyncio.run(_run())


def test_unserializable_document_is_rejected_before_writing(store, substrate):
    async def _run():
        await store.connect()
        await store.save("tx", {"a": 1})
        before = substrate.get(store.key_for("tx"))
        with pytest.raises(SerializationError):
            await store.save("tx", {"when": object()})
        with pytest.raises(SerializationError):
            await store.save("tx", {"ratio": float("nan")})
        assert substrate.get(store.key_for("tx")) == before

    asyncio.run(_run())


def test_generate_id_is_unique_and_alphanumeric():
    ids = {generate_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(i.isalnum() and i == i.lower() for i in ids)


def test_clock_never_repeats():
    clock = StrictlyIncreasingClock()
    stamps = [clock.timestamp() for _ in range(200)]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)
    assert all(s.endswith("Z") for s in stamps)


def test_caller_ids_must_be_unique_strings(store, substrate):
    async def _run():
        await store.connect()
        await store.save("tx", {"_id": "x", "n": 1})
        before = substrate.get(store.key_for("tx"))

        with pytest.raises(DocumentValidationError):
            await store.save("tx", {"_id": "x", "n": 2})
        with pytest.raises(DocumentValidationError):
            await store.save("tx", {"_id": {"nested": 1}})
        with pytest.raises(DocumentValidationError):
            await store.save("tx", {"_id": 7})

        assert substrate.get(store.key_for("tx")) == before
        assert [d["n"] for d in await store.find("tx", {"_id": "x"})] == [1]

        # the same id is fine in another collection
        assert (await store.save("other", {"_id": "x"}))["_id"] == "x"

    asyncio.run(_run())


def test_disconnect_wins_over_a_pending_connect(substrate):
    async def _run():
        store = DocumentStore(substrate, connect_delay=0.05)
        pending = asyncio.create_task(store.connect())
        await asyncio.sleep(0)
        await store.disconnect()

        assert await pending is store
        assert not store.is_connected
        with pytest.raises(NotConnectedError):
            await store.find("tx")

        await store.connect()
        assert store.is_connected

    asyncio.run(_run())
