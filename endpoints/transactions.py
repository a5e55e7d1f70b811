from __future__ import annotations

import logging
from datetime import date as Date
from typing import Any, TypedDict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from persistence import Database
from persistence.records import EntryType, PaymentMethod, TransactionRecord, TransactionStatus

from .deps import get_database, to_payload

router = APIRouter(prefix="/api/transactions", tags=["transactions"])
logger = logging.getLogger(__name__)


class TransactionPatch(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    type: EntryType | None = None
    amount: float | None = Field(default=None, gt=0)
    categoryId: str | None = None
    description: str | None = None
    merchant: str | None = None
    transactionDate: Date | None = None
    paymentMethod: PaymentMethod | None = None
    tags: list[str] | None = None
    isRecurring: bool | None = None
    notes: str | None = None
    status: TransactionStatus | None = None


class TransactionSummary(TypedDict):
    income: float
    expense: float
    balance: float
    count: int


def summarize(records: list[TransactionRecord]) -> TransactionSummary:
    income = sum(r.amount for r in records if r.type == "income")
    expense = sum(r.amount for r in records if r.type == "expense")
    return {
        "income": round(income, 2),
        "expense": round(expense, 2),
        "balance": round(sum(r.signed_amount for r in records), 2),
        "count": len(records),
    }


@router.get("")
async def list_transactions(
    type: EntryType | None = None,
    categoryId: str | None = None,
    userId: str | None = None,
    status: TransactionStatus = "active",
    db: Database = Depends(get_database),
) -> list[dict[str, Any]]:
    query: dict[str, Any] = {"status": status}
    if type is not None:
        query["type"] = type
    if categoryId is not None:
        query["categoryId"] = categoryId
    if userId is not None:
        query["userId"] = userId
    return [to_payload(r) for r in await db.transactions.find_records(query)]


@router.get("/stats/summary")
async def transaction_summary(
    userId: str | None = None,
    db: Database = Depends(get_database),
) -> dict[str, Any]:
    query: dict[str, Any] = {"status": "active"}
    if userId is not None:
        query["userId"] = userId
    return summarize(await db.transactions.find_records(query))


@router.get("/{transaction_id}")
async def get_transaction(transaction_id: str, db: Database = Depends(get_database)) -> dict[str, Any]:
    record = await db.transactions.find_one_record({"_id": transaction_id})
    if record is None:
        raise HTTPException(status_code=404, detail="transaction not found")
    return to_payload(record)


@router.post("", status_code=201)
async def create_transaction(body: TransactionRecord, db: Database = Depends(get_database)) -> dict[str, Any]:
    # Identity, timestamps and lifecycle are owned by the store, not the client.
    fresh = body.model_copy(update={"id": None, "createdAt": None, "updatedAt": None, "status": "active"})
    record = await db.transactions.create_record(fresh)
    logger.info("TRANSACTION CREATED: _id=%s type=%s amount=%s", record.id, record.type, record.amount)
    return to_payload(record)


@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    body: TransactionPatch,
    db: Database = Depends(get_database),
) -> dict[str, Any]:
    patch = body.model_dump(mode="json", exclude_unset=True)
    if not patch:
        raise HTTPException(status_code=400, detail="no fields to update")
    updated = await db.transactions.update_records({"_id": transaction_id}, patch)
    if not updated:
        raise HTTPException(status_code=404, detail="transaction not found")
    return to_payload(updated[0])


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    hard: bool = False,
    db: Database = Depends(get_database),
) -> dict[str, Any]:
    """
    Soft-deletes by default (status becomes "deleted"); `hard=true` removes the document.
    """
    if hard:
        result = await db.transactions.delete_one({"_id": transaction_id})
        if not result["deletedCount"]:
            raise HTTPException(status_code=404, detail="transaction not found")
        return {"id": transaction_id, "deleted": True, "hard": True}

    updated = await db.transactions.update_one({"_id": transaction_id}, {"status": "deleted"})
    if not updated["modifiedCount"]:
        raise HTTPException(status_code=404, detail="transaction not found")
    return {"id": transaction_id, "deleted": True, "hard": False}
