from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from persistence import Database
from persistence.records import CategoryMetadata, CategoryRecord, EntryType

from .deps import get_database, to_payload

router = APIRouter(prefix="/api/categories", tags=["categories"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_categories(
    type: EntryType | None = None,
    db: Database = Depends(get_database),
) -> list[dict[str, Any]]:
    query: dict[str, Any] = {"isActive": True}
    if type is not None:
        query["type"] = type
    records = await db.categories.find_records(query)
    records.sort(key=lambda r: r.sortOrder)
    return [to_payload(r) for r in records]


@router.post("", status_code=201)
async def create_category(body: CategoryRecord, db: Database = Depends(get_database)) -> dict[str, Any]:
    existing = await db.categories.find_one({"name": body.name, "type": body.type, "isActive": True})
    if existing is not None:
        raise HTTPException(status_code=409, detail="category already exists")
    fresh = body.model_copy(
        update={
            "id": None,
            "createdAt": None,
            "updatedAt": None,
            "isDefault": False,
            "metadata": CategoryMetadata(createdBy="user"),
        }
    )
    record = await db.categories.create_record(fresh)
    logger.info("CATEGORY CREATED: _id=%s name=%s type=%s", record.id, record.name, record.type)
    return to_payload(record)
