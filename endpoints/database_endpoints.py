from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from persistence import Database

from .deps import get_database

router = APIRouter(prefix="/api/db", tags=["database"])
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(db: Database = Depends(get_database)) -> dict[str, Any]:
    return dict(await db.health_check())


@router.get("/status")
async def status(db: Database = Depends(get_database)) -> dict[str, Any]:
    return dict(await db.connection_status())


@router.get("/stats/{collection}")
async def collection_stats(collection: str, db: Database = Depends(get_database)) -> dict[str, Any]:
    return dict(await db.collection_stats(collection))


@router.delete("/collections/{collection}")
async def clear_collection(collection: str, db: Database = Depends(get_database)) -> dict[str, Any]:
    logger.warning("ADMIN: clearing collection %s", collection)
    return dict(await db.store.clear(collection))
