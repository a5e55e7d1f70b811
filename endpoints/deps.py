from __future__ import annotations

from typing import Any

from fastapi import Request
from pydantic import BaseModel

from persistence import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def to_payload(record: BaseModel) -> dict[str, Any]:
    # Stored documents keep `_id`; responses use the same shape.
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)
