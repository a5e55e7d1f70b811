from __future__ import annotations

import json
from typing import Any, Sequence

from .errors import SerializationError
from .query import Document


def dumps_collection(documents: Sequence[Document]) -> str:
    """Serialize a collection the same compact way on every write."""
    try:
        return json.dumps(list(documents), separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"document is not JSON-serializable: {e}") from e


def loads_collection(raw: str | None, *, key: str = "") -> list[Document]:
    """
    Decode a stored collection payload.

    A missing entry is an empty collection. Anything that is not a JSON array of
    objects is substrate corruption and raises SerializationError; nothing is repaired.
    """
    if raw is None:
        return []
    try:
        decoded: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SerializationError(f"stored payload for {key!r} is not valid JSON: {e}") from e
    if not isinstance(decoded, list) or not all(isinstance(d, dict) for d in decoded):
        raise SerializationError(f"stored payload for {key!r} is not a JSON array of documents")
    return decoded


def encoded_size(payload: str) -> int:
    return len(payload.encode("utf-8"))
