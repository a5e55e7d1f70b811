from __future__ import annotations

from typing import Any, Mapping, Union

from .errors import DocumentValidationError

JsonScalar = Union[None, bool, int, float, str]
JsonValue = Union[JsonScalar, list["JsonValue"], dict[str, "JsonValue"]]
Document = dict[str, JsonValue]

# Ordered (field, expected value) pairs; a document matches when every pair matches.
QueryPairs = tuple[tuple[str, JsonScalar], ...]

ID_FIELD = "_id"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"

_IMMUTABLE_FIELDS = (ID_FIELD, CREATED_AT_FIELD)


def _kind(value: Any) -> str | None:
    # bool is a subclass of int in Python; JSON keeps them apart.
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


def strict_equals(actual: Any, expected: JsonScalar) -> bool:
    """
    Equality without coercion: `1` never equals `True` or `"1"`, but `12 == 12.0`.

    Containers never compare equal; there is no deep structural comparison.
    """
    kind = _kind(actual)
    if kind is None or kind != _kind(expected):
        return False
    return actual == expected


def validate_collection_name(collection: Any) -> str:
    if not isinstance(collection, str) or not collection.strip():
        raise DocumentValidationError("collection name must be a non-empty string")
    return collection


def compile_query(query: Mapping[str, Any] | None) -> QueryPairs:
    if query is None:
        return ()
    if not isinstance(query, Mapping):
        raise DocumentValidationError(f"query must be a mapping, got {type(query).__name__}")
    pairs: list[tuple[str, JsonScalar]] = []
    for field, expected in query.items():
        if not isinstance(field, str):
            raise DocumentValidationError(f"query field names must be strings, got {field!r}")
        if _kind(expected) is None:
            raise DocumentValidationError(
                f"query value for {field!r} must be a scalar, got {type(expected).__name__}"
            )
        pairs.append((field, expected))
    return tuple(pairs)


def matches(document: Mapping[str, Any], pairs: QueryPairs) -> bool:
    for field, expected in pairs:
        if field not in document:
            return False
        if not strict_equals(document[field], expected):
            return False
    return True


def validate_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(patch, Mapping):
        raise DocumentValidationError(f"patch must be a mapping, got {type(patch).__name__}")
    for field in patch:
        if not isinstance(field, str):
            raise DocumentValidationError(f"patch field names must be strings, got {field!r}")
        if field in _IMMUTABLE_FIELDS:
            raise DocumentValidationError(f"{field!r} cannot be changed after creation")
    return dict(patch)
