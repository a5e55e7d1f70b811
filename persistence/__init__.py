from __future__ import annotations

from .database import Database, create_database, create_substrate
from .disk_store import DiskKeyValueStore
from .engine import DocumentStore, generate_id
from .errors import DocumentStoreError, DocumentValidationError, NotConnectedError, SerializationError
from .interfaces import KeyValueSubstrate
from .memory_store import InMemoryKeyValueStore
from .models import Model, TypedModel

__all__ = [
    "Database",
    "create_database",
    "create_substrate",
    "DocumentStore",
    "generate_id",
    "KeyValueSubstrate",
    "InMemoryKeyValueStore",
    "DiskKeyValueStore",
    "Model",
    "TypedModel",
    "DocumentStoreError",
    "DocumentValidationError",
    "NotConnectedError",
    "SerializationError",
]
