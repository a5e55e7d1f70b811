from __future__ import annotations


class DocumentStoreError(Exception):
    """Base class for every error raised by the document store."""


class NotConnectedError(DocumentStoreError):
    def __init__(self, message: str = "Document store is not connected") -> None:
        super().__init__(message)


class SerializationError(DocumentStoreError):
    """
    A stored collection payload could not be decoded, or a document could not be encoded.
    """


class DocumentValidationError(DocumentStoreError, ValueError):
    """Malformed collection name, query or patch supplied by the caller."""
