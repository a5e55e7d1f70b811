from __future__ import annotations

from typing import Iterable, Protocol


class KeyValueSubstrate(Protocol):
    """
    Minimal durable storage the document store persists into: string keys, string values.

    Implementations must be synchronous and read-your-writes: a `get` issued after a
    `set` returns the value just written.
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value atomically."""
        ...

    def remove(self, key: str) -> None:
        """Delete `key`; a missing key is not an error."""
        ...

    def keys(self) -> Iterable[str]:
        ...
