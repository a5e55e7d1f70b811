from __future__ import annotations

from pathlib import Path
from typing import Iterator
from urllib.parse import quote, unquote

from .interfaces import KeyValueSubstrate
from .locks import GLOBAL_PATH_LOCKS

_SUFFIX = ".json"


def atomic_write_text(path: Path, payload: str) -> None:
    """
    Atomically write text to disk by writing to a temp file then replacing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        f.write(payload)
    tmp_path.replace(path)


class DiskKeyValueStore(KeyValueSubstrate):
    """
    Stores each key as its own file under a directory.

    - File names are the percent-encoded key plus `.json`, so any string is a valid key.
    - Writes atomically; values are returned verbatim (no parsing happens here).
    """

    def __init__(self, directory: Path):
        self._dir = directory

    @property
    def directory(self) -> Path:
        return self._dir

    def _path_for(self, key: str) -> Path:
        return self._dir / (quote(key, safe="") + _SUFFIX)

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        with GLOBAL_PATH_LOCKS.holding(path):
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        with GLOBAL_PATH_LOCKS.holding(path):
            atomic_write_text(path, value)

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        with GLOBAL_PATH_LOCKS.holding(path):
            path.unlink(missing_ok=True)

    def keys(self) -> Iterator[str]:
        if not self._dir.exists():
            return
        for path in sorted(self._dir.glob("*" + _SUFFIX)):
            yield unquote(path.name[: -len(_SUFFIX)])
