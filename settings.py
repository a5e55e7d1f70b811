from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

StorageBackend = Literal["memory", "disk"]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # Document store
    db_namespace: str
    db_backend: StorageBackend
    db_data_dir: Path | None
    connect_delay_ms: int

    # Startup
    seed_default_categories: bool

    # Logging
    log_level: str
    debug_log_requests: bool

    @property
    def connect_delay(self) -> float:
        return self.connect_delay_ms / 1000.0


def get_settings() -> Settings:
    db_namespace = os.getenv("DB_NAMESPACE", "accounting_app_local").strip() or "accounting_app_local"

    backend = os.getenv("DB_BACKEND", "memory").strip().lower()
    if backend not in ("memory", "disk"):
        raise ValueError(f"DB_BACKEND must be 'memory' or 'disk', got {backend!r}")

    # None means "<project>/data/store", resolved lazily so tests can redirect it.
    raw_dir = os.getenv("DB_DATA_DIR", "").strip()
    db_data_dir = Path(raw_dir) if raw_dir else None

    connect_delay_ms = max(0, _env_int("DB_CONNECT_DELAY_MS", 100))

    seed_default_categories = _env_bool("SEED_DEFAULT_CATEGORIES", True)

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    debug_log_requests = _env_bool("DEBUG_LOG_REQUESTS", False)

    return Settings(
        db_namespace=db_namespace,
        db_backend=backend,  # type: ignore[arg-type]
        db_data_dir=db_data_dir,
        connect_delay_ms=connect_delay_ms,
        seed_default_categories=seed_default_categories,
        log_level=log_level,
        debug_log_requests=debug_log_requests,
    )
