from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Redirect persistence paths to a temp project directory so tests never touch real ./data.
    """
    import persistence.database as database
    import persistence.paths as paths

    def _project_root() -> Path:
        return tmp_path

    def _data_dir() -> Path:
        p = tmp_path / "data"
        p.mkdir(parents=True, exist_ok=True)
        return p

    monkeypatch.setattr(paths, "project_root", _project_root)
    monkeypatch.setattr(paths, "data_dir", _data_dir)
    # database.py binds data_dir at import time.
    monkeypatch.setattr(database, "data_dir", _data_dir)
    return tmp_path


@pytest.fixture
def substrate():
    from persistence import InMemoryKeyValueStore

    return InMemoryKeyValueStore()


@pytest.fixture
def store(substrate):
    """A disconnected store with no simulated connect latency."""
    from persistence import DocumentStore

    return DocumentStore(substrate, connect_delay=0)


@pytest.fixture
def test_settings():
    from settings import Settings

    return Settings(
        db_namespace="accounting_app_test",
        db_backend="memory",
        db_data_dir=None,
        connect_delay_ms=0,
        seed_default_categories=True,
        log_level="DEBUG",
        debug_log_requests=True,
    )


@pytest.fixture
def client(test_settings):
    from fastapi.testclient import TestClient

    import app as app_module

    with TestClient(app_module.create_app(settings=test_settings)) as c:
        yield c
