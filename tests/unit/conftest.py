from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from tableside.config import get_settings
from tableside.infrastructure.db import session as db_session
from tableside.infrastructure.db.models.order import Base


@pytest.fixture()
def api_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'tableside.db'}")
    monkeypatch.setenv("DASHBOARD_POLL_SECONDS", "30")
    monkeypatch.delenv("REDIS_URL", raising=False)
    get_settings.cache_clear()
    db_session._build_engine.cache_clear()
    Base.metadata.create_all(db_session.get_engine())

    from tableside.api.main import create_app

    with TestClient(create_app()) as client:
        yield client

    db_session.get_engine().dispose()
    get_settings.cache_clear()
    db_session._build_engine.cache_clear()
