"""Every error response uses the same JSON envelope."""

from pathlib import Path

from fastapi.testclient import TestClient

from hrdesk.config import get_settings
from hrdesk.db import Base, dispose_engine
from hrdesk.db.database import get_engine
from hrdesk.main import create_app


def _setup_db(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "error_envelope.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    return engine


def test_unauthorized_uses_canonical_envelope(monkeypatch, tmp_path):
    _setup_db(tmp_path, monkeypatch)
    app = create_app()

    with TestClient(app) as client:
        res = client.get("/v1/tools", headers={"X-Request-ID": "req-401"})
        assert res.status_code == 401
        body = res.json()
        assert body["error"]["code"] == "E2000"
        assert body["error"]["message"] == body["detail"]
        assert body["error"]["request_id"] == "req-401"

    dispose_engine()


def test_validation_uses_canonical_envelope(monkeypatch, tmp_path):
    _setup_db(tmp_path, monkeypatch)
    app = create_app()

    with TestClient(app) as client:
        res = client.get("/readyz", params={"check_providers": "not-a-bool"})
        assert res.status_code == 422
        body = res.json()
        assert body["error"]["code"] == "E4220"
        assert body["error"]["message"] == "Validation error"
        assert "request_id" in body["error"]
        assert body["errors"]

    dispose_engine()
