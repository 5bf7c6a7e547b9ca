"""Tests for the health and readiness probes."""

from pathlib import Path

from fastapi.testclient import TestClient

from hrdesk import __version__
from hrdesk.config import get_settings
from hrdesk.db import Base, dispose_engine
from hrdesk.db.database import get_engine
from hrdesk import main as main_module
from hrdesk.main import create_app


def _setup_db(tmp_path: Path, monkeypatch) -> None:
    db_path = tmp_path / "health.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def test_health_reports_database_and_version(monkeypatch, tmp_path):
    _setup_db(tmp_path, monkeypatch)

    app = create_app()
    with TestClient(app) as client:
        for path in ("/health", "/healthz"):
            response = client.get(path)
            assert response.status_code == 200
            payload = response.json()
            assert payload["status"] == "ok"
            assert payload["database"] == "ok"
            assert payload["version"] == __version__
            assert payload["environment"] == "test"
            assert payload["pending_turns"] == 0

    dispose_engine()


def test_readiness_checks_mock_provider(monkeypatch, tmp_path):
    _setup_db(tmp_path, monkeypatch)

    app = create_app()
    with TestClient(app) as client:
        response = client.get("/readyz", params={"check_providers": "true"})
        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "ready"
        assert payload["checks"] == {"database": True, "providers_configured": True, "providers": True}
        assert payload["details"]["providers"] == {"mock": True}

    dispose_engine()


def test_responses_carry_request_id_and_security_headers(monkeypatch, tmp_path):
    _setup_db(tmp_path, monkeypatch)

    app = create_app()
    with TestClient(app) as client:
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    dispose_engine()


def test_main_runs_uvicorn_with_configured_bind(monkeypatch):
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    get_settings.cache_clear()
    calls = []
    monkeypatch.setattr(main_module.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    main_module.main()

    assert calls == [
        ("hrdesk.main:app", {"host": "0.0.0.0", "port": 9100, "log_level": "info", "reload": False})
    ]
    get_settings.cache_clear()
