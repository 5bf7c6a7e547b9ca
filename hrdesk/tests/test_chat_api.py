"""Tests for the v1 chat endpoints."""

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from starlette.requests import Request

from hrdesk.agents.chat import wait_for_turns
from hrdesk.agents.conversation import ConversationStore
from hrdesk.agents.hr import ExecutionContext
from hrdesk.api.v1.chat import ChatTurnRequest, post_chat_turn
from hrdesk.auth.rbac import Role
from hrdesk.auth.session import create_session
from hrdesk.config import get_settings
from hrdesk.db import Base, dispose_engine
from hrdesk.db.database import get_engine
from hrdesk.db.models import Conversation, User
from hrdesk.main import create_app
from hrdesk.providers import ProviderRegistry


def _setup_db(tmp_path: Path, monkeypatch):
    """Set up a fresh database for testing."""
    db_path = tmp_path / "chat_api.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    monkeypatch.setenv("PROVIDER_MODE", "mock")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    return engine


def _get_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SessionLocal()


def _login(engine, username: str = "testuser", role: str = "admin") -> dict:
    """Create a user with a session and return its auth headers."""
    db = _get_session(engine)
    try:
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password="hashed_password",
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        token = create_session(db, user)
    finally:
        db.close()
    return {"Authorization": f"Bearer {token}"}


def _parse_sse(body: str) -> list:
    """Return (event, payload) pairs from an SSE body, skipping pings."""
    events = []
    for block in body.strip().split("\n\n"):
        fields = {}
        for line in block.splitlines():
            if line.startswith(":"):
                continue
            key, _, value = line.partition(": ")
            fields[key] = value
        if "event" in fields:
            events.append((fields["event"], json.loads(fields["data"])))
    return events


def _turn(text: str, conversation_id: str = None, stream: bool = True) -> dict:
    body = {"messages": [{"role": "user", "parts": [{"type": "text", "text": text}]}], "stream": stream}
    if conversation_id:
        body["conversationId"] = conversation_id
    return body


def test_new_turn_streams_and_persists(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn("hello"), headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        conversation_id = response.headers["X-Conversation-Id"]

        events = _parse_sse(response.text)
        assert events[0] == ("start", {"conversationId": conversation_id, "isNew": True})
        assert events[-1][0] == "finish"
        assert events[-1][1]["persisted"] is True
        streamed = "".join(p["delta"] for kind, p in events if kind == "text-delta")
        assert streamed.strip() == "[mock] hello"

        history = client.get("/v1/chat", params={"conversation_id": conversation_id}, headers=headers)
        assert history.status_code == 200
        messages = history.json()["messages"]
        assert len(messages) >= 2
        assert messages[0]["role"] == "user"
        assert messages[-1]["role"] == "assistant"

    db = _get_session(engine)
    try:
        conversation = db.get(Conversation, conversation_id)
        assert conversation.title == "hello"
    finally:
        db.close()
    dispose_engine()


def test_existing_conversation_is_continued(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        first = client.post("/v1/chat", json=_turn("one"), headers=headers)
        conversation_id = first.headers["X-Conversation-Id"]

        second = client.post("/v1/chat", json=_turn("two", conversation_id), headers=headers)
        assert second.status_code == 200
        assert "X-Conversation-Id" not in second.headers
        assert _parse_sse(second.text)[0][1]["isNew"] is False

        history = client.get("/v1/chat", params={"conversation_id": conversation_id}, headers=headers)
        assert len(history.json()["messages"]) == 4
    dispose_engine()


def test_unknown_conversation_id_starts_a_new_one(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn("hi", "no-such-conversation"), headers=headers)
        assert response.status_code == 200
        new_id = response.headers["X-Conversation-Id"]
        assert new_id != "no-such-conversation"
    dispose_engine()


def test_non_streaming_turn_returns_json(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn("plain", stream=False), headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Done"
        assert data["isNew"] is True
        assert data["persisted"] is True
        assert data["conversationId"] == response.headers["X-Conversation-Id"]
        assert data["messages"][-1]["parts"][0]["text"].strip() == "[mock] plain"
    dispose_engine()


def test_provider_failure_reports_error_event(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn("/fail"), headers=headers)
        events = _parse_sse(response.text)
        assert [kind for kind, _ in events] == ["start", "error"]
        assert events[1][1]["error"]["code"] == "E3000"

        history = client.get(
            "/v1/chat", params={"conversation_id": response.headers["X-Conversation-Id"]}, headers=headers
        )
        assert [m["role"] for m in history.json()["messages"]] == ["user"]
    dispose_engine()


def test_tool_events_are_streamed(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn('/tool getEmployee {"name": "Nobody"}'), headers=headers)
        events = _parse_sse(response.text)
        kinds = [kind for kind, _ in events]
        assert kinds.index("tool-call") < kinds.index("tool-result") < kinds.index("finish")
        result = dict(events)["tool-result"]
        assert result["output"] == {"items": [], "count": 0}
    dispose_engine()


def test_chat_requires_authentication(monkeypatch, tmp_path):
    _setup_db(tmp_path, monkeypatch)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn("hello"))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E2000"

        response = client.post("/v1/chat", json=_turn("hello"), headers={"Authorization": "Bearer bogus"})
        assert response.status_code == 401
    dispose_engine()


def test_session_cookie_is_accepted(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    token = _login(engine)["Authorization"].split(" ", 1)[1]
    app = create_app()

    with TestClient(app) as client:
        client.cookies.set(get_settings().session_cookie_name, token)
        response = client.post("/v1/chat", json=_turn("cookie", stream=False))
        assert response.status_code == 200
    dispose_engine()


def test_empty_message_list_rejected(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json={"messages": []}, headers=headers)
        assert response.status_code == 422
    dispose_engine()


def test_get_conversation_requires_id(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    headers = _login(engine)
    app = create_app()

    with TestClient(app) as client:
        response = client.get("/v1/chat", headers=headers)
        assert response.status_code == 400
    dispose_engine()


def test_get_unknown_or_foreign_conversation_is_404(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    owner = _login(engine, "owner")
    other = _login(engine, "other", role="member")
    app = create_app()

    with TestClient(app) as client:
        response = client.post("/v1/chat", json=_turn("secret", stream=False), headers=owner)
        conversation_id = response.json()["conversationId"]

        assert client.get("/v1/chat", params={"conversation_id": "missing"}, headers=owner).status_code == 404
        assert client.get("/v1/chat", params={"conversation_id": conversation_id}, headers=other).status_code == 404
    dispose_engine()


@pytest.mark.asyncio
async def test_dropped_stream_still_finalizes_turn(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    db = _get_session(engine)
    try:
        user = User(email="leaver@example.com", username="leaver", hashed_password="x", role="admin")
        db.add(user)
        db.commit()
        ctx = ExecutionContext(actor_id=user.id, role=Role.ADMIN)
    finally:
        db.close()

    async def receive():
        return {"type": "http.disconnect"}

    app = SimpleNamespace(state=SimpleNamespace(provider_registry=ProviderRegistry(get_settings())))
    request = Request({"type": "http", "method": "POST", "path": "/v1/chat", "headers": [], "app": app}, receive)
    body = ChatTurnRequest.model_validate(_turn("are you still there"))

    response = await post_chat_turn(body, request, ctx)
    conversation_id = response.headers["X-Conversation-Id"]

    first = await response.body_iterator.__anext__()
    assert "event: start" in first
    await response.body_iterator.aclose()

    await wait_for_turns(timeout=10)

    db = _get_session(engine)
    try:
        stored = ConversationStore(db).load(conversation_id, owner_id=ctx.actor_id)
    finally:
        db.close()
    assert [m["role"] for m in stored] == ["user", "assistant"]
    assert stored[-1]["parts"][0]["text"].strip() == "[mock] are you still there"
    dispose_engine()
