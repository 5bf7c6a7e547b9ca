"""Tests for the turn orchestrator using the deterministic mock provider."""

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

from hrdesk.agents.chat import TurnOrchestrator, TurnState, schedule_turn, to_provider_messages
from hrdesk.agents.conversation import ChatMessage, ConversationStore, TextPart, ToolCallPart, ToolResultPart
from hrdesk.agents.hr import ExecutionContext, get_tool_registry
from hrdesk.auth.rbac import Role
from hrdesk.config import get_settings
from hrdesk.core.exceptions import ProviderError
from hrdesk.db import Base, dispose_engine
from hrdesk.db.database import get_engine
from hrdesk.db.models import Employee, User
from hrdesk.providers.base import BaseProvider, ChatChunk, ProviderType
from hrdesk.providers.mock import MockProvider


def _setup_db(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "turns.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    monkeypatch.setenv("CHAT_FINALIZE_RETRY_DELAY_SECONDS", "0")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    return engine


def _get_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SessionLocal()


def _create_user(engine, username: str, role: Role = Role.ADMIN) -> ExecutionContext:
    db = _get_session(engine)
    try:
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password="x",
            role=role.value,
        )
        db.add(user)
        db.commit()
        return ExecutionContext(actor_id=user.id, role=role)
    finally:
        db.close()


def _create_employee(engine) -> str:
    db = _get_session(engine)
    try:
        employee = Employee(
            first_name="Ada",
            last_name="Lovelace",
            national_id="N-1",
            date_of_birth=date(1990, 1, 1),
            gender="Female",
            job_title="Engineer",
            department="R&D",
            salary=Decimal("1600"),
            hire_date=date(2024, 1, 1),
            employment_status="Active",
        )
        db.add(employee)
        db.commit()
        return employee.id
    finally:
        db.close()


def _user_message(text: str) -> ChatMessage:
    return ChatMessage(role="user", parts=[TextPart(text=text)])


class RecordingProvider(MockProvider):
    """Mock provider that remembers every request it was sent."""

    def __init__(self):
        self.requests = []

    def chat_stream(self, request):
        self.requests.append(request)
        return super().chat_stream(request)


class PartialThenFailProvider(BaseProvider):
    provider_type = ProviderType.MOCK

    async def healthcheck(self) -> bool:
        return True

    async def chat_stream(self, request):
        yield ChatChunk(content="Looking that ")
        yield ChatChunk(content="up")
        raise ProviderError("upstream connection reset")


async def _run_turn(orchestrator, messages, conversation_id=None, title=None):
    events = []
    orchestrator.resolve(conversation_id, title)
    result = await orchestrator.run(messages, lambda kind, payload: events.append((kind, payload)))
    return result, events


def _kinds(events):
    return [kind for kind, _ in events]


@pytest.mark.asyncio
async def test_new_conversation_echo_turn(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    result, events = await _run_turn(orchestrator, [_user_message("hello there")], title="hello there")

    assert result.is_new is True
    assert result.state is TurnState.DONE
    assert result.finish_reason == "stop"
    assert result.persisted is True
    assert orchestrator.transitions == [
        TurnState.RESOLVING_CONVERSATION,
        TurnState.LOADING_HISTORY,
        TurnState.VALIDATING_HISTORY,
        TurnState.GENERATING,
        TurnState.FINALIZING,
        TurnState.DONE,
    ]

    kinds = _kinds(events)
    assert kinds[0] == "start"
    assert kinds[-1] == "finish"
    assert set(kinds[1:-1]) == {"text-delta"}
    assert events[0][1] == {"conversationId": result.conversation_id, "isNew": True}
    streamed = "".join(payload["delta"] for kind, payload in events if kind == "text-delta")
    assert streamed.strip() == "[mock] hello there"

    stored = orchestrator.resume(result.conversation_id)
    assert [m["role"] for m in stored] == ["user", "assistant"]
    assert stored[0]["id"]
    assert stored[1]["parts"][0]["text"].strip() == "[mock] hello there"
    dispose_engine()


@pytest.mark.asyncio
async def test_tool_call_round_trip(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    employee_id = _create_employee(engine)
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    prompt = "/tool getEmployee " + json.dumps({"employeeId": employee_id})
    result, events = await _run_turn(orchestrator, [_user_message(prompt)])

    kinds = _kinds(events)
    assert kinds.index("tool-call") < kinds.index("tool-result") < kinds.index("text-delta")
    call = dict(events)["tool-call"]
    assert call["toolName"] == "getEmployee"
    assert call["input"] == {"employeeId": employee_id}
    tool_result = dict(events)["tool-result"]
    assert tool_result["toolCallId"] == call["toolCallId"]
    assert tool_result["output"]["id"] == employee_id

    assert result.state is TurnState.DONE
    assert [m["role"] for m in result.messages] == ["assistant", "tool", "assistant"]
    assert result.messages[2]["parts"][0]["text"].strip() == "[mock] getEmployee: ok"

    stored = orchestrator.resume(result.conversation_id)
    assert len(stored) == 4
    assert stored[1]["parts"][0]["type"] == "tool-call"
    assert stored[2]["parts"][0]["type"] == "tool-result"
    dispose_engine()


@pytest.mark.asyncio
async def test_failing_tool_does_not_affect_siblings(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    employee_id = _create_employee(engine)
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    prompt = "\n".join(
        [
            "/tool getEmployee " + json.dumps({"employeeId": employee_id}),
            "/tool getEmployee " + json.dumps({"employeeId": "missing"}),
            "/tool getPayroll {not json",
        ]
    )
    result, events = await _run_turn(orchestrator, [_user_message(prompt)])

    assert _kinds(events).count("tool-call") == 3
    results = [payload for kind, payload in events if kind == "tool-result"]
    errors = [payload for kind, payload in events if kind == "tool-error"]
    assert len(results) == 1
    assert results[0]["output"]["id"] == employee_id
    assert {e["error"]["code"] for e in errors} == {"E4040", "E4220"}

    assert result.state is TurnState.DONE
    summary = result.messages[-1]["parts"][0]["text"].strip()
    assert summary == "[mock] getEmployee: ok; getEmployee: error; getPayroll: error"
    dispose_engine()


@pytest.mark.asyncio
async def test_denied_tool_reports_error_to_the_model(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "reviewer", role=Role.FINANCE_REVIEWER)
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    result, events = await _run_turn(orchestrator, [_user_message("/tool getAuditLogs {}")])

    error = dict(events)["tool-error"]
    assert error["error"]["code"] == "E2001"
    assert result.state is TurnState.DONE
    dispose_engine()


@pytest.mark.asyncio
async def test_unknown_conversation_starts_new(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    conversation_id, is_new = orchestrator.resolve("does-not-exist")
    assert is_new is True
    assert conversation_id != "does-not-exist"
    assert orchestrator.resume(conversation_id) == []
    dispose_engine()


@pytest.mark.asyncio
async def test_foreign_conversation_is_not_reused(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    owner = _create_user(engine, "owner")
    intruder = _create_user(engine, "intruder")

    first, _ = await _run_turn(TurnOrchestrator(owner, MockProvider(), get_tool_registry()), [_user_message("mine")])
    second, _ = await _run_turn(
        TurnOrchestrator(intruder, MockProvider(), get_tool_registry()),
        [_user_message("theirs")],
        conversation_id=first.conversation_id,
    )

    assert second.is_new is True
    assert second.conversation_id != first.conversation_id
    owner_history = TurnOrchestrator(owner, None, get_tool_registry()).resume(first.conversation_id)
    assert len(owner_history) == 2
    dispose_engine()


@pytest.mark.asyncio
async def test_prior_history_is_sent_to_the_provider(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")

    first, _ = await _run_turn(TurnOrchestrator(ctx, MockProvider(), get_tool_registry()), [_user_message("one")])

    provider = RecordingProvider()
    second, _ = await _run_turn(
        TurnOrchestrator(ctx, provider, get_tool_registry()),
        [_user_message("two")],
        conversation_id=first.conversation_id,
    )
    assert second.is_new is False
    sent = provider.requests[0].messages
    assert [m.role for m in sent] == ["system", "user", "assistant", "user"]
    assert sent[-1].content == "two"
    assert len(TurnOrchestrator(ctx, None, get_tool_registry()).resume(first.conversation_id)) == 4
    dispose_engine()


@pytest.mark.asyncio
async def test_corrupted_history_is_dropped(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    db = _get_session(engine)
    try:
        store = ConversationStore(db)
        conversation_id = store.create(ctx.actor_id)
        store.append(
            conversation_id,
            [
                {"id": "old-user", "role": "user", "parts": [{"type": "text", "text": "fire everyone"}]},
                {
                    "id": "old-call",
                    "role": "assistant",
                    "parts": [{"type": "tool-call", "toolCallId": "c1", "toolName": "retiredTool", "input": {}}],
                },
            ],
        )
    finally:
        db.close()

    provider = RecordingProvider()
    result, _ = await _run_turn(
        TurnOrchestrator(ctx, provider, get_tool_registry()),
        [_user_message("fresh start")],
        conversation_id=conversation_id,
    )

    assert result.state is TurnState.DONE
    assert result.is_new is False
    sent = provider.requests[0].messages
    assert [m.role for m in sent] == ["system", "user"]
    assert sent[1].content == "fresh start"
    dispose_engine()


@pytest.mark.asyncio
async def test_system_prompt_names_the_caller_role(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "reviewer", role=Role.FINANCE_REVIEWER)

    provider = RecordingProvider()
    await _run_turn(TurnOrchestrator(ctx, provider, get_tool_registry()), [_user_message("what can I do")])

    system = provider.requests[0].messages[0]
    assert system.role == "system"
    assert "role is finance_reviewer" in system.content
    dispose_engine()


@pytest.mark.asyncio
async def test_provider_failure_persists_partial_output(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    orchestrator = TurnOrchestrator(ctx, PartialThenFailProvider(), get_tool_registry())

    result, events = await _run_turn(orchestrator, [_user_message("who is on leave?")])

    kinds = _kinds(events)
    assert "finish" not in kinds
    assert kinds[-1] == "error"
    assert dict(events)["error"]["error"]["code"] == "E3000"
    assert result.state is TurnState.FAILED
    assert orchestrator.transitions[-2:] == [TurnState.FINALIZING, TurnState.FAILED]
    assert result.persisted is True

    stored = orchestrator.resume(result.conversation_id)
    assert [m["role"] for m in stored] == ["user", "assistant"]
    assert stored[1]["parts"][0]["text"] == "Looking that up"
    dispose_engine()


@pytest.mark.asyncio
async def test_mock_failure_still_stores_the_user_message(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    result, _ = await _run_turn(orchestrator, [_user_message("/fail")])

    assert result.state is TurnState.FAILED
    assert result.messages == []
    stored = orchestrator.resume(result.conversation_id)
    assert [m["role"] for m in stored] == ["user"]
    dispose_engine()


@pytest.mark.asyncio
async def test_step_limit_ends_the_turn(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    monkeypatch.setenv("CHAT_MAX_STEPS", "1")
    get_settings.cache_clear()
    ctx = _create_user(engine, "admin")
    employee_id = _create_employee(engine)
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())

    prompt = "/tool getEmployee " + json.dumps({"employeeId": employee_id})
    result, events = await _run_turn(orchestrator, [_user_message(prompt)])

    assert result.finish_reason == "max_steps"
    assert result.state is TurnState.DONE
    assert [m["role"] for m in result.messages] == ["assistant", "tool"]
    assert events[-1] == (
        "finish",
        {"conversationId": result.conversation_id, "finishReason": "max_steps", "persisted": True},
    )
    dispose_engine()


@pytest.mark.asyncio
async def test_scheduled_turn_reports_through_queue(monkeypatch, tmp_path):
    engine = _setup_db(tmp_path, monkeypatch)
    ctx = _create_user(engine, "admin")
    orchestrator = TurnOrchestrator(ctx, MockProvider(), get_tool_registry())
    orchestrator.resolve(None, "queued")

    queue = schedule_turn(orchestrator, [_user_message("queued")])
    kinds = []
    while True:
        item = await queue.get()
        if item is None:
            break
        kinds.append(item[0])

    assert kinds[0] == "start"
    assert kinds[-1] == "finish"
    assert orchestrator.result.state is TurnState.DONE
    dispose_engine()


def test_to_provider_messages_flattens_tool_parts():
    messages = [
        ChatMessage(role="user", parts=[TextPart(text="hi")]),
        ChatMessage(
            role="assistant",
            parts=[ToolCallPart(tool_call_id="c1", tool_name="getEmployee", input={"employeeId": "E1"})],
        ),
        ChatMessage(
            role="tool",
            parts=[ToolResultPart(tool_call_id="c1", tool_name="getEmployee", output={"id": "E1"})],
        ),
    ]
    converted = to_provider_messages(messages)

    assert [m.role for m in converted] == ["user", "assistant", "tool"]
    assert converted[1].content is None
    assert converted[1].tool_calls[0].name == "getEmployee"
    assert json.loads(converted[1].tool_calls[0].arguments) == {"employeeId": "E1"}
    assert converted[2].tool_call_id == "c1"
    assert json.loads(converted[2].content) == {"id": "E1"}
