"""Conversation store.

Durable, ordered message history per conversation. Messages are written only
when a turn is finalized; a message whose id is already stored is overwritten
in place, so replaying a finalize never duplicates history.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.conversation.messages import reconcile_messages
from hrdesk.config import get_settings
from hrdesk.core.exceptions import NotFoundError, PersistenceError
from hrdesk.core.locks import KeyedAsyncLock
from hrdesk.core.logging import get_logger
from hrdesk.core.time import utcnow
from hrdesk.db.database import get_session_local
from hrdesk.db.models import Conversation, ConversationMessage, generate_id

logger = get_logger(__name__)

_TITLE_LENGTH = 80


def _title_from(text: Optional[str]) -> str:
    text = " ".join((text or "").split())
    if not text:
        return "New Conversation"
    return text if len(text) <= _TITLE_LENGTH else text[: _TITLE_LENGTH - 3] + "..."


class ConversationStore:
    """Create, load and append conversation history."""

    def __init__(self, db: DBSession):
        """Initialize the store.

        Args:
            db: Database session
        """
        self.db = db

    def create(self, owner_id: str, title: Optional[str] = None) -> str:
        """Create an empty conversation and return its id."""
        conversation = Conversation(id=generate_id(), user_id=owner_id, title=_title_from(title))
        try:
            self.db.add(conversation)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError("Could not create conversation") from exc

        logger.info(
            "Created conversation",
            data={"conversation_id": conversation.id, "user_id": owner_id},
        )
        return conversation.id

    def get(self, conversation_id: str, owner_id: Optional[str] = None) -> Optional[Conversation]:
        """Return the conversation, or None when absent or owned by someone else."""
        if not conversation_id:
            return None
        conversation = self.db.get(Conversation, conversation_id)
        if conversation is None:
            return None
        if owner_id is not None and conversation.user_id != owner_id:
            return None
        return conversation

    def load(self, conversation_id: str, owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Full stored message sequence in position order.

        Raises:
            NotFoundError: If the conversation does not exist (or is not owned by ``owner_id``).
        """
        if self.get(conversation_id, owner_id) is None:
            raise NotFoundError("Conversation not found")

        rows = (
            self.db.query(ConversationMessage)
            .filter(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.position)
            .all()
        )
        return [{"id": row.message_id, "role": row.role, "parts": row.parts_json} for row in rows]

    def append(self, conversation_id: str, messages: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Reconcile ``messages`` and persist them in one transaction.

        Returns the reconciled messages that were written.

        Raises:
            NotFoundError: If the conversation does not exist.
            PersistenceError: If the transaction fails; nothing is written.
        """
        reconciled = reconcile_messages(messages)
        conversation = self.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if not reconciled:
            return []

        try:
            stored = {
                row.message_id: row
                for row in self.db.query(ConversationMessage).filter(
                    ConversationMessage.conversation_id == conversation_id
                )
            }
            tail = (
                self.db.query(func.max(ConversationMessage.position))
                .filter(ConversationMessage.conversation_id == conversation_id)
                .scalar()
            )
            next_position = 0 if tail is None else tail + 1

            for message in reconciled:
                row = stored.get(message["id"])
                if row is not None:
                    row.role = message["role"]
                    row.parts_json = message.get("parts") or []
                    continue
                self.db.add(
                    ConversationMessage(
                        conversation_id=conversation_id,
                        message_id=message["id"],
                        position=next_position,
                        role=message["role"],
                        parts_json=message.get("parts") or [],
                    )
                )
                next_position += 1

            conversation.updated_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                "Conversation append failed",
                data={"conversation_id": conversation_id, "error": str(exc)},
            )
            raise PersistenceError("Could not persist conversation messages") from exc

        return reconciled


_finalize_locks = KeyedAsyncLock()


def _append_with_new_session(
    conversation_id: str,
    messages: Sequence[Dict[str, Any]],
    session_factory: Callable[[], DBSession],
) -> List[Dict[str, Any]]:
    db = session_factory()
    try:
        return ConversationStore(db).append(conversation_id, messages)
    finally:
        db.close()


async def finalize_messages(
    conversation_id: str,
    messages: Sequence[Dict[str, Any]],
    session_factory: Optional[Callable[[], DBSession]] = None,
) -> bool:
    """Persist a finished turn's messages, retrying on persistence failure.

    Appends for the same conversation are serialized. Returns False when the
    messages could not be written; the failure is logged, not raised.
    """
    settings = get_settings()
    factory = session_factory or get_session_local()
    attempts = settings.chat_finalize_max_attempts

    async with _finalize_locks.hold(conversation_id):
        for attempt in range(1, attempts + 1):
            try:
                written = await asyncio.to_thread(
                    _append_with_new_session, conversation_id, messages, factory
                )
                logger.info(
                    "Finalized turn",
                    data={"conversation_id": conversation_id, "messages": len(written), "attempt": attempt},
                )
                return True
            except NotFoundError:
                logger.error("Finalize target conversation vanished", data={"conversation_id": conversation_id})
                return False
            except PersistenceError as exc:
                logger.warning(
                    f"Finalize attempt {attempt}/{attempts} failed: {exc.message}",
                    data={"conversation_id": conversation_id},
                )
                if attempt < attempts:
                    await asyncio.sleep(settings.chat_finalize_retry_delay_seconds * attempt)

    logger.error("Finalize gave up", data={"conversation_id": conversation_id, "attempts": attempts})
    return False
