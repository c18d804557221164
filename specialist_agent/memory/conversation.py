# specialist_agent/memory/conversation.py

"""
Per-session conversation memory with a sliding context window.

Every session is bounded twice after each append:

1. by count  → only the last `max_context_length` messages survive
2. by tokens → oldest messages are dropped while the estimate exceeds
               `max_tokens`, but never below 2 messages

Unknown session ids are never an error: writes auto-create the session,
reads return an empty result.

Thread safety:
• one lock guards the session map (create / delete / sweep)
• one lock per session serializes append + trim and snapshots reads
"""

import logging
import math
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from specialist_agent.config import (
    CONTEXT_MAX_TOKENS,
    CONTEXT_WINDOW_LENGTH,
    SESSION_MAX_AGE_HOURS,
    SUMMARY_CONTENT_CHARS,
    SUMMARY_MESSAGE_COUNT,
)
from specialist_agent.exceptions import InvalidInputError
from specialist_agent.memory.schemas import Message, MessageRole, utc_now
from specialist_agent.prompts.system_prompts import CONVERSATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

MIN_MESSAGES_AFTER_TRIM = 2


def estimate_tokens(messages: Iterable[Message]) -> int:
    """
    Rough token estimate: one token per 4 characters, rounded up per message.
    """
    return sum(math.ceil(len(m.content) / 4) for m in messages)


class Session:

    def __init__(self, session_id: str, now: datetime):

        self.id = session_id
        self.messages: List[Message] = []
        self.created_at = now
        self.last_accessed = now
        self.lock = threading.Lock()


class ConversationContextManager:

    def __init__(
        self,
        max_context_length: int = CONTEXT_WINDOW_LENGTH,
        max_tokens: int = CONTEXT_MAX_TOKENS,
        clock: Callable[[], datetime] = utc_now,
    ):

        self._validate_config(max_context_length, max_tokens)

        self._max_context_length = max_context_length
        self._max_tokens = max_tokens
        self._clock = clock

        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    # ============================================================
    # SESSIONS
    # ============================================================

    def create_session(self, session_id: Optional[str] = None) -> str:
        """
        Register a new empty session, replacing any existing one with the same id.
        """

        session_id = session_id or str(uuid.uuid4())

        with self._lock:
            self._sessions[session_id] = Session(session_id, self._clock())

        logger.info("Conversation session created", extra={"session_id": session_id})

        return session_id

    def has_session(self, session_id: str) -> bool:

        with self._lock:
            return session_id in self._sessions

    def _get_or_create(self, session_id: str) -> Session:

        with self._lock:

            session = self._sessions.get(session_id)

            if session is None:

                logger.info(
                    "Auto-creating conversation session",
                    extra={"session_id": session_id},
                )

                session = Session(session_id, self._clock())
                self._sessions[session_id] = session

            return session

    def _get(self, session_id: str) -> Optional[Session]:

        with self._lock:
            return self._sessions.get(session_id)

    def clear_conversation(self, session_id: str):
        """
        Drop all messages but keep the session (and its creation time).
        """

        session = self._get(session_id)

        if session is None:
            return

        with session.lock:
            session.messages = []

        logger.info("Conversation cleared", extra={"session_id": session_id})

    def delete_session(self, session_id: str):

        with self._lock:
            removed = self._sessions.pop(session_id, None)

        if removed is not None:
            logger.info("Conversation session deleted", extra={"session_id": session_id})

    def cleanup_old_conversations(self, max_age_hours: float = SESSION_MAX_AGE_HOURS) -> int:
        """
        Remove sessions not accessed within `max_age_hours`. Returns how many.
        """

        cutoff = self._clock() - timedelta(hours=max_age_hours)

        with self._lock:

            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if session.last_accessed < cutoff
            ]

            for session_id in expired:
                del self._sessions[session_id]

        if expired:
            logger.info(
                "Old conversations cleaned up",
                extra={"removed": len(expired), "max_age_hours": max_age_hours},
            )

        return len(expired)

    # ============================================================
    # MESSAGES
    # ============================================================

    def add_message(
        self,
        session_id: str,
        role: Union[MessageRole, str],
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:

        try:
            role = MessageRole(role)
        except ValueError as e:
            raise InvalidInputError(f"Invalid message role: {role}") from e

        message = Message(
            role=role,
            content=content,
            timestamp=self._clock(),
            metadata=metadata or {},
        )

        # a delete or sweep may drop the session between lookup and lock
        while True:

            session = self._get_or_create(session_id)

            with session.lock:

                if self._get(session_id) is not session:
                    continue

                session.messages.append(message)
                session.last_accessed = message.timestamp

                self._trim(session)

            return message.model_copy(deep=True)

    def _trim(self, session: Session):
        """
        Caller holds session.lock.
        """

        messages = session.messages

        if len(messages) > self._max_context_length:
            messages = messages[-self._max_context_length:]

        total_tokens = estimate_tokens(messages)

        while total_tokens > self._max_tokens and len(messages) > MIN_MESSAGES_AFTER_TRIM:
            total_tokens -= math.ceil(len(messages[0].content) / 4)
            messages = messages[1:]

        if len(messages) != len(session.messages):
            logger.debug(
                "Conversation trimmed",
                extra={
                    "session_id": session.id,
                    "dropped": len(session.messages) - len(messages),
                    "estimated_tokens": total_tokens,
                },
            )

        session.messages = messages

    # ============================================================
    # READS
    # ============================================================

    def _system_message(self) -> Message:

        return Message(
            role=MessageRole.SYSTEM,
            content=CONVERSATION_SYSTEM_PROMPT,
            timestamp=self._clock(),
        )

    def get_context(
        self,
        session_id: str,
        include_system_message: bool = True,
    ) -> List[Message]:
        """
        Last `max_context_length` messages, optionally led by the system preamble.
        """

        session = self._get(session_id)

        context: List[Message] = []

        if session is not None:

            with session.lock:
                session.last_accessed = self._clock()
                recent = session.messages[-self._max_context_length:]

            context = [m.model_copy(deep=True) for m in recent]

        if include_system_message:
            context = [self._system_message()] + context

        return context

    def get_recent_context(self, session_id: str, exclude_last: int = 0) -> List[Message]:
        """
        Like get_context, after dropping the last `exclude_last` messages
        (the exchange still in flight).
        """

        session = self._get(session_id)

        if session is None:
            return []

        with session.lock:
            messages = list(session.messages)

        if exclude_last > 0:
            messages = messages[:-exclude_last]

        return [m.model_copy(deep=True) for m in messages[-self._max_context_length:]]

    def get_conversation_summary(self, session_id: str) -> str:
        """
        Prompt-ready rendering of the last few messages, one per line.
        """

        session = self._get(session_id)

        if session is None:
            return ""

        with session.lock:
            recent = session.messages[-SUMMARY_MESSAGE_COUNT:]

        if not recent:
            return ""

        lines = []

        for message in recent:

            content = message.content[:SUMMARY_CONTENT_CHARS]

            if len(message.content) > SUMMARY_CONTENT_CHARS:
                content += "..."

            lines.append(f"{message.role.value}: {content}")

        return "Recent conversation context:\n" + "\n".join(lines)

    def get_conversation_stats(self, session_id: str) -> Optional[Dict[str, Any]]:

        session = self._get(session_id)

        if session is None:
            return None

        with session.lock:

            return {
                "message_count": len(session.messages),
                "created_at": session.created_at,
                "last_accessed": session.last_accessed,
                "estimated_tokens": estimate_tokens(session.messages),
            }

    # ============================================================
    # CONFIGURATION
    # ============================================================

    @staticmethod
    def _validate_config(max_length: int, max_tokens: int):

        if max_length <= 0:
            raise InvalidInputError(f"Invalid max context length: {max_length}")

        if max_tokens <= 0:
            raise InvalidInputError(f"Invalid max tokens: {max_tokens}")

    def update_context_config(self, max_length: int, max_tokens: int):
        """
        Applies to each session from its next append on.
        """

        self._validate_config(max_length, max_tokens)

        self._max_context_length = max_length
        self._max_tokens = max_tokens

        logger.info(
            "Context configuration updated",
            extra={"max_context_length": max_length, "max_tokens": max_tokens},
        )

    def get_config(self) -> Dict[str, int]:

        with self._lock:
            active = len(self._sessions)

        return {
            "max_context_length": self._max_context_length,
            "max_tokens": self._max_tokens,
            "active_conversations": active,
        }
