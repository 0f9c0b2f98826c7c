"""Appending turns to a report thread under byte budgets."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from ultramagnus.config import ConversationLimits
from ultramagnus.db import MessageRepository, SessionRepository, SummaryRepository, utcnow

from .errors import ConversationCapExceeded, MessageTooLarge, SessionError, ValidationFailed
from .guard import OwnershipGuard

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant", "system")


def byte_length(text: str | None) -> int:
    return len((text or "").encode("utf-8"))


@dataclass
class AppendResult:
    message_id: str
    session_id: str


class ConversationStore:
    """
    Writes messages to a thread.

    - Per-message cap rejects oversize content before anything is written
    - Per-thread cap counts stored messages plus the live summary
    - Never compacts on the write path; callers run compaction afterwards
    """

    def __init__(
        self,
        guard: OwnershipGuard,
        sessions: SessionRepository,
        messages: MessageRepository,
        summaries: SummaryRepository,
        limits: ConversationLimits,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.guard = guard
        self.sessions = sessions
        self.messages = messages
        self.summaries = summaries
        self.limits = limits
        self.clock = clock

    async def storage_usage(self, report_id: str, user_id: str) -> int:
        """Bytes held by the thread: all messages plus the live summary."""
        message_bytes = await self.messages.total_bytes(report_id, user_id)
        summary = await self.summaries.get(report_id)
        return message_bytes + byte_length(summary.summary if summary else None)

    async def resolve_session(self, report_id: str, user_id: str, model: str | None = None) -> str:
        """Reuse the newest session of the thread or create one."""
        existing = await self.sessions.latest(report_id, user_id)
        if existing is not None:
            return existing.id

        try:
            created = await self.sessions.create(report_id, user_id, model=model, created_at=self.clock())
        except SQLAlchemyError as e:
            logger.error("conversation.session.create_failed report=%s error=%r", report_id, e)
            raise SessionError("unable to create session") from e
        if created is None or not created.id:
            raise SessionError("unable to create session")
        logger.info("conversation.session.created report=%s session=%s", report_id, created.id)
        return created.id

    def validate(self, role: str, content: str) -> None:
        if not content or not isinstance(content, str):
            raise ValidationFailed("content is required")
        if role not in ROLES:
            raise ValidationFailed("role must be user|assistant|system")

    def check_size(self, content: str) -> int:
        """UTF-8 size of one message; raises when it alone is over the per-message cap."""
        content_bytes = byte_length(content)
        if content_bytes > self.limits.max_message_bytes:
            raise MessageTooLarge("message too large")
        return content_bytes

    async def append_message(
        self,
        report_id: str,
        user_id: str,
        role: str,
        content: str,
        model: str | None = None,
    ) -> AppendResult:
        self.validate(role, content)

        await self.guard.assert_ownership(report_id, user_id)

        content_bytes = self.check_size(content)

        current = await self.storage_usage(report_id, user_id)
        if current + content_bytes > self.limits.max_thread_bytes:
            logger.warning(
                "conversation.cap_exceeded report=%s current=%d incoming=%d",
                report_id, current, content_bytes,
            )
            raise ConversationCapExceeded("conversation storage cap exceeded")

        session_id = await self.resolve_session(report_id, user_id, model)
        message = await self.messages.insert(
            session_id, report_id, user_id, role, content, created_at=self.clock()
        )
        return AppendResult(message_id=message.id, session_id=session_id)

    async def discard(self, message_id: str) -> None:
        """Remove one message written by an exchange that could not complete."""
        await self.messages.delete(message_id)
        logger.info("conversation.message.discarded message=%s", message_id)
