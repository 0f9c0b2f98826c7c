"""
Narrow per-entity repositories over an AsyncSession.

Each write commits on its own; callers get single-statement semantics and
no multi-statement transaction.
"""

import math
from datetime import datetime
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ConversationMessage, ConversationSession, ConversationSummary, Report, utcnow


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


class ReportRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_owner(self, report_id: str) -> str | None:
        result = await self.db.execute(select(Report.owner_id).where(Report.id == report_id))
        return result.scalar_one_or_none()


class SessionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def latest(self, report_id: str, user_id: str) -> ConversationSession | None:
        """Most recently created session for the thread."""
        result = await self.db.execute(
            select(ConversationSession)
            .where(
                ConversationSession.report_id == report_id,
                ConversationSession.user_id == user_id,
            )
            .order_by(ConversationSession.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        report_id: str,
        user_id: str,
        model: str | None = None,
        created_at: datetime | None = None,
    ) -> ConversationSession:
        session = ConversationSession(
            id=str(uuid4()),
            report_id=report_id,
            user_id=user_id,
            model=model,
            status="active",
            created_at=created_at or utcnow(),
        )
        self.db.add(session)
        await self.db.commit()
        return session


class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _thread(self, report_id: str, user_id: str):
        return (
            ConversationMessage.report_id == report_id,
            ConversationMessage.user_id == user_id,
        )

    async def insert(
        self,
        session_id: str,
        report_id: str,
        user_id: str,
        role: str,
        content: str,
        created_at: datetime | None = None,
    ) -> ConversationMessage:
        message = ConversationMessage(
            id=str(uuid4()),
            session_id=session_id,
            report_id=report_id,
            user_id=user_id,
            role=role,
            content=content,
            content_bytes=len(content.encode("utf-8")),
            tokens_estimate=estimate_tokens(content),
            created_at=created_at or utcnow(),
        )
        self.db.add(message)
        await self.db.commit()
        return message

    async def count(self, report_id: str, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(ConversationMessage.id)).where(*self._thread(report_id, user_id))
        )
        return int(result.scalar_one() or 0)

    async def total_bytes(self, report_id: str, user_id: str) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.sum(ConversationMessage.content_bytes), 0))
            .where(*self._thread(report_id, user_id))
        )
        return int(result.scalar_one() or 0)

    async def list_ascending(self, report_id: str, user_id: str) -> list[ConversationMessage]:
        result = await self.db.execute(
            select(ConversationMessage)
            .where(*self._thread(report_id, user_id))
            .order_by(ConversationMessage.created_at.asc())
        )
        return list(result.scalars().all())

    async def latest(self, report_id: str, user_id: str, limit: int) -> list[ConversationMessage]:
        """Newest `limit` messages, newest first."""
        result = await self.db.execute(
            select(ConversationMessage)
            .where(*self._thread(report_id, user_id))
            .order_by(ConversationMessage.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delete_up_to(self, report_id: str, user_id: str, cutoff: datetime) -> int:
        """Delete thread messages created at or before cutoff. Returns rows removed."""
        result = await self.db.execute(
            delete(ConversationMessage).where(
                *self._thread(report_id, user_id),
                ConversationMessage.created_at <= cutoff,
            )
        )
        await self.db.commit()
        return result.rowcount or 0

    async def delete(self, message_id: str) -> None:
        await self.db.execute(delete(ConversationMessage).where(ConversationMessage.id == message_id))
        await self.db.commit()


class SummaryRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, report_id: str) -> ConversationSummary | None:
        result = await self.db.execute(
            select(ConversationSummary)
            .where(ConversationSummary.report_id == report_id)
            .order_by(ConversationSummary.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        report_id: str,
        session_id: str | None,
        summary: str,
        coverage_up_to: datetime | None,
    ) -> ConversationSummary:
        """Overwrite the report's summary in place, or insert it the first time."""
        existing = await self.get(report_id)
        if existing is None:
            existing = ConversationSummary(id=str(uuid4()), report_id=report_id)
            self.db.add(existing)

        existing.session_id = session_id
        existing.summary = summary
        existing.coverage_up_to = coverage_up_to
        existing.tokens_estimate = estimate_tokens(summary)
        existing.updated_at = utcnow()
        await self.db.commit()
        return existing
