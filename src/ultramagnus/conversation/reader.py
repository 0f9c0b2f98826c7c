"""Bounded, chronologically ordered view of a thread."""

from dataclasses import dataclass, field
from datetime import datetime

from ultramagnus.config import ConversationLimits
from ultramagnus.db import ConversationMessage, MessageRepository, SummaryRepository

from .guard import OwnershipGuard


@dataclass
class SummaryView:
    text: str
    coverage_up_to: datetime | None


@dataclass
class ConversationView:
    summary: SummaryView | None
    messages: list[ConversationMessage] = field(default_factory=list)


class ConversationReader:
    def __init__(
        self,
        guard: OwnershipGuard,
        messages: MessageRepository,
        summaries: SummaryRepository,
        limits: ConversationLimits,
    ):
        self.guard = guard
        self.messages = messages
        self.summaries = summaries
        self.limits = limits

    def clamp_limit(self, limit: int | None) -> int:
        return max(1, min(limit or self.limits.default_window, self.limits.max_window))

    async def get_conversation(self, report_id: str, user_id: str, limit: int | None = None) -> ConversationView:
        """
        Live summary plus the newest `limit` messages, oldest first.

        The summary is not merged into the message list; prompt building does
        that when it needs to.
        """
        await self.guard.assert_ownership(report_id, user_id)
        safe_limit = self.clamp_limit(limit)

        summary = await self.summaries.get(report_id)
        rows = await self.messages.latest(report_id, user_id, safe_limit)
        rows.reverse()

        return ConversationView(
            summary=SummaryView(text=summary.summary, coverage_up_to=summary.coverage_up_to)
            if summary and summary.summary else None,
            messages=rows,
        )
