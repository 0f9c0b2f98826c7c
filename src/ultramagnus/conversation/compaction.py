"""Size-triggered compaction of a thread into its running summary."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from ultramagnus.config import ConversationLimits
from ultramagnus.db import ConversationMessage, MessageRepository, SummaryRepository

from .guard import OwnershipGuard
from .retention import RetentionReaper
from .store import ConversationStore
from .summarizer import Summarizer

logger = logging.getLogger(__name__)


@dataclass
class CompactionResult:
    summarized: bool
    coverage_up_to: datetime | None = None


def serialize_messages(messages: Sequence[ConversationMessage], previous_summary: str | None = None) -> str:
    """Render turns as timestamped `[role]: content` lines, oldest first."""
    lines = []
    if previous_summary:
        lines.append(f"[summary]: {previous_summary}")
    for m in messages:
        stamp = m.created_at.isoformat() if m.created_at else ""
        lines.append(f"{stamp} [{m.role}]: {m.content}")
    return "\n".join(lines)


class CompactionEngine:
    """
    Replaces old raw turns with the report's summary once a thread grows too big.

    A thread is too big when it has more messages than the message threshold
    OR more bytes than the byte threshold. The newest `anchor_count` messages
    are never compacted. The prune uses the same cutoff the summary was built
    from, so turns appended mid-compaction survive.
    """

    def __init__(
        self,
        guard: OwnershipGuard,
        store: ConversationStore,
        messages: MessageRepository,
        summaries: SummaryRepository,
        reaper: RetentionReaper,
        summarizer: Summarizer,
        limits: ConversationLimits,
    ):
        self.guard = guard
        self.store = store
        self.messages = messages
        self.summaries = summaries
        self.reaper = reaper
        self.summarizer = summarizer
        self.limits = limits

    async def needs_compaction(self, report_id: str, user_id: str) -> bool:
        message_count = await self.messages.count(report_id, user_id)
        total_bytes = await self.store.storage_usage(report_id, user_id)
        return (
            message_count > self.limits.summary_message_threshold
            or total_bytes > self.limits.summary_byte_threshold
        )

    async def summarize_if_needed(self, report_id: str, user_id: str) -> CompactionResult:
        await self.guard.assert_ownership(report_id, user_id)

        result = CompactionResult(summarized=False)
        if await self.needs_compaction(report_id, user_id):
            result = await self._compact(report_id, user_id)

        await self.reaper.apply_retention(report_id, user_id)
        return result

    async def _compact(self, report_id: str, user_id: str) -> CompactionResult:
        messages = await self.messages.list_ascending(report_id, user_id)
        cutoff_index = max(0, len(messages) - self.limits.anchor_count)
        candidates = messages[:cutoff_index]
        if not candidates:
            return CompactionResult(summarized=False)

        existing = await self.summaries.get(report_id)
        previous_text = existing.summary if existing else None

        serialized = serialize_messages(candidates, previous_text)
        clipped = serialized[: self.limits.summary_input_chars]
        summary = (await self.summarizer.summarize(clipped))[: self.limits.summary_max_chars]

        coverage_up_to = candidates[-1].created_at
        if existing and existing.coverage_up_to and existing.coverage_up_to > coverage_up_to:
            coverage_up_to = existing.coverage_up_to

        await self.summaries.upsert(report_id, messages[-1].session_id, summary, coverage_up_to)
        pruned = await self.messages.delete_up_to(report_id, user_id, coverage_up_to)

        logger.info(
            "conversation.compacted report=%s candidates=%d pruned=%d coverage_up_to=%s",
            report_id, len(candidates), pruned, coverage_up_to.isoformat(),
        )
        return CompactionResult(summarized=True, coverage_up_to=coverage_up_to)
