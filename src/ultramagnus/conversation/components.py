"""Wiring the conversation components over one database session."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ultramagnus.config import ConversationLimits
from ultramagnus.db import MessageRepository, ReportRepository, SessionRepository, SummaryRepository, utcnow

from .compaction import CompactionEngine
from .guard import OwnershipGuard
from .reader import ConversationReader
from .retention import RetentionReaper
from .store import ConversationStore
from .summarizer import Summarizer


@dataclass
class ConversationComponents:
    guard: OwnershipGuard
    store: ConversationStore
    compactor: CompactionEngine
    reaper: RetentionReaper
    reader: ConversationReader


def build_components(
    db: AsyncSession,
    summarizer: Summarizer,
    limits: ConversationLimits,
    clock: Callable[[], datetime] = utcnow,
) -> ConversationComponents:
    messages = MessageRepository(db)
    summaries = SummaryRepository(db)
    guard = OwnershipGuard(ReportRepository(db))
    store = ConversationStore(guard, SessionRepository(db), messages, summaries, limits, clock=clock)
    reaper = RetentionReaper(messages, limits.retention_days, clock=clock)
    compactor = CompactionEngine(guard, store, messages, summaries, reaper, summarizer, limits)
    reader = ConversationReader(guard, messages, summaries, limits)
    return ConversationComponents(guard, store, compactor, reaper, reader)
