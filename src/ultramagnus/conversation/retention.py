"""Age-based garbage collection of raw messages."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from ultramagnus.db import MessageRepository, utcnow

logger = logging.getLogger(__name__)


class RetentionReaper:
    """Deletes thread messages older than the retention window, regardless of summary state."""

    def __init__(
        self,
        messages: MessageRepository,
        retention_days: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.messages = messages
        self.retention = timedelta(days=retention_days)
        self.clock = clock

    async def apply_retention(self, report_id: str, user_id: str) -> int:
        """Sweep one thread. Returns count removed."""
        cutoff = self.clock() - self.retention
        removed = await self.messages.delete_up_to(report_id, user_id, cutoff)
        if removed:
            logger.info("conversation.retention.swept report=%s removed=%d", report_id, removed)
        return removed
