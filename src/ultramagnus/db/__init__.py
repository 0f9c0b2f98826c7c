"""Database module for Ultramagnus."""

from .models import Base, Report, ConversationSession, ConversationMessage, ConversationSummary, utcnow
from .session import engine, async_session, get_session, DATABASE_URL
from .repositories import ReportRepository, SessionRepository, MessageRepository, SummaryRepository

__all__ = [
    "Base",
    "Report",
    "ConversationSession",
    "ConversationMessage",
    "ConversationSummary",
    "utcnow",
    "engine",
    "async_session",
    "get_session",
    "DATABASE_URL",
    "ReportRepository",
    "SessionRepository",
    "MessageRepository",
    "SummaryRepository",
]
