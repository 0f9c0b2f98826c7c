"""Bounded conversation memory for report chat threads."""

from .errors import (
    ConversationError,
    Forbidden,
    ValidationFailed,
    MessageTooLarge,
    ConversationCapExceeded,
    SessionError,
)
from .guard import OwnershipGuard
from .store import ConversationStore, AppendResult
from .summarizer import Summarizer, AnthropicSummarizer, TruncatingSummarizer, FallbackSummarizer
from .retention import RetentionReaper
from .compaction import CompactionEngine, CompactionResult
from .reader import ConversationReader, ConversationView, SummaryView
from .turns import Turn, normalize_turns, to_dialogue_role
from .components import ConversationComponents, build_components

__all__ = [
    "ConversationError",
    "Forbidden",
    "ValidationFailed",
    "MessageTooLarge",
    "ConversationCapExceeded",
    "SessionError",
    "OwnershipGuard",
    "ConversationStore",
    "AppendResult",
    "Summarizer",
    "AnthropicSummarizer",
    "TruncatingSummarizer",
    "FallbackSummarizer",
    "RetentionReaper",
    "CompactionEngine",
    "CompactionResult",
    "ConversationReader",
    "ConversationView",
    "SummaryView",
    "Turn",
    "normalize_turns",
    "to_dialogue_role",
    "ConversationComponents",
    "build_components",
]
