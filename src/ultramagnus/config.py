"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass, fields

CHAT_MODEL = os.getenv("ULTRAMAGNUS_CHAT_MODEL", "claude-sonnet-4-20250514")
SUMMARY_MODEL = os.getenv("ULTRAMAGNUS_SUMMARY_MODEL", "claude-3-5-haiku-latest")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]


@dataclass(frozen=True)
class ConversationLimits:
    """
    Size, window and retention limits for report conversations.

    - Message/thread caps bound what append accepts
    - Summary thresholds decide when compaction fires (either one is enough)
    - Anchor count is the hot tail compaction never touches
    """

    max_message_bytes: int = 6 * 1024
    max_thread_bytes: int = 300 * 1024
    retention_days: int = 90
    summary_message_threshold: int = 20
    summary_byte_threshold: int = 50 * 1024
    summary_max_chars: int = 1200
    summary_input_chars: int = 6000
    anchor_count: int = 3
    default_window: int = 20
    max_window: int = 50
    chat_history_turns: int = 12
    # Upper bound on one remote summarize call before the truncation fallback takes over
    summary_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "ConversationLimits":
        """Build limits, letting CONVERSATION_<FIELD> variables override defaults."""
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(f"CONVERSATION_{f.name.upper()}")
            if raw:
                overrides[f.name] = type(f.default)(raw)
        return cls(**overrides)
