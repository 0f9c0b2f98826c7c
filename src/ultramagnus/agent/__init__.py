"""Chat agent built on the conversation memory."""

from .manager import (
    AnthropicChatModel,
    ChatManager,
    ChatModel,
    ChatProviderError,
    ChatReply,
    build_context,
)

__all__ = [
    "AnthropicChatModel",
    "ChatManager",
    "ChatModel",
    "ChatProviderError",
    "ChatReply",
    "build_context",
]
