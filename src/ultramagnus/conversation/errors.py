"""Conversation errors, each with a machine-readable code and HTTP-style status."""


class ConversationError(Exception):
    status: int = 400
    code: str = "conversation_error"
    # Generated reply that could not be stored, returned to the caller as-is
    text: str | None = None

    def __init__(self, message: str, status: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code


class Forbidden(ConversationError):
    status = 403
    code = "forbidden"


class ValidationFailed(ConversationError):
    status = 400
    code = "validation_failed"


class MessageTooLarge(ConversationError):
    """Never retried automatically."""
    status = 413
    code = "message_too_large"


class ConversationCapExceeded(ConversationError):
    """The caller should compact the thread or reject the turn."""
    status = 413
    code = "conversation_cap"


class SessionError(ConversationError):
    """Transient; safe to retry."""
    status = 500
    code = "session_error"
