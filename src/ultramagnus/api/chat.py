"""Chat endpoints: one reply per request, or streamed over Server-Sent Events."""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from ultramagnus.agent import ChatManager
from ultramagnus.conversation import ConversationError

from .conversations import CompactionResponse, ConversationResponse
from .deps import get_chat_manager, get_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports/{report_id}/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str
    report: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None
    thesis: str | None = None


class ChatResponse(BaseModel):
    text: str
    message_id: str
    session_id: str
    summary_result: CompactionResponse
    conversation: ConversationResponse


@router.post("", response_model=ChatResponse)
async def chat(
    report_id: str,
    data: ChatRequest,
    user_id: str = Depends(get_user_id),
    manager: ChatManager = Depends(get_chat_manager),
) -> ChatResponse:
    """Send a message about a report and get the analyst's reply."""
    reply = await manager.reply(report_id, user_id, data.report, data.message, data.notes, data.thesis)
    return ChatResponse(
        text=reply.text,
        message_id=reply.message_id,
        session_id=reply.session_id,
        summary_result=CompactionResponse.from_result(reply.summary_result),
        conversation=ConversationResponse.from_view(reply.conversation),
    )


@router.post("/stream")
async def chat_stream(
    report_id: str,
    data: ChatRequest,
    user_id: str = Depends(get_user_id),
    manager: ChatManager = Depends(get_chat_manager),
) -> EventSourceResponse:
    """
    Stream the reply via Server-Sent Events.

    Events: `delta` with incremental text, then `done` with ids, or `error`.
    """
    # Ownership failures must surface as a plain 403 before the stream opens
    await manager.reader.guard.assert_ownership(report_id, user_id)

    async def event_generator():
        try:
            async for event_type, payload in manager.stream_reply(
                report_id, user_id, data.report, data.message, data.notes, data.thesis
            ):
                yield {"event": event_type, "data": json.dumps(payload)}
        except ConversationError as e:
            logger.warning("chat.stream.failed report=%s code=%s", report_id, e.code)
            payload = {"detail": e.message, "code": e.code}
            if e.text is not None:
                payload["text"] = e.text
            yield {"event": "error", "data": json.dumps(payload)}

    return EventSourceResponse(event_generator())
