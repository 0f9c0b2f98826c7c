"""Report conversation endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ultramagnus.conversation import CompactionResult, ConversationComponents, ConversationView

from .deps import get_components, get_user_id

router = APIRouter(prefix="/reports/{report_id}/conversation", tags=["conversation"])


# --- Schemas ---


class MessageResponse(BaseModel):
    id: str
    session_id: str
    role: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class SummaryResponse(BaseModel):
    text: str
    coverage_up_to: datetime | None

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    summary: SummaryResponse | None
    messages: list[MessageResponse]

    class Config:
        from_attributes = True

    @classmethod
    def from_view(cls, view: ConversationView) -> "ConversationResponse":
        return cls.model_validate(view, from_attributes=True)


class MessageCreate(BaseModel):
    role: str
    content: str
    model: str | None = None


class CompactionResponse(BaseModel):
    summarized: bool
    coverage_up_to: datetime | None = None

    @classmethod
    def from_result(cls, result: CompactionResult) -> "CompactionResponse":
        return cls(summarized=result.summarized, coverage_up_to=result.coverage_up_to)


class AppendResponse(BaseModel):
    message_id: str
    session_id: str
    conversation: ConversationResponse
    summary_result: CompactionResponse


# --- Routes ---


@router.get("", response_model=ConversationResponse)
async def get_conversation(
    report_id: str,
    limit: int | None = Query(default=None),
    user_id: str = Depends(get_user_id),
    components: ConversationComponents = Depends(get_components),
) -> ConversationResponse:
    """Live summary plus the most recent messages, oldest first."""
    view = await components.reader.get_conversation(report_id, user_id, limit)
    return ConversationResponse.from_view(view)


@router.post("/messages", response_model=AppendResponse, status_code=201)
async def append_message(
    report_id: str,
    data: MessageCreate,
    limit: int | None = Query(default=None),
    user_id: str = Depends(get_user_id),
    components: ConversationComponents = Depends(get_components),
) -> AppendResponse:
    """Append one turn, compact the thread if it crossed a threshold, and return the fresh view."""
    result = await components.store.append_message(
        report_id, user_id, data.role, data.content, data.model
    )
    summary_result = await components.compactor.summarize_if_needed(report_id, user_id)
    view = await components.reader.get_conversation(report_id, user_id, limit)
    return AppendResponse(
        message_id=result.message_id,
        session_id=result.session_id,
        conversation=ConversationResponse.from_view(view),
        summary_result=CompactionResponse.from_result(summary_result),
    )


@router.post("/summarize", response_model=CompactionResponse)
async def summarize(
    report_id: str,
    user_id: str = Depends(get_user_id),
    components: ConversationComponents = Depends(get_components),
) -> CompactionResponse:
    """Compact the thread if it is over a threshold, then sweep expired messages."""
    result = await components.compactor.summarize_if_needed(report_id, user_id)
    return CompactionResponse.from_result(result)
