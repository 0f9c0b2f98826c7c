"""Chat manager: prompt assembly around a report thread and the Claude chat capability."""

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Protocol, Sequence

from anthropic import AsyncAnthropic

from ultramagnus.config import ConversationLimits
from ultramagnus.conversation import (
    CompactionEngine,
    CompactionResult,
    ConversationCapExceeded,
    ConversationError,
    ConversationReader,
    ConversationStore,
    ConversationView,
    Turn,
    normalize_turns,
    to_dialogue_role,
)
from ultramagnus.conversation.turns import MODEL, USER

logger = logging.getLogger(__name__)

EMPTY_REPLY = "I couldn't generate a response."

SYSTEM_INSTRUCTION = """You are 'Ultramagnus', an elite Wall Street equity research assistant.
Your goal is to help the user understand the stock report for {ticker}.

RULES:
1. Use the provided STOCK ANALYSIS CONTEXT to answer questions.
2. If the user asks about their notes or thesis, refer to the USER'S NOTES section.
3. Keep answers concise, punchy, and professional (financial analyst persona).
4. Do not hallucinate data not present in the context.
5. Format responses with clean Markdown (bolding key figures)."""


class ChatProviderError(ConversationError):
    status = 502
    code = "genai_upstream_error"


class ChatModel(Protocol):
    async def complete(self, turns: Sequence[Turn]) -> str: ...

    def stream(self, turns: Sequence[Turn]) -> AsyncIterator[str]: ...


class AnthropicChatModel:
    """Claude Messages API over normalized turns."""

    def __init__(self, client: AsyncAnthropic, model: str, max_tokens: int = 1024):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def _messages(self, turns: Sequence[Turn]) -> list[dict]:
        return [
            {"role": "assistant" if t.role == MODEL else "user", "content": t.text}
            for t in turns
        ]

    async def complete(self, turns: Sequence[Turn]) -> str:
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=self._messages(turns),
        )
        return "".join(block.text for block in message.content if block.type == "text")

    async def stream(self, turns: Sequence[Turn]) -> AsyncIterator[str]:
        async with self.client.messages.stream(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=self._messages(turns),
        ) as stream:
            async for text in stream.text_stream:
                if text:
                    yield text


def _titles(factors: Any) -> str:
    return ", ".join(str(f.get("title", "")) for f in factors or [] if isinstance(f, dict))


def build_context(
    report: dict,
    notes: str | None = None,
    thesis: str | None = None,
    summary: str | None = None,
) -> str:
    """Render the leading context turn: report facts, user notes, running summary, persona."""
    scenarios = report.get("scenarioAnalysis") or {}
    factors = report.get("shortTermFactors") or {}
    context = f"""STOCK ANALYSIS CONTEXT:
Company: {report.get("companyName")} ({report.get("ticker")})
Price: {report.get("currentPrice")} ({report.get("priceChange")})
Verdict: {report.get("verdict")}
Moonshot Score: {report.get("rocketScore")}/100
Summary: {report.get("summary")}
Bull Case: {(scenarios.get("bull") or {}).get("price")}
Bear Case: {(scenarios.get("bear") or {}).get("price")}
Short Term Factors: {_titles(factors.get("positive"))}
Risks: {_titles(factors.get("negative"))}

USER'S NOTES:
"{notes or 'No notes yet.'}"

USER'S INVESTMENT THESIS:
"{thesis or 'No thesis defined yet.'}"
"""
    if summary:
        context += f"\nEARLIER CONVERSATION SUMMARY:\n{summary}\n"

    instruction = SYSTEM_INSTRUCTION.format(ticker=report.get("ticker") or "this company")
    return f"System Context:\n{context}\n{instruction}"


@dataclass
class ChatReply:
    text: str
    message_id: str
    session_id: str
    summary_result: CompactionResult
    conversation: ConversationView


class ChatManager:
    """
    Runs one chat exchange against a report thread.

    - Prompt is the leading context turn, the stored window and the new user turn
    - Nothing is written until the provider has answered
    - Both turns are then persisted; a full thread is compacted once and retried
    - If the reply cannot be stored, the raised error carries the generated text
    """

    def __init__(
        self,
        store: ConversationStore,
        compactor: CompactionEngine,
        reader: ConversationReader,
        chat_model: ChatModel,
        limits: ConversationLimits,
        model_name: str | None = None,
    ):
        self.store = store
        self.compactor = compactor
        self.reader = reader
        self.chat_model = chat_model
        self.limits = limits
        self.model_name = model_name

    async def _append(self, report_id: str, user_id: str, role: str, content: str):
        try:
            return await self.store.append_message(report_id, user_id, role, content, self.model_name)
        except ConversationCapExceeded:
            logger.info("chat.cap_exceeded.compacting report=%s", report_id)
            await self.compactor.summarize_if_needed(report_id, user_id)
            return await self.store.append_message(report_id, user_id, role, content, self.model_name)

    async def prepare_turns(
        self,
        report_id: str,
        user_id: str,
        report: dict,
        message: str,
        notes: str | None = None,
        thesis: str | None = None,
    ) -> list[Turn]:
        """Build the outbound turn sequence; the user's message is not stored yet."""
        self.store.validate("user", message)
        view = await self.reader.get_conversation(report_id, user_id)
        self.store.check_size(message)

        leading = Turn(USER, build_context(report, notes, thesis, view.summary.text if view.summary else None))
        keep = max(self.limits.chat_history_turns - 1, 0)
        window = view.messages[-keep:] if keep else []
        history = [Turn(to_dialogue_role(m.role), m.content) for m in window]
        history.append(Turn(USER, message))
        return normalize_turns(leading, history)

    async def _finish(self, report_id: str, user_id: str, message: str, text: str) -> ChatReply:
        try:
            self.store.check_size(text)
            question = await self._append(report_id, user_id, "user", message)
            try:
                appended = await self._append(report_id, user_id, "assistant", text)
            except ConversationError:
                await self.store.discard(question.message_id)
                raise
        except ConversationError as e:
            if e.status >= 500:
                logger.error("chat.persist_failed report=%s user=%s code=%s", report_id, user_id, e.code)
            else:
                logger.warning("chat.persist_blocked report=%s user=%s code=%s", report_id, user_id, e.code)
            e.text = text
            raise

        summary_result = await self.compactor.summarize_if_needed(report_id, user_id)
        conversation = await self.reader.get_conversation(report_id, user_id)
        return ChatReply(
            text=text,
            message_id=appended.message_id,
            session_id=appended.session_id,
            summary_result=summary_result,
            conversation=conversation,
        )

    async def reply(
        self,
        report_id: str,
        user_id: str,
        report: dict,
        message: str,
        notes: str | None = None,
        thesis: str | None = None,
    ) -> ChatReply:
        turns = await self.prepare_turns(report_id, user_id, report, message, notes, thesis)
        logger.info("chat.request report=%s user=%s turns=%d", report_id, user_id, len(turns))

        try:
            text = await self.chat_model.complete(turns)
        except Exception as e:
            logger.error("chat.provider_failed report=%s error=%r", report_id, e)
            raise ChatProviderError("AI provider is temporarily unavailable. Please retry in a moment.") from e

        return await self._finish(report_id, user_id, message, text or EMPTY_REPLY)

    async def stream_reply(
        self,
        report_id: str,
        user_id: str,
        report: dict,
        message: str,
        notes: str | None = None,
        thesis: str | None = None,
    ) -> AsyncIterator[tuple[str, dict]]:
        """
        Stream a reply as (event_type, data) pairs.

        Emits:
        - delta: incremental reply text
        - done: ids and compaction outcome once both turns are persisted
        """
        turns = await self.prepare_turns(report_id, user_id, report, message, notes, thesis)

        chunks: list[str] = []
        try:
            async for chunk in self.chat_model.stream(turns):
                chunks.append(chunk)
                yield "delta", {"content": chunk}
        except Exception as e:
            logger.error("chat.stream.provider_failed report=%s error=%r", report_id, e)
            raise ChatProviderError("Failed to stream chat") from e

        reply = await self._finish(report_id, user_id, message, "".join(chunks) or EMPTY_REPLY)
        yield "done", {
            "message_id": reply.message_id,
            "session_id": reply.session_id,
            "summarized": reply.summary_result.summarized,
            "coverage_up_to": reply.summary_result.coverage_up_to.isoformat()
            if reply.summary_result.coverage_up_to else None,
        }
