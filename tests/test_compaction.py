"""
Tests for compaction and retention.
"""

import pytest

from conftest import OTHER_USER_ID, OWNER_ID, REPORT_ID, FailingSummarizer
from ultramagnus.config import ConversationLimits
from ultramagnus.conversation import (
    FallbackSummarizer,
    Forbidden,
    TruncatingSummarizer,
    build_components,
)
from ultramagnus.conversation.compaction import serialize_messages
from ultramagnus.db import MessageRepository, SummaryRepository


async def _append_alternating(components, count: int) -> None:
    for i in range(1, count + 1):
        role = "user" if i % 2 else "assistant"
        await components.store.append_message(REPORT_ID, OWNER_ID, role, f"message {i}")


@pytest.mark.asyncio
async def test_round_trip_compaction(components, report, db_session, summarizer):
    """25 messages over a threshold of 20: summary covers #22, three remain."""
    await _append_alternating(components, 25)
    messages = MessageRepository(db_session)
    before = await messages.list_ascending(REPORT_ID, OWNER_ID)
    expected_coverage = before[21].created_at

    result = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert result.summarized is True
    assert result.coverage_up_to == expected_coverage

    summary = await SummaryRepository(db_session).get(REPORT_ID)
    assert summary.summary == "summary #1"
    assert summary.coverage_up_to == expected_coverage
    assert summary.session_id == before[-1].session_id

    remaining = await messages.list_ascending(REPORT_ID, OWNER_ID)
    assert [m.content for m in remaining] == ["message 23", "message 24", "message 25"]

    # Summarizer saw the 22 candidates as timestamped role lines
    sent = summarizer.calls[0]
    assert sent.splitlines()[0] == f"{before[0].created_at.isoformat()} [user]: message 1"
    assert sent.splitlines()[-1].endswith("[assistant]: message 22")
    assert "message 23" not in sent


@pytest.mark.asyncio
async def test_below_thresholds_is_noop(components, report, db_session, summarizer):
    await _append_alternating(components, 20)

    result = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert result.summarized is False
    assert result.coverage_up_to is None
    assert summarizer.calls == []
    assert await MessageRepository(db_session).count(REPORT_ID, OWNER_ID) == 20


@pytest.mark.asyncio
async def test_compaction_is_idempotent(components, report, summarizer):
    await _append_alternating(components, 25)

    first = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)
    second = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert first.summarized is True
    assert second.summarized is False
    assert len(summarizer.calls) == 1


@pytest.mark.asyncio
async def test_byte_threshold_alone_triggers(db_session, report, summarizer, clock):
    """Few but heavy messages compact even though the count threshold is not reached."""
    limits = ConversationLimits(summary_byte_threshold=1000, anchor_count=1)
    components = build_components(db_session, summarizer, limits, clock=clock)
    for _ in range(3):
        await components.store.append_message(REPORT_ID, OWNER_ID, "user", "z" * 600)

    result = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert result.summarized is True
    assert await MessageRepository(db_session).count(REPORT_ID, OWNER_ID) == 1


@pytest.mark.asyncio
async def test_thread_shorter_than_anchor_is_not_compacted(db_session, report, summarizer, clock):
    limits = ConversationLimits(summary_message_threshold=1, anchor_count=3)
    components = build_components(db_session, summarizer, limits, clock=clock)
    await _append_alternating(components, 3)

    result = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert result.summarized is False
    assert summarizer.calls == []
    assert await MessageRepository(db_session).count(REPORT_ID, OWNER_ID) == 3


@pytest.mark.asyncio
async def test_coverage_is_monotonic_and_summary_upserted(components, report, db_session):
    await _append_alternating(components, 25)
    first = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    await _append_alternating(components, 21)
    second = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert second.summarized is True
    assert second.coverage_up_to > first.coverage_up_to

    summary = await SummaryRepository(db_session).get(REPORT_ID)
    assert summary.summary == "summary #2"
    assert summary.coverage_up_to == second.coverage_up_to


@pytest.mark.asyncio
async def test_previous_summary_is_folded_into_next(components, report, summarizer):
    await _append_alternating(components, 25)
    await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)
    await _append_alternating(components, 21)
    await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert summarizer.calls[1].startswith("[summary]: summary #1\n")


@pytest.mark.asyncio
async def test_summary_input_is_clipped(db_session, report, summarizer, clock):
    limits = ConversationLimits(summary_input_chars=100)
    components = build_components(db_session, summarizer, limits, clock=clock)
    await _append_alternating(components, 25)

    await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert len(summarizer.calls[0]) == 100


@pytest.mark.asyncio
async def test_summarizer_outage_falls_back_to_truncation(db_session, report, clock, limits):
    summarizer = FallbackSummarizer(
        FailingSummarizer(), TruncatingSummarizer(limits.summary_max_chars), limits.summary_max_chars
    )
    components = build_components(db_session, summarizer, limits, clock=clock)
    await _append_alternating(components, 25)
    candidates = (await MessageRepository(db_session).list_ascending(REPORT_ID, OWNER_ID))[:22]
    expected = serialize_messages(candidates)[: limits.summary_max_chars]

    result = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert result.summarized is True
    summary = await SummaryRepository(db_session).get(REPORT_ID)
    assert summary.summary == expected
    assert len(summary.summary) <= limits.summary_max_chars


@pytest.mark.asyncio
async def test_message_appended_mid_compaction_survives(db_session, report, clock, limits):
    """A turn landing between the fetch and the prune is newer than the cutoff and stays."""
    holder = {}

    class AppendingSummarizer:
        async def summarize(self, text: str) -> str:
            await holder["components"].store.append_message(REPORT_ID, OWNER_ID, "user", "late arrival")
            return "digest"

    components = build_components(db_session, AppendingSummarizer(), limits, clock=clock)
    holder["components"] = components
    await _append_alternating(components, 25)

    await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    remaining = await MessageRepository(db_session).list_ascending(REPORT_ID, OWNER_ID)
    assert [m.content for m in remaining] == ["message 23", "message 24", "message 25", "late arrival"]


@pytest.mark.asyncio
async def test_compaction_checks_ownership(components, report):
    with pytest.raises(Forbidden):
        await components.compactor.summarize_if_needed(REPORT_ID, OTHER_USER_ID)


@pytest.mark.asyncio
async def test_retention_runs_without_compaction(components, report, db_session, clock, limits):
    await components.store.append_message(REPORT_ID, OWNER_ID, "user", "old question")
    clock.advance(days=limits.retention_days + 1)
    await components.store.append_message(REPORT_ID, OWNER_ID, "user", "new question")

    result = await components.compactor.summarize_if_needed(REPORT_ID, OWNER_ID)

    assert result.summarized is False
    remaining = await MessageRepository(db_session).list_ascending(REPORT_ID, OWNER_ID)
    assert [m.content for m in remaining] == ["new question"]


@pytest.mark.asyncio
async def test_reaper_keeps_recent_messages(components, report, clock):
    await components.store.append_message(REPORT_ID, OWNER_ID, "user", "fresh")
    clock.advance(days=10)

    removed = await components.reaper.apply_retention(REPORT_ID, OWNER_ID)

    assert removed == 0


@pytest.mark.asyncio
async def test_reaper_returns_removed_count(components, report, clock, limits):
    await _append_alternating(components, 4)
    clock.advance(days=limits.retention_days, seconds=30)

    removed = await components.reaper.apply_retention(REPORT_ID, OWNER_ID)

    assert removed == 4
