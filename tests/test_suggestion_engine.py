"""Unit tests for the SuggestionEngine: ranking, dedup, truncation, failures.

Tests cover:
- rank_suggestions: priority then confidence ordering, stable ties, dedup key, cap
- SuggestionEngine.generate: supplied context, store fetch, dismissed ids,
  failure results for a failing or missing store
- module-level generate_suggestions / get_suggestions_for_deal wrappers
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from src.app.deals.conversations import ConversationRecord, InMemoryConversationStore
from src.app.deals.schemas import (
    ActionCategory,
    ActionPriority,
    AISuggestion,
    ConversationContext,
    Deal,
    Offer,
    Sentiment,
    SuggestionSource,
)
from src.app.deals.suggestions import (
    SuggestionEngine,
    filter_dismissed,
    generate_suggestions,
    get_suggestions_for_deal,
    rank_suggestions,
)


# ── Constants ────────────────────────────────────────────────────────────────

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _suggestion(
    sid: str,
    priority: ActionPriority = ActionPriority.medium,
    confidence: int = 70,
    category: ActionCategory = ActionCategory.followup,
    source: SuggestionSource = SuggestionSource.time_based,
) -> AISuggestion:
    return AISuggestion(
        id=sid,
        action=f"Action {sid}",
        reason="test",
        priority=priority,
        category=category,
        confidence=confidence,
        source=source,
    )


def _busy_deal(**overrides: Any) -> Deal:
    """Offer-sent deal with a stale offer: several generators fire."""
    fields: dict[str, Any] = {
        "id": "deal-1",
        "stage": "offer_sent",
        "lead_id": "lead-1",
        "offers": [Offer(id="o1", status="sent", created_at=NOW - timedelta(days=6))],
    }
    fields.update(overrides)
    return Deal(**fields)


def _busy_context() -> ConversationContext:
    return ConversationContext(
        recent_sentiment=Sentiment.negative,
        key_phrases=["motivated", "roof needs work"],
        action_items=["Call seller about counter", "Send updated offer", "Upload photos", "Extra"],
        last_contact_date=NOW - timedelta(days=8),
        total_conversations=3,
    )


class FailingStore:
    """Store double whose reads always fail."""

    async def list_recent(self, deal_id, lead_id, limit=10):
        raise TimeoutError("conversation log timed out")


# ── Ranking ─────────────────────────────────────────────────────────────────


class TestRankSuggestions:
    """Tests for rank_suggestions."""

    def test_priority_then_confidence(self) -> None:
        items = [
            _suggestion("low", ActionPriority.low, 99, ActionCategory.close),
            _suggestion("med", ActionPriority.medium, 60, ActionCategory.offer),
            _suggestion("med-hi", ActionPriority.medium, 90, ActionCategory.contact),
            _suggestion("high", ActionPriority.high, 10, ActionCategory.document),
        ]
        assert [s.id for s in rank_suggestions(items)] == ["high", "med-hi", "med", "low"]

    def test_ties_keep_emission_order(self) -> None:
        """Equal priority and confidence: the earlier-emitted suggestion stays first."""
        first = _suggestion("first", category=ActionCategory.contact, source=SuggestionSource.action_item)
        second = _suggestion("second", category=ActionCategory.contact, source=SuggestionSource.contact_recency)
        assert [s.id for s in rank_suggestions([first, second])] == ["first", "second"]
        assert [s.id for s in rank_suggestions([second, first])] == ["second", "first"]

    def test_dedup_keeps_highest_ranked_per_category_and_source(self) -> None:
        items = [
            _suggestion("weak", ActionPriority.medium, 80),
            _suggestion("strong", ActionPriority.high, 85),
            _suggestion("other-source", ActionPriority.medium, 75, source=SuggestionSource.contact_recency),
        ]
        ranked = rank_suggestions(items)
        assert [s.id for s in ranked] == ["strong", "other-source"]

    def test_truncates_after_dedup(self) -> None:
        items = [
            _suggestion(f"s{i}", category=category)
            for i, category in enumerate(ActionCategory)
        ]
        assert len(rank_suggestions(items, 3)) == 3
        assert len(rank_suggestions(items)) == 5
        assert rank_suggestions(items, 0) == []

    def test_filter_dismissed(self) -> None:
        items = [_suggestion("a"), _suggestion("b")]
        assert [s.id for s in filter_dismissed(items, {"a"})] == ["b"]
        assert filter_dismissed(items, ()) == items


# ── Engine ──────────────────────────────────────────────────────────────────


class TestSuggestionEngine:
    """Tests for SuggestionEngine.generate."""

    @pytest.mark.asyncio
    async def test_supplied_context(self) -> None:
        engine = SuggestionEngine()
        result = await engine.generate(_busy_deal(), _busy_context(), now=NOW)

        assert result.success is True
        assert result.error is None
        assert len(result.suggestions) == 5
        keys = [s.dedup_key for s in result.suggestions]
        assert len(keys) == len(set(keys))

        priorities = [s.priority for s in result.suggestions]
        assert priorities[:3] == [ActionPriority.high] * 3
        # Recency (90) outranks the other high-priority candidates
        assert result.suggestions[0].id == "contact_recency-deal-1-0"

    @pytest.mark.asyncio
    async def test_same_input_same_ids(self) -> None:
        engine = SuggestionEngine()
        first = await engine.generate(_busy_deal(), _busy_context(), now=NOW)
        second = await engine.generate(_busy_deal(), _busy_context(), now=NOW)
        assert [s.id for s in first.suggestions] == [s.id for s in second.suggestions]

    @pytest.mark.asyncio
    async def test_max_suggestions_override(self) -> None:
        engine = SuggestionEngine(max_suggestions=5)
        result = await engine.generate(_busy_deal(), _busy_context(), max_suggestions=2, now=NOW)
        assert len(result.suggestions) == 2

    @pytest.mark.asyncio
    async def test_empty_context_only_time_based(self) -> None:
        result = await SuggestionEngine().generate(_busy_deal(), ConversationContext(), now=NOW)
        assert result.success is True
        assert [s.id for s in result.suggestions] == ["time_based-deal-1-1"]

    @pytest.mark.asyncio
    async def test_nothing_to_suggest_is_success(self) -> None:
        deal = Deal(id="deal-2", stage="new")
        result = await SuggestionEngine().generate(deal, ConversationContext(), now=NOW)
        assert result.success is True
        assert result.suggestions == []

    @pytest.mark.asyncio
    async def test_dismissed_ids_free_their_slots(self) -> None:
        engine = SuggestionEngine()
        baseline = await engine.generate(_busy_deal(), _busy_context(), now=NOW)
        dismissed = {baseline.suggestions[0].id}

        result = await engine.generate(
            _busy_deal(), _busy_context(), now=NOW, dismissed_ids=dismissed
        )
        ids = [s.id for s in result.suggestions]
        assert baseline.suggestions[0].id not in ids
        assert len(ids) == 5

    @pytest.mark.asyncio
    async def test_fetches_context_from_store(self) -> None:
        store = InMemoryConversationStore(
            [
                ConversationRecord(
                    id="c1",
                    lead_id="lead-1",
                    sentiment=Sentiment.negative,
                    action_items=["Call seller tomorrow"],
                    occurred_at=NOW - timedelta(days=1),
                )
            ]
        )
        engine = SuggestionEngine(store=store)
        result = await engine.generate(_busy_deal(), now=NOW)

        assert result.success is True
        ids = [s.id for s in result.suggestions]
        assert "action_item-deal-1-0" in ids
        assert "sentiment-deal-1-0" in ids

    @pytest.mark.asyncio
    async def test_store_failure_returns_failed_result(self) -> None:
        engine = SuggestionEngine(store=FailingStore())
        result = await engine.generate(_busy_deal(), now=NOW)
        assert result.success is False
        assert result.suggestions == []
        assert "conversation log timed out" in result.error

    @pytest.mark.asyncio
    async def test_missing_store_returns_failed_result(self) -> None:
        result = await SuggestionEngine().generate(_busy_deal(), now=NOW)
        assert result.success is False
        assert result.error == "No conversation store configured"


# ── Module Wrappers ─────────────────────────────────────────────────────────


class TestWrappers:
    """Tests for generate_suggestions and get_suggestions_for_deal."""

    @pytest.mark.asyncio
    async def test_generate_suggestions(self) -> None:
        result = await generate_suggestions(
            _busy_deal(), _busy_context(), max_suggestions=3, now=NOW
        )
        assert result.success is True
        assert len(result.suggestions) == 3

    @pytest.mark.asyncio
    async def test_get_suggestions_for_deal_returns_list(self) -> None:
        store = InMemoryConversationStore()
        suggestions = await get_suggestions_for_deal(_busy_deal(), store=store, now=NOW)
        assert [s.id for s in suggestions] == ["time_based-deal-1-1"]

    @pytest.mark.asyncio
    async def test_get_suggestions_for_deal_empty_on_failure(self) -> None:
        assert await get_suggestions_for_deal(_busy_deal(), store=FailingStore(), now=NOW) == []
