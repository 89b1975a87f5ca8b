"""Suggestion aggregation and ranking.

The SuggestionEngine runs the five generators against a deal and its
conversation context, merges their output, ranks it, deduplicates it and
truncates it:

- ranking is priority (high > medium > low), then confidence, then
  generator emission order (Python's sort is stable);
- deduplication keeps the first suggestion per (category, source) pair;
- truncation to ``max_suggestions`` happens after deduplication.

Fetching conversation context is the only asynchronous step. Any failure is
returned as ``SuggestionResult(success=False)``; nothing is raised to the
caller, and the Next-Best-Action path never depends on this module.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime

import structlog

from src.app.core.monitoring import suggestions_generated_total, suggestions_returned
from src.app.deals.context import as_aware, utc_now
from src.app.deals.conversations import (
    MAX_RECORDS,
    ConversationFetchError,
    ConversationStore,
    fetch_conversation_context,
)
from src.app.deals.schemas import (
    ActionPriority,
    AISuggestion,
    ConversationContext,
    Deal,
    SuggestionResult,
)
from src.app.deals.suggestions.generators import (
    generate_action_item_suggestions,
    generate_key_phrase_suggestions,
    generate_recency_suggestions,
    generate_sentiment_suggestions,
    generate_time_based_suggestions,
)

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SUGGESTIONS = 5

_PRIORITY_WEIGHT = {
    ActionPriority.high: 3,
    ActionPriority.medium: 2,
    ActionPriority.low: 1,
}


# ── Ranking ─────────────────────────────────────────────────────────────────


def rank_suggestions(
    suggestions: Sequence[AISuggestion], max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
) -> list[AISuggestion]:
    """Sort, deduplicate by (category, source) and truncate.

    Args:
        suggestions: Candidates in generator emission order.
        max_suggestions: Maximum number returned.

    Returns:
        Ranked, deduplicated list of at most ``max_suggestions`` items.
    """
    ordered = sorted(
        suggestions,
        key=lambda s: (-_PRIORITY_WEIGHT.get(s.priority, 0), -s.confidence),
    )

    seen: set[str] = set()
    unique: list[AISuggestion] = []
    for suggestion in ordered:
        if suggestion.dedup_key in seen:
            continue
        seen.add(suggestion.dedup_key)
        unique.append(suggestion)

    return unique[: max(0, max_suggestions)]


def collect_suggestions(
    deal: Deal,
    context: ConversationContext,
    now: datetime | None = None,
) -> list[AISuggestion]:
    """Run every generator and concatenate output in the fixed generator order."""
    return [
        *generate_action_item_suggestions(context.action_items, deal),
        *generate_key_phrase_suggestions(context.key_phrases, deal),
        *generate_sentiment_suggestions(context.recent_sentiment, deal),
        *generate_recency_suggestions(context.last_contact_date, deal, now),
        *generate_time_based_suggestions(deal, now),
    ]


def filter_dismissed(
    suggestions: Sequence[AISuggestion], dismissed_ids: Collection[str]
) -> list[AISuggestion]:
    """Drop suggestions whose stable id the user has dismissed."""
    if not dismissed_ids:
        return list(suggestions)
    return [s for s in suggestions if s.id not in dismissed_ids]


# ── Engine ──────────────────────────────────────────────────────────────────


class SuggestionEngine:
    """Generates ranked AI suggestions for deals.

    Args:
        store: Conversation store used when the caller does not supply a
            ConversationContext. Without one, such calls fail (reported in
            the result, not raised).
        max_suggestions: Default cap on returned suggestions.
        lookback_limit: Number of recent conversations to aggregate.
    """

    def __init__(
        self,
        store: ConversationStore | None = None,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
        lookback_limit: int = MAX_RECORDS,
    ) -> None:
        self._store = store
        self._max_suggestions = max_suggestions
        self._lookback_limit = lookback_limit

    async def generate(
        self,
        deal: Deal,
        conversation_context: ConversationContext | None = None,
        max_suggestions: int | None = None,
        now: datetime | None = None,
        dismissed_ids: Collection[str] = (),
    ) -> SuggestionResult:
        """Generate suggestions for a deal.

        Args:
            deal: Deal snapshot.
            conversation_context: Pre-built context; fetched from the store
                when omitted.
            max_suggestions: Cap for this call; defaults to the engine's.
            now: Reference time; defaults to the current UTC time.
            dismissed_ids: Suggestion ids the user has dismissed; removed
                before ranking so they do not use up result slots.

        Returns:
            SuggestionResult. ``success`` is False with an ``error`` message
            if anything failed, including the context fetch.
        """
        limit = self._max_suggestions if max_suggestions is None else max_suggestions
        try:
            now = as_aware(now) if now is not None else utc_now()
            context = conversation_context
            if context is None:
                context = await self._fetch_context(deal)

            candidates = filter_dismissed(
                collect_suggestions(deal, context, now), dismissed_ids
            )
            ranked = rank_suggestions(candidates, limit)
        except Exception as exc:
            logger.warning(
                "suggestions.generation_failed",
                deal_id=deal.id,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            suggestions_generated_total.labels(status="failed").inc()
            return SuggestionResult(success=False, suggestions=[], error=str(exc))

        logger.info(
            "suggestions.generated",
            deal_id=deal.id,
            stage=deal.stage,
            candidates=len(candidates),
            returned=len(ranked),
        )
        suggestions_generated_total.labels(status="success").inc()
        suggestions_returned.observe(len(ranked))
        return SuggestionResult(success=True, suggestions=ranked)

    async def _fetch_context(self, deal: Deal) -> ConversationContext:
        if self._store is None:
            raise ConversationFetchError("No conversation store configured")
        return await fetch_conversation_context(
            self._store,
            deal.id,
            deal.effective_lead_id(),
            self._lookback_limit,
        )


async def generate_suggestions(
    deal: Deal,
    conversation_context: ConversationContext | None = None,
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    store: ConversationStore | None = None,
    now: datetime | None = None,
    dismissed_ids: Collection[str] = (),
) -> SuggestionResult:
    """Generate ranked suggestions for a deal (see SuggestionEngine.generate)."""
    engine = SuggestionEngine(store=store, max_suggestions=max_suggestions)
    return await engine.generate(
        deal, conversation_context, now=now, dismissed_ids=dismissed_ids
    )


async def get_suggestions_for_deal(
    deal: Deal,
    store: ConversationStore | None = None,
    now: datetime | None = None,
) -> list[AISuggestion]:
    """Convenience wrapper returning only the suggestion list (empty on failure)."""
    result = await generate_suggestions(deal, store=store, now=now)
    return result.suggestions
