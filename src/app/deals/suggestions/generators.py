"""Heuristic suggestion generators.

Each generator scans one signal (conversation action items, key phrases,
sentiment, contact recency, offer timing) and returns zero or more
AISuggestion candidates with a confidence score. Generators are pure,
independent of each other, and return an empty list when their signal is
absent; "nothing to suggest" is not an error.

Suggestion ids are built from the generator name, the deal id and a slot
index (list position for action items, a fixed rule slot elsewhere) so the
same cause yields the same id on every recomputation.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from src.app.deals.categories import infer_category_from_text
from src.app.deals.context import days_between
from src.app.deals.schemas import (
    ActionCategory,
    ActionPriority,
    AISuggestion,
    Deal,
    DealStage,
    OfferStatus,
    Sentiment,
    SuggestionSource,
)
from src.app.deals.stages import ACTIVE_STAGES

# ── Generator Names ─────────────────────────────────────────────────────────

ACTION_ITEM_GENERATOR = "action_item"
KEY_PHRASE_GENERATOR = "key_phrase"
SENTIMENT_GENERATOR = "sentiment"
RECENCY_GENERATOR = "contact_recency"
TIME_BASED_GENERATOR = "time_based"

# ── Keyword Families ────────────────────────────────────────────────────────

MOTIVATION_PHRASES = ("motivated", "urgent", "quick sale", "need to sell", "behind on payments")
REPAIR_PHRASES = ("repairs", "needs work", "roof", "hvac", "foundation", "damage")
PRICE_PHRASES = ("asking", "price", "arv", "value", "worth", "owe")

MAX_ACTION_ITEM_SUGGESTIONS = 3


def suggestion_id(generator: str, deal_id: str, index: int) -> str:
    """Stable suggestion id for (generator, deal, slot)."""
    return f"{generator}-{deal_id}-{index}"


def _matching(phrases: Sequence[str], keywords: Sequence[str]) -> list[str]:
    return [p for p in phrases if any(k in p.lower() for k in keywords)]


# ── Action Items ────────────────────────────────────────────────────────────


def generate_action_item_suggestions(
    action_items: Sequence[str], deal: Deal
) -> list[AISuggestion]:
    """Surface up to three conversation action items verbatim.

    The first item is high priority and the rest medium; confidence starts
    at 85 and drops by 10 per position.
    """
    suggestions = []
    for index, item in enumerate(action_items[:MAX_ACTION_ITEM_SUGGESTIONS]):
        suggestions.append(
            AISuggestion(
                id=suggestion_id(ACTION_ITEM_GENERATOR, deal.id, index),
                action=item,
                reason="Extracted from recent conversation",
                priority=ActionPriority.high if index == 0 else ActionPriority.medium,
                category=infer_category_from_text(item, deal.stage),
                confidence=85 - index * 10,
                source=SuggestionSource.action_item,
                metadata={"original_text": item},
            )
        )
    return suggestions


# ── Key Phrases ─────────────────────────────────────────────────────────────


def generate_key_phrase_suggestions(
    key_phrases: Sequence[str], deal: Deal
) -> list[AISuggestion]:
    """Match key phrases against motivation, repair and price families.

    Repair mentions only count while no repair estimate is on file; price
    mentions only count while the deal is being analysed.
    """
    suggestions: list[AISuggestion] = []
    if not key_phrases:
        return suggestions

    motivation = _matching(key_phrases, MOTIVATION_PHRASES)
    if motivation:
        suggestions.append(
            AISuggestion(
                id=suggestion_id(KEY_PHRASE_GENERATOR, deal.id, 0),
                action="Seller shows motivation - consider making an offer quickly",
                reason="Detected motivation keywords in recent conversations",
                priority=ActionPriority.high,
                category=ActionCategory.offer,
                confidence=80,
                source=SuggestionSource.conversation_analysis,
                metadata={"matched_phrases": motivation},
            )
        )

    repairs = _matching(key_phrases, REPAIR_PHRASES)
    has_repair_estimate = deal.property is not None and deal.property.repair_cost is not None
    if repairs and not has_repair_estimate:
        suggestions.append(
            AISuggestion(
                id=suggestion_id(KEY_PHRASE_GENERATOR, deal.id, 1),
                action="Seller mentioned repairs - get detailed estimate",
                reason="Repair-related topics discussed but no estimate on file",
                priority=ActionPriority.medium,
                category=ActionCategory.walkthrough,
                confidence=75,
                source=SuggestionSource.conversation_analysis,
                metadata={"matched_phrases": repairs},
            )
        )

    pricing = _matching(key_phrases, PRICE_PHRASES)
    if pricing and deal.stage == DealStage.analyzing.value:
        suggestions.append(
            AISuggestion(
                id=suggestion_id(KEY_PHRASE_GENERATOR, deal.id, 2),
                action="Review pricing based on seller expectations",
                reason="Pricing discussed - ensure underwriting reflects conversation",
                priority=ActionPriority.medium,
                category=ActionCategory.underwrite,
                confidence=70,
                source=SuggestionSource.conversation_analysis,
                metadata={"matched_phrases": pricing},
            )
        )

    return suggestions


# ── Sentiment ───────────────────────────────────────────────────────────────


def generate_sentiment_suggestions(
    sentiment: Sentiment | str | None, deal: Deal
) -> list[AISuggestion]:
    """React to the latest conversation's sentiment.

    Negative sentiment during an offer or negotiation is urgent; in the
    other active stages it prompts a check-in. Positive sentiment while
    analysing suggests presenting an offer. Neutral or absent sentiment
    produces nothing.
    """
    if sentiment is None:
        return []
    try:
        sentiment = Sentiment(sentiment)
    except ValueError:
        return []

    if sentiment == Sentiment.negative:
        if deal.stage in (DealStage.offer_sent.value, DealStage.negotiating.value):
            return [
                AISuggestion(
                    id=suggestion_id(SENTIMENT_GENERATOR, deal.id, 0),
                    action="Address seller concerns before continuing negotiation",
                    reason="Recent conversation showed negative sentiment",
                    priority=ActionPriority.high,
                    category=ActionCategory.contact,
                    confidence=75,
                    source=SuggestionSource.sentiment_change,
                )
            ]
        if deal.stage in ACTIVE_STAGES:
            return [
                AISuggestion(
                    id=suggestion_id(SENTIMENT_GENERATOR, deal.id, 0),
                    action="Check in with seller to understand concerns",
                    reason="Recent conversation showed negative sentiment",
                    priority=ActionPriority.medium,
                    category=ActionCategory.contact,
                    confidence=70,
                    source=SuggestionSource.sentiment_change,
                )
            ]

    if sentiment == Sentiment.positive and deal.stage == DealStage.analyzing.value:
        return [
            AISuggestion(
                id=suggestion_id(SENTIMENT_GENERATOR, deal.id, 1),
                action="Seller is positive - good time to present offer",
                reason="Recent conversation showed positive sentiment",
                priority=ActionPriority.medium,
                category=ActionCategory.offer,
                confidence=65,
                source=SuggestionSource.sentiment_change,
            )
        ]

    return []


# ── Contact Recency ─────────────────────────────────────────────────────────


def generate_recency_suggestions(
    last_contact_date: datetime | None,
    deal: Deal,
    now: datetime | None = None,
) -> list[AISuggestion]:
    """Prompt re-engagement when an active deal has gone quiet.

    Thresholds differ from the next-action recency rule: a
    follow-up suggestion appears from day 4, an urgent one from day 7.
    """
    if last_contact_date is None or deal.stage not in ACTIVE_STAGES:
        return []

    days = days_between(last_contact_date, now)
    if days >= 7:
        return [
            AISuggestion(
                id=suggestion_id(RECENCY_GENERATOR, deal.id, 0),
                action=f"Urgent: No contact in {days} days - re-engage seller",
                reason="Risk of losing deal momentum",
                priority=ActionPriority.high,
                category=ActionCategory.contact,
                confidence=90,
                source=SuggestionSource.contact_recency,
                metadata={"days_since_contact": days},
            )
        ]
    if days >= 4:
        return [
            AISuggestion(
                id=suggestion_id(RECENCY_GENERATOR, deal.id, 1),
                action=f"Follow up with seller ({days} days since last contact)",
                reason="Maintain deal momentum",
                priority=ActionPriority.medium,
                category=ActionCategory.followup,
                confidence=75,
                source=SuggestionSource.contact_recency,
                metadata={"days_since_contact": days},
            )
        ]
    return []


# ── Time-Based ──────────────────────────────────────────────────────────────


def generate_time_based_suggestions(
    deal: Deal, now: datetime | None = None
) -> list[AISuggestion]:
    """Offer follow-up timing for deals with a sent offer outstanding."""
    if deal.stage != DealStage.offer_sent.value:
        return []
    sent = deal.find_offer(OfferStatus.sent.value)
    if sent is None or sent.created_at is None:
        return []

    days = days_between(sent.created_at, now)
    if 2 <= days < 5:
        return [
            AISuggestion(
                id=suggestion_id(TIME_BASED_GENERATOR, deal.id, 0),
                action=f"Follow up on offer (sent {days} days ago)",
                reason="Standard follow-up timing",
                priority=ActionPriority.medium,
                category=ActionCategory.followup,
                confidence=80,
                source=SuggestionSource.time_based,
                metadata={"days_since_sent": days},
            )
        ]
    if days >= 5:
        return [
            AISuggestion(
                id=suggestion_id(TIME_BASED_GENERATOR, deal.id, 1),
                action=f"Urgent: Get response on offer ({days} days pending)",
                reason="Offer may be going stale",
                priority=ActionPriority.high,
                category=ActionCategory.followup,
                confidence=85,
                source=SuggestionSource.time_based,
                metadata={"days_since_sent": days},
            )
        ]
    return []
