"""Conversation context for suggestion generation.

Aggregates a deal's most recent analysed communications (calls, SMS, email,
voice memos) into a ConversationContext: latest sentiment, deduplicated key
phrases and action items, and the last contact date.

The store is an external collaborator behind the ConversationStore protocol.
Stores return an empty list when a deal has no history; failures are
raised as ConversationFetchError for the suggestion engine to report.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.app.deals.context import as_aware
from src.app.deals.schemas import ConversationContext, Sentiment

logger = structlog.get_logger(__name__)

MAX_RECORDS = 10
MAX_KEY_PHRASES = 10
MAX_ACTION_ITEMS = 5

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ConversationFetchError(Exception):
    """Raised when the conversation store cannot be read."""


class ConversationRecord(BaseModel):
    """One analysed communication with a seller."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    deal_id: str | None = None
    lead_id: str | None = None
    sentiment: Sentiment | None = None
    key_phrases: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    occurred_at: datetime | None = None


@runtime_checkable
class ConversationStore(Protocol):
    """Read access to analysed conversations."""

    async def list_recent(
        self,
        deal_id: str | None,
        lead_id: str | None,
        limit: int = MAX_RECORDS,
    ) -> list[ConversationRecord]:
        """Return records for the deal or lead, most recent first."""
        ...


class InMemoryConversationStore:
    """ConversationStore backed by a list, matching on deal id or lead id."""

    def __init__(self, records: Iterable[ConversationRecord] = ()) -> None:
        self._records: list[ConversationRecord] = list(records)

    def add(self, record: ConversationRecord) -> None:
        self._records.append(record)

    async def list_recent(
        self,
        deal_id: str | None,
        lead_id: str | None,
        limit: int = MAX_RECORDS,
    ) -> list[ConversationRecord]:
        matches = [
            r
            for r in self._records
            if (deal_id is not None and r.deal_id == deal_id)
            or (lead_id is not None and r.lead_id == lead_id)
        ]
        # Undated records sort last.
        matches.sort(
            key=lambda r: as_aware(r.occurred_at) if r.occurred_at else _EPOCH,
            reverse=True,
        )
        return matches[:limit]


def _unique(values: Iterable[str], limit: int) -> list[str]:
    """Order-preserving dedup, truncated to ``limit``."""
    return list(dict.fromkeys(values))[:limit]


def aggregate_conversation_context(
    records: Sequence[ConversationRecord],
) -> ConversationContext:
    """Fold recent conversation records into a ConversationContext.

    Only the first ``MAX_RECORDS`` records (most recent first) are used.
    Sentiment comes from the most recent record alone.

    Args:
        records: Conversation records, most recent first.

    Returns:
        Aggregated context; an empty-but-valid context for no records.
    """
    recent = list(records[:MAX_RECORDS])
    if not recent:
        return ConversationContext()

    key_phrases: list[str] = []
    action_items: list[str] = []
    for record in recent:
        key_phrases.extend(record.key_phrases)
        action_items.extend(record.action_items)

    return ConversationContext(
        recent_sentiment=recent[0].sentiment,
        key_phrases=_unique(key_phrases, MAX_KEY_PHRASES),
        action_items=_unique(action_items, MAX_ACTION_ITEMS),
        last_contact_date=recent[0].occurred_at,
        total_conversations=len(recent),
    )


async def fetch_conversation_context(
    store: ConversationStore,
    deal_id: str | None,
    lead_id: str | None,
    limit: int = MAX_RECORDS,
) -> ConversationContext:
    """Load and aggregate recent conversations for a deal.

    Args:
        store: Conversation store to read from.
        deal_id: Deal identifier.
        lead_id: Lead identifier, if the deal has one.
        limit: Maximum records to consider (capped at MAX_RECORDS).

    Returns:
        Aggregated ConversationContext.

    Raises:
        ConversationFetchError: If the store raises.
    """
    try:
        records = await store.list_recent(deal_id, lead_id, min(limit, MAX_RECORDS))
    except Exception as exc:
        logger.warning(
            "conversations.fetch_failed",
            deal_id=deal_id,
            lead_id=lead_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise ConversationFetchError(
            f"Failed to fetch conversations for deal {deal_id}: {exc}"
        ) from exc

    context = aggregate_conversation_context(records)
    logger.debug(
        "conversations.context_built",
        deal_id=deal_id,
        total_conversations=context.total_conversations,
        sentiment=context.recent_sentiment.value if context.recent_sentiment else None,
    )
    return context
