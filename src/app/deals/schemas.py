"""Pydantic data models for the deal action recommendation engine.

Defines the read-only deal snapshot consumed by the engine (Deal, Lead,
Property, Offer, Walkthrough, SellerReport) and the derived, per-call
outputs it produces (ActionContext, NextAction, AISuggestion,
ConversationContext, SuggestionResult).

Stage and strategy are carried as plain strings on the snapshot so that a
value the store knows about but this code does not (a renamed or retired
stage) still validates. Every consumer compares against the enums below and
degrades to a generic fallback for anything it does not recognise.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ───────────────────────────────────────────────────────────────────


class DealStage(str, Enum):
    """Pipeline position of a deal, in pipeline order."""

    new = "new"
    initial_contact = "initial_contact"  # legacy alias of "new"
    contacted = "contacted"
    appointment_set = "appointment_set"
    analyzing = "analyzing"
    offer_sent = "offer_sent"
    negotiating = "negotiating"
    under_contract = "under_contract"
    closed_won = "closed_won"
    closed_lost = "closed_lost"


class DealStrategy(str, Enum):
    """Exit strategy selected for a deal."""

    cash = "cash"
    seller_finance = "seller_finance"
    subject_to = "subject_to"
    wholesale = "wholesale"
    fix_and_flip = "fix_and_flip"
    brrrr = "brrrr"
    buy_and_hold = "buy_and_hold"


class OfferStatus(str, Enum):
    """Lifecycle status of an offer."""

    draft = "draft"
    sent = "sent"
    countered = "countered"
    accepted = "accepted"
    rejected = "rejected"


class ActionPriority(str, Enum):
    """Urgency of a recommended action."""

    high = "high"
    medium = "medium"
    low = "low"


class ActionCategory(str, Enum):
    """Closed taxonomy shared by next actions and suggestions."""

    contact = "contact"
    analyze = "analyze"
    walkthrough = "walkthrough"
    underwrite = "underwrite"
    offer = "offer"
    negotiate = "negotiate"
    close = "close"
    followup = "followup"
    document = "document"


class SuggestionSource(str, Enum):
    """Generator family that produced a suggestion."""

    conversation_analysis = "conversation_analysis"
    contact_recency = "contact_recency"
    stage_pattern = "stage_pattern"
    sentiment_change = "sentiment_change"
    action_item = "action_item"
    time_based = "time_based"


class Sentiment(str, Enum):
    """Sentiment of an analysed conversation."""

    positive = "positive"
    neutral = "neutral"
    negative = "negative"


# ── Deal Snapshot ───────────────────────────────────────────────────────────


class Lead(BaseModel):
    """Seller contact linked to a deal."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    last_contacted_at: datetime | None = None


class Property(BaseModel):
    """Subject property of a deal, with underwriting inputs."""

    model_config = ConfigDict(extra="ignore")

    id: str
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    arv: float | None = None
    repair_cost: float | None = None
    purchase_price: float | None = None


class Offer(BaseModel):
    """Offer made on a deal."""

    model_config = ConfigDict(extra="ignore")

    id: str
    deal_id: str | None = None
    offer_type: str | None = None
    status: str = OfferStatus.draft.value
    created_at: datetime | None = None


class WalkthroughPhoto(BaseModel):
    """One captured walkthrough photo tagged with the area it shows.

    ``bucket`` is the current tag; ``category`` is the older field name
    and is used only when ``bucket`` is empty.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    bucket: str | None = None
    category: str | None = None
    url: str | None = None

    @property
    def area(self) -> str | None:
        """Normalised area tag (lowercase), or None when untagged."""
        tag = self.bucket or self.category
        return tag.strip().lower() if tag else None


class Walkthrough(BaseModel):
    """Property walkthrough with its photo set."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    photos: list[WalkthroughPhoto] = Field(default_factory=list)


class SellerReport(BaseModel):
    """Seller-facing report generated for a deal."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    created_at: datetime | None = None


class Deal(BaseModel):
    """Read-only deal snapshot supplied by the deal store.

    ``offers`` is expected most-recent-first. ``lead``/``property`` are the
    resolved sub-objects when linked; ``lead_id``/``property_id`` alone also
    count as a link.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    stage: str | None = DealStage.new.value
    strategy: str | None = None

    lead_id: str | None = None
    property_id: str | None = None
    lead: Lead | None = None
    property: Property | None = None

    next_action: str | None = None
    next_action_due: datetime | None = None

    risk_score: int | None = None
    risk_score_auto: int | None = None

    offers: list[Offer] = Field(default_factory=list)
    walkthrough: Walkthrough | None = None
    seller_report: SellerReport | None = None

    last_activity_at: datetime | None = None

    # Plain methods: the ``property`` field shadows the builtin decorator here.

    def has_property(self) -> bool:
        return self.property is not None or bool(self.property_id)

    def has_lead(self) -> bool:
        return self.lead is not None or bool(self.lead_id)

    def effective_lead_id(self) -> str | None:
        """Lead id from the link field, or from the resolved lead."""
        if self.lead_id:
            return self.lead_id
        return self.lead.id if self.lead is not None else None

    def effective_risk_score(self) -> int | None:
        """Manual risk score when set, otherwise the automatic one."""
        if self.risk_score is not None:
            return self.risk_score
        return self.risk_score_auto

    def find_offer(self, status: str) -> Offer | None:
        """First (most recent) offer with the given status."""
        for offer in self.offers:
            if offer.status == status:
                return offer
        return None


# ── Derived Outputs ─────────────────────────────────────────────────────────


class ActionContext(BaseModel):
    """Situational signals derived from a deal snapshot.

    Rebuilt on every evaluation and never persisted. Optional fields are
    None when the signal does not apply to the deal.
    """

    model_config = ConfigDict(frozen=True)

    walkthrough_progress: int | None = Field(default=None, ge=0, le=100)
    missing_photo_buckets: list[str] | None = None
    days_since_last_contact: int | None = Field(default=None, ge=0)
    time_since_last_conversation: str | None = None
    reason: str | None = None


class NextAction(BaseModel):
    """The single recommended next step for a deal."""

    model_config = ConfigDict(frozen=True)

    action: str
    priority: ActionPriority
    category: ActionCategory
    due_date: datetime | None = None
    is_overdue: bool = False
    context: ActionContext = Field(default_factory=ActionContext)


class AISuggestion(BaseModel):
    """A ranked secondary recommendation produced by a suggestion generator."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable id: generator, deal id and slot")
    action: str
    reason: str
    priority: ActionPriority
    category: ActionCategory
    confidence: int = Field(..., ge=0, le=100)
    source: SuggestionSource
    metadata: dict[str, Any] | None = None

    @property
    def dedup_key(self) -> str:
        return f"{self.category.value}-{self.source.value}"


class ConversationContext(BaseModel):
    """Aggregate over a deal's recent analysed communications."""

    model_config = ConfigDict(frozen=True)

    recent_sentiment: Sentiment | None = None
    key_phrases: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    last_contact_date: datetime | None = None
    total_conversations: int = Field(default=0, ge=0)


class SuggestionResult(BaseModel):
    """Outcome of a suggestion run. Failures are reported, never raised."""

    model_config = ConfigDict(frozen=True)

    success: bool
    suggestions: list[AISuggestion] = Field(default_factory=list)
    error: str | None = None
