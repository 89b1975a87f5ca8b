"""REST API endpoints for deal action recommendations.

Exposes the Next-Best-Action evaluator and the AI suggestion engine to the
UI and notification layers. Deals are posted as already-materialized
snapshots; the engine never reads the deal store itself.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from src.app.config import get_settings
from src.app.deals.categories import (
    get_action_button_text,
    get_action_icon,
    get_category_label,
)
from src.app.deals.next_action import calculate_next_action
from src.app.deals.schemas import (
    ActionCategory,
    ConversationContext,
    Deal,
    NextAction,
    SuggestionResult,
)
from src.app.deals.suggestions import SuggestionEngine

router = APIRouter(prefix="/deals", tags=["deals"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class NextActionResponse(BaseModel):
    """Next action plus the display helpers the UI renders with it."""

    deal_id: str
    next_action: NextAction
    button_text: str
    icon: str


class CategoryResponse(BaseModel):
    """Display metadata for one action category."""

    category: str
    label: str
    button_text: str
    icon: str


# ── Request Schemas ──────────────────────────────────────────────────────────


class SuggestionRequest(BaseModel):
    """Request body for generating AI suggestions."""

    deal: Deal
    conversation_context: ConversationContext | None = None
    max_suggestions: int | None = Field(default=None, ge=0, le=20)
    dismissed_ids: list[str] = Field(default_factory=list)


# ── Dependency Injection Helper ──────────────────────────────────────────────


def _get_suggestion_engine(request: Request) -> SuggestionEngine:
    """Build a SuggestionEngine over app.state's conversation store, 503 if missing."""
    store = getattr(request.app.state, "conversation_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conversation store not initialized",
        )
    settings = get_settings()
    return SuggestionEngine(
        store=store,
        max_suggestions=settings.MAX_SUGGESTIONS,
        lookback_limit=settings.CONVERSATION_LOOKBACK_LIMIT,
    )


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/next-action", response_model=NextActionResponse)
async def next_action(deal: Deal) -> NextActionResponse:
    """Compute the Next-Best-Action for a deal snapshot."""
    result = calculate_next_action(deal)
    return NextActionResponse(
        deal_id=deal.id,
        next_action=result,
        button_text=get_action_button_text(result.category),
        icon=get_action_icon(result.category),
    )


@router.post("/suggestions", response_model=SuggestionResult)
async def suggestions(body: SuggestionRequest, request: Request) -> SuggestionResult:
    """Generate ranked AI suggestions for a deal snapshot.

    A failed run (e.g. the conversation fetch failed) is still a 200 with
    ``success: false``; the caller keeps showing the next action.
    """
    if body.conversation_context is not None:
        engine = SuggestionEngine(max_suggestions=get_settings().MAX_SUGGESTIONS)
    else:
        engine = _get_suggestion_engine(request)

    return await engine.generate(
        body.deal,
        conversation_context=body.conversation_context,
        max_suggestions=body.max_suggestions,
        dismissed_ids=set(body.dismissed_ids),
    )


@router.get("/categories", response_model=list[CategoryResponse])
async def categories() -> list[CategoryResponse]:
    """List the action categories with their display labels and icons."""
    return [
        CategoryResponse(
            category=c.value,
            label=get_category_label(c),
            button_text=get_action_button_text(c),
            icon=get_action_icon(c),
        )
        for c in ActionCategory
    ]
