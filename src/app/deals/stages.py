"""Deal pipeline stage configuration.

Holds the fixed per-stage tables used by the recommendation engine: pipeline
order, display labels, default next actions and default priorities. Deal
stages arrive from an external store and may not match the enum, so every
table lookup here goes through an existence check with a named fallback.
"""

from __future__ import annotations

from typing import NamedTuple

from src.app.deals.schemas import ActionCategory, ActionPriority, DealStage


class StageDefault(NamedTuple):
    """Fallback action recommended for a stage when no rule fires."""

    action: str
    category: ActionCategory


# ── Stage Sets ──────────────────────────────────────────────────────────────

# Stages in which the seller is actively being worked and silence is a risk.
ACTIVE_STAGES: frozenset[str] = frozenset(
    {
        DealStage.contacted.value,
        DealStage.appointment_set.value,
        DealStage.analyzing.value,
        DealStage.offer_sent.value,
        DealStage.negotiating.value,
    }
)

# Stages in which walkthrough photo coverage is measured.
WALKTHROUGH_STAGES: frozenset[str] = frozenset(
    {DealStage.appointment_set.value, DealStage.analyzing.value}
)

TERMINAL_STAGES: frozenset[str] = frozenset(
    {DealStage.closed_won.value, DealStage.closed_lost.value}
)

# ── Pipeline Order ──────────────────────────────────────────────────────────

PIPELINE_ORDER: list[DealStage] = [
    DealStage.new,
    DealStage.contacted,
    DealStage.appointment_set,
    DealStage.analyzing,
    DealStage.offer_sent,
    DealStage.negotiating,
    DealStage.under_contract,
    DealStage.closed_won,
]

STAGE_LABELS: dict[str, str] = {
    DealStage.new.value: "New",
    DealStage.initial_contact.value: "Initial Contact",
    DealStage.contacted.value: "Contacted",
    DealStage.appointment_set.value: "Appointment Set",
    DealStage.analyzing.value: "Analyzing",
    DealStage.offer_sent.value: "Offer Sent",
    DealStage.negotiating.value: "Negotiating",
    DealStage.under_contract.value: "Under Contract",
    DealStage.closed_won.value: "Closed Won",
    DealStage.closed_lost.value: "Closed Lost",
}

# ── Stage Defaults ──────────────────────────────────────────────────────────

STAGE_DEFAULT_ACTIONS: dict[str, StageDefault] = {
    DealStage.new.value: StageDefault(
        "Make initial contact with seller", ActionCategory.contact
    ),
    DealStage.initial_contact.value: StageDefault(
        "Make initial contact with seller", ActionCategory.contact
    ),
    DealStage.contacted.value: StageDefault(
        "Schedule property appointment", ActionCategory.contact
    ),
    DealStage.appointment_set.value: StageDefault(
        "Complete property walkthrough", ActionCategory.walkthrough
    ),
    DealStage.analyzing.value: StageDefault(
        "Finish deal analysis", ActionCategory.analyze
    ),
    DealStage.offer_sent.value: StageDefault(
        "Follow up on offer status", ActionCategory.followup
    ),
    DealStage.negotiating.value: StageDefault(
        "Continue negotiation with seller", ActionCategory.negotiate
    ),
    DealStage.under_contract.value: StageDefault(
        "Coordinate closing with title company", ActionCategory.close
    ),
    DealStage.closed_won.value: StageDefault(
        "Request referral from seller", ActionCategory.followup
    ),
    DealStage.closed_lost.value: StageDefault(
        "Schedule a future check-in with seller", ActionCategory.followup
    ),
}

UNKNOWN_STAGE_DEFAULT = StageDefault(
    "Review deal and update stage", ActionCategory.followup
)
UNKNOWN_STAGE_PRIORITY = ActionPriority.medium

_STAGE_PRIORITIES: dict[str, ActionPriority] = {
    DealStage.negotiating.value: ActionPriority.high,
    DealStage.under_contract.value: ActionPriority.high,
    DealStage.analyzing.value: ActionPriority.medium,
    DealStage.offer_sent.value: ActionPriority.medium,
}


# ── Lookups ─────────────────────────────────────────────────────────────────


def is_known_stage(stage: str | None) -> bool:
    return stage is not None and stage in STAGE_LABELS


def is_terminal_stage(stage: str | None) -> bool:
    return stage in TERMINAL_STAGES


def get_stage_label(stage: str | None) -> str:
    """Display label for a stage, falling back to the raw value."""
    if stage is None:
        return "Unknown"
    return STAGE_LABELS.get(stage, stage)


def get_stage_default(stage: str | None) -> StageDefault | None:
    """Default action for a known stage, or None for unknown stages."""
    if not is_known_stage(stage):
        return None
    return STAGE_DEFAULT_ACTIONS.get(stage)


def get_stage_priority(stage: str | None) -> ActionPriority:
    """Priority of a stage's default action.

    Known stages outside the explicit mapping are low priority; unknown
    stages get the medium priority of the generic review action.
    """
    if not is_known_stage(stage):
        return UNKNOWN_STAGE_PRIORITY
    return _STAGE_PRIORITIES.get(stage, ActionPriority.low)


def get_next_stage(stage: str | None) -> DealStage | None:
    """Return the next stage in the pipeline.

    The legacy ``initial_contact`` stage advances like ``new``. Terminal
    and unknown stages have no next stage.

    Args:
        stage: Current stage value.

    Returns:
        Next DealStage, or None when the deal cannot advance.
    """
    if stage is None or is_terminal_stage(stage):
        return None
    if stage == DealStage.initial_contact.value:
        stage = DealStage.new.value

    order = [s.value for s in PIPELINE_ORDER]
    try:
        idx = order.index(stage)
    except ValueError:
        return None

    if idx >= len(order) - 1:
        return None
    return PIPELINE_ORDER[idx + 1]
