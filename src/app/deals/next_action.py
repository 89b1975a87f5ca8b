"""Deterministic Next-Best-Action rule evaluator.

calculate_next_action() walks an ordered table of rules and returns the
first recommendation produced. The order is the priority order:

1. manual override (``deal.next_action``)
2. contact-recency alarm
3. missing critical data (property, lead, ARV, repairs, strategy)
4. walkthrough completeness nudge
5. stage-specific opportunities (offer ready, offer follow-up, counter
   offer, seller report)
6. stage default (always matches, including unknown stages)

Each rule is a pure function of (deal, context, now) returning a NextAction
or None, so rules can be unit-tested on their own. Every returned action
carries the ActionContext built for the evaluation, whichever rule fired.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import NamedTuple

import structlog

from src.app.core.monitoring import next_actions_total
from src.app.deals.categories import infer_category_from_text
from src.app.deals.context import as_aware, build_action_context, days_between, utc_now
from src.app.deals.schemas import (
    ActionCategory,
    ActionContext,
    ActionPriority,
    Deal,
    DealStage,
    NextAction,
    OfferStatus,
)
from src.app.deals.stages import (
    ACTIVE_STAGES,
    UNKNOWN_STAGE_DEFAULT,
    WALKTHROUGH_STAGES,
    get_stage_default,
    get_stage_label,
    get_stage_priority,
)

logger = structlog.get_logger(__name__)

# ── Thresholds ──────────────────────────────────────────────────────────────

STALE_CONTACT_DAYS = 7
NEGOTIATION_CHECK_IN_DAYS = 3
WALKTHROUGH_SUFFICIENT_PROGRESS = 70
OFFER_FOLLOW_UP_DAYS = 3


class Rule(NamedTuple):
    """A named step of the waterfall."""

    name: str
    evaluate: Callable[[Deal, ActionContext, datetime], NextAction | None]


# ── Helpers ─────────────────────────────────────────────────────────────────


def local_date(value: datetime) -> date:
    """Calendar date of a timestamp in local time.

    Aware timestamps are converted to the local timezone; naive ones are
    already local wall-clock values.
    """
    if value.tzinfo is None:
        return value.date()
    return value.astimezone().date()


def is_overdue(due: datetime | None, now: datetime) -> bool:
    """True when the due date falls on a day before today (local midnight)."""
    if due is None:
        return False
    return local_date(due) < local_date(now)


def humanize_bucket(bucket: str) -> str:
    return bucket.replace("_", " ")


def _action(
    context: ActionContext,
    action: str,
    priority: ActionPriority,
    category: ActionCategory,
    reason: str,
) -> NextAction:
    return NextAction(
        action=action,
        priority=priority,
        category=category,
        context=context.model_copy(update={"reason": reason}),
    )


# ── Rules ───────────────────────────────────────────────────────────────────


def manual_override_rule(
    deal: Deal, context: ActionContext, now: datetime
) -> NextAction | None:
    """A next action set by the user always wins."""
    if not deal.next_action:
        return None

    overdue = is_overdue(deal.next_action_due, now)
    return NextAction(
        action=deal.next_action,
        priority=ActionPriority.high if overdue else ActionPriority.medium,
        category=infer_category_from_text(deal.next_action, deal.stage),
        due_date=deal.next_action_due,
        is_overdue=overdue,
        context=context.model_copy(
            update={"reason": "Overdue manual next action" if overdue else "Manual next action"}
        ),
    )


def contact_recency_rule(
    deal: Deal, context: ActionContext, now: datetime
) -> NextAction | None:
    """Flag sellers that have gone quiet in an active stage.

    A full week of silence is an alarm in every active stage; negotiation
    is time-sensitive enough to warrant a check-in after three days.
    """
    if deal.stage not in ACTIVE_STAGES:
        return None
    days = context.days_since_last_contact
    if days is None:
        return None

    if days >= STALE_CONTACT_DAYS:
        return _action(
            context,
            f"Re-engage seller - no contact in {days} days",
            ActionPriority.high,
            ActionCategory.contact,
            f"No contact in {days} days",
        )
    if days >= NEGOTIATION_CHECK_IN_DAYS and deal.stage == DealStage.negotiating.value:
        return _action(
            context,
            f"Check in with seller ({days} days since last contact during negotiation)",
            ActionPriority.high,
            ActionCategory.contact,
            f"Negotiation idle for {days} days",
        )
    return None


def missing_data_rule(
    deal: Deal, context: ActionContext, now: datetime
) -> NextAction | None:
    """Ask for the data every later step depends on."""
    if not deal.has_property():
        return _action(
            context,
            "Link or add property to this deal",
            ActionPriority.high,
            ActionCategory.document,
            "Deal has no property",
        )
    if not deal.has_lead():
        return _action(
            context,
            "Link or add lead contact to this deal",
            ActionPriority.high,
            ActionCategory.contact,
            "Deal has no seller contact",
        )
    if deal.stage != DealStage.analyzing.value:
        return None

    prop = deal.property
    if prop is None or prop.arv is None:
        return _action(
            context,
            "Run comps to determine ARV",
            ActionPriority.high,
            ActionCategory.analyze,
            "ARV is missing",
        )
    if prop.repair_cost is None:
        return _action(
            context,
            "Complete walkthrough to estimate repairs",
            ActionPriority.high,
            ActionCategory.walkthrough,
            "Repair estimate is missing",
        )
    if not deal.strategy:
        return _action(
            context,
            "Select exit strategy (Cash, Seller Finance, Subject-To)",
            ActionPriority.medium,
            ActionCategory.underwrite,
            "No exit strategy selected",
        )
    return None


def walkthrough_rule(
    deal: Deal, context: ActionContext, now: datetime
) -> NextAction | None:
    """Nudge an in-progress walkthrough below the sufficient threshold."""
    if deal.stage not in WALKTHROUGH_STAGES:
        return None
    progress = context.walkthrough_progress
    if progress is None or not 0 < progress < WALKTHROUGH_SUFFICIENT_PROGRESS:
        return None

    if context.missing_photo_buckets:
        target = f"{humanize_bucket(context.missing_photo_buckets[0])} photos"
    else:
        target = "remaining areas"
    return _action(
        context,
        f"Continue walkthrough - capture {target}",
        ActionPriority.medium,
        ActionCategory.walkthrough,
        f"Walkthrough {progress}% complete",
    )


def stage_opportunity_rule(
    deal: Deal, context: ActionContext, now: datetime
) -> NextAction | None:
    """Stage-specific checks that surface a ready or pending step."""
    stage = deal.stage

    if stage == DealStage.analyzing.value:
        prop = deal.property
        if (
            prop is not None
            and prop.arv is not None
            and prop.repair_cost is not None
            and deal.strategy
        ):
            return _action(
                context,
                "Create and send offer package",
                ActionPriority.high,
                ActionCategory.offer,
                "Analysis complete - ready to send offer",
            )

    elif stage == DealStage.offer_sent.value:
        sent = deal.find_offer(OfferStatus.sent.value)
        if sent is not None and sent.created_at is not None:
            days = days_between(sent.created_at, now)
            if days >= OFFER_FOLLOW_UP_DAYS:
                return _action(
                    context,
                    f"Follow up on offer ({days} days since sent)",
                    ActionPriority.high,
                    ActionCategory.followup,
                    f"Offer pending for {days} days",
                )

    elif stage == DealStage.negotiating.value:
        if deal.find_offer(OfferStatus.countered.value) is not None:
            return _action(
                context,
                "Review and respond to counter offer",
                ActionPriority.high,
                ActionCategory.negotiate,
                "Seller countered",
            )

    elif stage == DealStage.under_contract.value:
        if deal.seller_report is None:
            return _action(
                context,
                "Create seller report",
                ActionPriority.medium,
                ActionCategory.document,
                "No seller report on file",
            )

    return None


def stage_default_rule(
    deal: Deal, context: ActionContext, now: datetime
) -> NextAction:
    """Fixed per-stage fallback; unknown stages get a generic review action."""
    default = get_stage_default(deal.stage)
    if default is None:
        default = UNKNOWN_STAGE_DEFAULT
        reason = f"Unrecognized stage: {deal.stage}"
    else:
        reason = f"Default next step for {get_stage_label(deal.stage)}"
    return _action(
        context,
        default.action,
        get_stage_priority(deal.stage),
        default.category,
        reason,
    )


RULES: tuple[Rule, ...] = (
    Rule("manual_override", manual_override_rule),
    Rule("contact_recency", contact_recency_rule),
    Rule("missing_data", missing_data_rule),
    Rule("walkthrough", walkthrough_rule),
    Rule("stage_opportunity", stage_opportunity_rule),
    Rule("stage_default", stage_default_rule),
)


# ── Evaluator ───────────────────────────────────────────────────────────────


def calculate_next_action(deal: Deal, now: datetime | None = None) -> NextAction:
    """Compute the single recommended next action for a deal.

    Args:
        deal: Deal snapshot.
        now: Reference time; defaults to the current UTC time.

    Returns:
        The NextAction of the first rule that matches. The stage default
        always matches, so a result is always produced.
    """
    now = as_aware(now) if now is not None else utc_now()
    context = build_action_context(deal, now)

    for rule in RULES:
        result = rule.evaluate(deal, context, now)
        if result is not None:
            logger.debug(
                "next_action.rule_matched",
                deal_id=deal.id,
                stage=deal.stage,
                rule=rule.name,
                priority=result.priority.value,
                category=result.category.value,
            )
            next_actions_total.labels(
                rule=rule.name,
                category=result.category.value,
                priority=result.priority.value,
            ).inc()
            return result

    # Unreachable: stage_default_rule always matches.
    return stage_default_rule(deal, context, now)
