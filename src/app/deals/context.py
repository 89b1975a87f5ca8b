"""Situational signals derived from a deal snapshot.

build_action_context() is a pure function: it reads the deal and an
explicit (or wall-clock) "now" and returns a fresh ActionContext. It is
rebuilt on every evaluation and never cached, so contact recency moves
with real time.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from src.app.deals.schemas import ActionContext, Deal
from src.app.deals.stages import WALKTHROUGH_STAGES

# Photo areas a complete walkthrough covers, in capture order.
REQUIRED_PHOTO_BUCKETS: list[str] = [
    "exterior_front",
    "exterior_back",
    "kitchen",
    "bathroom_primary",
    "living_room",
    "bedroom_primary",
    "roof",
    "hvac",
    "electrical_panel",
    "plumbing",
]

# Missing-bucket lists longer than this are omitted from the context.
MAX_LISTED_MISSING_BUCKETS = 5

_SECONDS_PER_DAY = 86400


# ── Time Helpers ────────────────────────────────────────────────────────────


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime) -> datetime:
    """Treat naive datetimes from collaborators as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_between(earlier: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed from ``earlier`` to ``now``, floored, never negative."""
    now = as_aware(now) if now is not None else utc_now()
    elapsed = (now - as_aware(earlier)).total_seconds()
    return max(0, math.floor(elapsed / _SECONDS_PER_DAY))


def format_time_since(then: datetime, now: datetime | None = None) -> str:
    """Format elapsed time as a short human string.

    Under an hour reads "Nm ago", under a day "Nh ago", exactly one day
    "Yesterday", under a week "Nd ago", otherwise whole weeks "Nw ago".
    Timestamps in the future are treated as just now.
    """
    now = as_aware(now) if now is not None else utc_now()
    elapsed = max(0.0, (now - as_aware(then)).total_seconds())

    minutes = math.floor(elapsed / 60)
    hours = math.floor(elapsed / 3600)
    days = math.floor(elapsed / _SECONDS_PER_DAY)

    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days}d ago"
    return f"{days // 7}w ago"


# ── Walkthrough Coverage ────────────────────────────────────────────────────


def missing_buckets(deal: Deal) -> list[str]:
    """Required photo buckets not yet captured, in capture order."""
    photos = deal.walkthrough.photos if deal.walkthrough is not None else []
    present = {photo.area for photo in photos if photo.area}
    return [bucket for bucket in REQUIRED_PHOTO_BUCKETS if bucket not in present]


def walkthrough_progress(missing_count: int) -> int:
    """Percentage of required buckets captured."""
    total = len(REQUIRED_PHOTO_BUCKETS)
    return round(100 * (total - missing_count) / total)


# ── Context Builder ─────────────────────────────────────────────────────────


def build_action_context(deal: Deal, now: datetime | None = None) -> ActionContext:
    """Derive walkthrough and contact-recency signals for a deal.

    Walkthrough progress is measured only in appointment_set/analyzing and
    only when a walkthrough exists. The missing-bucket list is included
    only when it is a short, useful list (1 to 5 entries).

    Contact recency uses the lead's last contact, falling back to the deal's
    last activity; with neither, both recency fields are omitted.

    Args:
        deal: Deal snapshot.
        now: Reference time; defaults to the current UTC time.

    Returns:
        A fresh ActionContext.
    """
    now = as_aware(now) if now is not None else utc_now()
    fields: dict = {}

    if deal.stage in WALKTHROUGH_STAGES and deal.walkthrough is not None:
        missing = missing_buckets(deal)
        fields["walkthrough_progress"] = walkthrough_progress(len(missing))
        if 1 <= len(missing) <= MAX_LISTED_MISSING_BUCKETS:
            fields["missing_photo_buckets"] = missing

    last_contact = None
    if deal.lead is not None and deal.lead.last_contacted_at is not None:
        last_contact = deal.lead.last_contacted_at
    elif deal.last_activity_at is not None:
        last_contact = deal.last_activity_at

    if last_contact is not None:
        fields["days_since_last_contact"] = days_between(last_contact, now)
        fields["time_since_last_conversation"] = format_time_since(last_contact, now)

    return ActionContext(**fields)
