"""Unit tests for the action context builder and time formatting.

Tests cover:
- format_time_since: minute/hour/yesterday/day/week boundaries, future timestamps
- build_action_context: walkthrough progress and missing buckets per stage,
  contact recency sources, naive timestamps
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.app.deals.context import (
    REQUIRED_PHOTO_BUCKETS,
    build_action_context,
    days_between,
    format_time_since,
)
from src.app.deals.schemas import Deal, Lead, Walkthrough, WalkthroughPhoto


# ── Constants ────────────────────────────────────────────────────────────────

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _walkthrough(buckets: list[str], use_category: bool = False) -> Walkthrough:
    """Walkthrough with one photo per bucket, tagged via bucket or legacy category."""
    photos = [
        WalkthroughPhoto(id=f"p{i}", category=b) if use_category else WalkthroughPhoto(id=f"p{i}", bucket=b)
        for i, b in enumerate(buckets)
    ]
    return Walkthrough(id="w1", photos=photos)


# ── format_time_since ───────────────────────────────────────────────────────


class TestFormatTimeSince:
    """Tests for format_time_since."""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=30), "0m ago"),
            (timedelta(minutes=59), "59m ago"),
            (timedelta(minutes=60), "1h ago"),
            (timedelta(hours=23, minutes=59), "23h ago"),
            (timedelta(days=1), "Yesterday"),
            (timedelta(days=1, hours=23), "Yesterday"),
            (timedelta(days=2), "2d ago"),
            (timedelta(days=6, hours=23), "6d ago"),
            (timedelta(days=7), "1w ago"),
            (timedelta(days=20), "2w ago"),
        ],
    )
    def test_boundaries(self, delta: timedelta, expected: str) -> None:
        assert format_time_since(NOW - delta, NOW) == expected

    def test_future_timestamp_is_just_now(self) -> None:
        assert format_time_since(NOW + timedelta(hours=3), NOW) == "0m ago"

    def test_naive_timestamp_treated_as_utc(self) -> None:
        naive = datetime(2024, 6, 15, 9, 0)
        assert format_time_since(naive, NOW) == "3h ago"


class TestDaysBetween:
    """Tests for days_between flooring."""

    def test_floors_partial_days(self) -> None:
        assert days_between(NOW - timedelta(days=6, hours=23), NOW) == 6
        assert days_between(NOW - timedelta(days=7), NOW) == 7

    def test_never_negative(self) -> None:
        assert days_between(NOW + timedelta(days=2), NOW) == 0


# ── Walkthrough Progress ────────────────────────────────────────────────────


class TestWalkthroughProgress:
    """Tests for walkthrough signals in build_action_context."""

    def test_no_photos(self) -> None:
        """An empty walkthrough is 0% with the missing list suppressed (10 missing)."""
        deal = Deal(id="d1", stage="appointment_set", walkthrough=_walkthrough([]))
        ctx = build_action_context(deal, NOW)
        assert ctx.walkthrough_progress == 0
        assert ctx.missing_photo_buckets is None

    def test_short_missing_list_is_included(self) -> None:
        deal = Deal(
            id="d1",
            stage="analyzing",
            walkthrough=_walkthrough(REQUIRED_PHOTO_BUCKETS[:7]),
        )
        ctx = build_action_context(deal, NOW)
        assert ctx.walkthrough_progress == 70
        assert ctx.missing_photo_buckets == ["hvac", "electrical_panel", "plumbing"]

    def test_five_missing_is_listed_six_is_not(self) -> None:
        five = Deal(id="d1", stage="analyzing", walkthrough=_walkthrough(REQUIRED_PHOTO_BUCKETS[:5]))
        six = Deal(id="d1", stage="analyzing", walkthrough=_walkthrough(REQUIRED_PHOTO_BUCKETS[:4]))
        assert build_action_context(five, NOW).missing_photo_buckets == REQUIRED_PHOTO_BUCKETS[5:]
        assert build_action_context(six, NOW).missing_photo_buckets is None

    def test_complete_walkthrough(self) -> None:
        """All 10 buckets tagged gives 100% and no missing list."""
        deal = Deal(id="d1", stage="appointment_set", walkthrough=_walkthrough(REQUIRED_PHOTO_BUCKETS))
        ctx = build_action_context(deal, NOW)
        assert ctx.walkthrough_progress == 100
        assert ctx.missing_photo_buckets is None

    def test_progress_is_monotonic_in_tagged_buckets(self) -> None:
        previous = -1
        for count in range(len(REQUIRED_PHOTO_BUCKETS) + 1):
            deal = Deal(
                id="d1",
                stage="analyzing",
                walkthrough=_walkthrough(REQUIRED_PHOTO_BUCKETS[:count]),
            )
            progress = build_action_context(deal, NOW).walkthrough_progress
            assert progress >= previous
            previous = progress
        assert previous == 100

    def test_tags_are_case_insensitive_and_category_fallback(self) -> None:
        deal = Deal(
            id="d1",
            stage="analyzing",
            walkthrough=_walkthrough(["KITCHEN", "Roof"], use_category=True),
        )
        assert build_action_context(deal, NOW).walkthrough_progress == 20

    def test_duplicates_and_unknown_tags_ignored(self) -> None:
        deal = Deal(
            id="d1",
            stage="analyzing",
            walkthrough=_walkthrough(["kitchen", "kitchen", "garage", "attic"]),
        )
        assert build_action_context(deal, NOW).walkthrough_progress == 10

    def test_not_measured_outside_walkthrough_stages(self) -> None:
        deal = Deal(id="d1", stage="offer_sent", walkthrough=_walkthrough(["kitchen"]))
        ctx = build_action_context(deal, NOW)
        assert ctx.walkthrough_progress is None
        assert ctx.missing_photo_buckets is None

    def test_not_measured_without_walkthrough(self) -> None:
        deal = Deal(id="d1", stage="appointment_set")
        assert build_action_context(deal, NOW).walkthrough_progress is None


# ── Contact Recency ─────────────────────────────────────────────────────────


class TestContactRecency:
    """Tests for contact recency signals in build_action_context."""

    def test_uses_lead_last_contact(self) -> None:
        deal = Deal(
            id="d1",
            stage="contacted",
            lead=Lead(id="l1", last_contacted_at=NOW - timedelta(days=3, hours=5)),
            last_activity_at=NOW - timedelta(hours=1),
        )
        ctx = build_action_context(deal, NOW)
        assert ctx.days_since_last_contact == 3
        assert ctx.time_since_last_conversation == "3d ago"

    def test_falls_back_to_last_activity(self) -> None:
        deal = Deal(
            id="d1",
            stage="contacted",
            lead=Lead(id="l1"),
            last_activity_at=NOW - timedelta(hours=5),
        )
        ctx = build_action_context(deal, NOW)
        assert ctx.days_since_last_contact == 0
        assert ctx.time_since_last_conversation == "5h ago"

    def test_no_contact_data_omits_both_fields(self) -> None:
        ctx = build_action_context(Deal(id="d1", stage="contacted"), NOW)
        assert ctx.days_since_last_contact is None
        assert ctx.time_since_last_conversation is None
        assert ctx.reason is None

    def test_future_contact_clamps_to_zero(self) -> None:
        deal = Deal(id="d1", last_activity_at=NOW + timedelta(days=2))
        assert build_action_context(deal, NOW).days_since_last_contact == 0
