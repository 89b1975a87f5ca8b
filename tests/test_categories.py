"""Unit tests for action category classification and display lookups."""

from __future__ import annotations

import pytest

from src.app.deals.categories import (
    DEFAULT_BUTTON_TEXT,
    DEFAULT_ICON,
    get_action_button_text,
    get_action_icon,
    get_category_label,
    infer_category_from_text,
)
from src.app.deals.schemas import ActionCategory


# ── Classification ──────────────────────────────────────────────────────────


class TestInferCategoryFromText:
    """Tests for infer_category_from_text keyword matching."""

    def test_first_matching_group_wins(self) -> None:
        """'Call' is checked before anything a later group would match."""
        assert infer_category_from_text("Call the seller about repairs") == ActionCategory.contact

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Reach out to the listing agent", ActionCategory.contact),
            ("Schedule a site visit", ActionCategory.walkthrough),
            ("Upload the kitchen photos", ActionCategory.walkthrough),
            ("Prepare a written proposal", ActionCategory.offer),
            ("Negotiate the closing costs", ActionCategory.negotiate),
            ("Pull comps for the block", ActionCategory.analyze),
            ("Underwrite the deal", ActionCategory.underwrite),
            ("Order title search", ActionCategory.close),
            ("Upload signed disclosure", ActionCategory.document),
            ("Follow up next Tuesday", ActionCategory.followup),
        ],
    )
    def test_keyword_groups(self, text: str, expected: ActionCategory) -> None:
        assert infer_category_from_text(text) == expected

    def test_case_insensitive(self) -> None:
        assert infer_category_from_text("CALL SELLER") == ActionCategory.contact

    def test_offer_group_precedes_negotiate(self) -> None:
        """'counter offer' contains 'offer', which belongs to an earlier group."""
        assert infer_category_from_text("Respond to counter offer") == ActionCategory.offer

    def test_no_match_uses_stage_default_category(self) -> None:
        assert infer_category_from_text("Pick up keys", "under_contract") == ActionCategory.close
        assert infer_category_from_text("Pick up keys", "appointment_set") == ActionCategory.walkthrough

    def test_no_match_unknown_stage_is_followup(self) -> None:
        assert infer_category_from_text("Pick up keys", "archived") == ActionCategory.followup
        assert infer_category_from_text("Pick up keys") == ActionCategory.followup

    def test_empty_text(self) -> None:
        assert infer_category_from_text("", "negotiating") == ActionCategory.negotiate
        assert infer_category_from_text(None) == ActionCategory.followup


# ── Display Lookups ─────────────────────────────────────────────────────────


class TestDisplayLookups:
    """Tests for button text, icon and label tables."""

    @pytest.mark.parametrize(
        "category,button,icon",
        [
            (ActionCategory.contact, "Contact Seller", "phone"),
            (ActionCategory.analyze, "Run Analysis", "bar-chart-2"),
            (ActionCategory.walkthrough, "Start Walkthrough", "camera"),
            (ActionCategory.underwrite, "Quick Underwrite", "calculator"),
            (ActionCategory.offer, "Create Offer", "file-text"),
            (ActionCategory.negotiate, "View Counter", "message-circle"),
            (ActionCategory.close, "View Details", "check-circle"),
            (ActionCategory.followup, "Follow Up", "clock"),
            (ActionCategory.document, "Add Documents", "folder-plus"),
        ],
    )
    def test_known_categories(self, category: ActionCategory, button: str, icon: str) -> None:
        assert get_action_button_text(category) == button
        assert get_action_icon(category) == icon
        # String values resolve the same as enum members
        assert get_action_button_text(category.value) == button

    def test_unknown_category_fallbacks(self) -> None:
        """Unknown categories get a generic label instead of raising."""
        assert get_action_button_text("teleport") == DEFAULT_BUTTON_TEXT
        assert get_action_icon("teleport") == DEFAULT_ICON
        assert get_action_button_text(None) == "Take Action"
        assert get_action_icon(None) == "arrow-right"
        assert get_category_label("teleport") == "Action"

    def test_labels(self) -> None:
        assert get_category_label(ActionCategory.followup) == "Follow-up"
        assert get_category_label("document") == "Document"
