"""Action category classification and display lookups.

infer_category_from_text() maps free-form action text (manual next actions,
conversation action items) onto the fixed category taxonomy. Keyword groups
are checked in order and the first group with a substring match wins, so
"Call the seller about repairs" is a contact action.

The button-text, icon and label tables are presentation helpers for the UI
layer; they are not consulted by any decision logic.
"""

from __future__ import annotations

from src.app.deals.schemas import ActionCategory
from src.app.deals.stages import get_stage_default

# Ordered keyword groups: earlier groups take precedence.
CATEGORY_KEYWORDS: list[tuple[ActionCategory, tuple[str, ...]]] = [
    (ActionCategory.contact, ("call", "contact", "reach out")),
    (ActionCategory.walkthrough, ("walkthrough", "visit", "view", "photos")),
    (ActionCategory.offer, ("offer", "send", "proposal")),
    (ActionCategory.negotiate, ("counter", "negotiate")),
    (ActionCategory.analyze, ("analyze", "comps", "arv")),
    (ActionCategory.underwrite, ("underwrite", "numbers", "run")),
    (ActionCategory.close, ("close", "title", "escrow")),
    (ActionCategory.document, ("document", "upload", "sign", "report")),
    (ActionCategory.followup, ("follow", "check")),
]


def infer_category_from_text(
    text: str | None, stage: str | None = None
) -> ActionCategory:
    """Classify action text into a category.

    Args:
        text: Free-form action text. Matching is case-insensitive.
        stage: Deal stage used when no keyword matches; the category of the
            stage's default action is returned. Unknown or missing stages
            fall back to followup.

    Returns:
        The inferred ActionCategory.
    """
    lower = (text or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category

    default = get_stage_default(stage)
    if default is not None:
        return default.category
    return ActionCategory.followup


# ── Display Lookups ─────────────────────────────────────────────────────────

_BUTTON_TEXT: dict[str, str] = {
    ActionCategory.contact.value: "Contact Seller",
    ActionCategory.analyze.value: "Run Analysis",
    ActionCategory.walkthrough.value: "Start Walkthrough",
    ActionCategory.underwrite.value: "Quick Underwrite",
    ActionCategory.offer.value: "Create Offer",
    ActionCategory.negotiate.value: "View Counter",
    ActionCategory.close.value: "View Details",
    ActionCategory.followup.value: "Follow Up",
    ActionCategory.document.value: "Add Documents",
}

_ICONS: dict[str, str] = {
    ActionCategory.contact.value: "phone",
    ActionCategory.analyze.value: "bar-chart-2",
    ActionCategory.walkthrough.value: "camera",
    ActionCategory.underwrite.value: "calculator",
    ActionCategory.offer.value: "file-text",
    ActionCategory.negotiate.value: "message-circle",
    ActionCategory.close.value: "check-circle",
    ActionCategory.followup.value: "clock",
    ActionCategory.document.value: "folder-plus",
}

_LABELS: dict[str, str] = {
    ActionCategory.contact.value: "Contact",
    ActionCategory.analyze.value: "Analyze",
    ActionCategory.walkthrough.value: "Walkthrough",
    ActionCategory.underwrite.value: "Underwrite",
    ActionCategory.offer.value: "Offer",
    ActionCategory.negotiate.value: "Negotiate",
    ActionCategory.close.value: "Close",
    ActionCategory.followup.value: "Follow-up",
    ActionCategory.document.value: "Document",
}

DEFAULT_BUTTON_TEXT = "Take Action"
DEFAULT_ICON = "arrow-right"
DEFAULT_LABEL = "Action"


def _key(category: ActionCategory | str | None) -> str | None:
    if isinstance(category, ActionCategory):
        return category.value
    return category


def get_action_button_text(category: ActionCategory | str | None) -> str:
    """Button text for a category, with a generic fallback."""
    return _BUTTON_TEXT.get(_key(category), DEFAULT_BUTTON_TEXT)


def get_action_icon(category: ActionCategory | str | None) -> str:
    """Icon name for a category, with a generic fallback."""
    return _ICONS.get(_key(category), DEFAULT_ICON)


def get_category_label(category: ActionCategory | str | None) -> str:
    return _LABELS.get(_key(category), DEFAULT_LABEL)
