"""AI suggestion generation -- heuristic generators plus the ranking engine.

Exports:
    SuggestionEngine: Runs generators, ranks, deduplicates and truncates.
    generate_suggestions: Module-level entry point.
    get_suggestions_for_deal: Convenience wrapper returning the list only.
    filter_dismissed: Removes user-dismissed suggestions by stable id.
"""

from src.app.deals.suggestions.engine import (
    SuggestionEngine,
    filter_dismissed,
    generate_suggestions,
    get_suggestions_for_deal,
    rank_suggestions,
)

__all__ = [
    "SuggestionEngine",
    "filter_dismissed",
    "generate_suggestions",
    "get_suggestions_for_deal",
    "rank_suggestions",
]
