"""
Player name matching module.

Prediction sheets and the results feed spell player names differently,
so reconciling a prediction with its result starts with deciding which
feed player a spreadsheet name refers to.

Key components:
- normalize_name / extract_name_parts: canonical forms for comparison
- PlayerMatcher: tiered matching against a pool of feed names

The matching strategy (in priority order):
1. Exact match after normalization
2. Abbreviated pattern ("Djokovic N.", "N. Djokovic")
3. Unique last name, first initial as tie-break
4. Fuzzy match below the configured dissimilarity threshold
5. Same initials or last-name prefix
"""

from betcheck.players.aliases import (
    NameParts,
    compare_names,
    extract_name_parts,
    normalize_name,
)
from betcheck.players.matching import PlayerMatch, PlayerMatcher, find_best_match

__all__ = [
    "NameParts",
    "PlayerMatch",
    "PlayerMatcher",
    "compare_names",
    "extract_name_parts",
    "find_best_match",
    "normalize_name",
]
