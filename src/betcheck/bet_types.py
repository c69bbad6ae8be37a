"""Shared sport-type and bet-type definitions.

This module is the single source of truth for the sport/bet type values
accepted across ingestion, storage queries and the web API, and for the
collection names predictions are partitioned into.
"""

from __future__ import annotations

SPORT_TYPES: tuple[str, ...] = ("tennis", "table-tennis")
BET_TYPES: tuple[str, ...] = ("normal", "spread", "kelly")

# Bet types each sport actually publishes. Table tennis has no spread sheets.
SPORT_BET_TYPES: dict[str, tuple[str, ...]] = {
    "tennis": ("normal", "spread", "kelly"),
    "table-tennis": ("normal", "kelly"),
}

# Auxiliary prediction fields carried by each bet type.
BET_TYPE_FIELDS: dict[str, tuple[str, ...]] = {
    "normal": (),
    "kelly": ("optimal_stake_part", "bet_on"),
    "spread": ("value_percent", "money_line1", "money_line2", "bet_on"),
}


def normalize_sport_type(raw: str | None) -> str:
    """Map free-text sport names onto a known sport type.

    "Table Tennis", "table_tennis" and "table-tennis" all map to
    "table-tennis"; anything else (including None) is tennis.
    """
    if not raw:
        return "tennis"
    value = raw.strip().lower().replace("_", "-").replace(" ", "-")
    if value == "table-tennis":
        return "table-tennis"
    return "tennis"


def normalize_bet_type(raw: str | None) -> str:
    """Map a bet type onto a known value, defaulting to "normal"."""
    if not raw:
        return "normal"
    value = raw.strip().lower()
    return value if value in BET_TYPES else "normal"


def is_known_sport_type(raw: str) -> bool:
    return raw.strip().lower() in SPORT_TYPES


def is_known_bet_type(raw: str) -> bool:
    return raw.strip().lower() in BET_TYPES


def get_collection_name(sport_type: str, bet_type: str = "normal") -> str:
    """Return the storage collection for a sport/bet type combination.

    Examples:
        >>> get_collection_name("tennis", "spread")
        'tennis-spread'
        >>> get_collection_name("table-tennis", "spread")
        'table-tennis'
    """
    sport = normalize_sport_type(sport_type)
    bet = normalize_bet_type(bet_type)

    if bet not in SPORT_BET_TYPES[sport] or bet == "normal":
        return sport
    return f"{sport}-{bet}"
