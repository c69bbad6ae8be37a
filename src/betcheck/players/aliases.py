"""
Player name normalization and comparison utilities.

Prediction spreadsheets and the results feed name the same player in
different ways:
- Feed: "Novak Djokovic"
- Spreadsheet: "Djokovic N." or "N. Djokovic"
- With accents: "Carlos Alcaraz" vs "Carlos Alcaráz"
- Hyphenated: "Auger-Aliassime" vs "Auger Aliassime"

This module provides utilities to normalize names and break them into
parts so the matcher can compare them. The goal is to maximize successful
matching while minimizing false positives.
"""

import re
from dataclasses import dataclass
from typing import Optional

import jellyfish
from rapidfuzz import fuzz
from unidecode import unidecode

# A lone letter with an optional period: "N.", "N" or "l."
_INITIAL_TOKEN = re.compile(r"^[^\W\d_]\.?$")


@dataclass(frozen=True)
class NameParts:
    """
    A name broken into first name, last name and initials.

    First and last names keep their original casing; initials are
    upper-case (e.g. "ND" for "Novak Djokovic").
    """
    first_name: str = ""
    last_name: str = ""
    initials: str = ""


def strip_accents(value: str) -> str:
    """
    Fold accented letters to plain ASCII, keeping case.

    Covers combining accents (é → e, ñ → n, ç → c) as well as letters
    that have no decomposed form (Ł → L, đ → d, ø → o, ß → ss).
    """
    return unidecode(value)


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a player name for comparison.

    Normalization steps:
    1. Convert to lowercase
    2. Remove accents (é → e, ñ → n, ł → l)
    3. Remove periods
    4. Convert hyphens to spaces
    5. Collapse whitespace and trim

    Lowercasing happens first so that "İ" (which lowercases to "i" plus a
    combining mark) folds to a plain "i".

    Args:
        name: Raw player name from any source

    Returns:
        Normalized name. normalize_name(normalize_name(x)) == normalize_name(x).

    Examples:
        >>> normalize_name("Novak DJOKOVIC")
        'novak djokovic'
        >>> normalize_name("Félix Auger-Aliassime")
        'felix auger aliassime'
        >>> normalize_name("Djokovic N.")
        'djokovic n'
    """
    if not name:
        return ""

    normalized = strip_accents(name.lower())
    normalized = normalized.replace(".", "")
    normalized = normalized.replace("-", " ")

    # Multiple spaces → single space, trims both ends
    return " ".join(normalized.split())


def extract_name_parts(name: Optional[str]) -> NameParts:
    """
    Split a name into first name, last name and initials.

    Handles the formats seen in prediction sheets:
    - "Djokovic" → last name only
    - "Novak Djokovic" → first / last
    - "Juan Martin Etcheverry" → "Juan Martin" / "Etcheverry"
    - "N. Djokovic" → "N" / "Djokovic" (leading initial)
    - "Djokovic N." → "N" / "Djokovic" (trailing initial)

    Never raises; empty input gives empty parts.
    """
    if not name:
        return NameParts()

    parts = name.split()
    if not parts:
        return NameParts()

    if len(parts) == 1:
        last_name = parts[0]
        return NameParts(last_name=last_name, initials=last_name[0].upper())

    if _INITIAL_TOKEN.match(strip_accents(parts[0])):
        first_name = parts[0].rstrip(".")
        last_name = " ".join(parts[1:])
    elif _INITIAL_TOKEN.match(strip_accents(parts[-1])):
        first_name = parts[-1].rstrip(".")
        last_name = " ".join(parts[:-1])
    else:
        first_name = " ".join(parts[:-1])
        last_name = parts[-1]

    initials = (first_name[:1] + last_name[:1]).upper()
    return NameParts(first_name=first_name, last_name=last_name, initials=initials)


def first_initial(name: str) -> str:
    """Return the normalized first letter of a name part ("" if empty)."""
    return normalize_name(name)[:1]


def compare_names(name1: str, name2: str) -> float:
    """
    Compare two player names and return a similarity score.

    Uses two comparison algorithms and takes the best score:
    1. Jaro-Winkler: Good for typos and minor variations
    2. Token sort ratio: Handles word order differences

    A bonus is added when the last names agree and one first name is just
    the initial of the other.

    Args:
        name1: First name (normalized or not)
        name2: Second name (normalized or not)

    Returns:
        Similarity score from 0.0 (no match) to 1.0 (exact match)

    Examples:
        >>> compare_names("Novak Djokovic", "novak djokovic")
        1.0
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if not n1 or not n2:
        return 0.0

    if n1 == n2:
        return 1.0

    # Jaro-Winkler similarity (gives more weight to prefix matches)
    jw_score = jellyfish.jaro_winkler_similarity(n1, n2)

    # "novak djokovic" vs "djokovic novak" should score high
    token_sort = fuzz.token_sort_ratio(n1, n2) / 100.0

    # "n djokovic" vs "novak djokovic"
    abbreviated_bonus = 0.0
    parts1 = n1.split()
    parts2 = n2.split()

    if len(parts1) >= 2 and len(parts2) >= 2 and parts1[-1] == parts2[-1]:
        first1 = parts1[0]
        first2 = parts2[0]
        if len(first1) == 1 and first2.startswith(first1):
            abbreviated_bonus = 0.15
        elif len(first2) == 1 and first1.startswith(first2):
            abbreviated_bonus = 0.15

    return min(1.0, max(jw_score, token_sort) + abbreviated_bonus)


def name_distance(name1: str, name2: str) -> float:
    """
    Dissimilarity between two names: 0.0 is identical, 1.0 unrelated.

    This is the scale the fuzzy matching threshold is expressed on.
    """
    return 1.0 - compare_names(name1, name2)
