"""
Parsers for prediction sheet and results feed values.

This module contains parsers for:
- Score parsing (main score, set scores, mixed separators)
- Date parsing (display dates, feed dates, upload file names)
"""

from betcheck.parsers.dates import parse_file_name, to_api_date
from betcheck.parsers.score import MainScore, ParsedScore, parse_score

__all__ = [
    "MainScore",
    "ParsedScore",
    "parse_score",
    "parse_file_name",
    "to_api_date",
]
