"""
Date handling for prediction sheets, file names and the results feed.

Three date shapes meet here:
- Display dates on predictions: "10th Apr 2025", often followed by a
  kick-off time: "10th Apr 2025, 14:30 EDT"
- Upload file names: "tennis-kelly-10-04-2025.xlsx" (day-month-year)
- The results feed, which wants ISO dates: "2025-04-10"
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

MONTHS: dict[str, str] = {
    "jan": "01", "feb": "02", "mar": "03", "apr": "04", "may": "05", "jun": "06",
    "jul": "07", "aug": "08", "sep": "09", "oct": "10", "nov": "11", "dec": "12",
}
MONTH_NAMES: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_DISPLAY_DATE = re.compile(r"(\d{1,2})(?:st|nd|rd|th)\s+([A-Za-z]+)\s+(\d{4})")
_DISPLAY_DATE_EXACT = re.compile(r"^\d{1,2}(?:st|nd|rd|th)\s+[A-Za-z]+\s+\d{4}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DMY_DASH = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_DMY_SLASH = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_TIME = re.compile(r"(\d{2}):(\d{2})(?:\s*([A-Z]{3,4}))?")

# Minutes value for predictions without a kick-off time (sorts them last)
NO_TIME = 24 * 60 * 100


@dataclass(frozen=True)
class FileNameInfo:
    """What an upload file name tells us about its contents."""
    date: Optional[str]
    bet_type: str
    sport_type: str


def to_api_date(date_str: Optional[str]) -> str:
    """
    Convert a prediction date to the ISO form the results feed expects.

    Handles:
    - "10th Apr 2025" (also with a trailing time) → "2025-04-10"
    - "2025-04-10" → unchanged
    - "10-04-2025" and "10/04/2025" (day first) → "2025-04-10"

    Ordinal suffixes are dropped and month names map on their first three
    letters. An unrecognised month becomes "01". Any other input is
    returned unchanged.
    """
    if not date_str:
        return ""

    value = date_str.strip()

    found = _DISPLAY_DATE.search(value)
    if found:
        day = found.group(1).zfill(2)
        month = MONTHS.get(found.group(2)[:3].lower(), "01")
        return f"{found.group(3)}-{month}-{day}"

    if _ISO_DATE.match(value):
        return value

    found = _DMY_DASH.match(value) or _DMY_SLASH.match(value)
    if found:
        day, month, year = found.groups()
        return f"{year}-{month}-{day}"

    return value


def extract_display_date(date_str: Optional[str]) -> str:
    """
    Pull the "10th Apr 2025" part out of a date string ("" if absent).

    Repeated whitespace inside the date is collapsed.
    """
    if not date_str:
        return ""
    found = _DISPLAY_DATE.search(date_str)
    if not found:
        return ""
    return " ".join(found.group(0).split())


def is_display_date(value: Optional[str]) -> bool:
    """True if value is exactly a "10th Apr 2025" style date."""
    return bool(value) and bool(_DISPLAY_DATE_EXACT.match(value.strip()))


def parse_display_date(value: Optional[str]) -> Optional[date]:
    """Parse a "10th Apr 2025" date into a date object (None if invalid)."""
    iso = to_api_date(extract_display_date(value))
    if not _ISO_DATE.match(iso):
        return None
    try:
        return date.fromisoformat(iso)
    except ValueError:
        return None


def format_display_date(value: date) -> str:
    """
    Format a date the way prediction sheets do.

    Examples:
        >>> format_display_date(date(2025, 4, 1))
        '1st Apr 2025'
        >>> format_display_date(date(2025, 4, 12))
        '12th Apr 2025'
    """
    day = value.day
    if day % 10 == 1 and day != 11:
        suffix = "st"
    elif day % 10 == 2 and day != 12:
        suffix = "nd"
    elif day % 10 == 3 and day != 13:
        suffix = "rd"
    else:
        suffix = "th"
    return f"{day}{suffix} {MONTH_NAMES[value.month - 1]} {value.year}"


def extract_time(date_str: Optional[str]) -> str:
    """Pull a kick-off time like "14:30 EDT" out of a date string."""
    if not date_str:
        return ""
    found = _TIME.search(date_str)
    return found.group(0).strip() if found else ""


def time_to_minutes(time_str: Optional[str]) -> int:
    """
    Minutes past midnight for "HH:MM" (timezone ignored).

    Missing or unreadable times return NO_TIME so they sort last.
    """
    if not time_str:
        return NO_TIME
    found = _TIME.search(time_str)
    if not found:
        return NO_TIME
    return int(found.group(1)) * 60 + int(found.group(2))


def parse_file_name(file_name: str) -> FileNameInfo:
    """
    Read date, bet type and sport type from an upload file name.

    Recognised names:
    - tennis-DD-MM-YYYY (normal)
    - tennis-spread-DD-MM-YYYY
    - tennis-kelly-DD-MM-YYYY
    - table-tennis-DD-MM-YYYY (normal)
    - table-tennis-kelly-DD-MM-YYYY

    Args:
        file_name: File name or path; directories and extension are ignored

    Returns:
        FileNameInfo whose date is "10th Apr 2025" style, or None if the
        name carries no valid date

    Examples:
        >>> parse_file_name("tennis-kelly-10-04-2025.xlsx")
        FileNameInfo(date='10th Apr 2025', bet_type='kelly', sport_type='tennis')
    """
    base = re.split(r"[\\/]", file_name)[-1].lower()

    if "-spread-" in base:
        bet_type = "spread"
    elif "-kelly-" in base:
        bet_type = "kelly"
    else:
        bet_type = "normal"

    sport_type = "table-tennis" if base.startswith("table-tennis") else "tennis"

    found = re.search(
        r"(?:table-tennis|tennis)(?:-spread|-kelly)?-(\d{1,2})-(\d{1,2})-(\d{4})",
        base,
    )
    if not found:
        return FileNameInfo(date=None, bet_type=bet_type, sport_type=sport_type)

    day, month, year = (int(part) for part in found.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return FileNameInfo(date=None, bet_type=bet_type, sport_type=sport_type)

    return FileNameInfo(
        date=format_display_date(parsed),
        bet_type=bet_type,
        sport_type=sport_type,
    )
