"""
Inline date extraction for typed task titles.

Recognizes at most one token, in priority order:
  - Numeric date   "05/03/2025"  (day/month/year, must be a real calendar day)
  - Weekday        "seg", "terça-feira", "SÁB", ...  (next such day, today included)

The matched token is removed from the title and whitespace tidied up.
Titles without a token come back untouched with a None date.
"""
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


_LEAD = r"(^|[\s,;:()\[\]{}-])"
_TRAIL = r"(?=$|[\s,;:()\[\]{}.!?-])"

DATE_TOKEN_RE = re.compile(_LEAD + r"(\d{1,2}/\d{1,2}/\d{4})" + _TRAIL)

WEEKDAY_TOKEN_RE = re.compile(
    _LEAD
    + r"(dom(?:ingo)?|seg(?:unda)?|ter(?:[cç]a)?|qua(?:rta)?|qui(?:nta)?"
    + r"|sex(?:ta)?|s[aá]b(?:ado)?)(?:-feira)?"
    + _TRAIL,
    re.IGNORECASE,
)

# Folded three-letter prefix -> date.weekday()
WEEKDAY_PREFIXES = {
    "seg": 0,
    "ter": 1,
    "qua": 2,
    "qui": 3,
    "sex": 4,
    "sab": 5,
    "dom": 6,
}

_MULTISPACE_RE = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class InlineDate:
    """Result of extraction: the title to store and the date found, if any."""
    cleaned_title: str
    resolved_date: Optional[date] = None


def fold(value: str) -> str:
    """Lowercase and strip accents ("Terça" -> "terca")."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _keep_lead(match: "re.Match[str]") -> str:
    lead = match.group(1)
    if not lead:
        return ""
    if lead.isspace():
        return " "
    return lead


def _strip_token(pattern: "re.Pattern[str]", text: str) -> str:
    cleaned = pattern.sub(_keep_lead, text, count=1)
    return _MULTISPACE_RE.sub(" ", cleaned).strip()


def _numeric_date(token: str) -> Optional[date]:
    day_str, month_str, year_str = token.split("/")
    try:
        return date(int(year_str), int(month_str), int(day_str))
    except ValueError:
        return None


def next_weekday(today: date, weekday: int) -> date:
    """First date on/after today falling on weekday (0 = Monday)."""
    return today + timedelta(days=(weekday - today.weekday()) % 7)


def extract_inline_date(raw_title: str, today: Optional[date] = None) -> InlineDate:
    """
    Pull a date or weekday token out of a raw task title.

    today only matters for weekday tokens; it defaults to date.today().
    """
    trimmed = raw_title.strip()
    if not trimmed:
        return InlineDate(raw_title, None)

    match = DATE_TOKEN_RE.search(trimmed)
    if match:
        resolved = _numeric_date(match.group(2))
        if resolved is not None:
            return InlineDate(_strip_token(DATE_TOKEN_RE, trimmed), resolved)

    match = WEEKDAY_TOKEN_RE.search(trimmed)
    if match:
        weekday = WEEKDAY_PREFIXES.get(fold(match.group(2))[:3])
        if weekday is not None:
            base = today if today is not None else date.today()
            return InlineDate(
                _strip_token(WEEKDAY_TOKEN_RE, trimmed),
                next_weekday(base, weekday),
            )

    return InlineDate(raw_title, None)


def has_recognized_date(raw_title: str, today: Optional[date] = None) -> bool:
    """Whether the add-row should highlight a recognized token."""
    if not raw_title.strip():
        return False
    return extract_inline_date(raw_title, today).resolved_date is not None
