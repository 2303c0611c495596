"""Search query compilation - criteria to IMAP SEARCH syntax.

String filters are sanitised before quoting so user input can never carry a
CRLF into the command line. Dates accept ISO ``YYYY-MM-DD`` or a relative
``<N><unit>`` shorthand and are emitted in the IMAP ``D-Mon-YYYY`` form.
"""

import re
import time
import unicodedata
from typing import Optional, Tuple

from slashmail.core.models.message import SearchCriteria
from slashmail.utils.errors import ValidationError

MONTH_ABBRS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

SECONDS_PER_DAY = 86400
U64_MAX = 2**64 - 1

SIZE_FACTORS = {"K": 1024, "M": 1024 * 1024}

DATE_FORMAT_HINT = "expected YYYY-MM-DD or <N>d/w/m/y, e.g. 2025-01-31 or 2w"

_ABSOLUTE_DATE_RE = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")
_RELATIVE_DATE_RE = re.compile(r"^([0-9]+)([dwmy])$")


## Strings


def sanitize(value: str) -> str:
    """Strip control characters (CR, LF, NUL, DEL, ...) from ``value``."""
    return "".join(c for c in value if unicodedata.category(c) != "Cc")


def imap_quote(value: str) -> str:
    """Sanitise and quote ``value`` as an IMAP quoted string (RFC 9051 4.3)."""
    clean = sanitize(value)
    escaped = clean.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


## Calendar arithmetic


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(year: int, month: int) -> int:
    if month == 2:
        return 29 if is_leap_year(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def civil_from_days(days: int) -> Tuple[int, int, int]:
    """Convert days since 1970-01-01 to a proleptic Gregorian (y, m, d).

    Howard Hinnant's ``civil_from_days``, integer arithmetic only.
    """
    z = days + 719468
    era = z // 146097
    doe = z - era * 146097
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    year = yoe + era * 400
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    if month <= 2:
        year += 1
    return year, month, day


def days_from_civil(year: int, month: int, day: int) -> int:
    """Inverse of ``civil_from_days``."""
    if month <= 2:
        year -= 1
    era = year // 400
    yoe = year - era * 400
    mp = month - 3 if month > 2 else month + 9
    doy = (153 * mp + 2) // 5 + day - 1
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy
    return era * 146097 + doe - 719468


## Dates


def format_imap_date(year: int, month: int, day: int) -> str:
    return f"{day}-{MONTH_ABBRS[month - 1]}-{year:04d}"


def _invalid_date(value: str) -> ValidationError:
    return ValidationError(
        f"Invalid date '{value}' ({DATE_FORMAT_HINT})",
        details={"value": value},
    )


def _relative_date(count: int, unit: str, now: int) -> Tuple[int, int, int]:
    today = now // SECONDS_PER_DAY

    if unit == "d":
        return civil_from_days(today - count)
    if unit == "w":
        return civil_from_days(today - 7 * count)

    year, month, day = civil_from_days(today)
    if unit == "m":
        months = year * 12 + (month - 1) - count
        year, month = months // 12, months % 12 + 1
    else:
        year -= count

    return year, month, min(day, days_in_month(year, month))


def parse_date(value: str, now: Optional[int] = None) -> str:
    """Convert an ISO or relative date expression to IMAP ``D-Mon-YYYY``.

    Args:
        value: ``YYYY-MM-DD`` or ``<N><unit>`` with unit d, w, m or y
        now: Reference time in epoch seconds (defaults to the current time)

    Raises:
        ValidationError: If ``value`` matches neither grammar
    """
    match = _ABSOLUTE_DATE_RE.match(value)
    if match:
        year, month, day = (int(group) for group in match.groups())
        if not 1 <= month <= 12 or not 1 <= day <= 31:
            raise _invalid_date(value)
        return format_imap_date(year, month, day)

    match = _RELATIVE_DATE_RE.match(value)
    if match:
        if now is None:
            now = int(time.time())
        year, month, day = _relative_date(int(match.group(1)), match.group(2), now)
        if not 1 <= year <= 9999:
            raise _invalid_date(value)
        return format_imap_date(year, month, day)

    raise _invalid_date(value)


## Sizes


def parse_size(value: str) -> int:
    """Parse ``500``, ``10K`` or ``5M`` (case-insensitive) into bytes.

    Raises:
        ValidationError: On empty, non-numeric or out-of-range input
    """
    text = value.strip()
    factor = 1
    if text and text[-1].upper() in SIZE_FACTORS:
        factor = SIZE_FACTORS[text[-1].upper()]
        text = text[:-1]

    if not text or not text.isascii() or not text.isdigit():
        raise ValidationError(
            f"Invalid size '{value}' (expected a number with optional K or M suffix, e.g. 500K)",
            details={"value": value},
        )

    size = int(text) * factor
    if size > U64_MAX:
        raise ValidationError(
            f"Size '{value}' is too large",
            details={"value": value},
        )

    return size


## Query


def build_query(criteria: SearchCriteria, now: Optional[int] = None) -> str:
    """Compile ``criteria`` into an IMAP SEARCH key list.

    Clauses are ANDed in a fixed order; no filters yields ``ALL``.
    """
    parts = []

    if criteria.subject is not None:
        parts.append(f"SUBJECT {imap_quote(criteria.subject)}")
    if criteria.sender is not None:
        parts.append(f"FROM {imap_quote(criteria.sender)}")
    if criteria.recipient is not None:
        parts.append(f"TO {imap_quote(criteria.recipient)}")
    if criteria.cc is not None:
        parts.append(f"CC {imap_quote(criteria.cc)}")
    if criteria.since is not None:
        parts.append(f"SINCE {parse_date(criteria.since, now)}")
    if criteria.before is not None:
        parts.append(f"BEFORE {parse_date(criteria.before, now)}")
    if criteria.larger is not None:
        parts.append(f"LARGER {parse_size(criteria.larger)}")

    return " ".join(parts) if parts else "ALL"
