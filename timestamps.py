"""Parsing and formatting of access-log timestamps."""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# e.g. "Sunday, Oct 18, 2026 09:05:12 AM"; seconds are kept so the
# duplicate window can be measured exactly
DISPLAY_FMT = "%A, %b %d, %Y %I:%M:%S %p"

# Naive formats people (and older versions of this service) have written
KNOWN_FORMATS = [
    DISPLAY_FMT,
    "%A, %b %d, %Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%a %b %d %Y %H:%M:%S",
    "%b %d, %Y %I:%M %p",
]


def _parse_epoch(text: str) -> Optional[datetime]:
    if not text.isdigit() or len(text) < 9:
        return None
    # 13 digits is milliseconds, 10 is seconds
    seconds = int(text) / 1000 if len(text) >= 12 else int(text)
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_iso(text: str, tz: ZoneInfo) -> Optional[datetime]:
    if len(text) < 10 or text[4] != "-":
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=tz)


def parse_timestamp(value, tz: ZoneInfo) -> Optional[datetime]:
    """
    Parse a timestamp cell into an aware datetime.

    Understands ISO-8601, Unix epoch seconds or milliseconds and the
    formats in KNOWN_FORMATS. Naive values are read as local time in `tz`.
    Returns None when nothing fits.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)
    text = str(value or "").strip()
    if not text:
        return None

    dt = _parse_epoch(text) or _parse_iso(text, tz)
    if dt is not None:
        return dt

    for fmt in KNOWN_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    return None


def format_timestamp(dt: datetime, tz: ZoneInfo) -> str:
    return dt.astimezone(tz).strftime(DISPLAY_FMT)


def now_local(tz: ZoneInfo) -> datetime:
    return datetime.now(tz)


def repair_column(values: List[str], tz: ZoneInfo, first_row: int = 2) -> List[Tuple[int, str]]:
    """
    Work out which timestamp cells need rewriting into DISPLAY_FMT.

    `values` are the column's cells starting at sheet row `first_row`.
    Returns (row_number, new_value) pairs for cells that parse and differ
    from their display form; unparseable cells are logged and skipped.
    """
    changes = []
    for row_number, value in enumerate(values, start=first_row):
        text = str(value or "").strip()
        if not text:
            continue
        dt = parse_timestamp(text, tz)
        if dt is None:
            logger.warning("Leaving unparseable timestamp in row %d: %r", row_number, text)
            continue
        formatted = format_timestamp(dt, tz)
        if formatted != text:
            changes.append((row_number, formatted))
    return changes
