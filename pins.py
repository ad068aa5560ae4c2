"""Locate the PIN list and check a candidate PIN against it."""
import logging
import re
from typing import Iterable, List, Sequence

from tables import SheetNotFoundError, candidate_names, resolve_table, safe_str, sheet_rows

logger = logging.getLogger(__name__)

PIN_SHEET_NAMES = ["PINs", "PIN", "Pins", "Sheet1", "password", "passwords", "codes", "Codes"]

# Substrings that mark a header cell of a PIN list
HEADER_KEYWORDS = ("pin", "password", "code", "auth", "key", "access")
# First-cell values that mean row 1 is a header, not a PIN
HEADER_ROW_MARKERS = ("pin", "pins", "password", "code", "auth", "key")

PIN_SHAPES = [
    re.compile(r"^\d{3,8}$"),
    re.compile(r"^[A-Za-z0-9]{4,12}$"),
    re.compile(r"^\d{4}-\d{4}$"),
    re.compile(r"^[A-Za-z]{2,4}\d{2,6}$"),
]
SAMPLE_SIZE = 10
SHAPE_RATIO = 0.6


def looks_like_pin(value: str) -> bool:
    return any(p.match(value) for p in PIN_SHAPES)


def looks_like_pin_rows(rows: Sequence[Sequence[str]]) -> bool:
    """
    True if the rows look like a PIN list: a PIN-ish header word in the
    top-left 3x3 cells, or mostly PIN-shaped values in column A.
    """
    for row in rows[:3]:
        for cell in row[:3]:
            text = safe_str(cell).lower()
            if any(k in text for k in HEADER_KEYWORDS):
                return True

    samples = [safe_str(row[0]) for row in rows if row and safe_str(row[0])][:SAMPLE_SIZE]
    if not samples:
        return False
    shaped = sum(1 for s in samples if looks_like_pin(s))
    return shaped / len(samples) >= SHAPE_RATIO


def has_header_row(rows: Sequence[Sequence[str]]) -> bool:
    """Row 1 is a header iff its first cell is or contains a PIN-ish word."""
    if not rows or not rows[0]:
        return False
    first = safe_str(rows[0][0]).lower()
    return bool(first) and any(first == m or m in first for m in HEADER_ROW_MARKERS)


def pin_values(rows: Sequence[Sequence[str]]) -> List[str]:
    """Column A below the optional header row."""
    start = 1 if has_header_row(rows) else 0
    return [safe_str(row[0]) if row else "" for row in rows[start:]]


def is_valid_pin(candidate, stored: Iterable[str]) -> bool:
    """Exact or case-insensitive match of the trimmed candidate; blanks never match."""
    entered = safe_str(candidate)
    folded = entered.casefold()
    for i, value in enumerate(stored, start=1):
        pin = safe_str(value)
        if not pin:
            continue
        if pin == entered or pin.casefold() == folded:
            logger.debug("PIN matched stored entry %d", i)
            return True
    return False


def find_pin_sheet(spreadsheet, preferred: str = ""):
    """Return the worksheet holding PINs, or raise SheetNotFoundError."""
    cache = {}

    def rows_of(ws):
        if ws.title not in cache:
            cache[ws.title] = sheet_rows(ws)
        return cache[ws.title]

    ws = resolve_table(
        candidate_names(preferred, PIN_SHEET_NAMES),
        lambda t: looks_like_pin_rows(rows_of(t)),
        spreadsheet.worksheets(),
    )
    if ws is None:
        raise SheetNotFoundError("No sheet holding PIN codes was found.")
    return ws


def load_pins(ws) -> List[str]:
    rows = sheet_rows(ws)
    pins = [p for p in pin_values(rows) if p]
    logger.info("Loaded %d PINs from sheet %r (header row: %s)", len(pins), ws.title, has_header_row(rows))
    return pins


def check_pin(client, spreadsheet_id: str, candidate, preferred: str = "") -> bool:
    """
    Validate a PIN against the PIN spreadsheet.

    Any failure reaching the store counts as an invalid PIN.
    """
    try:
        spreadsheet = client.open_by_key(spreadsheet_id)
        ws = find_pin_sheet(spreadsheet, preferred)
        valid = is_valid_pin(candidate, load_pins(ws))
    except Exception:
        logger.exception("Error accessing PIN spreadsheet; treating PIN as invalid")
        return False
    logger.info("PIN validation result: %s", "Valid" if valid else "Invalid")
    return valid
