"""
Access-request log: one appended row per submission.

Row layout (row 1 holds ACCESS_HEADERS):
    Timestamp | PIN | User Email | Title | URL | Request Status | Media Type | Access Link
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Sequence
from zoneinfo import ZoneInfo

from gspread.utils import rowcol_to_a1

from config import AppConfig
from payload import AccessRequest
from tables import SheetNotFoundError, candidate_names, is_blank, resolve_table, safe_str, sheet_rows
from timestamps import format_timestamp, parse_timestamp, repair_column

logger = logging.getLogger(__name__)

ACCESS_HEADERS = ["Timestamp", "PIN", "User Email", "Title", "URL",
                  "Request Status", "Media Type", "Access Link"]
TIMESTAMP_COL = 0
URL_COL = 4

ACCESS_SHEET_NAMES = ["Access Requests", "Requests", "Access", "Sheet1", "Log"]
DEFAULT_ACCESS_SHEET = "Access Requests"

EMAIL_HEADERS = ["user email", "useremail", "email", "email address", "user_email"]

STATUS_SUCCESS = "Success"
STATUS_DUPLICATE = "Duplicate"
STATUS_FAILED = "Failed"

# Header words an access log is expected to mention, at least two of them
_HEADER_GROUPS = [
    re.compile(r"time|date", re.I),
    re.compile(r"url|link|website", re.I),
    re.compile(r"e-?mail|user", re.I),
]


@dataclass
class LogResult:
    success: bool
    message: str
    duplicate: bool = False
    status: str = ""


def looks_like_access_rows(rows: Sequence[Sequence[str]]) -> bool:
    if not rows:
        return False
    header = " ".join(safe_str(c) for c in rows[0])
    return sum(1 for g in _HEADER_GROUPS if g.search(header)) >= 2


def headers_match(row: Sequence[str]) -> bool:
    cells = [safe_str(c).lower() for c in row]
    # trailing empty cells do not count
    while cells and not cells[-1]:
        cells.pop()
    return cells == [h.lower() for h in ACCESS_HEADERS]


def _has_any_header(row: Sequence[str]) -> bool:
    known = {h.lower() for h in ACCESS_HEADERS}
    return any(safe_str(c).lower() in known for c in row)


def header_conflicts(row: Sequence[str]) -> bool:
    """Row 1 is a header row, but not ours."""
    return not headers_match(row) and _has_any_header(row)


def is_duplicate(data_rows: Sequence[Sequence[str]], url: str, current: datetime,
                 cooldown: timedelta, tz: ZoneInfo, first_row: int = 2) -> bool:
    """
    True if `url` was logged within `cooldown` of `current`.

    Rows are scanned newest first and the scan stops at the first row older
    than the cooldown, so rows are assumed to be in time order. Stored
    timestamps carry whole seconds, so `current` is compared at that
    precision too.
    """
    current = current.replace(microsecond=0)
    for i in range(len(data_rows) - 1, -1, -1):
        row = data_rows[i]
        raw_ts = safe_str(row[TIMESTAMP_COL]) if len(row) > TIMESTAMP_COL else ""
        if not raw_ts:
            continue
        row_time = parse_timestamp(raw_ts, tz)
        if row_time is None:
            logger.info("Invalid timestamp in row %d: %r", i + first_row, raw_ts)
            continue
        if current - row_time > cooldown:
            break
        row_url = safe_str(row[URL_COL]) if len(row) > URL_COL else ""
        if row_url == url:
            logger.info("Duplicate URL found in row %d: %s", i + first_row, url)
            return True
    return False


def build_row(req: AccessRequest, status: str, tz: ZoneInfo) -> List[str]:
    return [
        format_timestamp(req.timestamp, tz),
        req.pin,
        req.user_email,
        req.title,
        req.url,
        status,
        "",  # Media Type, filled in on review
        "",  # Access Link, filled in on review
    ]


def find_access_sheet(spreadsheet, config: AppConfig, create: bool = True):
    """
    Resolve the access-log worksheet.

    With `create` set the sheet is about to be written to: unless
    REPAIR_HEADERS is on, sheets whose header row conflicts with
    ACCESS_HEADERS are passed over, and a new sheet is added when nothing
    qualifies (if CREATE_ACCESS_SHEET allows it). With `create` unset the
    lookup is read-only and any sheet that looks like an access log will do.
    Raises SheetNotFoundError when no sheet can be used.
    """
    names = candidate_names(config.access_sheet_name, ACCESS_SHEET_NAMES)
    worksheets = spreadsheet.worksheets()
    strict = create and not config.repair_headers
    cache = {}
    skipped = set()

    def rows_of(ws):
        if ws.title not in cache:
            cache[ws.title] = sheet_rows(ws)
        return cache[ws.title]

    def qualifies(ws):
        rows = rows_of(ws)
        if not looks_like_access_rows(rows):
            return False
        if strict and header_conflicts(rows[0]):
            if ws.title not in skipped:
                skipped.add(ws.title)
                logger.warning("Passing over sheet %r: header row %s does not match %s "
                               "(set REPAIR_HEADERS=1 to overwrite)", ws.title, rows[0], ACCESS_HEADERS)
            return False
        return True

    ws = resolve_table(names, qualifies, worksheets)
    if ws is not None:
        return ws

    # A named tab that is still empty is ours to fill
    for name in names:
        for t in worksheets:
            if t.title.casefold() == name.casefold() and is_blank(rows_of(t)):
                logger.info("Using empty sheet %r for access requests", t.title)
                return t

    if not (create and config.create_access_sheet):
        raise SheetNotFoundError("No access request sheet was found.")

    title = config.access_sheet_name or DEFAULT_ACCESS_SHEET
    if any(t.title.casefold() == title.casefold() for t in worksheets):
        raise SheetNotFoundError(
            f"Sheet {title!r} exists but does not have the access log columns; "
            f"set REPAIR_HEADERS=1 to overwrite its header row."
        )
    logger.info("Creating access request sheet %r", title)
    return spreadsheet.add_worksheet(title=title, rows=1000, cols=len(ACCESS_HEADERS))


def ensure_headers(ws, rows: List[List[str]], repair: bool) -> List[List[str]]:
    """
    Make row 1 hold ACCESS_HEADERS and return the sheet rows as they now stand.

    With `repair` off a mismatched header row is never overwritten: data
    without any header gets a header row inserted above it, and a foreign
    header row raises SheetNotFoundError so nothing is appended under it.
    """
    width = len(ACCESS_HEADERS)
    header_range = f"A1:{rowcol_to_a1(1, width)}"

    if is_blank(rows):
        ws.update(range_name=header_range, values=[ACCESS_HEADERS])
        logger.info("Wrote headers to empty sheet %r", ws.title)
        return [list(ACCESS_HEADERS)]

    current = rows[0]
    if headers_match(current):
        return rows

    if repair:
        extra = [(r, row[width:]) for r, row in enumerate(rows, start=1) if any(row[width:])]
        logger.warning("Overwriting header row of %r; old values: %s", ws.title, current)
        if extra:
            logger.warning("Clearing columns beyond %d in %r; old values by row: %s",
                           width, ws.title, extra)
            last = rowcol_to_a1(max(ws.row_count, len(rows)), max(ws.col_count, width + 1))
            ws.batch_clear([f"{rowcol_to_a1(1, width + 1)}:{last}"])
        ws.update(range_name=header_range, values=[ACCESS_HEADERS])
        return [list(ACCESS_HEADERS)] + [row[:width] for row in rows[1:]]

    if not _has_any_header(current):
        logger.warning("Sheet %r has no header row; inserting one above row 1", ws.title)
        ws.insert_row(ACCESS_HEADERS, index=1)
        return [list(ACCESS_HEADERS)] + rows

    logger.warning("Header row of %r does not match expected columns %s: %s",
                   ws.title, ACCESS_HEADERS, current)
    raise SheetNotFoundError(
        f"Header row of sheet {ws.title!r} does not match the access log columns; "
        f"set REPAIR_HEADERS=1 to overwrite it."
    )


def repair_timestamps(ws, data_rows: Sequence[Sequence[str]], tz: ZoneInfo) -> int:
    """Rewrite parseable timestamps in column A into the display format."""
    column = [row[TIMESTAMP_COL] if row else "" for row in data_rows]
    changes = repair_column(column, tz, first_row=2)
    if changes:
        ws.batch_update(
            [{"range": rowcol_to_a1(r, TIMESTAMP_COL + 1), "values": [[v]]} for r, v in changes],
            value_input_option="RAW",
        )
        logger.info("Reformatted %d timestamps in %r", len(changes), ws.title)
    return len(changes)


class AccessLogWriter:
    """Appends access requests to the access spreadsheet."""

    def __init__(self, spreadsheet, config: AppConfig):
        self.spreadsheet = spreadsheet
        self.config = config
        self.tz = config.tz
        self.cooldown = timedelta(minutes=config.cooldown_minutes)

    def log_request(self, req: AccessRequest, is_pin_valid: bool) -> LogResult:
        try:
            ws = find_access_sheet(self.spreadsheet, self.config)
            rows = ensure_headers(ws, sheet_rows(ws), self.config.repair_headers)
            data_rows = rows[1:]

            duplicate = False
            if is_pin_valid:
                logger.info("Checking for duplicates within %s", self.cooldown)
                duplicate = is_duplicate(data_rows, req.url, req.timestamp, self.cooldown, self.tz)

            if not is_pin_valid:
                status, message = STATUS_FAILED, "Invalid PIN/Password"
            elif duplicate:
                status = STATUS_DUPLICATE
                message = f"URL already requested within last {self.config.cooldown_minutes} minutes."
            else:
                status, message = STATUS_SUCCESS, "Request logged."

            row = build_row(req, status, self.tz)
            ws.append_row(row, value_input_option="RAW")
            logger.info("Appended row to %r with status %s", ws.title, status)

            # column A is only known to be Timestamp under our own header
            if self.config.repair_timestamps and headers_match(rows[0]):
                repair_timestamps(ws, data_rows, self.tz)

            return LogResult(success=True, message=message, duplicate=duplicate, status=status)
        except Exception as e:
            logger.exception("Failed to log access request")
            return LogResult(success=False, message=str(e))

    def records_for_user(self, email: str) -> List[Dict[str, str]]:
        try:
            ws = find_access_sheet(self.spreadsheet, self.config, create=False)
        except SheetNotFoundError:
            logger.info("No access request sheet yet; nothing to return for %s", email)
            return []
        return records_for_user(sheet_rows(ws), email)


def records_for_user(rows: Sequence[Sequence[str]], email: str) -> List[Dict[str, str]]:
    """Rows whose email column equals `email`, ignoring case, keyed by header."""
    if not rows:
        return []
    headers = [safe_str(h) for h in rows[0]]
    lowered = [h.lower() for h in headers]
    col = next((lowered.index(h) for h in EMAIL_HEADERS if h in lowered), None)
    if col is None:
        logger.warning("No email column among headers %s", headers)
        return []

    wanted = safe_str(email).lower()
    records = []
    for row in rows[1:]:
        if len(row) > col and safe_str(row[col]).lower() == wanted:
            records.append({h: (row[i] if i < len(row) else "") for i, h in enumerate(headers) if h})
    return records
