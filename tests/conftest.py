"""
Pytest configuration and shared fixtures.

The fakes below implement the slice of gspread's Spreadsheet/Worksheet API
the webhook uses, backed by plain lists of strings.
"""
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from gspread.utils import a1_to_rowcol

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import AppConfig  # noqa: E402

PIN_SS = "pin-spreadsheet"
ACCESS_SS = "access-spreadsheet"


class FakeWorksheet:
    def __init__(self, title, rows=None, row_count=1000, col_count=26):
        self.title = title
        self.rows = [[str(c) for c in row] for row in (rows or [])]
        self.row_count = row_count
        self.col_count = col_count
        self.appended = []
        self.inserted = []
        self.cleared = []

    def _set(self, row, col, value):
        while len(self.rows) < row:
            self.rows.append([])
        cells = self.rows[row - 1]
        while len(cells) < col:
            cells.append("")
        cells[col - 1] = str(value)

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def row_values(self, row):
        return list(self.rows[row - 1]) if row <= len(self.rows) else []

    def update(self, range_name=None, values=None, **kwargs):
        start_row, start_col = a1_to_rowcol(range_name.split(":")[0])
        for r, row in enumerate(values):
            for c, value in enumerate(row):
                self._set(start_row + r, start_col + c, value)

    def batch_update(self, data, **kwargs):
        for item in data:
            self.update(range_name=item["range"], values=item["values"])

    def batch_clear(self, ranges):
        for rng in ranges:
            self.cleared.append(rng)
            start, end = rng.split(":")
            r1, c1 = a1_to_rowcol(start)
            r2, c2 = a1_to_rowcol(end)
            for r in range(r1, min(r2, len(self.rows)) + 1):
                cells = self.rows[r - 1]
                for c in range(c1, min(c2, len(cells)) + 1):
                    cells[c - 1] = ""

    def insert_row(self, values, index=1, **kwargs):
        self.inserted.append(list(values))
        self.rows.insert(index - 1, [str(v) for v in values])

    def append_row(self, values, **kwargs):
        self.appended.append(list(values))
        self.rows.append([str(v) for v in values])


class FakeSpreadsheet:
    def __init__(self, *worksheets):
        self._worksheets = list(worksheets)

    def worksheets(self):
        return list(self._worksheets)

    def worksheet(self, title):
        for ws in self._worksheets:
            if ws.title == title:
                return ws
        raise LookupError(title)

    def add_worksheet(self, title, rows, cols):
        ws = FakeWorksheet(title, row_count=rows, col_count=cols)
        self._worksheets.append(ws)
        return ws


class FakeClient:
    def __init__(self, spreadsheets):
        self.spreadsheets = spreadsheets

    def open_by_key(self, key):
        if key not in self.spreadsheets:
            raise LookupError(f"Spreadsheet {key} not found")
        return self.spreadsheets[key]


@pytest.fixture
def tz():
    return ZoneInfo("America/Los_Angeles")


@pytest.fixture
def config():
    return AppConfig(pin_spreadsheet_id=PIN_SS, access_spreadsheet_id=ACCESS_SS)


@pytest.fixture
def pin_sheet():
    return FakeWorksheet("PINs", [["PIN"], ["1234"], ["1111"], ["AbCd9"]])


@pytest.fixture
def access_sheet():
    return FakeWorksheet("Access Requests")


@pytest.fixture
def pin_spreadsheet(pin_sheet):
    return FakeSpreadsheet(pin_sheet)


@pytest.fixture
def access_spreadsheet(access_sheet):
    return FakeSpreadsheet(access_sheet)


@pytest.fixture
def sheets(pin_spreadsheet, access_spreadsheet):
    return FakeClient({PIN_SS: pin_spreadsheet, ACCESS_SS: access_spreadsheet})


@pytest.fixture
def app(config, sheets):
    from app import create_app

    return create_app(config, sheets)


@pytest.fixture
def client(app):
    return app.test_client()
