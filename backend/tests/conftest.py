import re

import pytest
from fastapi.testclient import TestClient

import backend.config as config
import backend.main as main
import database.db as db
from backend.debounce import Debouncer
from backend.services.mirror import EXTENDED_LAYOUT, MirrorSheet

_A1_RANGE = re.compile(r"^([A-Z]+)(\d*)(?::([A-Z]+)(\d*))?$")


def _col_number(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - 64)
    return n


def _bounds(range_name: str) -> tuple[int, int, int | None, int]:
    m = _A1_RANGE.match(range_name)
    assert m, f"unsupported range {range_name}"
    c1 = _col_number(m.group(1))
    r1 = int(m.group(2)) if m.group(2) else 1
    c2 = _col_number(m.group(3)) if m.group(3) else c1
    r2 = int(m.group(4)) if m.group(4) else None
    return r1, c1, r2, c2


class FakeWorksheet:
    """In-memory stand-in for a gspread Worksheet (formatted values as strings)."""

    def __init__(self, rows=None):
        self.rows = [["" if v is None else str(v) for v in r] for r in (rows or [])]
        self.calls = []

    def get(self, range_name):
        self.calls.append(("get", range_name))
        r1, c1, r2, c2 = _bounds(range_name)
        last = len(self.rows) if r2 is None else min(r2, len(self.rows))
        out = []
        for r in range(r1, last + 1):
            row = list(self.rows[r - 1][c1 - 1:c2])
            while row and row[-1] == "":
                row.pop()
            out.append(row)
        while out and not out[-1]:
            out.pop()
        return out

    def update(self, range_name=None, values=None, value_input_option=None):
        self.calls.append(("update", range_name))
        r1, c1, _, _ = _bounds(range_name)
        for i, vals in enumerate(values):
            row_index = r1 - 1 + i
            while len(self.rows) <= row_index:
                self.rows.append([])
            row = self.rows[row_index]
            for j, v in enumerate(vals):
                col = c1 - 1 + j
                while len(row) <= col:
                    row.append("")
                row[col] = "" if v is None else str(v)

    def append_row(self, values, value_input_option=None, table_range=None):
        self.calls.append(("append_row", table_range))
        while self.rows and not any(self.rows[-1]):
            self.rows.pop()
        self.rows.append(["" if v is None else str(v) for v in values])

    def batch_clear(self, ranges):
        self.calls.append(("batch_clear", tuple(ranges)))
        for range_name in ranges:
            r1, c1, r2, c2 = _bounds(range_name)
            last = len(self.rows) if r2 is None else min(r2, len(self.rows))
            for r in range(r1, last + 1):
                row = self.rows[r - 1]
                for c in range(c1 - 1, min(c2, len(row))):
                    row[c] = ""

    def data_rows(self):
        return [r for r in self.rows[1:] if any(r)]


HEADER = list(EXTENDED_LAYOUT.headers)


@pytest.fixture()
def db_path(tmp_path, monkeypatch):
    test_db = tmp_path / "tapclock_test.db"

    # Point DB to a temp file for isolation.
    monkeypatch.setattr(config, "DB_PATH", test_db)
    monkeypatch.setattr(db, "DB_PATH", test_db)

    db.create_tables()
    return test_db


@pytest.fixture()
def worksheet():
    return FakeWorksheet([HEADER])


@pytest.fixture()
def mirror(worksheet):
    return MirrorSheet(worksheet, EXTENDED_LAYOUT)


@pytest.fixture()
def client(db_path, mirror, monkeypatch):
    monkeypatch.setattr(main, "ENABLE_SCHEDULER", False)
    monkeypatch.setattr(main.app.state, "mirror", mirror)
    monkeypatch.setattr(main.app.state, "debouncer", Debouncer(120))

    with TestClient(main.app) as c:
        yield c
