import pytest
import requests
from gspread.exceptions import GSpreadException

import backend.services.mirror as mirror_module
from backend.services.mirror import (
    BASIC_LAYOUT,
    EXTENDED_LAYOUT,
    MirrorError,
    MirrorSheet,
    normalize_time,
    open_mirror_from_settings,
    parse_employee_id,
)
from conftest import HEADER, FakeWorksheet


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9:5", "09:05:00"),
        ("14:30:05", "14:30:05"),
        ("08:00", "08:00:00"),
        (" 7:30 ", "07:30:00"),
        ("9:", "09:00:00"),
        ("930", None),
        ("", None),
        (None, None),
        ("nine:thirty", None),
        ("24:00", None),
        ("12:60", None),
        ("1:2:3:4", None),
    ],
)
def test_normalize_time(raw, expected):
    assert normalize_time(raw) == expected


def test_parse_employee_id():
    assert parse_employee_id("42") == 42
    assert parse_employee_id(" 7 (contract)") == 7
    assert parse_employee_id("") is None
    assert parse_employee_id("abc") is None


def test_layout_columns():
    assert EXTENDED_LAYOUT.last_column == "G"
    assert BASIC_LAYOUT.last_column == "E"
    assert EXTENDED_LAYOUT.index("status") == 4
    assert BASIC_LAYOUT.index("status") is None


@pytest.mark.parametrize(
    "existing",
    [
        [],
        [["Name", "Employee ID"]],
        [["Name", "Employee ID", "", "Clock Out", "Status", "Type", "Date"]],
    ],
)
def test_header_is_restored_when_missing_or_partial(existing):
    ws = FakeWorksheet(existing)
    assert MirrorSheet(ws).ensure_header() is True
    assert ws.rows[0] == HEADER


def test_complete_header_is_left_alone(worksheet, mirror):
    assert mirror.ensure_header() is False
    assert not [c for c in worksheet.calls if c[0] == "update"]


def test_upsert_appends_then_updates_in_place(worksheet, mirror):
    assert mirror.upsert("Jane Doe", 42, "08:00:00", None, "2026-10-18") is None
    assert worksheet.data_rows() == [["Jane Doe", "42", "08:00:00", "", "", "", "2026-10-18"]]

    assert mirror.upsert("Jane Doe", 42, "08:00:00", "17:00:00", "2026-10-18") == 2
    assert worksheet.data_rows() == [["Jane Doe", "42", "08:00:00", "17:00:00", "", "", "2026-10-18"]]

    mirror.upsert("Jane Doe", 42, "08:00:00", "17:00:00", "2026-10-18")
    assert len(worksheet.data_rows()) == 1


def test_upsert_keeps_status_and_type_cells(worksheet, mirror):
    worksheet.rows.append(["Sam Lee", "7", "07:30:00", "", "Late", "Remote", "2026-10-18"])

    mirror.upsert("Sam Lee", 7, "07:30:00", "16:00:00", "2026-10-18")

    assert worksheet.rows[1] == ["Sam Lee", "7", "07:30:00", "16:00:00", "Late", "Remote", "2026-10-18"]


def test_upsert_uses_basic_layout():
    ws = FakeWorksheet()
    sheet = MirrorSheet(ws, BASIC_LAYOUT)

    sheet.upsert("Jane Doe", 42, "08:00:00", None, "2026-10-18")

    assert ws.rows[0] == list(BASIC_LAYOUT.headers)
    assert ws.data_rows() == [["Jane Doe", "42", "08:00:00", "", "2026-10-18"]]


def test_upsert_heals_header_before_writing():
    ws = FakeWorksheet([["", "", ""], ["Sam Lee", "7", "07:30", "", "", "", "2026-10-18"]])
    sheet = MirrorSheet(ws)

    assert sheet.upsert("Sam Lee", 7, "07:30:00", "16:00:00", "2026-10-18") == 2
    assert ws.rows[0] == HEADER
    assert ws.rows[1][3] == "16:00:00"


def test_read_all_returns_typed_rows(worksheet, mirror):
    worksheet.rows.append(["Jane Doe", "42", "8:0", "17:00", "", "", "2026-10-18"])
    worksheet.rows.append(["", "", "", "", "", "", ""])
    worksheet.rows.append(["No Id", "", "9:00", "", "Late", "", ""])

    rows = mirror.read_all()

    assert [r.row_number for r in rows] == [2, 3, 4]
    first = rows[0]
    assert first.name == "Jane Doe"
    assert first.employee_id == 42
    assert first.clockin_time == "08:00:00"
    assert first.clockout_time == "17:00:00"
    assert first.status is None
    assert first.date == "2026-10-18"
    assert rows[2].employee_id is None
    assert rows[2].status == "Late"


def test_count_data_rows_ignores_trailing_blanks(worksheet, mirror):
    worksheet.rows.append(["Jane Doe", "42"])
    worksheet.rows.append(["", ""])
    assert mirror.count_data_rows() == 1


def test_transport_errors_become_mirror_errors(worksheet, mirror, monkeypatch):
    def broken_get(range_name):
        raise requests.ConnectionError("connection reset")

    monkeypatch.setattr(worksheet, "get", broken_get)

    with pytest.raises(MirrorError, match="read header failed"):
        mirror.upsert("Jane Doe", 42, "08:00:00", None, "2026-10-18")


def test_gspread_errors_become_mirror_errors(worksheet, mirror, monkeypatch):
    def quota_exceeded(*args, **kwargs):
        raise GSpreadException("Quota exceeded for quota metric 'Write requests'")

    monkeypatch.setattr(worksheet, "batch_clear", quota_exceeded)

    with pytest.raises(MirrorError, match="clear rows failed"):
        mirror.clear_below_header()


def test_open_mirror_requires_settings(monkeypatch):
    monkeypatch.setattr(mirror_module, "missing_required_settings", lambda: ["GOOGLE_SERVICE_ACCOUNT_KEY", "GOOGLE_SHEET_ID"])

    with pytest.raises(RuntimeError, match="GOOGLE_SERVICE_ACCOUNT_KEY"):
        open_mirror_from_settings()


def test_upsert_matches_zero_padded_employee_id(worksheet, mirror):
    worksheet.rows.append(["Sam Lee", "07", "07:30:00", "", "Late", "Work", "2026-10-18"])

    assert mirror.upsert("Sam Lee", 7, "07:30:00", "16:00:00", "2026-10-18") == 2

    assert worksheet.data_rows() == [["Sam Lee", "7", "07:30:00", "16:00:00", "Late", "Work", "2026-10-18"]]
