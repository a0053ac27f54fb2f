"""
Google Sheets mirror of the attendance table.

The sheet is a human-readable, best-effort copy: one header row followed by at
most one data row per employee for the current day window. ``MirrorSheet``
wraps a gspread ``Worksheet`` and is the only code that knows cell positions;
everything past it works with typed ``MirrorRow`` values.
"""

import json
import logging
import re
from dataclasses import dataclass

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException
from gspread.utils import rowcol_to_a1
from requests.exceptions import RequestException

from backend.config import (
    GOOGLE_SERVICE_ACCOUNT_KEY,
    GOOGLE_SHEET_ID,
    GOOGLE_SHEET_NAME,
    MIRROR_LAYOUT,
    missing_required_settings,
)

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
VALUE_INPUT_OPTION = "USER_ENTERED"
CLEAR_RANGE = "A2:Z"

_EMPLOYEE_ID_RE = re.compile(r"^\s*(\d+)")


class MirrorError(RuntimeError):
    """A call to the spreadsheet failed (network, auth or API error)."""


@dataclass(frozen=True)
class MirrorLayout:
    name: str
    headers: tuple[str, ...]
    fields: tuple[str, ...]

    def index(self, field: str) -> int | None:
        try:
            return self.fields.index(field)
        except ValueError:
            return None

    @property
    def width(self) -> int:
        return len(self.headers)

    @property
    def last_column(self) -> str:
        return rowcol_to_a1(1, self.width)[:-1]


BASIC_LAYOUT = MirrorLayout(
    name="basic",
    headers=("Full Name", "Employee ID", "Clock In", "Clock Out", "Date"),
    fields=("name", "employee_id", "clockin_time", "clockout_time", "date"),
)

EXTENDED_LAYOUT = MirrorLayout(
    name="extended",
    headers=("Name", "Employee ID", "Clock In", "Clock Out", "Status", "Type", "Date"),
    fields=("name", "employee_id", "clockin_time", "clockout_time", "status", "type", "date"),
)

LAYOUTS = {layout.name: layout for layout in (BASIC_LAYOUT, EXTENDED_LAYOUT)}


def normalize_time(value) -> str | None:
    """
    Normalize free-form "H:M[:S]" text into "HH:MM:SS".

    "9:5" -> "09:05:00", "930" -> None. Missing minute/second parts count as
    zero; anything non-numeric or out of range is None.
    """
    text = str(value).strip() if value is not None else ""
    if not text:
        return None
    parts = [p.strip() for p in text.split(":")]
    if len(parts) < 2 or len(parts) > 3:
        return None
    while len(parts) < 3:
        parts.append("")

    numbers = []
    for part in parts:
        if not part:
            numbers.append(0)
            continue
        if not part.isdigit() or len(part) > 2:
            return None
        numbers.append(int(part))

    hh, mm, ss = numbers
    if hh > 23 or mm > 59 or ss > 59:
        return None
    return f"{hh:02d}:{mm:02d}:{ss:02d}"


def parse_employee_id(value) -> int | None:
    match = _EMPLOYEE_ID_RE.match(str(value)) if value is not None else None
    if not match:
        return None
    return int(match.group(1))


def _cell(cells: list, index: int | None) -> str:
    if index is None or index >= len(cells):
        return ""
    value = cells[index]
    return str(value).strip() if value is not None else ""


@dataclass
class MirrorRow:
    row_number: int
    name: str | None
    employee_id: int | None
    clockin_time: str | None
    clockout_time: str | None
    status: str | None
    type: str | None
    date: str | None

    @classmethod
    def from_cells(cls, row_number: int, cells: list, layout: MirrorLayout) -> "MirrorRow":
        return cls(
            row_number=row_number,
            name=_cell(cells, layout.index("name")) or None,
            employee_id=parse_employee_id(_cell(cells, layout.index("employee_id"))),
            clockin_time=normalize_time(_cell(cells, layout.index("clockin_time"))),
            clockout_time=normalize_time(_cell(cells, layout.index("clockout_time"))),
            status=_cell(cells, layout.index("status")) or None,
            type=_cell(cells, layout.index("type")) or None,
            date=_cell(cells, layout.index("date")) or None,
        )


class MirrorSheet:
    def __init__(self, worksheet, layout: MirrorLayout = EXTENDED_LAYOUT):
        self.worksheet = worksheet
        self.layout = layout

    @property
    def header_range(self) -> str:
        return f"A1:{self.layout.last_column}1"

    @property
    def data_range(self) -> str:
        return f"A2:{self.layout.last_column}"

    def _call(self, operation: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (GSpreadException, RequestException, GoogleAuthError) as e:
            raise MirrorError(f"{operation} failed: {e}") from e

    def ensure_header(self) -> bool:
        """Rewrite the header row if it is missing or has blank cells. Returns True if rewritten."""
        values = self._call("read header", self.worksheet.get, self.header_range) or []
        current = list(values[0]) if values else []
        complete = len(current) >= self.layout.width and all(
            _cell(current, i) for i in range(self.layout.width)
        )
        if complete:
            return False

        self._call(
            "restore header",
            self.worksheet.update,
            range_name=self.header_range,
            values=[list(self.layout.headers)],
            value_input_option=VALUE_INPUT_OPTION,
        )
        logger.info("Mirror header row restored (%s layout)", self.layout.name)
        return True

    def _data_rows(self, cell_range: str | None = None) -> list[list]:
        values = self._call("read rows", self.worksheet.get, cell_range or self.data_range) or []
        return [list(r) for r in values]

    def find_row_number(self, employee_id: int, rows: list[list] | None = None) -> int | None:
        # Same parse as the reader, so "07" and "7" are one employee.
        id_index = self.layout.index("employee_id")
        for offset, cells in enumerate(rows if rows is not None else self._data_rows()):
            if parse_employee_id(_cell(cells, id_index)) == employee_id:
                return offset + 2  # header is row 1
        return None

    def upsert(
        self,
        full_name: str,
        employee_id: int,
        clockin_time: str | None,
        clockout_time: str | None,
        date: str | None,
    ) -> int | None:
        """
        Write the employee's row in place, or append one. Columns outside the
        five live fields (status/type) keep whatever the sheet already holds.

        Returns the sheet row number that was updated, or None when appended.
        """
        self.ensure_header()
        rows = self._data_rows()
        row_number = self.find_row_number(employee_id, rows)

        fields = {
            "name": full_name,
            "employee_id": employee_id,
            "clockin_time": clockin_time or "",
            "clockout_time": clockout_time or "",
            "date": date or "",
        }

        if row_number is None:
            values = [""] * self.layout.width
        else:
            existing = rows[row_number - 2]
            values = [existing[i] if i < len(existing) else "" for i in range(self.layout.width)]

        for field, value in fields.items():
            values[self.layout.index(field)] = value

        if row_number is None:
            self._call(
                "append row",
                self.worksheet.append_row,
                values,
                value_input_option=VALUE_INPUT_OPTION,
                table_range="A1",
            )
            return None

        last = self.layout.last_column
        self._call(
            "update row",
            self.worksheet.update,
            range_name=f"A{row_number}:{last}{row_number}",
            values=[values],
            value_input_option=VALUE_INPUT_OPTION,
        )
        return row_number

    def read_all(self) -> list[MirrorRow]:
        self.ensure_header()
        return [
            MirrorRow.from_cells(offset + 2, cells, self.layout)
            for offset, cells in enumerate(self._data_rows())
        ]

    def count_data_rows(self) -> int:
        rows = self._data_rows(CLEAR_RANGE)
        while rows and not any(str(c).strip() for c in rows[-1]):
            rows.pop()
        return len(rows)

    def clear_below_header(self) -> None:
        self._call("clear rows", self.worksheet.batch_clear, [CLEAR_RANGE])


def load_credentials(service_account_key: str) -> Credentials:
    """Accept either a key-file path or the key JSON pasted inline."""
    key = service_account_key.strip()
    if key.startswith("{"):
        return Credentials.from_service_account_info(json.loads(key), scopes=SCOPES)
    return Credentials.from_service_account_file(key, scopes=SCOPES)


def open_mirror_from_settings() -> MirrorSheet:
    missing = missing_required_settings()
    if missing:
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")

    client = gspread.authorize(load_credentials(GOOGLE_SERVICE_ACCOUNT_KEY))
    try:
        worksheet = client.open_by_key(GOOGLE_SHEET_ID).worksheet(GOOGLE_SHEET_NAME)
    except (GSpreadException, RequestException, GoogleAuthError) as e:
        raise MirrorError(f"open sheet {GOOGLE_SHEET_NAME!r} failed: {e}") from e

    logger.info("Connected to Google Sheet %s / %s", GOOGLE_SHEET_ID, GOOGLE_SHEET_NAME)
    return MirrorSheet(worksheet, LAYOUTS[MIRROR_LAYOUT])
