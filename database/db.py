import logging
import sqlite3
from typing import Literal, TypedDict

from backend.config import DB_PATH

logger = logging.getLogger(__name__)

AttendanceAction = Literal["clocked_in", "clocked_out", "already_clocked_out"]

DEFAULT_STATUS = "OnTime"
DEFAULT_TYPE = "Work"


class TagBinding(TypedDict):
    tag_uid: str
    employee_id: int
    owner_name: str


class AttendanceDecision(TypedDict):
    employee_id: int
    date: str
    clockin_time: str | None
    clockout_time: str | None
    action: AttendanceAction


def connect_db():
    conn = sqlite3.connect(str(DB_PATH), check_same_thread=False, timeout=10)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def create_tables():
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = connect_db()
    cursor = conn.cursor()

    cursor.execute("""
    CREATE TABLE IF NOT EXISTS tag_bindings (
        tag_uid TEXT PRIMARY KEY,
        employee_id INTEGER NOT NULL,
        owner_name TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """)

    # One row per employee per day.
    cursor.execute("""
    CREATE TABLE IF NOT EXISTS attendance_records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id INTEGER NOT NULL,
        full_name TEXT,
        date TEXT NOT NULL,              -- YYYY-MM-DD
        clockin_time TEXT,               -- HH:MM:SS
        clockout_time TEXT,              -- HH:MM:SS
        status TEXT,
        type TEXT,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(employee_id, date)
    )
    """)

    cursor.execute("""
    CREATE INDEX IF NOT EXISTS idx_attendance_records_date
    ON attendance_records(date)
    """)

    conn.commit()
    conn.close()


# -----------------------------
# Tag bindings
# -----------------------------
def add_tag_binding(tag_uid: str, employee_id: int, owner_name: str) -> None:
    conn = connect_db()
    cur = conn.cursor()
    cur.execute("""
        INSERT INTO tag_bindings (tag_uid, employee_id, owner_name)
        VALUES (?, ?, ?)
    """, (tag_uid, employee_id, owner_name))
    conn.commit()
    conn.close()


def get_tag_binding(tag_uid: str) -> TagBinding | None:
    conn = connect_db()
    cur = conn.cursor()
    cur.execute("""
        SELECT tag_uid, employee_id, owner_name
        FROM tag_bindings
        WHERE tag_uid = ?
    """, (tag_uid,))
    row = cur.fetchone()
    conn.close()
    if not row:
        return None
    return {"tag_uid": row[0], "employee_id": int(row[1]), "owner_name": row[2]}


# -----------------------------
# Clock in / clock out
# -----------------------------
def process_attendance_scan(
    employee_id: int,
    full_name: str,
    event_date: str,
    event_time: str,
) -> AttendanceDecision:
    """
    Apply one accepted tap to the (employee_id, event_date) record.

      - no record               => insert with clockin_time, "clocked_in"
      - clockout_time empty     => set clockout_time, "clocked_out"
      - clockout_time set       => no change, "already_clocked_out"

    The decision and the write happen inside a single IMMEDIATE transaction
    with conditional statements, so two terminals tapping the same employee
    at once cannot both clock in or both clock out.
    """
    conn = connect_db()
    conn.isolation_level = None
    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")

        cur.execute("""
            INSERT INTO attendance_records (employee_id, full_name, date, clockin_time, status, type)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(employee_id, date) DO NOTHING
        """, (employee_id, full_name, event_date, event_time, DEFAULT_STATUS, DEFAULT_TYPE))

        if cur.rowcount == 1:
            action: AttendanceAction = "clocked_in"
        else:
            cur.execute("""
                UPDATE attendance_records
                SET clockout_time = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE employee_id = ? AND date = ?
                  AND (clockout_time IS NULL OR clockout_time = '')
            """, (event_time, employee_id, event_date))
            action = "clocked_out" if cur.rowcount == 1 else "already_clocked_out"

        cur.execute("""
            SELECT clockin_time, clockout_time
            FROM attendance_records
            WHERE employee_id = ? AND date = ?
        """, (employee_id, event_date))
        clockin_time, clockout_time = cur.fetchone()

        cur.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            cur.execute("ROLLBACK")
        raise
    finally:
        conn.close()

    return {
        "employee_id": employee_id,
        "date": event_date,
        "clockin_time": clockin_time or None,
        "clockout_time": clockout_time or None,
        "action": action,
    }


# -----------------------------
# Mirror reconciliation
# -----------------------------
def upsert_attendance_record(
    *,
    employee_id: int,
    date: str,
    full_name: str | None,
    clockin_time: str | None,
    clockout_time: str | None,
    status: str | None = DEFAULT_STATUS,
    type: str | None = DEFAULT_TYPE,
    conn: sqlite3.Connection | None = None,
) -> None:
    """
    Last-write-wins upsert keyed by (employee_id, date).

    full_name is only written when the row is created.
    """
    owns_conn = conn is None
    active_conn = conn or connect_db()
    cur = active_conn.cursor()
    try:
        cur.execute(
            """
            INSERT INTO attendance_records (
                employee_id,
                full_name,
                date,
                clockin_time,
                clockout_time,
                status,
                type
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(employee_id, date) DO UPDATE SET
                clockin_time = excluded.clockin_time,
                clockout_time = excluded.clockout_time,
                status = excluded.status,
                type = excluded.type,
                date = excluded.date,
                updated_at = CURRENT_TIMESTAMP
            """,
            (employee_id, full_name, date, clockin_time, clockout_time, status, type),
        )
        active_conn.commit()
    finally:
        if owns_conn:
            active_conn.close()


# -----------------------------
# Reads
# -----------------------------
def get_attendance_record(employee_id: int, date: str) -> dict | None:
    conn = connect_db()
    cur = conn.cursor()
    cur.execute("""
        SELECT employee_id, full_name, date, clockin_time, clockout_time, status, type
        FROM attendance_records
        WHERE employee_id = ? AND date = ?
    """, (employee_id, date))
    row = cur.fetchone()
    conn.close()
    if not row:
        return None
    return _record_from_row(row)


def get_attendance_records(date: str):
    conn = connect_db()
    cur = conn.cursor()
    cur.execute("""
        SELECT employee_id, full_name, date, clockin_time, clockout_time, status, type
        FROM attendance_records
        WHERE date = ?
        ORDER BY clockin_time IS NULL, clockin_time, employee_id
    """, (date,))
    rows = cur.fetchall()
    conn.close()
    return [_record_from_row(r) for r in rows]


def count_attendance_records() -> int:
    conn = connect_db()
    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) FROM attendance_records")
    total = int(cur.fetchone()[0])
    conn.close()
    return total


def _record_from_row(row) -> dict:
    return {
        "employee_id": row[0],
        "full_name": row[1],
        "date": row[2],
        "clockin_time": row[3],
        "clockout_time": row[4],
        "status": row[5],
        "type": row[6],
    }
