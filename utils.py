"""
utils.py
Validation, dates, money/hour formatting, exports, sample data.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta

import pandas as pd

import config
import db
from models import CLIENT_STATUSES, LESSON_BILLING, PAYMENT_STATUSES

logger = logging.getLogger(__name__)

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def to_date(value) -> date | None:
    """
    Coerce a stored date value (date, datetime, 'YYYY-MM-DD', 'YYYY-MM-DDTHH:MM...')
    to a calendar date. Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    text = text.split("T")[0].split(" ")[0]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def shift_months(start: date, months: int) -> date:
    """
    Move `start` by `months` (negative goes back). A day that doesn't exist in
    the target month carries over into the next one, so Mar 31 - 1 month is
    Mar 2 in a leap year (Feb 31 => Feb 29 + 2 days).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    return date(y, m, 1) + timedelta(days=start.day - 1)


def parse_sheet_date(value) -> str | None:
    """
    Normalize a spreadsheet date cell to 'YYYY-MM-DD'.

    Handles "2020/06/10 0:00", "4/23/2020", "4/23/20" and ISO strings.
    North American month-first order is assumed for slash dates.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    cleaned = text.split(" ")[0]
    parts = cleaned.split("/")
    if len(parts) == 3:
        try:
            if len(parts[0]) == 4:
                y, m, d = int(parts[0]), int(parts[1]), int(parts[2])
            else:
                m, d = int(parts[0]), int(parts[1])
                if len(parts[2]) not in (2, 4):
                    raise ValueError(f"year must have 2 or 4 digits: {parts[2]!r}")
                y = int("20" + parts[2]) if len(parts[2]) == 2 else int(parts[2])
            return date(y, m, d).isoformat()
        except ValueError:
            logger.debug("Unparseable sheet date %r", value)
            return None
    parsed = to_date(cleaned)
    return parsed.isoformat() if parsed else None


def to_float(value, default: float | None = None) -> float | None:
    if value is None:
        return default
    try:
        return float(str(value).replace("$", "").replace(",", "").strip())
    except ValueError:
        return default


def calc_hst(amount_paid, apply_tax: bool) -> tuple[float, float]:
    """
    Returns (hst, total) for an amount, rounded to cents.
    """
    amount = to_float(amount_paid, 0.0) or 0.0
    if apply_tax and amount > 0:
        hst = round(amount * config.HST_RATE, 2)
        return hst, round(amount + hst, 2)
    return 0.0, round(amount, 2)


# ---------- Validation ----------

def validate_client_inputs(uid: str, full_name: str, status: str, email: str | None = None) -> list[str]:
    errors: list[str] = []
    if not (uid or "").strip():
        errors.append("UID is required.")
    if not (full_name or "").strip():
        errors.append("Full name is required.")
    if status not in CLIENT_STATUSES:
        errors.append(f"Status must be one of: {', '.join(CLIENT_STATUSES)}.")
    if email and "@" not in email:
        errors.append("Email address looks invalid.")
    return errors


def validate_payment_inputs(client_id, payment_date: str, hours_purchased, status: str) -> list[str]:
    errors: list[str] = []
    if not client_id:
        errors.append("Select a client.")
    try:
        parse_iso(payment_date)
    except (TypeError, ValueError):
        errors.append("Payment date must be a valid ISO date (YYYY-MM-DD).")
    hours = to_float(hours_purchased)
    if hours is None:
        errors.append("Hours purchased must be numeric.")
    elif hours < 0:
        errors.append("Hours purchased cannot be negative.")
    if status not in PAYMENT_STATUSES:
        errors.append(f"Status must be one of: {', '.join(PAYMENT_STATUSES)}.")
    return errors


def validate_lesson_inputs(client_id, lesson_date: str, hours_taught, paid_or_probono: str) -> list[str]:
    errors: list[str] = []
    if not client_id:
        errors.append("Select a client.")
    try:
        parse_iso(lesson_date)
    except (TypeError, ValueError):
        errors.append("Lesson date must be a valid ISO date (YYYY-MM-DD).")
    hours = to_float(hours_taught)
    if hours is None:
        errors.append("Hours taught must be numeric.")
    elif hours < 0:
        errors.append("Hours taught cannot be negative.")
    if paid_or_probono not in LESSON_BILLING:
        errors.append(f"Billing must be one of: {', '.join(LESSON_BILLING)}.")
    return errors


# ---------- Display ----------

def fmt_hours(value) -> str:
    return f"{float(value or 0):.1f}h"


def fmt_money(value) -> str:
    amount = to_float(value)
    if not amount:
        return "-"
    return f"${amount:.2f}"


def fmt_date(value) -> str:
    d = to_date(value)
    if d is None:
        return "-"
    return f"{MONTH_ABBR[d.month - 1]} {d.day}, {d.year}"


# ---------- Exports ----------

def records_to_csv_bytes(rows) -> bytes:
    """
    rows: sqlite3.Row objects, dicts or dataclass instances.
    """
    records = [asdict(r) if is_dataclass(r) else dict(r) for r in rows]
    df = pd.DataFrame(records)
    return df.to_csv(index=False).encode("utf-8")


def insert_sample_data() -> None:
    """
    Insert 3 clients with a few payments and lessons (adds new rows each time;
    uids get a numeric suffix so repeated runs don't collide).
    """
    today = date.today()
    suffix = db.fetch_one("SELECT COUNT(*) AS c FROM clients")["c"] + 1

    clients = [
        (f"SAMPLE{suffix}A", "Priya Sharma", "active", "priya@example.com", config.DEFAULT_TEACHER),
        (f"SAMPLE{suffix}B", "Liam Chen", "active", None, config.DEFAULT_TEACHER),
        (f"SAMPLE{suffix}C", "Noah Patel", "inactive", None, config.DEFAULT_TEACHER),
    ]
    ids = []
    for c in clients:
        cid = db.execute(
            "INSERT INTO clients(uid, full_name, status, email, teacher) VALUES(?,?,?,?,?)",
            c,
        )
        ids.append(cid)

    hst, total = calc_hst(500.0, True)
    db.executemany(
        """
        INSERT INTO payments(client_id, payment_date, package_type, hours_purchased, amount_paid,
            apply_tax, hst_amount, total_payment, status, payment_method, year)
        VALUES(?,?,?,?,?,?,?,?,?,?,?)
        """,
        [
            (ids[0], (today - timedelta(days=40)).isoformat(), "10 hours", 10.0, 500.0, 1, hst, total, "paid", "card", today.year),
            (ids[1], (today - timedelta(days=20)).isoformat(), "5 hours", 5.0, 250.0, 0, 0.0, 250.0, "owing", None, today.year),
        ],
    )

    lessons = []
    for offset in (2, 5, 9, 12, 16, 23, 30):
        lessons.append((ids[0], (today - timedelta(days=offset)).isoformat(), 1.5, config.DEFAULT_TEACHER, "Algebra", "paid"))
    for offset in (3, 5, 10, 17, 24, 31):
        lessons.append((ids[1], (today - timedelta(days=offset)).isoformat(), 1.0, config.DEFAULT_TEACHER, "Reading", "paid"))
    db.executemany(
        "INSERT INTO lessons(client_id, lesson_date, hours_taught, teacher, lesson_topic, paid_or_probono) VALUES(?,?,?,?,?,?)",
        lessons,
    )
    logger.info("Inserted sample data: %d clients, 2 payments, %d lessons", len(ids), len(lessons))
