"""
records.py
Data access for clients, payments and lessons (load + create/update/delete).
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping

import config
import db
import utils
from models import Client, Lesson, Payment

logger = logging.getLogger(__name__)

CLIENT_FIELDS = ("uid", "full_name", "status", "email", "telephone", "lead_source", "teacher", "notes")
PAYMENT_FIELDS = (
    "client_id", "payment_date", "package_type", "hours_purchased", "amount_paid", "hourly_rate",
    "amount_owing_pretax", "apply_tax", "hst_amount", "total_payment", "status", "payment_method",
    "year", "notes",
)
LESSON_FIELDS = (
    "client_id", "lesson_date", "hours_taught", "teacher", "lesson_topic", "paid_or_probono",
    "paid_teacher", "notes",
)


class RecordError(ValueError):
    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


# ---------- Loading ----------

CLIENTS_SQL = "SELECT * FROM clients ORDER BY full_name ASC"
PAYMENTS_SQL = "SELECT * FROM payments ORDER BY payment_date DESC, id DESC"
LESSONS_SQL = "SELECT * FROM lessons ORDER BY lesson_date DESC, id DESC"


def load_clients() -> list[Client]:
    return [Client.from_row(r) for r in db.fetch_all(CLIENTS_SQL)]


def load_payments() -> list[Payment]:
    return [Payment.from_row(r) for r in db.fetch_all(PAYMENTS_SQL)]


def load_lessons() -> list[Lesson]:
    return [Lesson.from_row(r) for r in db.fetch_all(LESSONS_SQL)]


def load_snapshot() -> tuple[list[Client], list[Payment], list[Lesson]]:
    """
    All three collections read inside one transaction, so summaries never see
    a half-applied write.
    """
    with db.get_conn() as conn:
        conn.execute("BEGIN")
        clients = [Client.from_row(r) for r in conn.execute(CLIENTS_SQL)]
        payments = [Payment.from_row(r) for r in conn.execute(PAYMENTS_SQL)]
        lessons = [Lesson.from_row(r) for r in conn.execute(LESSONS_SQL)]
    return clients, payments, lessons


def get_client(client_id: int) -> Client | None:
    row = db.fetch_one("SELECT * FROM clients WHERE id = ?", (client_id,))
    return Client.from_row(row) if row else None


# ---------- Clients ----------

def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def save_client(data: Mapping, client_id: int | None = None) -> int:
    """
    Insert a new client (client_id None) or update an existing one. Returns the id.
    """
    values = {f: _clean(data.get(f)) for f in CLIENT_FIELDS}
    values["uid"] = (values["uid"] or "").upper()
    values["status"] = values["status"] or "active"

    errors = utils.validate_client_inputs(values["uid"], values["full_name"] or "", values["status"], values["email"])
    if errors:
        raise RecordError(errors)

    params = tuple(values[f] for f in CLIENT_FIELDS)
    try:
        if client_id:
            if get_client(client_id) is None:
                raise RecordError(f"Client {client_id} no longer exists.")
            assignments = ", ".join(f"{f}=?" for f in CLIENT_FIELDS)
            db.execute(f"UPDATE clients SET {assignments} WHERE id=?", params + (client_id,))
            logger.info("Updated client %s (%s)", client_id, values["uid"])
            return client_id
        placeholders = ",".join("?" * len(CLIENT_FIELDS))
        new_id = db.execute(f"INSERT INTO clients({', '.join(CLIENT_FIELDS)}) VALUES({placeholders})", params)
    except sqlite3.IntegrityError as exc:
        raise RecordError(f"A client with UID {values['uid']} already exists.") from exc
    logger.info("Added client %s (%s)", new_id, values["uid"])
    return new_id


def client_delete_impact(client_id: int) -> dict[str, int]:
    """Counts of dependent rows removed along with the client."""
    payments = db.fetch_one("SELECT COUNT(*) AS c FROM payments WHERE client_id = ?", (client_id,))["c"]
    lessons = db.fetch_one("SELECT COUNT(*) AS c FROM lessons WHERE client_id = ?", (client_id,))["c"]
    return {"payments": int(payments), "lessons": int(lessons)}


def delete_client(client_id: int) -> None:
    db.execute("DELETE FROM clients WHERE id = ?", (client_id,))
    logger.info("Deleted client %s", client_id)


def filter_clients(clients, search: str = "", status: str = "", teacher: str = "") -> list[Client]:
    term = (search or "").strip().lower()

    def matches(c: Client) -> bool:
        if term:
            haystack = [c.full_name, c.uid, c.email, c.telephone]
            if not any(term in (h or "").lower() for h in haystack):
                return False
        if status and c.status != status:
            return False
        if teacher and c.teacher != teacher:
            return False
        return True

    return [c for c in clients if matches(c)]


def teachers(clients) -> list[str]:
    """Distinct teacher names in first-seen order."""
    return list(dict.fromkeys(c.teacher for c in clients if c.teacher))


# ---------- Payments ----------

def add_payment(data: Mapping) -> int:
    values = {f: _clean(data.get(f)) for f in PAYMENT_FIELDS}
    values["status"] = values["status"] or "paid"
    errors = utils.validate_payment_inputs(
        values["client_id"], values["payment_date"], values["hours_purchased"], values["status"]
    )
    if errors:
        raise RecordError(errors)

    values["client_id"] = int(values["client_id"])
    values["hours_purchased"] = utils.to_float(values["hours_purchased"], 0.0)
    values["apply_tax"] = 1 if values["apply_tax"] else 0
    for money in ("amount_paid", "hourly_rate", "amount_owing_pretax", "total_payment"):
        values[money] = utils.to_float(values[money]) or None
    values["hst_amount"] = utils.to_float(values["hst_amount"], 0.0) or 0.0
    if values["total_payment"] is None and values["amount_paid"]:
        values["hst_amount"], values["total_payment"] = utils.calc_hst(values["amount_paid"], bool(values["apply_tax"]))
    if not values["year"]:
        values["year"] = utils.parse_iso(values["payment_date"]).year

    placeholders = ",".join("?" * len(PAYMENT_FIELDS))
    try:
        new_id = db.execute(
            f"INSERT INTO payments({', '.join(PAYMENT_FIELDS)}) VALUES({placeholders})",
            tuple(values[f] for f in PAYMENT_FIELDS),
        )
    except sqlite3.IntegrityError as exc:
        raise RecordError("Payment refers to an unknown client.") from exc
    logger.info("Added payment %s for client %s (%.1fh)", new_id, values["client_id"], values["hours_purchased"])
    return new_id


def delete_payment(payment_id: int) -> None:
    db.execute("DELETE FROM payments WHERE id = ?", (payment_id,))
    logger.info("Deleted payment %s", payment_id)


# ---------- Lessons ----------

def add_lesson(data: Mapping) -> int:
    values = {f: _clean(data.get(f)) for f in LESSON_FIELDS}
    values["paid_or_probono"] = values["paid_or_probono"] or "paid"
    if values["hours_taught"] is None:
        values["hours_taught"] = 1.0
    errors = utils.validate_lesson_inputs(
        values["client_id"], values["lesson_date"], values["hours_taught"], values["paid_or_probono"]
    )
    if errors:
        raise RecordError(errors)

    values["client_id"] = int(values["client_id"])
    values["hours_taught"] = utils.to_float(values["hours_taught"], 1.0)
    values["teacher"] = values["teacher"] or config.DEFAULT_TEACHER
    values["lesson_topic"] = values["lesson_topic"] or "General"

    placeholders = ",".join("?" * len(LESSON_FIELDS))
    try:
        new_id = db.execute(
            f"INSERT INTO lessons({', '.join(LESSON_FIELDS)}) VALUES({placeholders})",
            tuple(values[f] for f in LESSON_FIELDS),
        )
    except sqlite3.IntegrityError as exc:
        raise RecordError("Lesson refers to an unknown client.") from exc
    logger.info("Added lesson %s for client %s (%.1fh)", new_id, values["client_id"], values["hours_taught"])
    return new_id


def delete_lesson(lesson_id: int) -> None:
    db.execute("DELETE FROM lessons WHERE id = ?", (lesson_id,))
    logger.info("Deleted lesson %s", lesson_id)
