"""
importer.py
One-time import of spreadsheet CSV exports (clients.csv, payments.csv, lessons.csv).

Run: python importer.py --dir exports [--clear] [--yes]

Sheet headers vary between exports, so every field has a list of accepted
header names; the first one present in the file wins.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
import time
from datetime import date
from pathlib import Path

import pandas as pd

import auth
import config
import db
import utils

logger = logging.getLogger(__name__)

FILES = ("clients", "payments", "lessons")

FIELD_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "clients": {
        "uid": ("UID", "uid"),
        "full_name": ("full name", "full_name", "name"),
        "status": ("status", "Status"),
        "email": ("email", "Email"),
        "telephone": ("telephone", "Telephone", "phone", "Phone"),
        "lead_source": ("Lead Source", "lead_source"),
        "teacher": ("Teacher", "teacher"),
        "notes": ("notes", "Notes"),
    },
    "payments": {
        "uid": ("UID", "uid"),
        "payment_date": ("Date (a/receivable)", "Date", "date"),
        "package_type": ("package (payments)", "package", "package_type"),
        "hours_purchased": ("# of hours (payments)", "hours", "hours_purchased"),
        "amount_paid": ("amount paid (payments)", "amount_paid", "amount"),
        "hourly_rate": ("hourly rate", "hourly_rate"),
        "amount_owing_pretax": ("amount owing (pretax)", "amount_owing"),
        "apply_tax": ("apply tax (payments)", "apply_tax"),
        "hst_amount": ("hst (P)", "hst"),
        "total_payment": ("total payment (p)", "total_payment", "total"),
        "status": ("status (p)", "status"),
        "payment_method": ("payment method (p)", "payment_method"),
        "year": ("year (p)", "year"),
        "notes": ("notes", "Notes"),
    },
    "lessons": {
        "uid": ("UID", "uid"),
        "lesson_date": ("date of lesson", "Date", "date"),
        "hours_taught": ("# of hours taught", "hours_taught", "hours"),
        "teacher": ("teacher (lesson) drop", "teacher", "Teacher"),
        "paid_or_probono": ("paid or probono", "paid_or_probono"),
        "paid_teacher": ("paid teacher (lesson)", "paid_teacher"),
        "description": ("Description of Lesson", "description", "notes"),
    },
}

TOPIC_RE = re.compile(r"comments \(m\):\s*([^\n]+)", re.IGNORECASE)


class ImportFileError(FileNotFoundError):
    pass


def read_csv(path: Path) -> pd.DataFrame:
    # keep every cell as text; blanks become ""
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def resolve_columns(columns, aliases: dict[str, tuple[str, ...]]) -> dict[str, str | None]:
    """
    Map each canonical field to the first alias present in `columns` (or None).
    """
    present = set(columns)
    return {field: next((a for a in names if a in present), None) for field, names in aliases.items()}


def canonical_rows(df: pd.DataFrame, table: str) -> list[dict[str, str]]:
    mapping = resolve_columns(df.columns, FIELD_ALIASES[table])
    missing = [f for f, col in mapping.items() if col is None]
    if missing:
        logger.debug("%s.csv: no column for %s", table, ", ".join(missing))
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append({f: (str(record[col]).strip() if col else "") for f, col in mapping.items()})
    return rows


def extract_topic(description: str) -> str:
    match = TOPIC_RE.search(description or "")
    return match.group(1).strip() if match else "General"


# ---------- Row transforms ----------

def client_from_row(row: dict[str, str]) -> tuple | None:
    uid = row["uid"].upper()
    if not uid or not row["full_name"]:
        return None
    return (
        uid,
        row["full_name"],
        (row["status"] or "active").lower(),
        row["email"] or None,
        row["telephone"] or None,
        row["lead_source"] or None,
        row["teacher"] or config.DEFAULT_TEACHER,
        row["notes"] or None,
    )


def payment_from_row(row: dict[str, str], client_id: int) -> tuple:
    year = utils.to_float(row["year"])
    return (
        client_id,
        utils.parse_sheet_date(row["payment_date"]),
        row["package_type"] or None,
        utils.to_float(row["hours_purchased"], 0.0),
        utils.to_float(row["amount_paid"]) or None,
        utils.to_float(row["hourly_rate"]) or None,
        utils.to_float(row["amount_owing_pretax"]) or None,
        1 if (row["apply_tax"] or "no").lower() == "yes" else 0,
        utils.to_float(row["hst_amount"]) or 0.0,
        utils.to_float(row["total_payment"]) or None,
        (row["status"] or "paid").lower(),
        row["payment_method"].lower() or None,
        int(year) if year else date.today().year,
        row["notes"] or None,
    )


def lesson_from_row(row: dict[str, str], client_id: int) -> tuple:
    description = row["description"]
    return (
        client_id,
        utils.parse_sheet_date(row["lesson_date"]),
        utils.to_float(row["hours_taught"], 1.0),
        row["teacher"] or config.DEFAULT_TEACHER,
        extract_topic(description),
        (row["paid_or_probono"] or "paid").lower(),
        utils.parse_sheet_date(row["paid_teacher"]),
        description or None,
    )


# ---------- Inserts ----------

def insert_batches(sql: str, rows: list[tuple], label: str) -> None:
    size = config.IMPORT_BATCH_SIZE
    for i in range(0, len(rows), size):
        batch = rows[i:i + size]
        db.executemany(sql, batch)
        logger.info("Inserted %d/%d %s", min(i + len(batch), len(rows)), len(rows), label)


def client_id_map() -> dict[str, int]:
    return {r["uid"].upper(): r["id"] for r in db.fetch_all("SELECT id, uid FROM clients")}


def import_clients(path: Path) -> int:
    rows = canonical_rows(read_csv(path), "clients")
    logger.info("Found %d clients", len(rows))
    clients = [c for c in (client_from_row(r) for r in rows) if c]
    if not clients:
        logger.warning("No valid client data found")
        return 0
    insert_batches(
        """
        INSERT INTO clients(uid, full_name, status, email, telephone, lead_source, teacher, notes)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        clients,
        "clients",
    )
    return len(clients)


def _rows_with_client(path: Path, table: str):
    ids = client_id_map()
    rows = canonical_rows(read_csv(path), table)
    logger.info("Found %d %s", len(rows), table)
    for row in rows:
        uid = row["uid"].upper()
        client_id = ids.get(uid)
        if client_id is None:
            logger.warning("Client not found for %s row (UID: %s)", table[:-1], uid)
            continue
        yield row, client_id


def import_payments(path: Path) -> int:
    payments = [payment_from_row(row, cid) for row, cid in _rows_with_client(path, "payments")]
    if not payments:
        logger.warning("No valid payment data found")
        return 0
    insert_batches(
        """
        INSERT INTO payments(client_id, payment_date, package_type, hours_purchased, amount_paid,
            hourly_rate, amount_owing_pretax, apply_tax, hst_amount, total_payment, status,
            payment_method, year, notes)
        VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?,?)
        """,
        payments,
        "payments",
    )
    return len(payments)


def import_lessons(path: Path) -> int:
    lessons = [lesson_from_row(row, cid) for row, cid in _rows_with_client(path, "lessons")]
    if not lessons:
        logger.warning("No valid lesson data found")
        return 0
    insert_batches(
        """
        INSERT INTO lessons(client_id, lesson_date, hours_taught, teacher, lesson_topic,
            paid_or_probono, paid_teacher, notes)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        lessons,
        "lessons",
    )
    return len(lessons)


def clear_tables() -> None:
    for table in ("lessons", "payments", "clients"):
        logger.info("Clearing %s table...", table)
        db.execute(f"DELETE FROM {table}")


def check_files(directory: Path) -> dict[str, Path]:
    paths = {name: directory / f"{name}.csv" for name in FILES}
    missing = [p.name for p in paths.values() if not p.exists()]
    if missing:
        raise ImportFileError(f"Missing CSV files in {directory}: {', '.join(missing)}")
    return paths


def run_import(directory: Path, clear: bool = False) -> dict[str, int]:
    """
    Import all three files. Clients go first (payments/lessons look them up by UID).
    """
    paths = check_files(directory)
    db.init_db(auth.hash_password(config.DEFAULT_ADMIN_PASSWORD))
    if clear:
        clear_tables()
    counts = {
        "clients": import_clients(paths["clients"]),
        "payments": import_payments(paths["payments"]),
        "lessons": import_lessons(paths["lessons"]),
    }
    logger.info("Import finished: %s", counts)
    return counts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import spreadsheet CSV exports into the tutoring database.")
    parser.add_argument("--dir", type=Path, default=config.IMPORT_DIR, help="folder holding clients/payments/lessons .csv")
    parser.add_argument("--clear", action="store_true", help="delete existing clients, payments and lessons first")
    parser.add_argument("--yes", action="store_true", help="skip the 5 second safety pause")
    args = parser.parse_args(argv)

    config.configure_logging()
    try:
        check_files(args.dir)
    except ImportFileError as exc:
        logger.error("%s", exc)
        return 1

    if not args.yes:
        logger.warning("About to import into %s. Ctrl+C to cancel, continuing in 5 seconds...", db.DB_FILE)
        time.sleep(5)

    try:
        run_import(args.dir, clear=args.clear)
    except Exception:
        logger.exception("Import failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
