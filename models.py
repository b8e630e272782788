"""
models.py
Record dataclasses (clients, payments, lessons) and the derived summary/heatmap types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

CLIENT_STATUSES = ("active", "inactive", "other")
PAYMENT_STATUSES = ("paid", "owing")
PAYMENT_METHODS = ("cash", "card", "transfer", "cheque", "e-transfer")
LESSON_BILLING = ("paid", "probono")

DEFAULT_LESSON_HOURS = 1.0


def _get(row, key, default=None):
    # sqlite3.Row has no .get()
    try:
        value = row[key]
    except (KeyError, IndexError):
        return default
    return default if value is None else value


@dataclass(frozen=True)
class Client:
    id: int | None
    uid: str
    full_name: str
    status: str = "active"
    email: str | None = None
    telephone: str | None = None
    lead_source: str | None = None
    teacher: str | None = None
    notes: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "uid", (self.uid or "").strip().upper())

    @property
    def label(self) -> str:
        return f"{self.full_name} ({self.uid})"

    @classmethod
    def from_row(cls, row) -> "Client":
        return cls(
            id=_get(row, "id"),
            uid=_get(row, "uid", ""),
            full_name=_get(row, "full_name", ""),
            status=_get(row, "status", "active"),
            email=_get(row, "email"),
            telephone=_get(row, "telephone"),
            lead_source=_get(row, "lead_source"),
            teacher=_get(row, "teacher"),
            notes=_get(row, "notes"),
        )


@dataclass(frozen=True)
class Payment:
    id: int | None
    client_id: int | None
    payment_date: str | None
    hours_purchased: float | None = 0.0
    package_type: str | None = None
    amount_paid: float | None = None
    hourly_rate: float | None = None
    amount_owing_pretax: float | None = None
    apply_tax: bool = False
    hst_amount: float | None = 0.0
    total_payment: float | None = None
    status: str = "paid"  # paid/owing
    payment_method: str | None = None
    year: int | None = None
    notes: str | None = None

    @classmethod
    def from_row(cls, row) -> "Payment":
        return cls(
            id=_get(row, "id"),
            client_id=_get(row, "client_id"),
            payment_date=_get(row, "payment_date"),
            hours_purchased=_get(row, "hours_purchased"),
            package_type=_get(row, "package_type"),
            amount_paid=_get(row, "amount_paid"),
            hourly_rate=_get(row, "hourly_rate"),
            amount_owing_pretax=_get(row, "amount_owing_pretax"),
            apply_tax=bool(_get(row, "apply_tax", 0)),
            hst_amount=_get(row, "hst_amount", 0.0),
            total_payment=_get(row, "total_payment"),
            status=_get(row, "status", "paid"),
            payment_method=_get(row, "payment_method"),
            year=_get(row, "year"),
            notes=_get(row, "notes"),
        )


@dataclass(frozen=True)
class Lesson:
    id: int | None
    client_id: int | None
    lesson_date: str | None
    hours_taught: float | None = DEFAULT_LESSON_HOURS
    teacher: str | None = None
    lesson_topic: str | None = None
    paid_or_probono: str = "paid"
    paid_teacher: str | None = None  # date the teacher was paid
    notes: str | None = None

    @classmethod
    def from_row(cls, row) -> "Lesson":
        return cls(
            id=_get(row, "id"),
            client_id=_get(row, "client_id"),
            lesson_date=_get(row, "lesson_date"),
            hours_taught=_get(row, "hours_taught", DEFAULT_LESSON_HOURS),
            teacher=_get(row, "teacher"),
            lesson_topic=_get(row, "lesson_topic"),
            paid_or_probono=_get(row, "paid_or_probono", "paid"),
            paid_teacher=_get(row, "paid_teacher"),
            notes=_get(row, "notes"),
        )


@dataclass(frozen=True)
class ClientSummary:
    total_purchased: Decimal = Decimal("0")
    total_used: Decimal = Decimal("0")
    last_lesson_date: date | None = None
    payment_count: int = 0
    lesson_count: int = 0

    @property
    def remaining(self) -> Decimal:
        return self.total_purchased - self.total_used


@dataclass(frozen=True)
class HeatmapCell:
    day: date
    count: int
    level: int
    in_range: bool


@dataclass(frozen=True)
class HeatmapWeek:
    cells: tuple[HeatmapCell, ...] = field(default_factory=tuple)

    @property
    def start(self) -> date:
        return self.cells[0].day
