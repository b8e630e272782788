"""
summaries.py
Hours-balance reconciliation (purchased vs. used per client) and report roll-ups.

Everything here is a pure function of already-loaded records: no queries, no
caching. Call compute_client_summaries() again whenever the records change.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from models import ClientSummary
from utils import to_date

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_hours(value) -> Decimal:
    """
    Hours (or money) as an exact Decimal. None, blanks and non-numeric values count as zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def compute_client_summaries(clients, payments, lessons) -> dict[int, ClientSummary]:
    """
    Build {client.id: ClientSummary} from the full client/payment/lesson collections.

    Payments and lessons whose client_id matches no client are dropped silently.
    """
    payments_by_client = defaultdict(list)
    for p in payments:
        payments_by_client[p.client_id].append(p)

    lessons_by_client = defaultdict(list)
    for lesson in lessons:
        lessons_by_client[lesson.client_id].append(lesson)

    summaries: dict[int, ClientSummary] = {}
    for client in clients:
        client_payments = payments_by_client.get(client.id, [])
        client_lessons = lessons_by_client.get(client.id, [])

        purchased = sum((to_hours(p.hours_purchased) for p in client_payments), ZERO)
        used = sum((to_hours(lesson.hours_taught) for lesson in client_lessons), ZERO)

        # don't trust storage order for "latest"
        lesson_dates = [d for d in (to_date(lesson.lesson_date) for lesson in client_lessons) if d]
        last_lesson = max(lesson_dates) if lesson_dates else None

        summaries[client.id] = ClientSummary(
            total_purchased=purchased,
            total_used=used,
            last_lesson_date=last_lesson,
            payment_count=len(client_payments),
            lesson_count=len(client_lessons),
        )

    orphans = (len(payments_by_client.keys() - summaries.keys())
               + len(lessons_by_client.keys() - summaries.keys()))
    if orphans:
        logger.debug("Ignored records for %d unknown client id(s)", orphans)
    return summaries


# ---------- Report roll-ups ----------

@dataclass(frozen=True)
class PaymentTotals:
    revenue: Decimal
    hours: Decimal
    outstanding: Decimal


@dataclass(frozen=True)
class LessonTotals:
    count: int
    hours: Decimal


@dataclass(frozen=True)
class OverallTotals:
    active_clients: int
    purchased: Decimal
    used: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.purchased - self.used


@dataclass(frozen=True)
class PackageStats:
    package: str
    count: int
    hours: Decimal
    revenue: Decimal


def payment_totals(payments) -> PaymentTotals:
    revenue = sum((to_hours(p.total_payment) for p in payments), ZERO)
    hours = sum((to_hours(p.hours_purchased) for p in payments), ZERO)
    outstanding = sum((to_hours(p.total_payment) for p in payments if p.status == "owing"), ZERO)
    return PaymentTotals(revenue=revenue, hours=hours, outstanding=outstanding)


def lesson_totals(lessons) -> LessonTotals:
    lessons = list(lessons)
    return LessonTotals(count=len(lessons), hours=sum((to_hours(l.hours_taught) for l in lessons), ZERO))


def overall_totals(clients, summaries: dict[int, ClientSummary]) -> OverallTotals:
    return OverallTotals(
        active_clients=sum(1 for c in clients if c.status == "active"),
        purchased=sum((s.total_purchased for s in summaries.values()), ZERO),
        used=sum((s.total_used for s in summaries.values()), ZERO),
    )


def hours_remaining_report(clients, summaries: dict[int, ClientSummary]) -> list[tuple]:
    """
    [(client, summary)] for clients with hours left, most remaining first.
    """
    rows = [(c, summaries[c.id]) for c in clients if c.id in summaries and summaries[c.id].remaining > 0]
    rows.sort(key=lambda pair: pair[1].remaining, reverse=True)
    return rows


def package_report(payments) -> list[PackageStats]:
    grouped: dict[str, list] = defaultdict(list)
    for p in payments:
        grouped[(p.package_type or "").strip() or "Unspecified"].append(p)

    stats = [
        PackageStats(
            package=pkg,
            count=len(items),
            hours=sum((to_hours(p.hours_purchased) for p in items), ZERO),
            revenue=sum((to_hours(p.total_payment) for p in items), ZERO),
        )
        for pkg, items in grouped.items()
    ]
    stats.sort(key=lambda s: s.revenue, reverse=True)
    return stats
