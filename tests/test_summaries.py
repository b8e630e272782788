from datetime import date
from decimal import Decimal

from models import Client, Lesson, Payment
from summaries import (
    compute_client_summaries,
    hours_remaining_report,
    lesson_totals,
    overall_totals,
    package_report,
    payment_totals,
    to_hours,
)


def _client(cid, uid="C1", status="active"):
    return Client(id=cid, uid=uid, full_name=f"Client {uid}", status=status)


def _payment(cid, hours, **kw):
    return Payment(id=None, client_id=cid, payment_date=kw.pop("payment_date", "2024-01-01"), hours_purchased=hours, **kw)


def _lesson(cid, day, hours=1.0):
    return Lesson(id=None, client_id=cid, lesson_date=day, hours_taught=hours)


def test_client_without_records_is_zero():
    summaries = compute_client_summaries([_client(1)], [], [])
    s = summaries[1]
    assert s.total_purchased == 0
    assert s.total_used == 0
    assert s.remaining == 0
    assert s.last_lesson_date is None
    assert s.payment_count == 0 and s.lesson_count == 0


def test_purchased_used_remaining():
    payments = [_payment(1, 6.0), _payment(1, 4.0)]
    lessons = [_lesson(1, "2024-02-01", 1.5), _lesson(1, "2024-02-08", 2.0)]
    s = compute_client_summaries([_client(1)], payments, lessons)[1]
    assert s.total_purchased == Decimal("10.0")
    assert s.total_used == Decimal("3.5")
    assert s.remaining == Decimal("6.5")
    assert s.payment_count == 2
    assert s.lesson_count == 2


def test_overdraft_is_negative_not_an_error():
    s = compute_client_summaries([_client(1)], [_payment(1, 1.0)], [_lesson(1, "2024-02-01", 2.5)])[1]
    assert s.remaining == Decimal("-1.5")
    assert s.remaining == s.total_purchased - s.total_used


def test_decimal_sum_is_exact():
    payments = [_payment(1, 0.1) for _ in range(3)]
    s = compute_client_summaries([_client(1)], payments, [])[1]
    assert s.total_purchased == Decimal("0.3")


def test_orphans_are_ignored():
    clients = [_client(1)]
    payments = [_payment(1, 5.0), _payment(99, 100.0)]
    lessons = [_lesson(42, "2024-03-01", 3.0)]
    summaries = compute_client_summaries(clients, payments, lessons)
    assert set(summaries) == {1}
    assert summaries[1].total_purchased == 5
    assert summaries[1].total_used == 0


def test_bad_hours_count_as_zero():
    payments = [_payment(1, None), _payment(1, "abc"), _payment(1, "2.5")]
    lessons = [_lesson(1, "2024-01-02", None), _lesson(1, "2024-01-03", "nan")]
    s = compute_client_summaries([_client(1)], payments, lessons)[1]
    assert s.total_purchased == Decimal("2.5")
    assert s.total_used == 0
    assert s.lesson_count == 2


def test_last_lesson_is_max_not_first():
    lessons = [
        _lesson(1, "2024-01-10"),
        _lesson(1, "2024-03-05T14:00:00"),
        _lesson(1, "not a date"),
        _lesson(1, "2024-02-20"),
    ]
    s = compute_client_summaries([_client(1)], [], lessons)[1]
    assert s.last_lesson_date == date(2024, 3, 5)


def test_idempotent():
    clients = [_client(1), _client(2, "C2")]
    payments = [_payment(1, 10.0), _payment(2, 3.3)]
    lessons = [_lesson(1, "2024-01-01", 1.1), _lesson(2, "2024-01-02", 0.7)]
    assert compute_client_summaries(clients, payments, lessons) == compute_client_summaries(clients, payments, lessons)


def test_to_hours():
    assert to_hours(None) == 0
    assert to_hours("") == 0
    assert to_hours(" 1.5 ") == Decimal("1.5")
    assert to_hours(2) == 2
    assert to_hours(float("inf")) == 0


def test_payment_totals():
    payments = [
        _payment(1, 10.0, total_payment=565.0, status="paid"),
        _payment(2, 5.0, total_payment=250.0, status="owing"),
        _payment(2, 2.0, total_payment=None, status="owing"),
    ]
    totals = payment_totals(payments)
    assert totals.revenue == Decimal("815.0")
    assert totals.hours == Decimal("17.0")
    assert totals.outstanding == Decimal("250.0")


def test_lesson_totals():
    totals = lesson_totals([_lesson(1, "2024-01-01", 1.5), _lesson(2, "2024-01-02", 1.0)])
    assert totals.count == 2
    assert totals.hours == Decimal("2.5")


def test_overall_and_hours_remaining_report():
    clients = [_client(1, "A"), _client(2, "B"), _client(3, "C", status="inactive")]
    payments = [_payment(1, 5.0), _payment(2, 10.0), _payment(3, 1.0)]
    lessons = [_lesson(1, "2024-01-01", 1.0), _lesson(3, "2024-01-01", 2.0)]
    summaries = compute_client_summaries(clients, payments, lessons)

    overall = overall_totals(clients, summaries)
    assert overall.active_clients == 2
    assert overall.purchased == 16
    assert overall.used == 3
    assert overall.remaining == 13

    report = hours_remaining_report(clients, summaries)
    assert [c.uid for c, _ in report] == ["B", "A"]


def test_package_report_groups_and_sorts_by_revenue():
    payments = [
        _payment(1, 10.0, package_type="10 hours", total_payment=500.0),
        _payment(2, 10.0, package_type="10 hours", total_payment=500.0),
        _payment(3, 20.0, package_type="20 hours", total_payment=900.0),
        _payment(3, 1.0, package_type=None, total_payment=50.0),
    ]
    report = package_report(payments)
    assert [p.package for p in report] == ["10 hours", "20 hours", "Unspecified"]
    assert report[0].count == 2
    assert report[0].hours == 20
    assert report[0].revenue == 1000
