from datetime import date, datetime, timedelta

import pytest

from heatmap import activity_level, build_heatmap, lessons_by_date, range_index, render_heatmap_html, window
from models import Lesson

TODAY = date(2024, 3, 15)


def _lessons(*days):
    return [Lesson(id=None, client_id=i % 3, lesson_date=d) for i, d in enumerate(days)]


@pytest.mark.parametrize("count,level", [(0, 0), (1, 1), (2, 2), (3, 3), (4, 4), (9, 4)])
def test_activity_level_saturates(count, level):
    assert activity_level(count) == level


def test_window_one_month():
    assert window(1, TODAY) == (date(2024, 2, 15), TODAY)


def test_window_rolls_into_prior_year():
    assert window(3, date(2024, 1, 20)) == (date(2023, 10, 20), date(2024, 1, 20))


def test_window_carries_missing_days_forward():
    # Feb 31 doesn't exist: 2 extra days past Feb 29
    assert window(1, date(2024, 3, 31))[0] == date(2024, 3, 2)
    assert window(1, date(2023, 3, 30))[0] == date(2023, 3, 2)


def test_days_before_carried_start_are_dimmed():
    weeks = build_heatmap(_lessons("2024-02-29", "2024-03-01", "2024-03-02"), 1, today=date(2024, 3, 31))
    cells = {c.day: c for w in weeks for c in w.cells}
    assert not cells[date(2024, 2, 29)].in_range
    assert cells[date(2024, 2, 29)].count == 0
    assert not cells[date(2024, 3, 1)].in_range
    assert cells[date(2024, 3, 2)].in_range
    assert cells[date(2024, 3, 2)].level == 1
    # Sunday on or before Sat 2024-03-02
    assert weeks[0].start == date(2024, 2, 25)


@pytest.mark.parametrize("months,expected", [(3, 1), (12, 3), (2, 0), (4, 1), (9, 2), (24, 3), (0, 0)])
def test_range_index_falls_back_to_nearest(months, expected):
    assert range_index((1, 3, 6, 12), months) == expected


def test_one_month_grid_shape():
    weeks = build_heatmap([], 1, today=TODAY)
    assert all(len(w.cells) == 7 for w in weeks)
    # Sunday on or before 2024-02-15 (a Thursday)
    assert weeks[0].start == date(2024, 2, 11)
    assert weeks[0].start.weekday() == 6
    assert any(c.day == TODAY for c in weeks[-1].cells)
    assert len(weeks) == 5


def test_days_are_contiguous():
    weeks = build_heatmap([], 6, today=TODAY)
    days = [c.day for w in weeks for c in w.cells]
    assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))
    for w in weeks:
        assert w.start.weekday() == 6


def test_in_range_flags():
    weeks = build_heatmap(_lessons("2024-02-12"), 1, today=TODAY)
    cells = {c.day: c for w in weeks for c in w.cells}

    before = cells[date(2024, 2, 12)]
    assert not before.in_range
    assert before.level == 0 and before.count == 0

    assert cells[date(2024, 2, 15)].in_range
    assert cells[TODAY].in_range
    assert not cells[date(2024, 3, 16)].in_range


def test_zero_lesson_day_differs_from_dimmed_cell():
    weeks = build_heatmap([], 1, today=TODAY)
    cells = {c.day: c for w in weeks for c in w.cells}
    empty, dimmed = cells[date(2024, 3, 1)], cells[date(2024, 2, 11)]
    assert empty.level == dimmed.level == 0
    assert empty.in_range and not dimmed.in_range


def test_counts_are_global_and_saturate():
    four = ["2024-03-01"] * 4
    nine = ["2024-03-02T10:30:00"] * 9
    weeks = build_heatmap(_lessons(*four, *nine, "2024-03-04"), 1, today=TODAY)
    cells = {c.day: c for w in weeks for c in w.cells}
    assert cells[date(2024, 3, 1)].count == 4
    assert cells[date(2024, 3, 1)].level == 4
    assert cells[date(2024, 3, 2)].count == 9
    assert cells[date(2024, 3, 2)].level == 4
    assert cells[date(2024, 3, 4)].level == 1


def test_malformed_dates_are_skipped():
    counts = lessons_by_date(_lessons("2024-03-01", "03/01/2024", "", None, "garbage", datetime(2024, 3, 1, 9, 0)))
    assert counts == {date(2024, 3, 1): 2}


def test_render_marks_dimmed_cells():
    weeks = build_heatmap(_lessons("2024-03-15", "2024-03-15"), 1, today=TODAY)
    markup = render_heatmap_html(weeks)
    assert 'data-date="2024-03-15" data-count="2"' in markup
    assert "Mar 15, 2024: 2 lessons" in markup
    assert "out-of-range" in markup
