"""
heatmap.py
Lesson activity heatmap: lessons per calendar day laid out in Sunday-first weeks.
"""

from __future__ import annotations

import html
import logging
from collections import Counter
from datetime import date, timedelta

from models import HeatmapCell, HeatmapWeek
from utils import fmt_date, shift_months, to_date

logger = logging.getLogger(__name__)

MAX_LEVEL = 4


def activity_level(count: int) -> int:
    """0..3 lessons map to themselves, 4+ saturate at 4."""
    if count <= 0:
        return 0
    return min(count, MAX_LEVEL)


def lessons_by_date(lessons) -> Counter:
    """
    Count lessons per calendar date across all clients. Rows with missing or
    malformed dates are skipped.
    """
    counts: Counter = Counter()
    skipped = 0
    for lesson in lessons:
        day = to_date(lesson.lesson_date)
        if day is None:
            skipped += 1
            continue
        counts[day] += 1
    if skipped:
        logger.debug("Skipped %d lesson(s) with unusable dates", skipped)
    return counts


def days_since_sunday(d: date) -> int:
    # date.weekday(): Monday=0 .. Sunday=6
    return (d.weekday() + 1) % 7


def range_index(ranges, months: int) -> int:
    """
    Position of `months` in the range choices; an unlisted value picks the
    closest choice (the smaller one on a tie).
    """
    ranges = list(ranges)
    if months in ranges:
        return ranges.index(months)
    return min(range(len(ranges)), key=lambda i: (abs(ranges[i] - months), ranges[i]))


def window(months: int, today: date | None = None) -> tuple[date, date]:
    end = today or date.today()
    return shift_months(end, -months), end


def build_heatmap(lessons, months: int, today: date | None = None) -> list[HeatmapWeek]:
    """
    Weeks covering the trailing `months` window up to `today`.

    The grid starts on the Sunday on or before the window start; cells outside
    [start, end] keep their slot but are flagged in_range=False with level 0.
    """
    start, end = window(months, today)
    counts = lessons_by_date(lessons)

    current = start - timedelta(days=days_since_sunday(start))
    weeks: list[HeatmapWeek] = []
    while current <= end:
        cells = []
        for _ in range(7):
            if start <= current <= end:
                count = counts.get(current, 0)
                cells.append(HeatmapCell(day=current, count=count, level=activity_level(count), in_range=True))
            else:
                cells.append(HeatmapCell(day=current, count=0, level=0, in_range=False))
            current += timedelta(days=1)
        weeks.append(HeatmapWeek(cells=tuple(cells)))
    return weeks


def cell_title(cell: HeatmapCell) -> str:
    plural = "" if cell.count == 1 else "s"
    return f"{fmt_date(cell.day)}: {cell.count} lesson{plural}"


HEATMAP_CSS = """
<style>
.heatmap { display: flex; gap: 3px; overflow-x: auto; padding: 4px 0; }
.heatmap-week { display: flex; flex-direction: column; gap: 3px; }
.heatmap-cell { width: 12px; height: 12px; border-radius: 2px; background: #ebedf0; }
.heatmap-cell[data-level="1"] { background: #9be9a8; }
.heatmap-cell[data-level="2"] { background: #40c463; }
.heatmap-cell[data-level="3"] { background: #30a14e; }
.heatmap-cell[data-level="4"] { background: #216e39; }
.heatmap-cell.out-of-range { opacity: 0.3; }
</style>
"""


def render_heatmap_html(weeks: list[HeatmapWeek]) -> str:
    parts = [HEATMAP_CSS, '<div class="heatmap">']
    for week in weeks:
        parts.append('<div class="heatmap-week">')
        for cell in week.cells:
            if cell.in_range:
                parts.append(
                    f'<div class="heatmap-cell" data-level="{cell.level}" '
                    f'data-date="{cell.day.isoformat()}" data-count="{cell.count}" '
                    f'title="{html.escape(cell_title(cell))}"></div>'
                )
            else:
                parts.append('<div class="heatmap-cell out-of-range" data-level="0"></div>')
        parts.append("</div>")
    parts.append("</div>")
    return "".join(parts)
