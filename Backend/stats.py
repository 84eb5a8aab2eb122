"""
Monthly completion statistics.

Pure projections over the habit list returned by ``GET /habits``. Nothing is
cached; every function recomputes from its arguments, which is cheap at
habits x days-in-month.
"""

import calendar
import math
import re
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel

from models import HabitRead

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
CHART_NAME_LENGTH = 20
YEAR_MONTH = re.compile(r"(\d{4})-(\d{2})")


class MonthDay(BaseModel):
    day: str  # short weekday name
    date: int  # day of month
    full_date: str


class HabitStats(BaseModel):
    checked: int
    total: int
    percentage: int


class OverallStats(BaseModel):
    perfect_days: int = 0
    half_days: int = 0
    zero_days: int = 0
    # more than 0% but under 50% of habits done
    low_days: int = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def month_dates(year_month: str) -> List[MonthDay]:
    match = YEAR_MONTH.fullmatch(year_month or "")
    if not match:
        raise ValueError(f"Invalid month {year_month!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    try:
        first_weekday, days_in_month = calendar.monthrange(year, month)
    except ValueError as exc:
        raise ValueError(f"Invalid month {year_month!r}, expected YYYY-MM") from exc

    return [
        MonthDay(
            day=WEEKDAY_NAMES[(first_weekday + day - 1) % 7],
            date=day,
            full_date=f"{year:04d}-{month:02d}-{day:02d}",
        )
        for day in range(1, days_in_month + 1)
    ]


def habit_stats(habit: Optional[HabitRead], dates: Sequence[MonthDay]) -> HabitStats:
    if habit is None:
        return HabitStats(checked=0, total=0, percentage=0)
    relevant = {d.full_date for d in dates}
    checked = len(relevant.intersection(habit.completed_dates))
    total = len(dates)
    percentage = _round_half_up(checked / total * 100) if total > 0 else 0
    return HabitStats(checked=checked, total=total, percentage=percentage)


def overall_stats(habits: Sequence[HabitRead], dates: Sequence[MonthDay]) -> OverallStats:
    stats = OverallStats()
    if not habits:
        return stats

    completed = [set(h.completed_dates) for h in habits]
    for d in dates:
        done = sum(1 for dates_done in completed if d.full_date in dates_done)
        if done == len(habits):
            stats.perfect_days += 1
        elif done * 2 >= len(habits):
            stats.half_days += 1
        elif done == 0:
            stats.zero_days += 1
        else:
            stats.low_days += 1
    return stats


def select_habit(habits: Sequence[HabitRead], habit_id: Optional[int]) -> Optional[HabitRead]:
    for habit in habits:
        if habit.id == habit_id:
            return habit
    return habits[0] if habits else None


def bar_chart_data(habits: Sequence[HabitRead], dates: Sequence[MonthDay]) -> List[Dict[str, Union[str, int]]]:
    data = []
    for habit in habits:
        stats = habit_stats(habit, dates)
        name = habit.title
        if len(name) > CHART_NAME_LENGTH:
            name = name[:CHART_NAME_LENGTH] + "..."
        data.append({"name": name, "completed": stats.checked, "remaining": stats.total - stats.checked})
    return data


def pie_chart_data(habit: Optional[HabitRead], dates: Sequence[MonthDay]) -> List[Dict[str, Union[str, int]]]:
    if habit is None:
        return []
    stats = habit_stats(habit, dates)
    return [
        {"name": "Completed", "value": stats.checked},
        {"name": "Remaining", "value": stats.total - stats.checked},
    ]
