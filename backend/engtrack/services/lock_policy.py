"""
Edit-window policy.

A week more than ``LOCK_WINDOW_WEEKS`` ahead of the current one is
future-locked: leave rows stay editable, work rows are read-only. Past weeks
are never locked.

Week arithmetic uses a fixed ``WEEKS_PER_YEAR`` (52) for both the absolute
index and navigation wrap, so ISO week 53 is reachable only by selecting it
directly.
"""

import enum
from datetime import date
from typing import Iterable, Optional

from engtrack.constants import LEAVE_PROJECT_IDS, LOCK_WINDOW_WEEKS, WEEKS_PER_YEAR


class LockState(str, enum.Enum):
    editable = "editable"
    future_locked = "future_locked"


def current_week(today: Optional[date] = None) -> tuple[int, int]:
    """(ISO year, ISO week) for ``today``."""
    iso = (today or date.today()).isocalendar()
    return iso[0], iso[1]


def absolute_week(year: int, week: int) -> int:
    return year * WEEKS_PER_YEAR + week


def previous_week(year: int, week: int) -> tuple[int, int]:
    if week <= 1:
        return year - 1, WEEKS_PER_YEAR
    return year, week - 1


def next_week(year: int, week: int) -> tuple[int, int]:
    if week >= WEEKS_PER_YEAR:
        return year + 1, 1
    return year, week + 1


def lock_state(year: int, week: int, today: Optional[date] = None) -> LockState:
    cur_year, cur_week = current_week(today)
    if absolute_week(year, week) > absolute_week(cur_year, cur_week) + LOCK_WINDOW_WEEKS:
        return LockState.future_locked
    return LockState.editable


def is_work_locked(year: int, week: int, today: Optional[date] = None) -> bool:
    return lock_state(year, week, today) is LockState.future_locked


def can_edit_entry(
    project_id: str,
    year: int,
    week: int,
    today: Optional[date] = None,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> bool:
    if project_id in set(leave_ids):
        return True
    return not is_work_locked(year, week, today)
