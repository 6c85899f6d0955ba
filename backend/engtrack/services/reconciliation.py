"""
Timesheet reconciliation engine.

Owns the entry set for one (user, year, week): builds it from persisted rows,
the prior week (carry-forward) or the user's preferred projects, keeps it in
step with preference changes, and decides which rows a save writes.
"""

import logging
from typing import Iterable, Optional

from pydantic import BaseModel

from engtrack.constants import DEFAULT_WEEKLY_CAPACITY, LEAVE_PROJECT_IDS
from engtrack.schemas.timesheet import TimeEntry
from engtrack.services import calculator
from engtrack.services.calculator import Entries, zero_entry
from engtrack.services.lock_policy import previous_week
from engtrack.services.store import SaveResult, TimesheetStore

logger = logging.getLogger(__name__)


class WeekState(BaseModel):
    user_id: str
    year: int
    week: int
    capacity: float
    entries: Entries
    # True only when the entries came from persisted rows for this week
    submitted: bool = False
    prefilled: bool = False


# ── Building entry sets ──

def blank_week(preferred: Iterable[str], leave_ids: Iterable[str] = LEAVE_PROJECT_IDS) -> Entries:
    entries: Entries = {}
    for pid in preferred:
        entries[pid] = zero_entry(pid)
    for pid in sorted(leave_ids):
        entries[pid] = zero_entry(pid)
    return entries


def fill_missing(entries: Entries, preferred: Iterable[str], leave_ids: Iterable[str] = LEAVE_PROJECT_IDS) -> Entries:
    """Add zeroed rows for preferred and leave projects that have none."""
    filled = dict(entries)
    for pid in list(preferred) + sorted(leave_ids):
        if pid not in filled:
            filled[pid] = zero_entry(pid)
    return filled


def carry_forward(
    previous: Entries,
    preferred: Iterable[str],
    capacity: float,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> tuple[Entries, bool]:
    """Seed a new week from the prior one.

    Work percentages are copied and their hours re-derived against the full
    capacity (no leave yet). Leave is reset to zero. Returns the entries and
    whether any non-zero work percentage was copied.
    """
    leave_ids = set(leave_ids)
    entries: Entries = {}
    has_work = False
    for pid, e in previous.items():
        if pid in leave_ids:
            entries[pid] = zero_entry(pid)
            continue
        entries[pid] = TimeEntry(
            project_id=pid,
            percentage=e.percentage,
            days=0,
            hours=calculator.work_hours_for(e.percentage, capacity),
        )
        if e.percentage > 0:
            has_work = True
    return fill_missing(entries, preferred, leave_ids), has_work


def sync_preferred(
    entries: Entries,
    preferred: Iterable[str],
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> Entries:
    """Follow a change of the preferred-project list.

    New projects get zeroed rows. Work rows no longer preferred are zeroed but
    kept in the set so nothing lingers under a hidden project.
    """
    preferred = list(preferred)
    leave_ids = set(leave_ids)
    synced = dict(entries)
    for pid in preferred:
        if pid not in synced:
            synced[pid] = zero_entry(pid)
    for pid, e in list(synced.items()):
        if pid in leave_ids or pid in preferred:
            continue
        if e.percentage > 0 or e.hours > 0:
            synced[pid] = e.model_copy(update={"percentage": 0, "hours": 0})
    return synced


def ensure_entry(entries: Entries, project_id: str) -> Entries:
    if project_id in entries:
        return entries
    return {**entries, project_id: zero_entry(project_id)}


# ── Saving ──

def is_present(entry: TimeEntry) -> bool:
    return entry.hours > 0 or entry.percentage > 0


def build_insert_rows(user_id: str, year: int, week: int, entries: Entries) -> list[dict]:
    return [
        {
            "user_id": user_id,
            "year": year,
            "week_number": week,
            "project_id": e.project_id,
            "hours": e.hours,
            "percentage": e.percentage,
        }
        for e in entries.values()
        if is_present(e)
    ]


def locked_work_changes(
    persisted: Entries,
    submitted: Entries,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> list[str]:
    """Work projects whose percentage differs between two entry sets."""
    leave_ids = set(leave_ids)
    changed = []
    for pid in sorted(set(persisted) | set(submitted)):
        if pid in leave_ids:
            continue
        before = persisted[pid].percentage if pid in persisted else 0
        after = submitted[pid].percentage if pid in submitted else 0
        if abs(before - after) > 1e-9:
            changed.append(pid)
    return changed


def infer_capacity(
    entries: Entries,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
    default: float = DEFAULT_WEEKLY_CAPACITY,
) -> float:
    """Recover the weekly capacity a stored week was entered with.

    Capacity is not persisted, so it is derived from work hours over work
    percentage when both are positive.
    """
    leave_ids = set(leave_ids)
    sum_hours = 0.0
    sum_pct = 0.0
    for pid, e in entries.items():
        if pid not in leave_ids:
            sum_hours += e.hours
            sum_pct += e.percentage
    if sum_hours > 0 and sum_pct > 0:
        return float(round(sum_hours / (sum_pct / 100)))
    return default


# ── Store-backed operations ──

def load_week(
    store: TimesheetStore,
    user_id: str,
    year: int,
    week: int,
    preferred: Iterable[str],
    capacity: float = DEFAULT_WEEKLY_CAPACITY,
    leave_ids: Optional[Iterable[str]] = None,
) -> WeekState:
    preferred = list(preferred)
    if leave_ids is None:
        leave_ids = store.get_catalog().leave_ids
    leave_ids = set(leave_ids)

    current = store.get_entries(user_id, year, week)
    if current:
        return WeekState(
            user_id=user_id, year=year, week=week, capacity=capacity,
            entries=fill_missing(current, preferred, leave_ids),
            submitted=True,
        )

    prev_year, prev_week = previous_week(year, week)
    previous = store.get_entries(user_id, prev_year, prev_week)
    if previous:
        entries, has_work = carry_forward(previous, preferred, capacity, leave_ids)
        if has_work:
            logger.info(
                "Prefilled user=%s %s-W%s from %s-W%s",
                user_id, year, week, prev_year, prev_week,
            )
        return WeekState(
            user_id=user_id, year=year, week=week, capacity=capacity,
            entries=entries, submitted=False, prefilled=has_work,
        )

    return WeekState(
        user_id=user_id, year=year, week=week, capacity=capacity,
        entries=blank_week(preferred, leave_ids), submitted=False,
    )


def load_for_correction(
    store: TimesheetStore,
    user_id: str,
    year: int,
    week: int,
    leave_ids: Optional[Iterable[str]] = None,
) -> WeekState:
    """Privileged load: persisted rows only, capacity inferred from them."""
    if leave_ids is None:
        leave_ids = store.get_catalog().leave_ids
    entries = store.get_entries(user_id, year, week)
    return WeekState(
        user_id=user_id, year=year, week=week,
        capacity=infer_capacity(entries, leave_ids),
        entries=entries,
        submitted=bool(entries),
    )


def save_week(
    store: TimesheetStore,
    user_id: str,
    year: int,
    week: int,
    entries: Entries,
    capacity: float,
    leave_ids: Optional[Iterable[str]] = None,
) -> SaveResult:
    """Recalculate hours and replace the stored week with the present rows."""
    if leave_ids is None:
        leave_ids = store.get_catalog().leave_ids
    recalculated = calculator.recalculate(entries, capacity, leave_ids)
    rows = build_insert_rows(user_id, year, week, recalculated)
    return store.save_week(user_id, year, week, rows)
