"""
Capacity / allocation calculator.

Converts user input (work percentages, leave days, a weekly capacity) into
hours. Leave is taken from the capacity first; work percentages divide what is
left. Every function here is pure: entry sets are dicts keyed by project id and
are never mutated in place.

Inputs are not clamped. Range checks live at the request boundary
(``engtrack.schemas.timesheet.EntryInput``).
"""

from typing import Iterable, Optional

from engtrack.constants import (
    ALLOCATION_TOLERANCE,
    LEAVE_HOURS_PER_DAY,
    LEAVE_PROJECT_IDS,
)
from engtrack.schemas.timesheet import AllocationStatus, TimeEntry

Entries = dict[str, TimeEntry]


def zero_entry(project_id: str) -> TimeEntry:
    return TimeEntry(project_id=project_id, percentage=0, days=0, hours=0)


def leave_hours(entries: Entries, leave_ids: Iterable[str] = LEAVE_PROJECT_IDS) -> float:
    leave_ids = set(leave_ids)
    return sum(e.hours for pid, e in entries.items() if pid in leave_ids)


def available_work_hours(
    entries: Entries,
    capacity: float,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> float:
    return max(0.0, capacity - leave_hours(entries, leave_ids))


def work_hours_for(percentage: float, available: float) -> float:
    return (percentage / 100) * available


def recalculate(
    entries: Entries,
    capacity: float,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> Entries:
    """Re-derive hours for every entry.

    Leave rows first (hours = days * 8), then every work row against the
    remaining capacity. Idempotent.
    """
    leave_ids = set(leave_ids)
    result: Entries = {}
    for pid, e in entries.items():
        if pid in leave_ids:
            result[pid] = e.model_copy(update={"hours": e.days * LEAVE_HOURS_PER_DAY})
        else:
            result[pid] = e

    available = available_work_hours(result, capacity, leave_ids)
    for pid, e in result.items():
        if pid not in leave_ids:
            result[pid] = e.model_copy(update={"hours": work_hours_for(e.percentage, available)})
    return result


def set_leave_days(
    entries: Entries,
    project_id: str,
    days: float,
    capacity: float,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> Entries:
    updated = dict(entries)
    current = updated.get(project_id) or zero_entry(project_id)
    updated[project_id] = current.model_copy(update={"days": days})
    # Leave shifts the shared pool, so every work row changes too
    return recalculate(updated, capacity, leave_ids)


def set_percentage(
    entries: Entries,
    project_id: str,
    percentage: float,
    capacity: float,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
) -> Entries:
    updated = dict(entries)
    current = updated.get(project_id) or zero_entry(project_id)
    updated[project_id] = current.model_copy(update={"percentage": percentage})
    return recalculate(updated, capacity, leave_ids)


def is_allocation_valid(total_percentage: float, available: float) -> bool:
    # A full week of leave leaves nothing to allocate
    if available == 0:
        return True
    return abs(total_percentage - 100) < ALLOCATION_TOLERANCE


def allocation_status(
    entries: Entries,
    capacity: float,
    leave_ids: Iterable[str] = LEAVE_PROJECT_IDS,
    counted_ids: Optional[Iterable[str]] = None,
) -> AllocationStatus:
    """Summarize a week for the save gate.

    ``counted_ids`` restricts which work rows count towards the percentage
    total (the personal screen only counts visible projects).
    """
    leave_ids = set(leave_ids)
    counted = set(counted_ids) if counted_ids is not None else None

    leave = 0.0
    work = 0.0
    total_pct = 0.0
    for pid, e in entries.items():
        if pid in leave_ids:
            leave += e.hours
            continue
        work += e.hours
        if counted is None or pid in counted:
            total_pct += e.percentage

    available = max(0.0, capacity - leave)
    return AllocationStatus(
        total_percentage=round(total_pct, 2),
        leave_hours=round(leave, 2),
        work_hours=round(work, 2),
        total_hours=round(leave + work, 2),
        available_work_hours=round(available, 2),
        allocation_valid=is_allocation_valid(total_pct, available),
    )
