"""Timesheets router: the caller's own weeks."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from engtrack.constants import DEFAULT_WEEKLY_CAPACITY
from engtrack.dependencies import get_current_user_id, get_store, store_http_error
from engtrack.schemas.timesheet import (
    EntryInput,
    PreferredProjectsUpdate,
    ProjectOut,
    SaveResponse,
    TimeEntry,
    WeekSaveRequest,
    WeekView,
)
from engtrack.services import calculator, reconciliation
from engtrack.services.catalog import ProjectCatalog
from engtrack.services.lock_policy import is_work_locked
from engtrack.services.reconciliation import WeekState
from engtrack.services.store import RosterUser, StoreError, TimesheetStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/timesheets", tags=["Timesheets"])


# ──────────────────────────────────────────────
# Helpers (shared with the admin router)
# ──────────────────────────────────────────────

def load_user(store: TimesheetStore, user_id: str) -> RosterUser:
    try:
        return store.get_user(user_id)
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)


def entries_from_input(items: list[EntryInput], catalog: ProjectCatalog) -> calculator.Entries:
    """Turn request rows into an entry set; hours are derived later."""
    unknown = sorted({i.project_id for i in items if i.project_id not in catalog})
    if unknown:
        raise HTTPException(400, f"Unknown project(s): {', '.join(unknown)}")

    leave_ids = catalog.leave_ids
    entries: calculator.Entries = {}
    for item in items:
        if item.project_id in entries:
            raise HTTPException(400, f"Duplicate entry for project {item.project_id}")
        if item.project_id in leave_ids:
            entries[item.project_id] = TimeEntry(project_id=item.project_id, days=item.days)
        else:
            entries[item.project_id] = TimeEntry(project_id=item.project_id, percentage=item.percentage)
    return entries


def week_view(
    state: WeekState,
    catalog: ProjectCatalog,
    counted_ids: Optional[list[str]] = None,
    work_locked: bool = False,
) -> WeekView:
    return WeekView(
        user_id=state.user_id,
        year=state.year,
        week=state.week,
        capacity=state.capacity,
        entries=list(state.entries.values()),
        submitted=state.submitted,
        prefilled=state.prefilled,
        work_locked=work_locked,
        allocation=calculator.allocation_status(
            state.entries, state.capacity, catalog.leave_ids, counted_ids,
        ),
    )


# ──────────────────────────────────────────────
# Static routes
# ──────────────────────────────────────────────

@router.get("/projects", response_model=list[ProjectOut])
def list_projects(store: TimesheetStore = Depends(get_store)):
    """Project catalog, category then name, leave projects included."""
    return list(store.get_catalog())


@router.put("/preferences")
def update_preferences(
    body: PreferredProjectsUpdate,
    user_id: str = Depends(get_current_user_id),
    store: TimesheetStore = Depends(get_store),
):
    catalog = store.get_catalog()
    unknown = [pid for pid in body.project_ids if pid not in catalog or pid in catalog.leave_ids]
    if unknown:
        raise HTTPException(400, f"Not selectable as preferred: {', '.join(unknown)}")
    # Order preserved, duplicates dropped
    project_ids = list(dict.fromkeys(body.project_ids))
    try:
        saved = store.update_preferred_projects(user_id, project_ids)
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)
    return {"ok": True, "preferred_projects": saved}


# ──────────────────────────────────────────────
# Week routes
# ──────────────────────────────────────────────

@router.get("/{year}/{week}", response_model=WeekView)
def get_week(
    year: int = Path(..., ge=2000, le=2100),
    week: int = Path(..., ge=1, le=53),
    capacity: float = Query(DEFAULT_WEEKLY_CAPACITY, ge=0, le=168),
    user_id: str = Depends(get_current_user_id),
    store: TimesheetStore = Depends(get_store),
):
    user = load_user(store, user_id)
    catalog = store.get_catalog()
    try:
        state = reconciliation.load_week(
            store, user_id, year, week, user.preferred_projects, capacity, catalog.leave_ids,
        )
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)
    return week_view(
        state, catalog,
        counted_ids=user.preferred_projects,
        work_locked=is_work_locked(year, week),
    )


@router.put("/{year}/{week}", response_model=SaveResponse)
def save_week(
    body: WeekSaveRequest,
    year: int = Path(..., ge=2000, le=2100),
    week: int = Path(..., ge=1, le=53),
    user_id: str = Depends(get_current_user_id),
    store: TimesheetStore = Depends(get_store),
):
    user = load_user(store, user_id)
    catalog = store.get_catalog()
    leave_ids = catalog.leave_ids
    entries = calculator.recalculate(
        entries_from_input(body.entries, catalog), body.capacity, leave_ids,
    )
    status = calculator.allocation_status(
        entries, body.capacity, leave_ids, user.preferred_projects,
    )

    if is_work_locked(year, week):
        # Work rows are inert here: they must match the week as GET renders it,
        # carried-forward percentages included
        try:
            baseline = reconciliation.load_week(
                store, user_id, year, week, user.preferred_projects, body.capacity, leave_ids,
            )
        except StoreError as e:
            raise store_http_error(e.kind.value, e.message)
        changed = reconciliation.locked_work_changes(baseline.entries, entries, leave_ids)
        if changed:
            raise HTTPException(
                403,
                f"Week {week} of {year} is future-locked; only leave entries are editable "
                f"(changed: {', '.join(changed)})",
            )
    elif not status.allocation_valid:
        raise HTTPException(
            422,
            f"Work allocation must total 100% (currently {status.total_percentage:g}%)",
        )

    result = reconciliation.save_week(
        store, user_id, year, week, entries, body.capacity, leave_ids,
    )
    if not result.success:
        raise store_http_error(result.error_kind, result.error)
    return SaveResponse(ok=True, rows_written=result.rows_written, allocation=status)
