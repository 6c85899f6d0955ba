"""
Admin correction router.

Lets an administrator load and overwrite any user's week. The edit window
does not apply here and capacity is inferred from the stored rows. Every
correction is written to the audit log.
"""

import logging

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from engtrack.database import get_db
from engtrack.dependencies import (
    get_current_user_id, get_store, require_admin, store_http_error,
)
from engtrack.schemas.timesheet import SaveResponse, WeekSaveRequest, WeekView
from engtrack.services import calculator, reconciliation
from engtrack.services.audit import log_action
from engtrack.services.store import StoreError, TimesheetStore
from engtrack.routers.timesheets import entries_from_input, load_user, week_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin/timesheets", tags=["Admin Corrections"])


@router.get("/{target_user_id}/{year}/{week}", response_model=WeekView)
def get_user_week(
    target_user_id: str,
    year: int = Path(..., ge=2000, le=2100),
    week: int = Path(..., ge=1, le=53),
    _role: str = Depends(require_admin),
    store: TimesheetStore = Depends(get_store),
):
    load_user(store, target_user_id)
    catalog = store.get_catalog()
    try:
        state = reconciliation.load_for_correction(
            store, target_user_id, year, week, catalog.leave_ids,
        )
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)
    return week_view(state, catalog)


@router.put("/{target_user_id}/{year}/{week}", response_model=SaveResponse)
def correct_user_week(
    body: WeekSaveRequest,
    target_user_id: str,
    year: int = Path(..., ge=2000, le=2100),
    week: int = Path(..., ge=1, le=53),
    user_id: str = Depends(get_current_user_id),
    _role: str = Depends(require_admin),
    store: TimesheetStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    load_user(store, target_user_id)
    catalog = store.get_catalog()
    entries = calculator.recalculate(
        entries_from_input(body.entries, catalog), body.capacity, catalog.leave_ids,
    )
    status = calculator.allocation_status(entries, body.capacity, catalog.leave_ids)

    result = reconciliation.save_week(
        store, target_user_id, year, week, entries, body.capacity, catalog.leave_ids,
    )
    if not result.success:
        raise store_http_error(result.error_kind, result.error)

    log_action(
        db, user_id, "correct", "timesheet",
        resource_id=f"{target_user_id}:{year}-W{week}",
        details={
            "capacity": body.capacity,
            "rows_written": result.rows_written,
            "total_percentage": status.total_percentage,
        },
    )
    logger.info(
        "Admin %s corrected %s %s-W%s (%d rows)",
        user_id, target_user_id, year, week, result.rows_written,
    )

    warning = None
    if not status.allocation_valid:
        warning = f"Work allocation totals {status.total_percentage:g}%, not 100%"
    return SaveResponse(ok=True, rows_written=result.rows_written, allocation=status, warning=warning)
