"""
Analytics router: aggregated series, submission compliance, detailed CSV.

Scope rules: users only ever see their own series; managers are pinned to
their own team; admins may pick any scope.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from engtrack.constants import Role, Scope
from engtrack.dependencies import (
    get_current_role, get_current_user_id, get_store, require_manager, store_http_error,
)
from engtrack.schemas.analytics import AggregatedDataPoint, ComplianceReport
from engtrack.services import aggregation, compliance
from engtrack.services.aggregation import TimeRange
from engtrack.services.lock_policy import current_week
from engtrack.services.store import StoreError, TimesheetStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


def _manager_team(store: TimesheetStore, user_id: str) -> str:
    try:
        team_id = store.get_user(user_id).team_id
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)
    if not team_id:
        raise HTTPException(403, "Manager has no team assigned")
    return team_id


def resolve_scope(
    store: TimesheetStore,
    user_id: str,
    role: str,
    scope: Scope,
    target_id: Optional[str],
) -> tuple[Scope, Optional[str]]:
    if role == Role.admin.value:
        if scope is not Scope.department and not target_id:
            raise HTTPException(400, f"scope={scope.value} requires target_id")
        return scope, target_id
    if role == Role.manager.value:
        team_id = _manager_team(store, user_id)
        if scope is Scope.user and target_id:
            member = store.list_users(team_id=team_id)
            if target_id not in {u.id for u in member}:
                raise HTTPException(403, "User is outside your team")
            return scope, target_id
        return Scope.team, team_id
    return Scope.user, user_id


@router.get("/series", response_model=list[AggregatedDataPoint])
def get_series(
    scope: Scope = Query(Scope.department),
    target_id: Optional[str] = Query(None),
    time_range: TimeRange = Query(TimeRange.all, alias="range"),
    user_id: str = Depends(get_current_user_id),
    role: str = Depends(get_current_role),
    store: TimesheetStore = Depends(get_store),
):
    scope, target_id = resolve_scope(store, user_id, role, scope, target_id)
    try:
        series = aggregation.get_series(store, scope, target_id)
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)
    return aggregation.filter_time_range(series, time_range)


@router.get("/compliance", response_model=ComplianceReport)
def get_compliance(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    week: Optional[int] = Query(None, ge=1, le=53),
    team_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    role: str = Depends(require_manager),
    store: TimesheetStore = Depends(get_store),
):
    if year is None or week is None:
        cur_year, cur_week = current_week()
        year = year or cur_year
        week = week or cur_week
    if role == Role.manager.value:
        team_id = _manager_team(store, user_id)
    try:
        return compliance.compliance_report(store, year, week, role, team_id)
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)


@router.get("/export.csv")
def export_csv(
    scope: Scope = Query(Scope.department),
    target_id: Optional[str] = Query(None),
    time_range: TimeRange = Query(TimeRange.three_months, alias="range"),
    user_id: str = Depends(get_current_user_id),
    role: str = Depends(require_manager),
    store: TimesheetStore = Depends(get_store),
):
    scope, target_id = resolve_scope(store, user_id, role, scope, target_id)
    try:
        rows = store.get_raw_hour_rows(scope, target_id)
        catalog = store.get_catalog()
    except StoreError as e:
        raise store_http_error(e.kind.value, e.message)

    series = aggregation.filter_time_range(aggregation.aggregate(rows, catalog), time_range)
    content = aggregation.build_detailed_csv(rows, catalog, aggregation.active_week_keys(series))
    filename = f"detailed_eng_report_{scope.value}_{time_range.value}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
