"""
Aggregation engine.

Folds raw per-project, per-week hour rows into one data point per
(year, week), with the four category totals and an hours-per-project
mapping. Nothing is cached; every query re-folds the rows in scope.
"""

import csv
import enum
import io
import logging
from datetime import date
from typing import Iterable, Optional

from engtrack.constants import Category, Scope
from engtrack.schemas.analytics import AggregatedDataPoint
from engtrack.services.catalog import ProjectCatalog
from engtrack.services.store import RawHourRow, TimesheetStore

logger = logging.getLogger(__name__)

CATEGORY_FIELDS = {
    Category.RD: "rd",
    Category.RD_SUPPORT: "support",
    Category.MFG_SUPPORT: "mfg",
    Category.LEAVE: "leave",
}


class TimeRange(str, enum.Enum):
    three_months = "3M"
    year_to_date = "YTD"
    one_year = "1Y"
    all = "ALL"


def week_key(year: int, week: int) -> str:
    return f"{year}-W{week}"


def week_label(year: int, week: int) -> str:
    return f"W{week} '{str(year)[-2:]}"


def aggregate(rows: Iterable[RawHourRow], catalog: ProjectCatalog) -> list[AggregatedDataPoint]:
    """One point per (year, week), ascending by year then week."""
    weeks: dict[tuple[int, int], AggregatedDataPoint] = {}
    dropped = 0
    for row in rows:
        category = catalog.category_of(row.project_id)
        if category is None:
            dropped += 1
            continue

        key = (row.year, row.week)
        point = weeks.get(key)
        if point is None:
            point = weeks[key] = AggregatedDataPoint(
                name=week_label(row.year, row.week), year=row.year, week=row.week,
            )

        point.projects[row.project_id] = point.projects.get(row.project_id, 0) + row.hours
        field = CATEGORY_FIELDS[category]
        setattr(point, field, getattr(point, field) + row.hours)

    if dropped:
        logger.debug("Skipped %d rows referencing unknown projects", dropped)
    return sorted(weeks.values(), key=lambda p: (p.year, p.week))


def get_series(
    store: TimesheetStore,
    scope: Scope | str = Scope.department,
    target_id: Optional[str] = None,
) -> list[AggregatedDataPoint]:
    return aggregate(store.get_raw_hour_rows(scope, target_id), store.get_catalog())


def filter_time_range(
    series: list[AggregatedDataPoint],
    time_range: TimeRange | str = TimeRange.all,
    today: Optional[date] = None,
) -> list[AggregatedDataPoint]:
    """Trim a sorted series to a reporting window."""
    time_range = TimeRange(time_range)
    if time_range is TimeRange.three_months:
        return series[-13:]
    if time_range is TimeRange.one_year:
        return series[-52:]
    if time_range is TimeRange.year_to_date:
        current_year = (today or date.today()).year
        return [p for p in series if p.year == current_year]
    return list(series)


def active_week_keys(series: Iterable[AggregatedDataPoint]) -> set[str]:
    return {week_key(p.year, p.week) for p in series}


# ── Detailed CSV ──

def _pct(part: float, total: float) -> str:
    if not total:
        return "0%"
    return f"{part / total * 100:.1f}%"


def build_detailed_csv(
    rows: Iterable[RawHourRow],
    catalog: ProjectCatalog,
    active_weeks: Optional[set[str]] = None,
) -> str:
    """Per-user breakdown as CSV text.

    Columns are name, team, total hours, the four category shares and one share
    column per project seen in range. A final row totals every user. An empty
    ``active_weeks`` means no week restriction.
    """
    users: dict[str, dict] = {}
    totals = {"total": 0.0, "categories": {c: 0.0 for c in Category}, "projects": {}}
    project_names: set[str] = set()

    for row in rows:
        if active_weeks and week_key(row.year, row.week) not in active_weeks:
            continue
        project = catalog.get(row.project_id)
        if project is None:
            continue

        u = users.get(row.user_id)
        if u is None:
            u = users[row.user_id] = {
                "name": row.user_name or row.user_id,
                "team": row.team_name or "Unassigned",
                "total": 0.0,
                "categories": {c: 0.0 for c in Category},
                "projects": {},
            }

        category = Category(project.category)
        project_names.add(project.name)
        for bucket in (u, totals):
            bucket["total"] += row.hours
            bucket["categories"][category] += row.hours
            bucket["projects"][project.name] = bucket["projects"].get(project.name, 0) + row.hours

    columns = sorted(project_names)
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(
        ["Name", "Team", "Total Hours", "R&D %", "Support %", "MFG %", "Leave %"]
        + [f"{name} %" for name in columns]
    )

    def shares(bucket: dict) -> list[str]:
        total = bucket["total"]
        return (
            [f"{total:.1f}"]
            + [_pct(bucket["categories"][c], total) for c in Category]
            + [_pct(bucket["projects"].get(name, 0), total) for name in columns]
        )

    for u in sorted(users.values(), key=lambda u: u["name"]):
        writer.writerow([u["name"], u["team"]] + shares(u))
    writer.writerow(["ALL USERS TOTAL", "-"] + shares(totals))
    return out.getvalue()
