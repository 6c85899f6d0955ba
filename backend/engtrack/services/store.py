"""
Persistence collaborator for timesheet rows, the project catalog and the roster.

Every call opens its own session from the injected ``sessionmaker`` so the
store can be driven from worker threads. SQLAlchemy failures are turned into
``StoreError`` with a ``kind`` callers can map to actionable messages.
"""

import enum
import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import sessionmaker

from engtrack.constants import LEAVE_HOURS_PER_DAY, Scope
from engtrack.database import SessionLocal
from engtrack.models import Profile, Project, Team, TimesheetEntry
from engtrack.schemas.timesheet import ProjectOut, TimeEntry
from engtrack.services.catalog import ProjectCatalog, default_projects

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class ErrorKind(str, enum.Enum):
    permission_denied = "permission_denied"
    not_found = "not_found"
    constraint_violation = "constraint_violation"
    connectivity = "connectivity"
    unknown = "unknown"


class StoreError(Exception):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


_PERMISSION_MARKERS = ("permission denied", "row-level security", "insufficient privilege")


def classify_error(exc: Exception) -> StoreError:
    if isinstance(exc, StoreError):
        return exc
    orig = getattr(exc, "orig", None)
    text = str(orig or exc)
    lowered = text.lower()
    if getattr(orig, "pgcode", None) == "42501" or any(m in lowered for m in _PERMISSION_MARKERS):
        return StoreError(ErrorKind.permission_denied, f"Permission denied: {text}")
    if isinstance(exc, sa_exc.IntegrityError):
        return StoreError(ErrorKind.constraint_violation, f"Constraint violation: {text}")
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.DisconnectionError)):
        return StoreError(ErrorKind.connectivity, f"Database unavailable: {text}")
    if isinstance(exc, sa_exc.NoResultFound):
        return StoreError(ErrorKind.not_found, f"Not found: {text}")
    return StoreError(ErrorKind.unknown, f"Database error: {text}")


# ──────────────────────────────────────────────
# Result / row types
# ──────────────────────────────────────────────

class SaveResult(BaseModel):
    success: bool
    rows_written: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None


class RawHourRow(BaseModel):
    hours: float
    percentage: float = 0
    year: int
    week: int
    project_id: str
    user_id: str
    team_id: Optional[str] = None
    user_name: Optional[str] = None
    team_name: Optional[str] = None


class RosterUser(BaseModel):
    id: str
    name: str
    email: str
    role: str = "user"
    status: str = "active"
    team_id: Optional[str] = None
    preferred_projects: list[str] = []


def _roster_user(p: Profile) -> RosterUser:
    return RosterUser(
        id=p.id,
        name=p.full_name,
        email=p.email,
        role=p.role or "user",
        status=p.status or "active",
        team_id=p.team_id,
        preferred_projects=list(p.preferred_projects or []),
    )


def merge_rows(rows: Iterable[TimesheetEntry], leave_ids: Iterable[str]) -> dict[str, TimeEntry]:
    """Fold persisted rows into one entry per project (duplicates are summed)."""
    leave_ids = set(leave_ids)
    entries: dict[str, TimeEntry] = {}
    for row in rows:
        hours = float(row.hours)
        pct = float(row.percentage)
        days = hours / LEAVE_HOURS_PER_DAY if row.project_id in leave_ids else 0
        current = entries.get(row.project_id)
        if current:
            entries[row.project_id] = current.model_copy(update={
                "hours": current.hours + hours,
                "percentage": current.percentage + pct,
                "days": current.days + days,
            })
        else:
            entries[row.project_id] = TimeEntry(
                project_id=row.project_id, percentage=pct, days=days, hours=hours,
            )
    return entries


# ──────────────────────────────────────────────
# Per-week mutual exclusion
# ──────────────────────────────────────────────

_locks_guard = threading.Lock()
# key -> [lock, holders + waiters]; an entry lives only while someone uses it
_week_locks: dict[tuple[str, int, int], list] = {}


@contextmanager
def week_lock(user_id: str, year: int, week: int):
    """Hold the process-local lock for one (user, year, week)."""
    key = (user_id, year, week)
    with _locks_guard:
        slot = _week_locks.get(key)
        if slot is None:
            slot = _week_locks[key] = [threading.Lock(), 0]
        slot[1] += 1
    try:
        with slot[0]:
            yield
    finally:
        with _locks_guard:
            slot[1] -= 1
            if slot[1] == 0:
                del _week_locks[key]


def _decimal(value: float) -> Decimal:
    return Decimal(str(round(value, 2)))


# ──────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────

class TimesheetStore:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        except sa_exc.SQLAlchemyError as e:
            db.rollback()
            raise classify_error(e) from e
        finally:
            db.close()

    # ── Catalog ──

    def get_projects(self) -> list[ProjectOut]:
        """All projects, category then name. Falls back to the built-in set."""
        try:
            with self._session() as db:
                rows = db.query(Project).order_by(Project.category.asc(), Project.name.asc()).all()
                projects = [ProjectOut.model_validate(r) for r in rows]
        except StoreError as e:
            logger.warning("Project catalog unavailable (%s), using defaults", e.kind.value)
            return default_projects()
        return projects or default_projects()

    def get_catalog(self) -> ProjectCatalog:
        return ProjectCatalog(self.get_projects())

    # ── Timesheets ──

    def get_entries(self, user_id: str, year: int, week: int) -> dict[str, TimeEntry]:
        leave_ids = self.get_catalog().leave_ids
        with self._session() as db:
            rows = db.query(TimesheetEntry).filter(
                TimesheetEntry.user_id == user_id,
                TimesheetEntry.year == year,
                TimesheetEntry.week_number == week,
            ).all()
            return merge_rows(rows, leave_ids)

    def delete_entries(self, user_id: str, year: int, week: int) -> int:
        with self._session() as db:
            deleted = db.query(TimesheetEntry).filter(
                TimesheetEntry.user_id == user_id,
                TimesheetEntry.year == year,
                TimesheetEntry.week_number == week,
            ).delete(synchronize_session=False)
            db.commit()
            return deleted

    def insert_entries(self, rows: list[dict]) -> int:
        if not rows:
            return 0
        with self._session() as db:
            db.add_all([TimesheetEntry(**self._row_values(r)) for r in rows])
            db.commit()
        return len(rows)

    def save_week(self, user_id: str, year: int, week: int, rows: list[dict]) -> SaveResult:
        """Replace the stored week with ``rows`` in a single transaction.

        Serialized per (user, year, week) within this process. A failure in
        either the delete or the insert rolls back both.
        """
        step = "delete"
        with week_lock(user_id, year, week):
            try:
                with self._session() as db:
                    db.query(TimesheetEntry).filter(
                        TimesheetEntry.user_id == user_id,
                        TimesheetEntry.year == year,
                        TimesheetEntry.week_number == week,
                    ).delete(synchronize_session=False)
                    step = "insert"
                    if rows:
                        db.add_all([TimesheetEntry(**self._row_values(r)) for r in rows])
                        db.flush()
                    db.commit()
            except StoreError as e:
                logger.error(
                    "Save failed during %s for user=%s %s-W%s [%s]: %s",
                    step, user_id, year, week, e.kind.value, e.message,
                )
                return SaveResult(success=False, error=e.message, error_kind=e.kind.value)

        logger.info("Saved timesheet user=%s %s-W%s rows=%d", user_id, year, week, len(rows))
        return SaveResult(success=True, rows_written=len(rows))

    @staticmethod
    def _row_values(row: dict) -> dict:
        values = dict(row)
        values["hours"] = _decimal(values.get("hours", 0))
        values["percentage"] = _decimal(values.get("percentage", 0))
        return values

    def get_submitted_user_ids(self, year: int, week: int) -> set[str]:
        with self._session() as db:
            rows = db.query(TimesheetEntry.user_id).filter(
                TimesheetEntry.year == year,
                TimesheetEntry.week_number == week,
            ).distinct().all()
            return {str(r[0]) for r in rows}

    def get_raw_hour_rows(self, scope: Scope | str = Scope.department, target_id: Optional[str] = None) -> list[RawHourRow]:
        scope = Scope(scope)
        with self._session() as db:
            q = (
                db.query(
                    TimesheetEntry.hours,
                    TimesheetEntry.percentage,
                    TimesheetEntry.year,
                    TimesheetEntry.week_number,
                    TimesheetEntry.project_id,
                    TimesheetEntry.user_id,
                    Profile.team_id,
                    Profile.full_name,
                    Team.name,
                )
                .join(Profile, Profile.id == TimesheetEntry.user_id)
                .outerjoin(Team, Team.id == Profile.team_id)
            )
            if scope is Scope.team and target_id:
                q = q.filter(Profile.team_id == target_id)
            elif scope is Scope.user and target_id:
                q = q.filter(TimesheetEntry.user_id == target_id)

            return [
                RawHourRow(
                    hours=float(r[0]),
                    percentage=float(r[1]),
                    year=r[2],
                    week=r[3],
                    project_id=r[4],
                    user_id=str(r[5]),
                    team_id=r[6],
                    user_name=r[7],
                    team_name=r[8],
                )
                for r in q.all()
            ]

    # ── Roster ──

    def get_user(self, user_id: str) -> RosterUser:
        with self._session() as db:
            p = db.query(Profile).filter(Profile.id == user_id).first()
            if not p:
                raise StoreError(ErrorKind.not_found, f"User {user_id} not found")
            return _roster_user(p)

    def list_users(self, status: Optional[str] = None, team_id: Optional[str] = None) -> list[RosterUser]:
        with self._session() as db:
            q = db.query(Profile)
            if status:
                q = q.filter(Profile.status == status)
            if team_id:
                q = q.filter(Profile.team_id == team_id)
            return [_roster_user(p) for p in q.order_by(Profile.full_name).all()]

    def update_preferred_projects(self, user_id: str, project_ids: list[str]) -> list[str]:
        with self._session() as db:
            p = db.query(Profile).filter(Profile.id == user_id).first()
            if not p:
                raise StoreError(ErrorKind.not_found, f"User {user_id} not found")
            p.preferred_projects = list(project_ids)
            db.commit()
            return list(p.preferred_projects)
