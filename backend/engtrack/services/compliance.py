"""
Submission compliance: who in scope has, and has not, recorded a week.

Reporting only. Nothing here gates editing.
"""

import logging
from typing import Iterable, Optional

from engtrack.constants import Role, UserStatus
from engtrack.schemas.analytics import ComplianceReport, MissingUser
from engtrack.services.store import RosterUser, TimesheetStore

logger = logging.getLogger(__name__)


def missing_users(roster: Iterable[RosterUser], submitted: set[str]) -> list[RosterUser]:
    return [u for u in roster if u.id not in submitted]


def compliance_rate(checked: int, missing: int) -> float:
    if checked == 0:
        return 100.0
    return (checked - missing) / checked * 100


def build_report(
    year: int,
    week: int,
    roster: list[RosterUser],
    submitted: set[str],
    include_unassigned: bool = True,
) -> ComplianceReport:
    missing = missing_users(roster, submitted)
    by_team: dict[str, list[MissingUser]] = {}
    unassigned: list[MissingUser] = []
    for u in missing:
        m = MissingUser(id=u.id, name=u.name, email=u.email, team_id=u.team_id)
        if u.team_id and u.team_id != "unassigned":
            by_team.setdefault(u.team_id, []).append(m)
        elif include_unassigned:
            unassigned.append(m)

    return ComplianceReport(
        year=year,
        week=week,
        checked=len(roster),
        submitted=len(roster) - len(missing),
        compliance_rate=round(compliance_rate(len(roster), len(missing)), 1),
        missing=[MissingUser(id=u.id, name=u.name, email=u.email, team_id=u.team_id) for u in missing],
        missing_by_team=by_team,
        unassigned=unassigned,
    )


def compliance_report(
    store: TimesheetStore,
    year: int,
    week: int,
    role: str,
    team_id: Optional[str] = None,
) -> ComplianceReport:
    """Compliance for the active roster in scope.

    Managers are limited to ``team_id`` (their own team); admins see everyone
    unless a team is given, plus the unassigned bucket.
    """
    roster = store.list_users(status=UserStatus.active.value, team_id=team_id)
    submitted = store.get_submitted_user_ids(year, week)
    logger.debug("Compliance %s-W%s: %d submitted, %d in roster", year, week, len(submitted), len(roster))
    return build_report(
        year, week, roster, submitted,
        include_unassigned=(role == Role.admin.value),
    )
