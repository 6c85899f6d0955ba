from engtrack.models.project import Project, Team
from engtrack.models.user import Profile
from engtrack.models.timesheet import TimesheetEntry
from engtrack.models.audit_log import AuditLog

__all__ = ["Project", "Team", "Profile", "TimesheetEntry", "AuditLog"]
