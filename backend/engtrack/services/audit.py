from typing import Any
from sqlalchemy.orm import Session

from engtrack.models.audit_log import AuditLog


def log_action(
    db: Session,
    user_id: str,
    action: str,
    resource_type: str,
    resource_id: Any = None,
    details: dict | None = None,
):
    entry = AuditLog(
        user_id=str(user_id),
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details.copy() if isinstance(details, dict) else {},
    )
    db.add(entry)
    db.commit()
    return entry
