from sqlalchemy import Column, String, DateTime, Date, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from engtrack.constants import DEFAULT_USER_PROJECTS
from engtrack.database import Base


def _default_preferred() -> list[str]:
    return list(DEFAULT_USER_PROJECTS)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)

    # user / manager / admin
    role = Column(String(20), nullable=False, default="user")

    team_id = Column(
        String(64),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Projects shown on the personal entry screen; does not restrict entries
    preferred_projects = Column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=_default_preferred,
    )

    status = Column(String(20), nullable=False, default="active")
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    leave_reason = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
