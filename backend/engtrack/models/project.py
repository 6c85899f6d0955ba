from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func

from engtrack.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False, default="rd")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("type IN ('rd', 'support')", name="ck_teams_type"),
    )


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    # Fixed at creation; only the name is editable afterwards
    category = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "category IN ('R&D', 'R&D Support', 'MFG Support', 'Leave')",
            name="ck_projects_category",
        ),
    )
