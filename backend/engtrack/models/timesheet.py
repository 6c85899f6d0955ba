from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.sql import func

from engtrack.database import Base


class TimesheetEntry(Base):
    __tablename__ = "timesheets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(64),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year = Column(Integer, nullable=False)
    week_number = Column(Integer, nullable=False)
    # No FK: rows may outlive their project and are then skipped by reporting
    project_id = Column(String(64), nullable=False)
    hours = Column(Numeric(5, 2), nullable=False, default=0)
    percentage = Column(Numeric(5, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "year", "week_number", "project_id", name="uq_timesheets_user_week_project"),
        CheckConstraint("week_number >= 1 AND week_number <= 53", name="ck_timesheets_week_number"),
        Index("idx_timesheets_week", "year", "week_number"),
        Index("idx_timesheets_user_week", "user_id", "year", "week_number"),
    )
