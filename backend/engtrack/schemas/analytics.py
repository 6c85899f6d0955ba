from pydantic import BaseModel, Field
from typing import Optional


class AggregatedDataPoint(BaseModel):
    name: str
    year: int
    week: int
    rd: float = 0
    support: float = 0
    mfg: float = 0
    leave: float = 0
    # project id -> hours for every project active in the scope that week
    projects: dict[str, float] = Field(default_factory=dict)


class MissingUser(BaseModel):
    id: str
    name: str
    email: str
    team_id: Optional[str] = None


class ComplianceReport(BaseModel):
    year: int
    week: int
    checked: int
    submitted: int
    compliance_rate: float
    missing: list[MissingUser]
    missing_by_team: dict[str, list[MissingUser]] = {}
    unassigned: list[MissingUser] = []
