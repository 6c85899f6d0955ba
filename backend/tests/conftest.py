"""
Shared fixtures: an in-memory SQLite database seeded with the default catalog
and a small roster, a store bound to it, and an API client wired to both.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from engtrack.database import Base, get_db
from engtrack.dependencies import get_store
from engtrack.models import Profile
from engtrack.seed import seed_projects, seed_teams
from engtrack.services.store import TimesheetStore


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

# (id, full_name, email, role, team_id, status, preferred_projects)
ROSTER = [
    ("u1", "Alice Archer", "alice@example.com", "user", "t_rifle", "active", ["new_dagger", "project_mgmt"]),
    ("u2", "Bob Baker", "bob@example.com", "manager", "t_rifle", "active", ["new_ar"]),
    ("u3", "Carol Cole", "carol@example.com", "user", "t_pistol", "active", ["new_rock"]),
    ("u4", "Eve Evans", "eve@example.com", "user", "t_rifle", "inactive", ["new_ar"]),
    ("u5", "Frank Ford", "frank@example.com", "user", None, "active", ["training"]),
    ("admin1", "Dana Dale", "dana@example.com", "admin", None, "active", ["admin"]),
]


def add_profiles(db, roster=ROSTER):
    for uid, name, email, role, team_id, status, preferred in roster:
        db.add(Profile(
            id=uid, full_name=name, email=email, role=role,
            team_id=team_id, status=status, preferred_projects=preferred,
        ))
    db.commit()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def seeded(session_factory):
    db = session_factory()
    try:
        seed_teams(db)
        seed_projects(db)
        add_profiles(db)
    finally:
        db.close()
    return session_factory


@pytest.fixture
def store(seeded):
    return TimesheetStore(seeded)


@pytest.fixture
def empty_store(session_factory):
    """Store over a schema with no projects, teams or users."""
    return TimesheetStore(session_factory)


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture
def client(store, seeded):
    from main import app

    def override_db():
        db = seeded()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_db] = override_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
