"""
Seed script for EngTrack. Populates the default teams and project catalog.

Run: python -m engtrack.seed
"""
import logging
import sys

from engtrack.constants import DEFAULT_PROJECTS, DEFAULT_TEAMS, LEAVE_PROJECTS
from engtrack.database import SessionLocal
from engtrack.models import Project, Team

logger = logging.getLogger(__name__)


def seed_teams(db) -> int:
    existing = {t.id for t in db.query(Team.id).all()}
    created = 0
    for team_id, name, team_type in DEFAULT_TEAMS:
        if team_id in existing:
            continue
        db.add(Team(id=team_id, name=name, type=team_type))
        created += 1
    db.commit()
    return created


def seed_projects(db) -> int:
    existing = {p.id for p in db.query(Project.id).all()}
    created = 0
    for project_id, name, category in DEFAULT_PROJECTS + LEAVE_PROJECTS:
        if project_id in existing:
            continue
        db.add(Project(id=project_id, name=name, category=category.value))
        created += 1
    db.commit()
    return created


def run_seed(session_factory=SessionLocal):
    db = session_factory()
    try:
        created = seed_teams(db)
        if created:
            logger.info("Seeded %d teams.", created)
        else:
            logger.info("Teams already exist, skipping.")

        created = seed_projects(db)
        if created:
            logger.info("Seeded %d projects.", created)
        else:
            logger.info("Projects already exist, skipping.")

        logger.info("Seed complete.")
    except Exception:
        logger.exception("Seed failed")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        run_seed()
    except Exception:
        sys.exit(1)
