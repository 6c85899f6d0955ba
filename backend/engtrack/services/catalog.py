"""Process-wide project catalog used to resolve project ids to categories."""

from typing import Iterable, Optional

from engtrack.constants import Category, DEFAULT_PROJECTS, LEAVE_PROJECTS
from engtrack.schemas.timesheet import ProjectOut


def _sort_key(p: ProjectOut):
    return (p.category, p.name)


class ProjectCatalog:
    """Ordered set of projects (category, then name).

    Leave projects are always resolvable, even when the store does not list them.
    """

    def __init__(self, projects: Iterable[ProjectOut]):
        by_id: dict[str, ProjectOut] = {}
        for p in projects:
            by_id[p.id] = p
        for pid, name, category in LEAVE_PROJECTS:
            by_id.setdefault(pid, ProjectOut(id=pid, name=name, category=category.value))
        self._by_id = by_id
        self._ordered = sorted(by_id.values(), key=_sort_key)

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._by_id

    def __iter__(self):
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def get(self, project_id: str) -> Optional[ProjectOut]:
        return self._by_id.get(project_id)

    def category_of(self, project_id: str) -> Optional[Category]:
        p = self._by_id.get(project_id)
        return Category(p.category) if p else None

    @property
    def leave_ids(self) -> frozenset[str]:
        return frozenset(p.id for p in self.leave_projects())

    def leave_projects(self) -> list[ProjectOut]:
        return [p for p in self._ordered if p.category == Category.LEAVE.value]


def default_projects() -> list[ProjectOut]:
    return sorted(
        (ProjectOut(id=pid, name=name, category=cat.value) for pid, name, cat in DEFAULT_PROJECTS),
        key=_sort_key,
    )


def default_catalog() -> ProjectCatalog:
    return ProjectCatalog(default_projects())
