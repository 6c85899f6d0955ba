"""
Interactive week editor.

Holds one principal's view of a single week and applies edits through the
calculator. Loads and saves go to the store on a worker thread; a load whose
(year, week) is no longer selected when it completes is discarded.
"""

import asyncio
import logging
from datetime import date
from typing import Iterable, Optional

from engtrack.constants import DEFAULT_WEEKLY_CAPACITY
from engtrack.schemas.timesheet import AllocationStatus
from engtrack.services import calculator, reconciliation
from engtrack.services.catalog import ProjectCatalog
from engtrack.services.lock_policy import can_edit_entry, is_work_locked, next_week, previous_week
from engtrack.services.reconciliation import WeekState
from engtrack.services.store import SaveResult, TimesheetStore

logger = logging.getLogger(__name__)


class WeekLockedError(Exception):
    def __init__(self, year: int, week: int, project_id: str):
        super().__init__(
            f"Week {week} of {year} is future-locked; only leave entries are editable "
            f"(tried to change {project_id})"
        )
        self.year = year
        self.week = week
        self.project_id = project_id


class WeekNotLoadedError(Exception):
    pass


class WeekEditor:
    """Editing session for one user's weeks.

    ``privileged`` sessions (admin corrections) ignore the edit window, infer
    capacity from the stored rows and skip carry-forward.
    """

    def __init__(
        self,
        store: TimesheetStore,
        user_id: str,
        preferred_projects: Iterable[str] = (),
        capacity: float = DEFAULT_WEEKLY_CAPACITY,
        privileged: bool = False,
        catalog: Optional[ProjectCatalog] = None,
        today: Optional[date] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.preferred = list(preferred_projects)
        self.capacity = capacity
        self.privileged = privileged
        self.catalog = catalog
        self.today = today

        self.selected: Optional[tuple[int, int]] = None
        self.state: Optional[WeekState] = None

    # ── Loading ──

    async def _ensure_catalog(self) -> ProjectCatalog:
        if self.catalog is None:
            self.catalog = await asyncio.to_thread(self.store.get_catalog)
        return self.catalog

    async def select_week(self, year: int, week: int) -> bool:
        """Select and load a week. Returns False if the result went stale."""
        self.selected = (year, week)
        catalog = await self._ensure_catalog()
        if self.privileged:
            state = await asyncio.to_thread(
                reconciliation.load_for_correction,
                self.store, self.user_id, year, week, catalog.leave_ids,
            )
        else:
            state = await asyncio.to_thread(
                reconciliation.load_week,
                self.store, self.user_id, year, week,
                self.preferred, self.capacity, catalog.leave_ids,
            )

        if self.selected != (year, week):
            logger.debug("Discarding stale load for %s-W%s (now at %s)", year, week, self.selected)
            return False

        self.state = state
        if self.privileged:
            self.capacity = state.capacity
        return True

    async def previous(self) -> bool:
        return await self.select_week(*previous_week(*self._require_selected()))

    async def next(self) -> bool:
        return await self.select_week(*next_week(*self._require_selected()))

    def _require_selected(self) -> tuple[int, int]:
        if self.selected is None:
            raise WeekNotLoadedError("No week selected")
        return self.selected

    def _require_state(self) -> WeekState:
        if self.state is None:
            raise WeekNotLoadedError("No week loaded")
        return self.state

    # ── Derived state ──

    @property
    def leave_ids(self) -> frozenset[str]:
        if self.catalog is None:
            raise WeekNotLoadedError("Catalog not loaded")
        return self.catalog.leave_ids

    @property
    def entries(self) -> calculator.Entries:
        return self._require_state().entries

    @property
    def work_locked(self) -> bool:
        if self.privileged:
            return False
        state = self._require_state()
        return is_work_locked(state.year, state.week, self.today)

    def allocation(self) -> AllocationStatus:
        # Personal view only counts visible projects towards the 100%
        counted = None if self.privileged else self.preferred
        return calculator.allocation_status(self.entries, self.capacity, self.leave_ids, counted)

    @property
    def can_save(self) -> bool:
        return self.allocation().allocation_valid

    # ── Edits ──

    def _replace(self, entries: calculator.Entries) -> None:
        self.state = self._require_state().model_copy(update={"entries": entries})

    def set_leave_days(self, project_id: str, days: float) -> None:
        self._replace(calculator.set_leave_days(
            self.entries, project_id, days, self.capacity, self.leave_ids,
        ))

    def can_edit(self, project_id: str) -> bool:
        if self.privileged:
            return True
        state = self._require_state()
        return can_edit_entry(project_id, state.year, state.week, self.today, self.leave_ids)

    def set_percentage(self, project_id: str, percentage: float) -> None:
        if not self.can_edit(project_id):
            state = self._require_state()
            raise WeekLockedError(state.year, state.week, project_id)
        self._replace(calculator.set_percentage(
            self.entries, project_id, percentage, self.capacity, self.leave_ids,
        ))

    def set_capacity(self, capacity: float) -> None:
        self.capacity = capacity
        if self.state is not None:
            self._replace(calculator.recalculate(self.entries, capacity, self.leave_ids))

    def set_preferred(self, project_ids: Iterable[str]) -> None:
        self.preferred = list(project_ids)
        if self.state is not None:
            self._replace(reconciliation.sync_preferred(self.entries, self.preferred, self.leave_ids))

    def add_project(self, project_id: str) -> None:
        self._replace(reconciliation.ensure_entry(self.entries, project_id))

    # ── Saving ──

    async def save(self) -> SaveResult:
        state = self._require_state()
        result = await asyncio.to_thread(
            reconciliation.save_week,
            self.store, self.user_id, state.year, state.week,
            state.entries, self.capacity, self.leave_ids,
        )
        if result.success and self.state is state:
            self.state = state.model_copy(update={"submitted": True, "prefilled": False})
        return result
