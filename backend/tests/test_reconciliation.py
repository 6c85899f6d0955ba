"""
Tests for the reconciliation engine.

Covers: blank and carried-forward weeks, preferred-project sync, save-set
pruning, capacity inference, idempotent saves and locked-week diffs.
"""

from engtrack.schemas.timesheet import TimeEntry
from engtrack.services import reconciliation
from engtrack.services.reconciliation import (
    blank_week,
    build_insert_rows,
    carry_forward,
    ensure_entry,
    fill_missing,
    infer_capacity,
    locked_work_changes,
    sync_preferred,
)


def _e(pid, pct=0, days=0, hours=0):
    return TimeEntry(project_id=pid, percentage=pct, days=days, hours=hours)


def _stored(user_id="u1", year=2020, week=10):
    return [
        {"user_id": user_id, "year": year, "week_number": week, "project_id": "new_dagger", "hours": 24, "percentage": 60},
        {"user_id": user_id, "year": year, "week_number": week, "project_id": "project_mgmt", "hours": 16, "percentage": 40},
    ]


# ---------------------------------------------------------------------------
# TestBuildingEntrySets
# ---------------------------------------------------------------------------


class TestBuildingEntrySets:
    def test_blank_week_has_preferred_and_leave(self):
        entries = blank_week(["new_ar", "training"])
        assert set(entries) == {"new_ar", "training", "vacation", "sick"}
        assert all(e.hours == 0 and e.percentage == 0 for e in entries.values())

    def test_fill_missing_keeps_existing_rows(self):
        entries = fill_missing({"new_ar": _e("new_ar", 100, hours=40)}, ["training"])
        assert entries["new_ar"].hours == 40
        assert entries["training"].hours == 0
        assert "vacation" in entries and "sick" in entries

    def test_fill_missing_does_not_zero_non_preferred(self):
        entries = fill_missing({"new_rock": _e("new_rock", 100, hours=40)}, ["training"])
        assert entries["new_rock"].percentage == 100

    def test_ensure_entry(self):
        entries = {"new_ar": _e("new_ar", 50)}
        assert ensure_entry(entries, "new_ar") is entries
        added = ensure_entry(entries, "new_aac")
        assert added["new_aac"].percentage == 0
        assert "new_aac" not in entries


# ---------------------------------------------------------------------------
# TestCarryForward
# ---------------------------------------------------------------------------


class TestCarryForward:
    def test_copies_percentages_and_resets_leave(self):
        previous = {
            "new_x": _e("new_x", 40, hours=24),
            "training": _e("training", 60, hours=36),
            "vacation": _e("vacation", days=2, hours=16),
        }
        entries, has_work = carry_forward(previous, [], 40)
        assert has_work is True
        assert entries["new_x"].percentage == 40
        # Recomputed against zero leave
        assert entries["new_x"].hours == 16
        assert entries["vacation"].days == 0
        assert entries["vacation"].hours == 0

    def test_leave_only_previous_week_is_not_prefill(self):
        previous = {"sick": _e("sick", days=5, hours=40)}
        entries, has_work = carry_forward(previous, ["new_ar"], 40)
        assert has_work is False
        assert entries["sick"].days == 0
        assert "new_ar" in entries

    def test_uses_current_capacity(self):
        previous = {"new_ar": _e("new_ar", 100, hours=40)}
        entries, _ = carry_forward(previous, [], 32)
        assert entries["new_ar"].hours == 32


# ---------------------------------------------------------------------------
# TestSyncPreferred
# ---------------------------------------------------------------------------


class TestSyncPreferred:
    def test_adds_new_preferred_rows(self):
        synced = sync_preferred({"new_ar": _e("new_ar", 100, hours=40)}, ["new_ar", "training"])
        assert synced["training"].percentage == 0

    def test_zeroes_dropped_work_rows(self):
        entries = {
            "new_ar": _e("new_ar", 60, hours=24),
            "training": _e("training", 40, hours=16),
        }
        synced = sync_preferred(entries, ["new_ar"])
        assert synced["training"].percentage == 0
        assert synced["training"].hours == 0
        assert synced["new_ar"].percentage == 60

    def test_leave_rows_untouched(self):
        entries = {"vacation": _e("vacation", days=1, hours=8)}
        synced = sync_preferred(entries, [])
        assert synced["vacation"].days == 1
        assert synced["vacation"].hours == 8


# ---------------------------------------------------------------------------
# TestSaveSet
# ---------------------------------------------------------------------------


class TestSaveSet:
    def test_zero_rows_pruned(self):
        rows = build_insert_rows("u1", 2025, 10, {
            "a": _e("a", 0, hours=0),
            "b": _e("b", 100, hours=40),
            "vacation": _e("vacation"),
        })
        assert [r["project_id"] for r in rows] == ["b"]
        assert rows[0]["week_number"] == 10

    def test_leave_with_hours_kept(self):
        rows = build_insert_rows("u1", 2025, 10, {"sick": _e("sick", days=1, hours=8)})
        assert rows[0]["hours"] == 8

    def test_locked_work_changes(self):
        persisted = {"new_ar": _e("new_ar", 100, hours=40)}
        assert locked_work_changes(persisted, {"new_ar": _e("new_ar", 100)}) == []
        assert locked_work_changes(persisted, {"new_ar": _e("new_ar", 90)}) == ["new_ar"]
        assert locked_work_changes(persisted, {}) == ["new_ar"]
        assert locked_work_changes({}, {"training": _e("training", 10)}) == ["training"]

    def test_locked_work_changes_ignore_leave(self):
        submitted = {"vacation": _e("vacation", days=3)}
        assert locked_work_changes({}, submitted) == []

    def test_zero_percentage_matches_missing_row(self):
        assert locked_work_changes({}, {"new_ar": _e("new_ar", 0)}) == []


# ---------------------------------------------------------------------------
# TestInferCapacity
# ---------------------------------------------------------------------------


class TestInferCapacity:
    def test_from_work_rows(self):
        entries = {
            "new_ar": _e("new_ar", 50, hours=16),
            "training": _e("training", 50, hours=16),
            "vacation": _e("vacation", days=1, hours=8),
        }
        assert infer_capacity(entries) == 32

    def test_rounds(self):
        assert infer_capacity({"new_ar": _e("new_ar", 33.33, hours=12.5)}) == 38

    def test_default_without_work(self):
        assert infer_capacity({}) == 40
        assert infer_capacity({"sick": _e("sick", days=5, hours=40)}) == 40


# ---------------------------------------------------------------------------
# TestLoadWeek / TestSaveWeek
# ---------------------------------------------------------------------------


class TestLoadWeek:
    def test_persisted_week_is_submitted(self, store):
        store.insert_entries(_stored())
        state = reconciliation.load_week(store, "u1", 2020, 10, ["new_dagger", "training"])
        assert state.submitted is True
        assert state.prefilled is False
        assert state.entries["new_dagger"].hours == 24
        assert state.entries["training"].hours == 0
        assert "vacation" in state.entries

    def test_carry_forward_from_previous_week(self, store):
        store.insert_entries(_stored(week=9) + [
            {"user_id": "u1", "year": 2020, "week_number": 9, "project_id": "vacation", "hours": 16, "percentage": 0},
        ])
        state = reconciliation.load_week(store, "u1", 2020, 10, ["new_dagger"], capacity=40)
        assert state.submitted is False
        assert state.prefilled is True
        assert state.entries["new_dagger"].percentage == 60
        assert state.entries["new_dagger"].hours == 24
        assert state.entries["vacation"].days == 0

    def test_carry_forward_across_year_boundary(self, store):
        store.insert_entries(_stored(year=2019, week=52))
        state = reconciliation.load_week(store, "u1", 2020, 1, [])
        assert state.prefilled is True
        assert state.entries["project_mgmt"].percentage == 40

    def test_blank_when_nothing_stored(self, store):
        state = reconciliation.load_week(store, "u1", 2020, 10, ["training"])
        assert state.submitted is False
        assert state.prefilled is False
        assert set(state.entries) == {"training", "vacation", "sick"}

    def test_load_for_correction_infers_capacity(self, store):
        store.insert_entries([
            {"user_id": "u3", "year": 2020, "week_number": 5, "project_id": "new_rock", "hours": 30, "percentage": 100},
        ])
        state = reconciliation.load_for_correction(store, "u3", 2020, 5)
        assert state.capacity == 30
        assert state.submitted is True
        assert list(state.entries) == ["new_rock"]


class TestSaveWeek:
    def test_save_recalculates_and_prunes(self, store):
        entries = {
            "new_dagger": _e("new_dagger", 50),
            "project_mgmt": _e("project_mgmt", 50),
            "training": _e("training", 0),
            "vacation": _e("vacation", days=1),
            "sick": _e("sick"),
        }
        result = reconciliation.save_week(store, "u1", 2020, 10, entries, 40)
        assert result.success is True
        assert result.rows_written == 3

        stored = store.get_entries("u1", 2020, 10)
        assert set(stored) == {"new_dagger", "project_mgmt", "vacation"}
        assert stored["new_dagger"].hours == 16
        assert stored["vacation"].days == 1

    def test_save_is_idempotent(self, store):
        entries = {"new_dagger": _e("new_dagger", 100)}
        reconciliation.save_week(store, "u1", 2020, 10, entries, 40)
        first = store.get_entries("u1", 2020, 10)
        reconciliation.save_week(store, "u1", 2020, 10, entries, 40)
        assert store.get_entries("u1", 2020, 10) == first
        assert len(store.get_raw_hour_rows("user", "u1")) == 1

    def test_save_replaces_previous_rows(self, store):
        reconciliation.save_week(store, "u1", 2020, 10, {"new_dagger": _e("new_dagger", 100)}, 40)
        reconciliation.save_week(store, "u1", 2020, 10, {"training": _e("training", 100)}, 40)
        assert set(store.get_entries("u1", 2020, 10)) == {"training"}

    def test_empty_save_clears_week(self, store):
        store.insert_entries(_stored())
        result = reconciliation.save_week(store, "u1", 2020, 10, {"new_dagger": _e("new_dagger", 0)}, 40)
        assert result.success is True
        assert result.rows_written == 0
        assert store.get_entries("u1", 2020, 10) == {}
