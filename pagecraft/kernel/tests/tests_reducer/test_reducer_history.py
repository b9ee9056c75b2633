"""
Pagecraft Reducer -- Undo/Redo and Document Lifecycle
"""

from pagecraft.kernel.actions import make_action
from pagecraft.kernel.reducer import initial_state, projects_equal, reduce


def apply(state, type, payload=None):
    return reduce(state, make_action(type, payload))


def rename(state, name, section_id="sec_a"):
    return apply(state, "section.rename", {"section_id": section_id, "name": name})


def name_of(state, section_id="sec_a"):
    return next(s for s in state.project["sections"] if s["id"] == section_id).get("name")


# ============================================================================
# Undo / redo
# ============================================================================


class TestUndoRedo:
    def test_undo_restores_previous_document(self, state):
        r = rename(state, "one")
        r = apply(r.state, "history.undo")
        assert r.applied
        assert r.state.project == state.project
        assert r.state.can_redo
        assert not r.state.can_undo

    def test_undo_then_redo_restores_latest(self, state):
        r = rename(state, "one")
        r = rename(r.state, "two")
        latest = r.state.project
        r = apply(r.state, "history.undo")
        assert name_of(r.state) == "one"
        r = apply(r.state, "history.redo")
        assert r.state.project == latest

    def test_new_edit_clears_redo(self, state):
        r = rename(state, "one")
        r = apply(r.state, "history.undo")
        r = rename(r.state, "other")
        assert r.state.history.redo_stack == []

    def test_undo_marks_dirty(self, state):
        r = rename(state, "one")
        r = apply(r.state, "ui.set_save_status", {"status": "saved"})
        r = apply(r.state, "history.undo")
        assert r.state.save_status == "dirty"

    def test_empty_undo_and_redo_are_silent(self, state):
        for type in ("history.undo", "history.redo"):
            r = apply(state, type)
            assert not r.applied
            assert r.error is None
            assert r.warnings[0].code == "HISTORY_EMPTY"
            assert r.state is state

    def test_undo_repairs_selection(self, state):
        r = apply(state, "item.add", {"section_id": "sec_a", "item_type": "text"})
        added = r.state.selection.item_id
        r = apply(r.state, "history.undo")
        assert r.state.selection.item_id != added
        assert r.state.selection.section_id == "sec_a"

    def test_restored_document_does_not_alias_history(self, state):
        r = rename(state, "one")
        r = apply(r.state, "history.undo")
        r.state.project["sections"][0]["name"] = "tampered"
        r = apply(r.state, "history.redo")
        r = apply(r.state, "history.undo")
        assert name_of(r.state) == "tampered"
        r = apply(r.state, "history.redo")
        assert name_of(r.state) == "one"

    def test_no_op_does_not_grow_history(self, state):
        r = rename(state, "one")
        r2 = rename(r.state, "one")
        assert r2.warnings[0].code == "NO_CHANGE"
        assert len(r2.state.history.undo_stack) == 1

    def test_bound_from_max_history(self, raw_project):
        r = initial_state(raw_project, max_history=3)
        state = r
        for n in range(6):
            state = rename(state, f"name {n}").state
        assert len(state.history.undo_stack) == 3
        assert [s["sections"][0].get("name") for s in state.history.undo_stack] == ["name 2", "name 3", "name 4"]


# ============================================================================
# Manual history control
# ============================================================================


class TestHistoryControl:
    def test_push_records_current_document(self, state):
        r = apply(state, "history.push")
        assert r.applied
        assert r.state.history.undo_stack == [state.project]
        assert r.state.project is state.project

    def test_clear(self, state):
        r = rename(state, "one")
        r = apply(r.state, "history.clear")
        assert not r.state.can_undo
        assert not r.state.can_redo
        assert name_of(r.state) == "one"


# ============================================================================
# Load and reset
# ============================================================================


class TestLifecycle:
    def test_load_replaces_document_and_resets_session(self, state, raw_project):
        r = rename(state, "one")
        r = apply(r.state, "selection.select_section", {"section_id": "sec_a"})
        raw_project["sections"] = raw_project["sections"][:1]
        r = apply(r.state, "project.load", {"project": raw_project})
        assert [s["id"] for s in r.state.project["sections"]] == ["sec_a"]
        assert not r.state.can_undo
        assert r.state.selection.section_id is None
        assert r.state.save_status == "saved"
        assert r.state.has_user_edits is False

    def test_load_normalizes_garbage(self, state):
        r = apply(state, "project.load", {"project": {"sections": "nope"}})
        assert r.state.project["sections"] == []

    def test_reset_gives_default_project(self, state):
        r = apply(state, "project.reset")
        assert r.state.project["sections"][0]["id"] == "sec_brandBar"
        assert not r.state.can_undo

    def test_projects_equal_ignores_updated_at(self, state):
        other = {**state.project, "meta": {**state.project["meta"], "updatedAt": "1999-01-01T00:00:00.000000Z"}}
        assert projects_equal(state.project, other)
        changed = {**state.project, "assets": {"a": 1}}
        assert not projects_equal(state.project, changed)

    def test_default_initial_state(self):
        state = initial_state()
        assert state.history.max_size == 100
        assert state.selection.section_id is None
        assert state.save_status == "idle"
        assert state.preview_font_scale == 1.0
