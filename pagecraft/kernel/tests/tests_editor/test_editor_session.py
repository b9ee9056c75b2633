"""
Pagecraft Editor -- Session Tests

The Editor threads one EditorState through validate -> reduce -> notify.
dispatch never raises; require raises for unknown or refused actions.
"""

import logging

import pytest

from pagecraft.kernel import ActionRejected, Editor, UnknownActionError, make_action


@pytest.fixture
def calls(editor):
    received = []
    editor.subscribe(lambda state, action: received.append((state, action.type)))
    return received


# ============================================================================
# Dispatch
# ============================================================================


class TestDispatch:
    def test_committed_edit_updates_state(self, editor):
        r = editor.dispatch("section.rename", {"section_id": "sec_a", "name": "Intro"})
        assert r.applied
        assert editor.state is r.state
        assert editor.project["sections"][0]["name"] == "Intro"
        assert editor.can_undo

    def test_accepts_ready_action(self, editor):
        r = editor.dispatch(make_action("section.toggle_visible", {"section_id": "sec_a"}))
        assert r.applied

    def test_invalid_payload_is_refused_before_reducing(self, editor):
        before = editor.state
        r = editor.dispatch("section.rename", {"section_id": "sec_a"})
        assert r.error == "INVALID: section.rename requires 'name'"
        assert editor.state is before

    def test_unknown_type(self, editor):
        r = editor.dispatch("section.explode", {})
        assert r.error.startswith("UNKNOWN_ACTION")

    def test_locked_rejection_still_updates_save_status(self, editor):
        editor.dispatch("section.set_locked", {"section_id": "sec_a", "locked": True})
        r = editor.dispatch("section.rename", {"section_id": "sec_a", "name": "x"})
        assert r.error.startswith("LOCKED")
        assert editor.state.save_status == "error"

    def test_later_payload_changes_do_not_reach_history(self, editor):
        nested = {"rows": ["one"]}
        editor.dispatch("section.update_data", {"section_id": "sec_a", "data": {"extra": nested}})
        nested["rows"].append("changed later")
        editor.dispatch("section.rename", {"section_id": "sec_a", "name": "Intro"})
        editor.undo()
        assert editor.project["sections"][0]["data"]["extra"]["rows"] == ["one"]

    def test_dispatch_many_continues_past_refusals(self, editor):
        results = editor.dispatch_many([
            ("section.rename", {"section_id": "sec_a", "name": "one"}),
            ("section.rename", {"section_id": "sec_a"}),
            make_action("section.rename", {"section_id": "sec_b", "name": "two"}),
        ])
        assert [r.applied for r in results] == [True, False, True]
        assert [s.get("name") for s in editor.project["sections"][:2]] == ["one", "two"]

    def test_rejections_are_logged(self, editor, caplog):
        with caplog.at_level(logging.WARNING, logger="pagecraft.kernel.editor"):
            editor.dispatch("section.rename", {})
        assert "rejected section.rename" in caplog.text


# ============================================================================
# Listeners
# ============================================================================


class TestListeners:
    def test_called_once_per_commit(self, editor, calls):
        editor.dispatch("section.rename", {"section_id": "sec_a", "name": "Intro"})
        assert len(calls) == 1
        state, type = calls[0]
        assert state is editor.state
        assert type == "section.rename"

    def test_not_called_for_no_ops_or_session_changes(self, editor, calls):
        editor.dispatch("section.rename", {"section_id": "sec_missing", "name": "x"})
        editor.dispatch("selection.select_section", {"section_id": "sec_b"})
        editor.dispatch("ui.set_preview_font_scale", {"scale": 1.1})
        editor.undo()
        assert calls == []

    def test_called_for_undo_and_redo(self, editor, calls):
        editor.dispatch("section.rename", {"section_id": "sec_a", "name": "Intro"})
        editor.undo()
        editor.redo()
        assert [type for _, type in calls] == ["section.rename", "history.undo", "history.redo"]

    def test_unsubscribe(self, editor, calls):
        received = []
        unsubscribe = editor.subscribe(lambda state, action: received.append(action.type))
        unsubscribe()
        unsubscribe()
        editor.dispatch("section.rename", {"section_id": "sec_a", "name": "Intro"})
        assert received == []
        assert len(calls) == 1


# ============================================================================
# Strict dispatch
# ============================================================================


class TestRequire:
    def test_returns_result_on_success(self, editor):
        assert editor.require("section.rename", {"section_id": "sec_a", "name": "Intro"}).applied

    def test_unknown_type_raises(self, editor):
        with pytest.raises(UnknownActionError):
            editor.require("section.explode", {})

    def test_refusal_raises_with_code(self, editor):
        with pytest.raises(ActionRejected) as excinfo:
            editor.require("item.remove", {"section_id": "sec_a", "item_id": "a_title"})
        assert excinfo.value.error.startswith("INVALID")
        assert excinfo.value.action.type == "item.remove"

    def test_silent_no_op_does_not_raise(self, editor):
        r = editor.require("history.undo")
        assert r.warnings[0].code == "HISTORY_EMPTY"


# ============================================================================
# Session lifecycle
# ============================================================================


class TestLifecycle:
    def test_default_project(self):
        editor = Editor()
        assert editor.project["sections"][0]["type"] == "brandBar"
        assert editor.selection.section_id is None

    def test_max_history_override(self, raw_project):
        editor = Editor(raw_project, max_history=2)
        for name in ("one", "two", "three"):
            editor.dispatch("section.rename", {"section_id": "sec_a", "name": name})
        assert len(editor.state.history.undo_stack) == 2

    def test_export_is_a_deep_copy(self, editor):
        exported = editor.export()
        exported["sections"][0]["name"] = "changed"
        assert "name" not in editor.project["sections"][0]

    def test_load(self, editor, raw_project):
        editor.dispatch("section.rename", {"section_id": "sec_a", "name": "Intro"})
        raw_project["sections"] = []
        r = editor.load(raw_project)
        assert r.applied
        assert editor.project["sections"] == []
        assert not editor.can_undo
