"""
Pagecraft Reducer -- Section Operations

Data/content/style patches, structural edits (insert, add, duplicate,
delete, move, reorder), flags and naming. Every committed edit pushes one
undo entry and marks the state dirty.
"""

import copy

import pytest

from pagecraft.kernel.actions import make_action
from pagecraft.kernel.defaults import create_section
from pagecraft.kernel.normalizer import normalize_section
from pagecraft.kernel.reducer import initial_state, reduce


def apply(state, type, payload=None):
    return reduce(state, make_action(type, payload))


def ids(state):
    return [section["id"] for section in state.project["sections"]]


def sec(state, section_id):
    return next(s for s in state.project["sections"] if s["id"] == section_id)


# ============================================================================
# Commit protocol
# ============================================================================


class TestCommitProtocol:
    def test_commit_pushes_previous_document(self, state):
        r = apply(state, "section.update_data", {"section_id": "sec_a", "data": {"note": "x"}})
        assert r.applied
        assert r.error is None
        assert r.state.history.undo_stack == [state.project]
        assert r.state.history.redo_stack == []
        assert r.state.save_status == "dirty"
        assert r.state.has_user_edits is True

    def test_commit_stamps_updated_at(self, state):
        before = state.project["meta"]["updatedAt"]
        r = apply(state, "section.update_data", {"section_id": "sec_a", "data": {"note": "x"}})
        assert r.state.project["meta"]["updatedAt"] >= before

    def test_input_state_is_not_modified(self, state):
        snapshot = copy.deepcopy(state.project)
        apply(state, "section.update_style", {"section_id": "sec_a", "patch": {"shadow": "md"}})
        assert state.project == snapshot

    def test_equal_result_is_a_no_op(self, state):
        r = apply(state, "section.update_style", {"section_id": "sec_a", "patch": {"shadow": "sm"}})
        assert not r.applied
        assert r.error is None
        assert r.warnings[0].code == "NO_CHANGE"
        assert r.state is state

    def test_missing_section_is_a_silent_no_op(self, state):
        r = apply(state, "section.update_data", {"section_id": "sec_missing", "data": {"x": 1}})
        assert not r.applied
        assert r.error is None
        assert r.warnings[0].code == "NOT_FOUND"

    def test_unknown_action_is_rejected(self, state):
        r = apply(state, "section.explode", {})
        assert r.error.startswith("UNKNOWN_ACTION")
        assert r.state is state

    def test_malformed_payload_is_rejected_not_raised(self, state):
        r = apply(state, "section.update_data", {"section_id": "sec_a", "data": "not a dict"})
        assert r.error.startswith("INVALID")
        assert r.state is state


# ============================================================================
# Data, content, style
# ============================================================================


class TestPatches:
    def test_update_data_merges_shallowly(self, state):
        r = apply(state, "section.update_data", {"section_id": "sec_a", "data": {"note": "x"}})
        r = apply(r.state, "section.update_data", {"section_id": "sec_a", "data": {"other": 1}})
        assert sec(r.state, "sec_a")["data"] == {"note": "x", "other": 1}

    def test_update_data_can_skip_history(self, state):
        r = apply(state, "section.update_data", {"section_id": "sec_a", "data": {"note": "x"}, "skip_history": True})
        assert r.applied
        assert r.state.history.undo_stack == []

    def test_update_data_keeps_no_reference_to_the_payload(self, state):
        nested = {"rows": ["one"]}
        r = apply(state, "section.update_data", {"section_id": "sec_a", "data": {"extra": nested}})
        nested["rows"].append("changed later")
        assert sec(r.state, "sec_a")["data"]["extra"]["rows"] == ["one"]

    def test_update_content_without_title_keeps_current_title(self, state):
        title = copy.deepcopy(sec(state, "sec_a")["content"]["items"][0])
        r = apply(state, "section.update_content", {
            "section_id": "sec_a",
            "patch": {"items": [{"type": "text", "lines": ["only"]}]},
        })
        section = sec(r.state, "sec_a")
        assert [item["type"] for item in section["content"]["items"]] == ["title", "text"]
        assert section["content"]["items"][0] == title
        reloaded = normalize_section(section)
        assert [item["type"] for item in reloaded["content"]["items"]] == ["title", "text"]

    def test_stores_update_content_keeps_current_title(self, state):
        r = apply(state, "stores.update_content", {"section_id": "sec_b", "patch": {"items": []}})
        assert [item["id"] for item in sec(r.state, "sec_b")["content"]["items"]] == ["b_title"]

    def test_update_content_reapplies_invariants(self, state):
        r = apply(state, "section.update_content", {
            "section_id": "sec_a",
            "patch": {"items": [
                {"id": "x", "type": "text", "lines": []},
                {"id": "a_title", "type": "title", "text": "Section A"},
            ]},
        })
        items = sec(r.state, "sec_a")["content"]["items"]
        assert [item["type"] for item in items] == ["title", "text"]
        assert len(items[1]["lines"]) == 1

    def test_update_content_repairs_dangling_selection(self, state):
        r = apply(state, "selection.set_line", {"section_id": "sec_a", "item_id": "a_text", "line_id": "a_l1"})
        r = apply(r.state, "section.update_content", {
            "section_id": "sec_a",
            "patch": {"items": [{"id": "a_title", "type": "title", "text": "Only title"}]},
        })
        assert r.state.selection.item_id == "a_title"
        assert r.state.selection.line_id is None

    def test_update_style_merges_and_clamps(self, state):
        r = apply(state, "section.update_style", {"section_id": "sec_a", "patch": {"typography": {"fontSize": 500}}})
        style = sec(r.state, "sec_a")["style"]
        assert style["typography"]["fontSize"] == 96
        assert style["typography"]["textColor"] == "#111111"

    def test_update_card_style(self, state):
        r = apply(state, "section.update_card_style", {"section_id": "sec_b", "patch": {"presetId": "ocean"}})
        assert sec(r.state, "sec_b")["sectionCardStyle"]["presetId"] == "ocean"

    def test_apply_appearance_to_all_skips_excluded_types(self, state):
        r = apply(state, "section.insert_after", {"section_type": "faq", "after_id": "sec_c"})
        r = apply(r.state, "section.apply_appearance_to_all", {
            "style": {"shadow": "md"},
            "card_style": {"presetId": "sunset"},
            "exclude_types": ["faq"],
        })
        shadows = {s["type"]: s["style"]["shadow"] for s in r.state.project["sections"]}
        assert shadows == {"couponFlow": "md", "faq": "sm"}
        assert sec(r.state, "sec_a")["sectionCardStyle"]["presetId"] == "sunset"
        assert r.warnings[0].code == "SKIPPED"


# ============================================================================
# Structure
# ============================================================================


class TestInsertAndAdd:
    def test_insert_after(self, state):
        r = apply(state, "section.insert_after", {"section_type": "faq", "after_id": "sec_a"})
        new_id = ids(r.state)[1]
        assert sec(r.state, new_id)["type"] == "faq"
        assert r.state.selection.section_id == new_id

    def test_insert_after_without_anchor_appends(self, state):
        r = apply(state, "section.insert_after", {"section_type": "legalNotes", "after_id": None})
        assert sec(r.state, ids(r.state)[-1])["type"] == "legalNotes"

    def test_insert_selects_first_text_item(self, state):
        r = apply(state, "section.insert_after", {"section_type": "legalNotes", "after_id": "sec_c"})
        new = sec(r.state, ids(r.state)[-1])
        notes = new["content"]["items"][1]
        assert r.state.selection.item_id == notes["id"]
        assert r.state.selection.line_id == notes["lines"][0]["id"]

    def test_insert_unknown_type_is_invalid(self, state):
        r = apply(state, "section.insert_after", {"section_type": "spaceship", "after_id": "sec_a"})
        assert r.error.startswith("INVALID")

    def test_insert_from_template_gets_fresh_id(self, state):
        r = apply(state, "section.insert_from_template", {"section": {"id": "sec_a", "type": "cta"}, "after_id": "sec_a"})
        new_id = ids(r.state)[1]
        assert new_id != "sec_a"
        assert len(set(ids(r.state))) == 4

    def test_insert_from_template_lands_above_footer(self, raw_project):
        raw_project["sections"].append(create_section("footerHtml", section_id="sec_footer"))
        state = initial_state(raw_project)
        r = apply(state, "section.insert_from_template", {"section": {"type": "cta"}})
        assert ids(r.state)[-1] == "sec_footer"
        assert sec(r.state, ids(r.state)[-2])["type"] == "cta"

    def test_insert_from_template_keeps_no_reference_to_the_template(self, state):
        template = {"type": "cta", "data": {"links": [{"href": "/a"}]}, "custom": {"tags": ["x"]}}
        r = apply(state, "section.insert_from_template", {"section": template, "after_id": "sec_a"})
        template["data"]["links"].append({"href": "/b"})
        template["custom"]["tags"].append("y")
        inserted = sec(r.state, ids(r.state)[1])
        assert inserted["data"]["links"] == [{"href": "/a"}]
        assert inserted["custom"]["tags"] == ["x"]

    def test_add_appends_untitled_section(self, state):
        r = apply(state, "section.add")
        new = sec(r.state, ids(r.state)[-1])
        assert new["name"] == "無題"
        assert r.state.selection.section_id == new["id"]


class TestNamingAndFlags:
    @pytest.mark.parametrize("name,expected", [("  Hero  ", "Hero"), ("   ", "無題")])
    def test_rename(self, state, name, expected):
        r = apply(state, "section.rename", {"section_id": "sec_a", "name": name})
        assert sec(r.state, "sec_a")["name"] == expected

    def test_toggle_visible(self, state):
        r = apply(state, "section.toggle_visible", {"section_id": "sec_a"})
        assert sec(r.state, "sec_a")["visible"] is False
        r = apply(r.state, "section.toggle_visible", {"section_id": "sec_a"})
        assert sec(r.state, "sec_a")["visible"] is True

    def test_set_visible_to_current_value_is_no_op(self, state):
        r = apply(state, "section.set_visible", {"section_id": "sec_a", "visible": True})
        assert r.warnings[0].code == "NO_CHANGE"

    def test_set_all_locked(self, state):
        r = apply(state, "section.set_all_locked", {"locked": True})
        assert all(s["locked"] for s in r.state.project["sections"])
        r = apply(r.state, "section.set_all_locked", {"locked": False})
        assert not any(s["locked"] for s in r.state.project["sections"])


class TestDuplicateAndDelete:
    def test_duplicate_appends_named_copy(self, state):
        r = apply(state, "section.duplicate", {"section_id": "sec_a"})
        clone = r.state.project["sections"][-1]
        assert clone["id"] not in ("sec_a", "sec_b", "sec_c")
        assert clone["name"] == "Section A のコピー"
        assert clone["content"] == sec(state, "sec_a")["content"]
        assert r.state.selection.section_id == clone["id"]

    def test_duplicate_prefers_section_name(self, state):
        r = apply(state, "section.rename", {"section_id": "sec_a", "name": "Intro"})
        r = apply(r.state, "section.duplicate", {"section_id": "sec_a"})
        assert r.state.project["sections"][-1]["name"] == "Intro のコピー"

    def test_delete_unselected_keeps_selection(self, state):
        r = apply(state, "selection.set_section", {"section_id": "sec_a"})
        r = apply(r.state, "section.delete", {"section_id": "sec_c"})
        assert ids(r.state) == ["sec_a", "sec_b"]
        assert r.state.selection.section_id == "sec_a"

    def test_delete_last_selected_takes_new_last(self, state):
        r = apply(state, "selection.set_section", {"section_id": "sec_c"})
        r = apply(r.state, "section.delete", {"section_id": "sec_c"})
        assert r.state.selection.section_id == "sec_b"

    def test_delete_everything_gives_page_selection(self, state):
        r = apply(state, "selection.set_section", {"section_id": "sec_a"})
        for section_id in ("sec_b", "sec_c", "sec_a"):
            r = apply(r.state, "section.delete", {"section_id": section_id})
        assert r.state.project["sections"] == []
        assert r.state.selection.section_id is None
        assert r.state.selection.item_id is None


class TestMoveAndReorder:
    def test_move_down(self, state):
        r = apply(state, "section.move", {"section_id": "sec_a", "direction": "down"})
        assert ids(r.state) == ["sec_b", "sec_a", "sec_c"]

    @pytest.mark.parametrize("section_id,direction", [("sec_a", "up"), ("sec_c", "down")])
    def test_move_at_edge_is_no_op(self, state, section_id, direction):
        r = apply(state, "section.move", {"section_id": section_id, "direction": direction})
        assert r.warnings[0].code == "NO_CHANGE"
        assert r.state.history.undo_stack == []

    def test_reorder_moves_active_to_over_index(self, state):
        r = apply(state, "section.reorder", {"active_id": "sec_c", "over_id": "sec_a"})
        assert ids(r.state) == ["sec_c", "sec_a", "sec_b"]

    def test_reorder_to_missing_section(self, state):
        r = apply(state, "section.reorder", {"active_id": "sec_c", "over_id": "sec_gone"})
        assert r.warnings[0].code == "NOT_FOUND"
