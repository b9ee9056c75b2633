"""
Pagecraft Reducer -- Selection and UI State

Selection and UI actions never touch the document or the history and
never mark the state dirty.
"""

from pagecraft.kernel.actions import make_action
from pagecraft.kernel.models import BlockTarget, SectionTarget
from pagecraft.kernel.reducer import reduce


def apply(state, type, payload=None):
    return reduce(state, make_action(type, payload))


def assert_session_only(before, after):
    assert after.project is before.project
    assert after.history is before.history
    assert after.save_status == before.save_status


class TestSelectSection:
    def test_select_section_prefers_text(self, state):
        r = apply(state, "selection.select_section", {"section_id": "sec_b"})
        selection = r.state.selection
        assert selection.target == SectionTarget(id="sec_b")
        assert (selection.item_id, selection.line_id) == ("b_text", "b_l0")
        assert selection.image_ids == ("b_img0",)
        assert_session_only(state, r.state)

    def test_switching_sections_recomputes_auxiliary_ids(self, state):
        r = apply(state, "selection.set_line", {"section_id": "sec_b", "item_id": "b_text", "line_id": "b_l2"})
        r = apply(r.state, "selection.select_section", {"section_id": "sec_a"})
        assert (r.state.selection.item_id, r.state.selection.line_id) == ("a_text", "a_l0")
        assert r.state.selection.image_ids == ()

    def test_same_selection_is_no_op(self, state):
        r = apply(state, "selection.select_section", {"section_id": "sec_b"})
        r2 = apply(r.state, "selection.select_section", {"section_id": "sec_b"})
        assert r2.warnings[0].code == "NO_CHANGE"

    def test_missing_section(self, state):
        r = apply(state, "selection.select_section", {"section_id": "sec_gone"})
        assert r.warnings[0].code == "NOT_FOUND"

    def test_set_section_focuses_first_item(self, state):
        r = apply(state, "selection.set_section", {"section_id": "sec_a"})
        assert r.state.selection.item_id == "a_title"

    def test_set_section_none_clears(self, state):
        r = apply(state, "selection.set_section", {"section_id": "sec_a"})
        r = apply(r.state, "selection.set_section", {"section_id": None})
        assert r.state.selection.section_id is None


class TestBlockSelection:
    def test_set_item(self, state):
        r = apply(state, "selection.set_item", {"section_id": "sec_a", "item_id": "a_text"})
        assert r.state.selection.target == BlockTarget(section_id="sec_a", id="a_text")
        assert r.state.selection.line_id == "a_l0"
        assert_session_only(state, r.state)

    def test_set_line(self, state):
        r = apply(state, "selection.set_line", {"section_id": "sec_a", "item_id": "a_text", "line_id": "a_l1"})
        assert r.state.selection.line_id == "a_l1"

    def test_set_missing_line(self, state):
        r = apply(state, "selection.set_line", {"section_id": "sec_a", "item_id": "a_text", "line_id": "nope"})
        assert r.warnings[0].code == "NOT_FOUND"

    def test_set_images_drops_unknown_ids(self, state):
        r = apply(state, "selection.set_images", {
            "section_id": "sec_b", "item_id": "b_images", "image_ids": ["b_img1", "gone"],
        })
        assert r.state.selection.image_ids == ("b_img1",)

    def test_set_images_on_text_item(self, state):
        r = apply(state, "selection.set_images", {"section_id": "sec_b", "item_id": "b_text", "image_ids": []})
        assert r.warnings[0].code == "NOT_FOUND"


class TestUiState:
    def test_preview_font_scale_is_clamped(self, state):
        r = apply(state, "ui.set_preview_font_scale", {"scale": 5})
        assert r.state.preview_font_scale == 1.2
        r = apply(r.state, "ui.set_preview_font_scale", {"scale": 0.1})
        assert r.state.preview_font_scale == 0.85
        assert_session_only(state, r.state)

    def test_save_status(self, state):
        r = apply(state, "ui.set_save_status", {"status": "error", "message": "network down"})
        assert r.state.save_status == "error"
        assert r.state.save_status_message == "network down"
        r = apply(r.state, "ui.set_save_status", {"status": "saving"})
        assert r.state.save_status_message is None
