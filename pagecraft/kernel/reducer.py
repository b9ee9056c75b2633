"""
Pagecraft Kernel: Reducer

Pure function: (editor state, action) -> ReduceResult
No side effects. No IO. Deterministic apart from generated ids and timestamps.

Every document edit follows the same protocol:
1. resolve the target section/item/line by id (missing -> NOT_FOUND no-op)
2. refuse edits inside a locked section (LOCKED, save status "error")
3. build the candidate document on a private deep copy
4. compare with the current document, ignoring meta.updatedAt (NO_CHANGE no-op)
5. push the current document onto the undo stack, clear redo, commit, mark dirty
6. repair the selection so it only points at ids that still exist

Silent no-ops (NOT_FOUND, NO_CHANGE, HISTORY_EMPTY) come back as warnings.
Rejections (LOCKED, INVALID, UNKNOWN_ACTION) come back as errors.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from pagecraft.config import settings
from pagecraft.kernel import history as hist
from pagecraft.kernel.background import normalize_background_spec
from pagecraft.kernel.defaults import create_default_project, create_section, create_untitled_section
from pagecraft.kernel.merge import (
    merge_animation,
    merge_button,
    merge_card_style,
    merge_content,
    merge_line_marks,
    merge_page_meta,
    merge_page_style_group,
    merge_section_style,
)
from pagecraft.kernel.models import BlockTarget, Selection, SectionTarget
from pagecraft.kernel.normalizer import (
    empty_line,
    enforce_content_invariants,
    normalize_callout,
    normalize_card_style,
    normalize_content_item,
    normalize_image_entry,
    normalize_line_marks,
    normalize_project,
    normalize_section,
    normalize_section_style,
)
from pagecraft.kernel.selection import (
    after_item_removed,
    after_line_removed,
    after_section_removed,
    focus_item,
    focus_section,
    repair_selection,
)
from pagecraft.kernel.stores import build_stores_from_store_csv, normalize_target_stores_config
from pagecraft.kernel.types import (
    COPY_SUFFIX,
    FONT_SIZE_RANGE,
    IMAGE_LAYOUTS,
    PREVIEW_FONT_SCALE_RANGE,
    SECTION_TYPES,
    UNTITLED_NAME,
    Action,
    EditorState,
    History,
    ReduceResult,
    Warning,
    clamp,
    clamp_number,
    new_id,
    now_iso,
)

Handler = Callable[[EditorState, dict[str, Any], dict[str, Any]], ReduceResult]

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def initial_state(project: dict[str, Any] | None = None, *, max_history: int | None = None) -> EditorState:
    """
    Fresh editor state for `project` (normalized), or for the default project.
    """
    doc = normalize_project(project) if project is not None else create_default_project()
    size = settings.MAX_HISTORY if max_history is None else max_history
    return EditorState(project=doc, history=History(max_size=size))


def reduce(state: EditorState, action: Action) -> ReduceResult:
    """
    Apply one action to the editor state.
    Returns the new state + applied flag + warnings/errors.

    The input state (and every document it holds) is never modified:
    document edits happen on a deep copy of the project, and the payload is
    copied too so caller-owned objects never end up inside the document.
    """
    handler = _HANDLERS.get(action.type)
    if handler is None:
        return _reject(state, "UNKNOWN_ACTION", action.type)
    payload = copy.deepcopy(action.payload) if isinstance(action.payload, dict) else {}
    try:
        return handler(state, copy.deepcopy(state.project), payload)
    except (KeyError, TypeError, ValueError, AttributeError, IndexError) as exc:
        return _reject(state, "INVALID", f"{action.type}: {exc!r}")


def projects_equal(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Structural equality under a deterministic serialization, ignoring meta.updatedAt."""
    return _fingerprint(a) == _fingerprint(b)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _fingerprint(project: dict[str, Any]) -> str:
    meta = {**project.get("meta", {}), "updatedAt": None}
    return json.dumps({**project, "meta": meta}, sort_keys=True, ensure_ascii=False, default=str)


def _reject(state: EditorState, code: str, msg: str) -> ReduceResult:
    return ReduceResult(state=state, applied=False, error=f"{code}: {msg}")


def _noop(state: EditorState, code: str, msg: str) -> ReduceResult:
    return ReduceResult(state=state, applied=False, warnings=[Warning(code=code, message=msg)])


def _ok(state: EditorState, warnings: list[Warning] | None = None) -> ReduceResult:
    return ReduceResult(state=state, applied=True, warnings=warnings or [])


def _locked(state: EditorState, section_id: str) -> ReduceResult:
    flagged = replace(state, save_status="error", save_status_message=settings.LOCKED_MESSAGE)
    return _reject(flagged, "LOCKED", f"section {section_id} is locked")


def _commit(
    state: EditorState,
    doc: dict[str, Any],
    *,
    selection: Selection | None = None,
    record: bool = True,
) -> ReduceResult:
    """Commit `doc` as the new document unless it equals the current one."""
    if projects_equal(state.project, doc):
        return _noop(state, "NO_CHANGE", "document unchanged")
    doc.setdefault("meta", {})["updatedAt"] = now_iso()
    next_state = replace(
        state,
        project=doc,
        history=hist.push(state.history, state.project) if record else state.history,
        selection=repair_selection(doc, selection if selection is not None else state.selection),
        save_status="dirty",
        save_status_message=None,
        has_user_edits=True,
    )
    return _ok(next_state)


def _section_index(doc: dict[str, Any], section_id: Any) -> int:
    return next((i for i, s in enumerate(doc["sections"]) if s["id"] == section_id), -1)


def _open_section(
    state: EditorState,
    doc: dict[str, Any],
    section_id: Any,
) -> tuple[dict[str, Any] | None, ReduceResult | None]:
    """(section, None) when editable, otherwise (None, the no-op/rejection result)."""
    index = _section_index(doc, section_id)
    if index == -1:
        return None, _noop(state, "NOT_FOUND", f"section {section_id}")
    section = doc["sections"][index]
    if section.get("locked"):
        return None, _locked(state, section_id)
    return section, None


def _items(section: dict[str, Any]) -> list[dict[str, Any]]:
    return section["content"]["items"]


def _set_items(section: dict[str, Any], items: list[dict[str, Any]]) -> None:
    section["content"]["items"] = enforce_content_invariants(items)


def _find_item(section: dict[str, Any], item_id: Any, item_type: str | None = None) -> dict[str, Any] | None:
    for item in _items(section):
        if item["id"] == item_id and (item_type is None or item["type"] == item_type):
            return item
    return None


def _find_line(item: dict[str, Any], line_id: Any) -> dict[str, Any] | None:
    return next((line for line in item["lines"] if line["id"] == line_id), None)


def _open_item(
    state: EditorState,
    doc: dict[str, Any],
    p: dict[str, Any],
    item_type: str | None = None,
) -> tuple[dict[str, Any] | None, dict[str, Any] | None, ReduceResult | None]:
    """(section, item, None) for an editable item, else (None, None, result)."""
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return None, None, blocked
    item = _find_item(section, p.get("item_id"), item_type)
    if item is None:
        return None, None, _noop(state, "NOT_FOUND", f"item {p.get('item_id')}")
    return section, item, None


def _open_line(
    state: EditorState,
    doc: dict[str, Any],
    p: dict[str, Any],
    line_key: str = "line_id",
) -> tuple[dict[str, Any] | None, dict[str, Any] | None, ReduceResult | None]:
    """(item, line, None) for an editable line of a text item, else (None, None, result)."""
    _, item, blocked = _open_item(state, doc, p, "text")
    if blocked:
        return None, None, blocked
    line = _find_line(item, p.get(line_key))
    if line is None:
        return None, None, _noop(state, "NOT_FOUND", f"line {p.get(line_key)}")
    return item, line, None


def _array_move(values: list[Any], from_index: int, to_index: int) -> list[Any]:
    moved = list(values)
    moved.insert(to_index, moved.pop(from_index))
    return moved


def _set_optional(target: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        target.pop(key, None)
    else:
        target[key] = value


def _section_title(section: dict[str, Any]) -> str:
    items = _items(section)
    if items and items[0]["type"] == "title" and items[0]["text"].strip():
        return items[0]["text"]
    return ""


def _fresh_state(state: EditorState, doc: dict[str, Any]) -> EditorState:
    return replace(
        state,
        project=doc,
        history=hist.clear(state.history),
        selection=Selection(),
        save_status="saved",
        save_status_message=None,
        has_user_edits=False,
    )


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


def _handle_project_load(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _ok(_fresh_state(state, normalize_project(p.get("project"))))


def _handle_project_reset(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _ok(_fresh_state(state, create_default_project()))


# ---------------------------------------------------------------------------
# Section: data, content, style
# ---------------------------------------------------------------------------


def _handle_section_update_data(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    section["data"] = {**section["data"], **p["data"]}
    return _commit(state, doc, record=not p.get("skip_history", False))


def _handle_section_update_content(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    section["content"] = merge_content(section["content"], p["patch"])
    return _commit(state, doc)


def _handle_section_update_style(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    section["style"] = merge_section_style(section["style"], p["patch"])
    return _commit(state, doc)


def _handle_section_update_card_style(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    section["sectionCardStyle"] = merge_card_style(section["sectionCardStyle"], p["patch"])
    return _commit(state, doc)


def _handle_section_apply_appearance_to_all(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    """Locked sections and excluded types are skipped rather than rejected."""
    excluded = set(p.get("exclude_types") or [])
    style = normalize_section_style(p["style"])
    card_style = normalize_card_style(p["card_style"])
    skipped = 0
    for section in doc["sections"]:
        if section["type"] in excluded or section.get("locked"):
            skipped += 1
            continue
        section["style"] = copy.deepcopy(style)
        section["sectionCardStyle"] = copy.deepcopy(card_style)
    result = _commit(state, doc)
    if result.applied and skipped:
        result.warnings.append(Warning(code="SKIPPED", message=f"{skipped} section(s) left unchanged"))
    return result


# ---------------------------------------------------------------------------
# Section: structure
# ---------------------------------------------------------------------------


def _insert_section(
    state: EditorState,
    doc: dict,
    section: dict[str, Any],
    index: int,
) -> ReduceResult:
    doc["sections"].insert(index, section)
    return _commit(state, doc, selection=focus_section(doc, section["id"], prefer_text=True))


def _handle_section_insert_after(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section_type = p.get("section_type")
    if section_type not in SECTION_TYPES:
        return _reject(state, "INVALID", f"unknown section type {section_type!r}")
    after = _section_index(doc, p.get("after_id"))
    index = after + 1 if after != -1 else len(doc["sections"])
    return _insert_section(state, doc, create_section(section_type), index)


def _handle_section_insert_from_template(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    """Without `after_id`, templates land just above the footer (or at the end)."""
    template = normalize_section(p["section"])
    template["id"] = new_id(f"sec_{template['type']}")
    after = _section_index(doc, p.get("after_id"))
    if after != -1:
        index = after + 1
    else:
        index = next(
            (i for i, s in enumerate(doc["sections"]) if s["type"] == "footerHtml"),
            len(doc["sections"]),
        )
    return _insert_section(state, doc, template, index)


def _handle_section_add(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section = create_untitled_section()
    doc["sections"].append(section)
    return _commit(state, doc, selection=focus_section(doc, section["id"]))


def _handle_section_rename(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    section["name"] = p["name"].strip() or UNTITLED_NAME
    return _commit(state, doc)


def _set_flag(state: EditorState, doc: dict, p: dict, flag: str, value: bool | None) -> ReduceResult:
    """Set (or with value=None, toggle) a section flag."""
    index = _section_index(doc, p.get("section_id"))
    if index == -1:
        return _noop(state, "NOT_FOUND", f"section {p.get('section_id')}")
    section = doc["sections"][index]
    if flag != "locked" and section.get("locked"):
        return _locked(state, section["id"])
    section[flag] = (not section[flag]) if value is None else value
    return _commit(state, doc)


def _handle_section_toggle_visible(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _set_flag(state, doc, p, "visible", None)


def _handle_section_set_visible(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _set_flag(state, doc, p, "visible", bool(p["visible"]))


def _handle_section_toggle_locked(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _set_flag(state, doc, p, "locked", None)


def _handle_section_set_locked(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _set_flag(state, doc, p, "locked", bool(p["locked"]))


def _handle_section_set_all_locked(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    for section in doc["sections"]:
        section["locked"] = bool(p["locked"])
    return _commit(state, doc)


def _handle_section_duplicate(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    clone = copy.deepcopy(section)
    clone["id"] = new_id(f"sec_{section['type']}")
    base = section.get("name") or _section_title(section) or section["type"]
    clone["name"] = f"{base}{COPY_SUFFIX}"
    doc["sections"].append(clone)
    return _commit(state, doc, selection=focus_section(doc, clone["id"]))


def _handle_section_delete(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    index = doc["sections"].index(section)
    del doc["sections"][index]
    selection = state.selection
    if selection.section_id == section["id"]:
        selection = after_section_removed(doc, index)
    return _commit(state, doc, selection=selection)


def _handle_section_move(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    sections = doc["sections"]
    index = sections.index(section)
    target = index - 1 if p.get("direction") == "up" else index + 1
    if target < 0 or target >= len(sections):
        return _noop(state, "NO_CHANGE", "section already at the edge")
    sections[index], sections[target] = sections[target], sections[index]
    return _commit(state, doc)


def _handle_section_reorder(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("active_id"))
    if blocked:
        return blocked
    over = _section_index(doc, p.get("over_id"))
    if over == -1:
        return _noop(state, "NOT_FOUND", f"section {p.get('over_id')}")
    doc["sections"] = _array_move(doc["sections"], doc["sections"].index(section), over)
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# Content items
# ---------------------------------------------------------------------------


def _new_item(item_type: str) -> dict[str, Any]:
    if item_type == "image":
        raw: dict[str, Any] = {"type": "image", "images": [], "layout": "auto"}
    elif item_type == "button":
        raw = {
            "type": "button",
            "label": "",
            "target": {"kind": "url", "url": ""},
            "variant": "primary",
            "style": {"presetId": "default", "align": "left"},
        }
    elif item_type == "title":
        raw = {"type": "title", "text": ""}
    else:
        raw = {"type": "text", "lines": [empty_line()]}
    return normalize_content_item(raw)


def _handle_item_add(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    items = _items(section)
    has_title = bool(items) and items[0]["type"] == "title"
    if p.get("item_type") == "title" and has_title:
        return _reject(state, "INVALID", f"section {section['id']} already has a title")
    item = _new_item(p.get("item_type", "text"))
    index = 1 if has_title else len(items)
    _set_items(section, [*items[:index], item, *items[index:]])
    selection = focus_item(Selection(target=SectionTarget(id=section["id"])), item)
    return _commit(state, doc, selection=selection)


def _handle_item_remove(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, item, blocked = _open_item(state, doc, p)
    if blocked:
        return blocked
    if item["type"] == "title":
        return _reject(state, "INVALID", "the title item cannot be removed")
    items = _items(section)
    index = items.index(item)
    _set_items(section, [i for i in items if i["id"] != item["id"]])
    selection = after_item_removed(state.selection, section, item["id"], index)
    return _commit(state, doc, selection=selection)


def _handle_item_reorder(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    items = _items(section)
    src, dst = p["from_index"], p["to_index"]
    if not (0 <= src < len(items) and 0 <= dst < len(items)):
        return _noop(state, "NOT_FOUND", f"item index out of range ({src} -> {dst})")
    if items[0]["type"] == "title" and 0 in (src, dst):
        return _reject(state, "INVALID", "the title item is pinned first")
    _set_items(section, _array_move(items, src, dst))
    return _commit(state, doc)


def _handle_item_update_animation(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, item, blocked = _open_item(state, doc, p)
    if blocked:
        return blocked
    _set_optional(item, "animation", merge_animation(item.get("animation"), p.get("patch")))
    return _commit(state, doc)


def _open_title(state: EditorState, doc: dict, p: dict) -> tuple[dict | None, ReduceResult | None]:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return None, blocked
    items = _items(section)
    if not items or items[0]["type"] != "title":
        return None, _noop(state, "NOT_FOUND", f"title in section {section['id']}")
    return items[0], None


def _handle_title_update_text(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    title, blocked = _open_title(state, doc, p)
    if blocked:
        return blocked
    title["text"] = p["text"]
    return _commit(state, doc)


def _handle_title_update_marks(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    title, blocked = _open_title(state, doc, p)
    if blocked:
        return blocked
    _set_optional(title, "marks", merge_line_marks(title.get("marks"), p["patch"]))
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


def _handle_line_add(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, item, blocked = _open_item(state, doc, p, "text")
    if blocked:
        return blocked
    line = empty_line()
    item["lines"].append(line)
    selection = Selection(target=SectionTarget(id=section["id"]), item_id=item["id"], line_id=line["id"])
    return _commit(state, doc, selection=selection)


def _handle_line_remove(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    item, line, blocked = _open_line(state, doc, p)
    if blocked:
        return blocked
    index = item["lines"].index(line)
    item["lines"] = [entry for entry in item["lines"] if entry["id"] != line["id"]] or [empty_line()]
    selection = after_line_removed(state.selection, item, line["id"], index)
    return _commit(state, doc, selection=selection)


def _handle_line_reorder(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, item, blocked = _open_item(state, doc, p, "text")
    if blocked:
        return blocked
    src, dst = p["from_index"], p["to_index"]
    if not (0 <= src < len(item["lines"]) and 0 <= dst < len(item["lines"])):
        return _noop(state, "NOT_FOUND", f"line index out of range ({src} -> {dst})")
    item["lines"] = _array_move(item["lines"], src, dst)
    return _commit(state, doc)


def _handle_line_update_text(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, line, blocked = _open_line(state, doc, p)
    if blocked:
        return blocked
    line["text"] = p["text"]
    return _commit(state, doc)


def _handle_line_update_marks(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, line, blocked = _open_line(state, doc, p)
    if blocked:
        return blocked
    _set_optional(line, "marks", merge_line_marks(line.get("marks"), p["patch"]))
    return _commit(state, doc)


def _handle_line_update_animation(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, line, blocked = _open_line(state, doc, p)
    if blocked:
        return blocked
    _set_optional(line, "animation", merge_animation(line.get("animation"), p.get("patch")))
    return _commit(state, doc)


def _handle_line_apply_marks_to_all(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    item, source, blocked = _open_line(state, doc, p, "source_line_id")
    if blocked:
        return blocked
    marks = source.get("marks")
    for line in item["lines"]:
        _set_optional(line, "marks", copy.deepcopy(marks))
    return _commit(state, doc)


def _handle_line_promote_marks(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    """Move a line's bold/color/size into the section typography and clear its marks."""
    item, source, blocked = _open_line(state, doc, p, "source_line_id")
    if blocked:
        return blocked
    marks = source.get("marks")
    if not marks:
        return _noop(state, "NO_CHANGE", f"line {source['id']} has no marks")
    section = doc["sections"][_section_index(doc, p.get("section_id"))]
    typography: dict[str, Any] = {}
    if marks.get("bold"):
        typography["fontWeight"] = 700
    if "color" in marks:
        typography["textColor"] = marks["color"]
    if "size" in marks:
        typography["fontSize"] = clamp(marks["size"], FONT_SIZE_RANGE)
    section["style"] = merge_section_style(section["style"], {"typography": typography})
    source.pop("marks", None)
    return _commit(state, doc)


def _handle_callout_apply(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    """Apply a callout patch to the selected line, or with scope "item" to every line of the selected item."""
    selection = state.selection
    if selection.section_id is None or selection.item_id is None:
        return _noop(state, "NOT_FOUND", "no text item selected")
    selected = {"section_id": selection.section_id, "item_id": selection.item_id, "line_id": selection.line_id}
    if p.get("scope") == "item":
        _, item, blocked = _open_item(state, doc, selected, "text")
        targets = item["lines"] if item else []
    else:
        _, line, blocked = _open_line(state, doc, selected)
        targets = [line]
    if blocked:
        return blocked
    for target in targets:
        marks = dict(target.get("marks") or {})
        marks["callout"] = normalize_callout({**marks.get("callout", {}), **p["patch"]})
        _set_optional(target, "marks", normalize_line_marks(marks))
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# Images and buttons
# ---------------------------------------------------------------------------


def _handle_image_add(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, item, blocked = _open_item(state, doc, p, "image")
    if blocked:
        return blocked
    raw = p["image"]
    image = normalize_image_entry({
        "src": raw.get("src", ""),
        "alt": raw.get("alt", ""),
        "assetId": raw.get("asset_id"),
    })
    if image is None:
        return _reject(state, "INVALID", "image needs a src or an asset id")
    item["images"].append(image)
    return _commit(state, doc)


def _handle_image_remove(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, item, blocked = _open_item(state, doc, p, "image")
    if blocked:
        return blocked
    remaining = [image for image in item["images"] if image["id"] != p.get("image_id")]
    if len(remaining) == len(item["images"]):
        return _noop(state, "NOT_FOUND", f"image {p.get('image_id')}")
    item["images"] = remaining
    return _commit(state, doc)


def _handle_image_set_layout(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, item, blocked = _open_item(state, doc, p, "image")
    if blocked:
        return blocked
    if p.get("layout") not in IMAGE_LAYOUTS:
        return _reject(state, "INVALID", f"unknown image layout {p.get('layout')!r}")
    item["layout"] = p["layout"]
    return _commit(state, doc)


def _handle_image_update_animation(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _, item, blocked = _open_item(state, doc, p, "image")
    if blocked:
        return blocked
    wanted = set(p.get("image_ids") or [])
    for image in item["images"]:
        if image["id"] in wanted:
            _set_optional(image, "animation", merge_animation(image.get("animation"), p.get("patch")))
    return _commit(state, doc)


def _handle_button_update(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, item, blocked = _open_item(state, doc, p, "button")
    if blocked:
        return blocked
    items = _items(section)
    items[items.index(item)] = merge_button(item, p["patch"])
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


def _page_group_handler(group: str) -> Handler:
    def handler(state: EditorState, doc: dict, p: dict) -> ReduceResult:
        doc["pageBaseStyle"] = merge_page_style_group(doc["pageBaseStyle"], group, p["patch"])
        return _commit(state, doc)

    handler.__name__ = f"_handle_page_{group}"
    return handler


def _background_handler(slot: str) -> Handler:
    def handler(state: EditorState, doc: dict, p: dict) -> ReduceResult:
        spec = normalize_background_spec(p.get("spec"))
        if spec is None:
            return _reject(state, "INVALID", "not a background spec")
        doc["settings"]["backgrounds"][slot] = spec
        return _commit(state, doc)

    handler.__name__ = f"_handle_background_{slot}"
    return handler


def _handle_page_set_meta(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    doc["settings"]["pageMeta"] = merge_page_meta(doc["settings"]["pageMeta"], p["patch"])
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# Stores and assets
# ---------------------------------------------------------------------------


def _handle_stores_set(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    _set_optional(doc, "stores", copy.deepcopy(p.get("stores")))
    return _commit(state, doc)


def _handle_stores_update_data(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    _set_optional(doc, "stores", copy.deepcopy(p.get("stores")))
    section["data"]["targetStoresConfig"] = normalize_target_stores_config(p["config"])
    return _commit(state, doc)


def _handle_stores_update_content(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    """Patching `storeCsv` re-derives the project-level `stores` projection."""
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    section["content"] = merge_content(section["content"], p["patch"])
    if "storeCsv" in p["patch"]:
        _set_optional(doc, "stores", build_stores_from_store_csv(section["content"].get("storeCsv")))
    return _commit(state, doc)


def _handle_stores_update_config(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    current = normalize_target_stores_config(section["data"].get("targetStoresConfig"))
    section["data"]["targetStoresConfig"] = normalize_target_stores_config({**current, **p["patch"]})
    return _commit(state, doc)


def _handle_asset_add(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    asset = p["asset"]
    asset_id = asset.get("id") or new_id("asset")
    doc["assets"][asset_id] = {"id": asset_id, "filename": asset["filename"], "data": asset["data"]}
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# Brand presets
# ---------------------------------------------------------------------------


def _handle_preset_save(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    name = p["name"].strip()
    if not name:
        return _reject(state, "INVALID", "preset name is empty")
    preset = {"id": new_id("preset"), "name": name, "style": normalize_section_style(p["style"])}
    return _ok(replace(state, brand_presets=[*state.brand_presets, preset]))


def _handle_preset_delete(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    remaining = [preset for preset in state.brand_presets if preset["id"] != p.get("preset_id")]
    if len(remaining) == len(state.brand_presets):
        return _noop(state, "NOT_FOUND", f"preset {p.get('preset_id')}")
    return _ok(replace(state, brand_presets=remaining))


def _handle_preset_apply(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    section, blocked = _open_section(state, doc, p.get("section_id"))
    if blocked:
        return blocked
    preset = next((entry for entry in state.brand_presets if entry["id"] == p.get("preset_id")), None)
    if preset is None:
        return _noop(state, "NOT_FOUND", f"preset {p.get('preset_id')}")
    section["style"] = normalize_section_style(preset["style"])
    return _commit(state, doc)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def _restore(state: EditorState, restored: tuple[History, dict[str, Any]] | None, label: str) -> ReduceResult:
    if restored is None:
        return _noop(state, "HISTORY_EMPTY", f"nothing to {label}")
    history, doc = restored
    return _ok(replace(
        state,
        project=doc,
        history=history,
        selection=repair_selection(doc, state.selection),
        save_status="dirty",
        save_status_message=None,
        has_user_edits=True,
    ))


def _handle_history_undo(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _restore(state, hist.undo(state.history, state.project), "undo")


def _handle_history_redo(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _restore(state, hist.redo(state.history, state.project), "redo")


def _handle_history_push(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _ok(replace(state, history=hist.push(state.history, state.project)))


def _handle_history_clear(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _ok(replace(state, history=hist.clear(state.history)))


# ---------------------------------------------------------------------------
# Selection and UI (no history, no dirty flag)
# ---------------------------------------------------------------------------


def _select(state: EditorState, selection: Selection) -> ReduceResult:
    if selection == state.selection:
        return _noop(state, "NO_CHANGE", "selection unchanged")
    return _ok(replace(state, selection=selection))


def _handle_selection_select_section(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    if _section_index(doc, p.get("section_id")) == -1:
        return _noop(state, "NOT_FOUND", f"section {p.get('section_id')}")
    return _select(state, focus_section(doc, p["section_id"], prefer_text=True))


def _handle_selection_set_section(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _select(state, focus_section(doc, p.get("section_id")))


def _selected_item(
    state: EditorState,
    doc: dict,
    p: dict,
    item_type: str | None = None,
) -> tuple[dict | None, ReduceResult | None]:
    index = _section_index(doc, p.get("section_id"))
    if index == -1:
        return None, _noop(state, "NOT_FOUND", f"section {p.get('section_id')}")
    item = _find_item(doc["sections"][index], p.get("item_id"), item_type)
    if item is None:
        return None, _noop(state, "NOT_FOUND", f"item {p.get('item_id')}")
    return item, None


def _block(p: dict) -> Selection:
    return Selection(target=BlockTarget(section_id=p["section_id"], id=p["item_id"]))


def _handle_selection_set_item(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    item, missing = _selected_item(state, doc, p)
    if missing:
        return missing
    return _select(state, focus_item(_block(p), item))


def _handle_selection_set_line(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    item, missing = _selected_item(state, doc, p, "text")
    if missing:
        return missing
    if _find_line(item, p.get("line_id")) is None:
        return _noop(state, "NOT_FOUND", f"line {p.get('line_id')}")
    return _select(state, _block(p).model_copy(update={"item_id": item["id"], "line_id": p["line_id"]}))


def _handle_selection_set_images(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    item, missing = _selected_item(state, doc, p, "image")
    if missing:
        return missing
    present = {image["id"] for image in item["images"]}
    image_ids = tuple(i for i in p.get("image_ids") or [] if i in present)
    return _select(state, _block(p).model_copy(update={"item_id": item["id"], "image_ids": image_ids}))


def _handle_ui_set_preview_font_scale(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    scale = clamp_number(p.get("scale"), 1.0, PREVIEW_FONT_SCALE_RANGE)
    if scale == state.preview_font_scale:
        return _noop(state, "NO_CHANGE", "preview font scale unchanged")
    return _ok(replace(state, preview_font_scale=scale))


def _handle_ui_set_save_status(state: EditorState, doc: dict, p: dict) -> ReduceResult:
    return _ok(replace(state, save_status=p["status"], save_status_message=p.get("message")))


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

_HANDLERS: dict[str, Handler] = {
    "project.load": _handle_project_load,
    "project.reset": _handle_project_reset,
    "section.update_data": _handle_section_update_data,
    "section.update_content": _handle_section_update_content,
    "section.update_style": _handle_section_update_style,
    "section.update_card_style": _handle_section_update_card_style,
    "section.apply_appearance_to_all": _handle_section_apply_appearance_to_all,
    "section.insert_after": _handle_section_insert_after,
    "section.insert_from_template": _handle_section_insert_from_template,
    "section.add": _handle_section_add,
    "section.rename": _handle_section_rename,
    "section.toggle_visible": _handle_section_toggle_visible,
    "section.set_visible": _handle_section_set_visible,
    "section.toggle_locked": _handle_section_toggle_locked,
    "section.set_locked": _handle_section_set_locked,
    "section.set_all_locked": _handle_section_set_all_locked,
    "section.duplicate": _handle_section_duplicate,
    "section.delete": _handle_section_delete,
    "section.move": _handle_section_move,
    "section.reorder": _handle_section_reorder,
    "item.add": _handle_item_add,
    "item.remove": _handle_item_remove,
    "item.reorder": _handle_item_reorder,
    "item.update_animation": _handle_item_update_animation,
    "title.update_text": _handle_title_update_text,
    "title.update_marks": _handle_title_update_marks,
    "line.add": _handle_line_add,
    "line.remove": _handle_line_remove,
    "line.reorder": _handle_line_reorder,
    "line.update_text": _handle_line_update_text,
    "line.update_marks": _handle_line_update_marks,
    "line.update_animation": _handle_line_update_animation,
    "line.apply_marks_to_all": _handle_line_apply_marks_to_all,
    "line.promote_marks": _handle_line_promote_marks,
    "callout.apply": _handle_callout_apply,
    "image.add": _handle_image_add,
    "image.remove": _handle_image_remove,
    "image.set_layout": _handle_image_set_layout,
    "image.update_animation": _handle_image_update_animation,
    "button.update": _handle_button_update,
    "page.set_typography": _page_group_handler("typography"),
    "page.set_colors": _page_group_handler("colors"),
    "page.set_spacing": _page_group_handler("spacing"),
    "page.set_layout": _page_group_handler("layout"),
    "page.set_section_animation": _page_group_handler("sectionAnimation"),
    "page.set_background": _background_handler("page"),
    "page.set_mv_background": _background_handler("mv"),
    "page.set_meta": _handle_page_set_meta,
    "stores.set": _handle_stores_set,
    "stores.update_data": _handle_stores_update_data,
    "stores.update_content": _handle_stores_update_content,
    "stores.update_config": _handle_stores_update_config,
    "asset.add": _handle_asset_add,
    "preset.save": _handle_preset_save,
    "preset.delete": _handle_preset_delete,
    "preset.apply": _handle_preset_apply,
    "history.undo": _handle_history_undo,
    "history.redo": _handle_history_redo,
    "history.push": _handle_history_push,
    "history.clear": _handle_history_clear,
    "selection.select_section": _handle_selection_select_section,
    "selection.set_section": _handle_selection_set_section,
    "selection.set_item": _handle_selection_set_item,
    "selection.set_line": _handle_selection_set_line,
    "selection.set_images": _handle_selection_set_images,
    "ui.set_preview_font_scale": _handle_ui_set_preview_font_scale,
    "ui.set_save_status": _handle_ui_set_save_status,
}
