"""
Pagecraft Kernel: Action Validation

Validates action payloads before they reach the reducer.
Validation is structural (well-formed?) not semantic (will it apply?).
The reducer handles semantic checks (does the section exist? is it locked?).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pagecraft.kernel.types import (
    ACTION_TYPES,
    IMAGE_LAYOUTS,
    ITEM_TYPES,
    SAVE_STATUSES,
)

# Field kinds. A trailing "?" marks the key as optional.
#   id      non-empty string
#   str     any string
#   dict    object
#   dict!   object or None, key must be present
#   bool    boolean
#   int     integer (not bool)
#   number  int or float (not bool)
#   ids     list of non-empty strings
#   id!     non-empty string or None, key may be absent
_FIELDS: dict[str, dict[str, str]] = {
    "project.load": {"project": "dict"},
    "section.update_data": {"section_id": "id", "data": "dict", "skip_history": "bool?"},
    "section.update_content": {"section_id": "id", "patch": "dict"},
    "section.update_style": {"section_id": "id", "patch": "dict"},
    "section.update_card_style": {"section_id": "id", "patch": "dict"},
    "section.apply_appearance_to_all": {"style": "dict", "card_style": "dict", "exclude_types": "ids?"},
    "section.insert_after": {"section_type": "id", "after_id": "id!"},
    "section.insert_from_template": {"section": "dict", "after_id": "id!"},
    "section.rename": {"section_id": "id", "name": "str"},
    "section.toggle_visible": {"section_id": "id"},
    "section.set_visible": {"section_id": "id", "visible": "bool"},
    "section.toggle_locked": {"section_id": "id"},
    "section.set_locked": {"section_id": "id", "locked": "bool"},
    "section.set_all_locked": {"locked": "bool"},
    "section.duplicate": {"section_id": "id"},
    "section.delete": {"section_id": "id"},
    "section.move": {"section_id": "id", "direction": "id"},
    "section.reorder": {"active_id": "id", "over_id": "id"},
    "item.add": {"section_id": "id", "item_type": "id"},
    "item.remove": {"section_id": "id", "item_id": "id"},
    "item.reorder": {"section_id": "id", "from_index": "int", "to_index": "int"},
    "item.update_animation": {"section_id": "id", "item_id": "id", "patch": "dict!"},
    "title.update_text": {"section_id": "id", "text": "str"},
    "title.update_marks": {"section_id": "id", "patch": "dict"},
    "line.add": {"section_id": "id", "item_id": "id"},
    "line.remove": {"section_id": "id", "item_id": "id", "line_id": "id"},
    "line.reorder": {"section_id": "id", "item_id": "id", "from_index": "int", "to_index": "int"},
    "line.update_text": {"section_id": "id", "item_id": "id", "line_id": "id", "text": "str"},
    "line.update_marks": {"section_id": "id", "item_id": "id", "line_id": "id", "patch": "dict"},
    "line.update_animation": {"section_id": "id", "item_id": "id", "line_id": "id", "patch": "dict!"},
    "line.apply_marks_to_all": {"section_id": "id", "item_id": "id", "source_line_id": "id"},
    "line.promote_marks": {"section_id": "id", "item_id": "id", "source_line_id": "id"},
    "callout.apply": {"patch": "dict", "scope": "id"},
    "image.add": {"section_id": "id", "item_id": "id", "image": "dict"},
    "image.remove": {"section_id": "id", "item_id": "id", "image_id": "id"},
    "image.set_layout": {"section_id": "id", "item_id": "id", "layout": "id"},
    "image.update_animation": {"section_id": "id", "item_id": "id", "image_ids": "ids", "patch": "dict!"},
    "button.update": {"section_id": "id", "item_id": "id", "patch": "dict"},
    "page.set_typography": {"patch": "dict"},
    "page.set_colors": {"patch": "dict"},
    "page.set_spacing": {"patch": "dict"},
    "page.set_layout": {"patch": "dict"},
    "page.set_section_animation": {"patch": "dict"},
    "page.set_background": {"spec": "dict"},
    "page.set_mv_background": {"spec": "dict"},
    "page.set_meta": {"patch": "dict"},
    "stores.set": {"stores": "dict!"},
    "stores.update_data": {"section_id": "id", "stores": "dict!", "config": "dict"},
    "stores.update_content": {"section_id": "id", "patch": "dict"},
    "stores.update_config": {"section_id": "id", "patch": "dict"},
    "asset.add": {"asset": "dict"},
    "preset.save": {"name": "str", "style": "dict"},
    "preset.delete": {"preset_id": "id"},
    "preset.apply": {"section_id": "id", "preset_id": "id"},
    "selection.select_section": {"section_id": "id"},
    "selection.set_section": {"section_id": "id!"},
    "selection.set_item": {"section_id": "id", "item_id": "id"},
    "selection.set_line": {"section_id": "id", "item_id": "id", "line_id": "id"},
    "selection.set_images": {"section_id": "id", "item_id": "id", "image_ids": "ids"},
    "ui.set_preview_font_scale": {"scale": "number"},
    "ui.set_save_status": {"status": "id", "message": "str?"},
}

# Fields restricted to a fixed vocabulary
_CHOICES: dict[tuple[str, str], tuple[str, ...]] = {
    ("section.move", "direction"): ("up", "down"),
    ("item.add", "item_type"): ITEM_TYPES,
    ("callout.apply", "scope"): ("line", "item"),
    ("image.set_layout", "layout"): IMAGE_LAYOUTS,
    ("ui.set_save_status", "status"): SAVE_STATUSES,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_action(type: str, payload: Any) -> list[str]:
    """
    Validate an action's type and payload structure.
    Returns a list of error strings. Empty list = valid.

    This checks structural validity only:
    - Is the type recognized?
    - Is the payload a dict?
    - Are required fields present and of the right kind?
    - Are enum-valued fields one of the recognized literals?

    It does NOT check whether referenced sections/items/lines exist.
    That's the reducer's job.
    """
    errors: list[str] = []

    if type not in ACTION_TYPES:
        errors.append(f"Unknown action type: {type}")
        return errors

    if not isinstance(payload, dict):
        errors.append("Payload must be a non-null object")
        return errors

    for key, kind in _FIELDS.get(type, {}).items():
        errors.extend(_check_field(type, payload, key, kind))

    for (action_type, key), options in _CHOICES.items():
        if action_type == type and key in payload and payload[key] not in options:
            errors.append(f"{type} '{key}' must be one of {', '.join(options)}")

    validator = _VALIDATORS.get(type)
    if validator:
        errors.extend(validator(payload))

    return errors


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


def _is_id(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_KIND_CHECKS: dict[str, tuple[Callable[[Any], bool], str]] = {
    "id": (_is_id, "a non-empty string"),
    "str": (lambda v: isinstance(v, str), "a string"),
    "dict": (lambda v: isinstance(v, dict), "an object"),
    "dict!": (lambda v: v is None or isinstance(v, dict), "an object or null"),
    "bool": (lambda v: isinstance(v, bool), "a boolean"),
    "int": (_is_int, "an integer"),
    "number": (lambda v: _is_int(v) or isinstance(v, float), "a number"),
    "ids": (lambda v: isinstance(v, list) and all(_is_id(i) for i in v), "a list of ids"),
    "id!": (lambda v: v is None or _is_id(v), "a non-empty string or null"),
}


def _check_field(type: str, payload: dict[str, Any], key: str, kind: str) -> list[str]:
    optional = kind.endswith("?") or kind == "id!"
    kind = kind.rstrip("?")
    if key not in payload:
        return [] if optional else [f"{type} requires '{key}'"]
    check, description = _KIND_CHECKS[kind]
    if not check(payload[key]):
        return [f"{type} '{key}' must be {description}"]
    return []


# ---------------------------------------------------------------------------
# Per-action validators
# ---------------------------------------------------------------------------


def _validate_image_add(p: dict) -> list[str]:
    image = p.get("image")
    if not isinstance(image, dict):
        return []
    if not _is_id(image.get("src")) and not _is_id(image.get("asset_id")):
        return ["image.add requires 'image.src' or 'image.asset_id'"]
    return []


def _validate_asset_add(p: dict) -> list[str]:
    asset = p.get("asset")
    if not isinstance(asset, dict):
        return []
    errors: list[str] = []
    if not isinstance(asset.get("filename"), str):
        errors.append("asset.add requires 'asset.filename'")
    if not isinstance(asset.get("data"), str):
        errors.append("asset.add requires 'asset.data'")
    if "id" in asset and not _is_id(asset["id"]):
        errors.append(f"Invalid asset ID: {asset['id']}")
    return errors


def _validate_section_reorder(p: dict) -> list[str]:
    if p.get("active_id") == p.get("over_id"):
        return ["section.reorder 'active_id' and 'over_id' must differ"]
    return []


_VALIDATORS: dict[str, Callable[[dict], list[str]]] = {
    "image.add": _validate_image_add,
    "asset.add": _validate_asset_add,
    "section.reorder": _validate_section_reorder,
}
