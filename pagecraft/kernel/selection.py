"""
Pagecraft Kernel: Selection Resolver

Computes the next selection pointer after a structural change so that every
id it holds (section, item, line, images) exists in the current document.

Deletion policy, at every level: take the entity now sitting at the deleted
index; past the end, take the new last entity; when the container is empty,
fall back to the parent scope.
"""

from __future__ import annotations

from typing import Any

from pagecraft.kernel.models import BlockTarget, Selection, SectionTarget


def find_section(project: dict[str, Any], section_id: str | None) -> dict[str, Any] | None:
    if section_id is None:
        return None
    return next((s for s in project.get("sections", []) if s["id"] == section_id), None)


def _items(section: dict[str, Any]) -> list[dict[str, Any]]:
    return section.get("content", {}).get("items", [])


def _first_line_id(item: dict[str, Any] | None) -> str | None:
    if item is None or item["type"] != "text" or not item["lines"]:
        return None
    return item["lines"][0]["id"]


def _first_image_ids(item: dict[str, Any] | None) -> tuple[str, ...]:
    if item is None or item["type"] != "image" or not item["images"]:
        return ()
    return (item["images"][0]["id"],)


def focus_item(selection: Selection, item: dict[str, Any] | None) -> Selection:
    """Point the auxiliary ids at `item`: its first line, or its first image."""
    return selection.model_copy(update={
        "item_id": item["id"] if item else None,
        "line_id": _first_line_id(item),
        "image_ids": _first_image_ids(item),
    })


def focus_section(project: dict[str, Any], section_id: str | None, *, prefer_text: bool = False) -> Selection:
    """
    Section-level selection with the auxiliary ids recomputed for that section.

    By default the first item is focused. With `prefer_text`, the first text
    item is focused instead (falling back to the first item) and the first
    image of the first image item is picked as well.
    """
    section = find_section(project, section_id)
    if section is None:
        return Selection()
    items = _items(section)
    item = items[0] if items else None
    image_ids: tuple[str, ...] = _first_image_ids(item)
    if prefer_text:
        item = next((i for i in items if i["type"] == "text"), item)
        image_item = next((i for i in items if i["type"] == "image" and i["images"]), None)
        image_ids = _first_image_ids(image_item)
    return Selection(
        target=SectionTarget(id=section["id"]),
        item_id=item["id"] if item else None,
        line_id=_first_line_id(item),
        image_ids=image_ids,
    )


def _fallback_index(removed_index: int, remaining: int) -> int:
    return min(max(removed_index, 0), remaining - 1)


def after_section_removed(project: dict[str, Any], removed_index: int) -> Selection:
    sections = project.get("sections", [])
    if not sections:
        return Selection()
    neighbour = sections[_fallback_index(removed_index, len(sections))]
    return focus_section(project, neighbour["id"])


def after_item_removed(
    selection: Selection,
    section: dict[str, Any],
    removed_id: str,
    removed_index: int,
) -> Selection:
    """Selection after item `removed_id` left `section` (already updated)."""
    if selection.item_id != removed_id:
        return selection
    items = _items(section)
    neighbour = items[_fallback_index(removed_index, len(items))] if items else None
    selection = focus_item(selection, neighbour)
    if isinstance(selection.target, BlockTarget) and selection.target.id == removed_id:
        selection = selection.model_copy(update={"target": SectionTarget(id=section["id"])})
    return selection


def after_line_removed(
    selection: Selection,
    item: dict[str, Any],
    removed_id: str,
    removed_index: int,
) -> Selection:
    """Selection after line `removed_id` left text `item` (already updated)."""
    if selection.line_id != removed_id:
        return selection
    lines = item["lines"]
    neighbour = lines[_fallback_index(removed_index, len(lines))] if lines else None
    return selection.model_copy(update={"line_id": neighbour["id"] if neighbour else None})


def repair_selection(project: dict[str, Any], selection: Selection) -> Selection:
    """
    Drop or replace any id in `selection` that no longer exists in `project`.
    Used after whole-document swaps (load, undo, redo) and content replacement.
    """
    section = find_section(project, selection.section_id)
    if section is None:
        return Selection()

    items = _items(section)
    target = selection.target
    if isinstance(target, BlockTarget) and not any(i["id"] == target.id for i in items):
        target = SectionTarget(id=section["id"])

    item = next((i for i in items if i["id"] == selection.item_id), None)
    if item is None:
        if selection.item_id is None:
            return selection.model_copy(update={"target": target, "line_id": None, "image_ids": ()})
        return focus_item(selection.model_copy(update={"target": target}), items[0] if items else None)

    line_id = selection.line_id
    if item["type"] != "text":
        line_id = None
    elif not any(line["id"] == line_id for line in item["lines"]):
        line_id = _first_line_id(item)

    image_ids: tuple[str, ...] = ()
    if item["type"] == "image":
        present = {image["id"] for image in item["images"]}
        image_ids = tuple(i for i in selection.image_ids if i in present)

    return selection.model_copy(update={"target": target, "line_id": line_id, "image_ids": image_ids})
