"""
Pagecraft Kernel: Merge Engine

Deep-merges a partial patch onto a canonical value and re-normalizes the
result, so every merge output is canonical regardless of what the patch held.

Patch conventions:
- nested dicts merge key by key
- any other value replaces the base value
- None removes the key, letting normalization fall back to its default
"""

from __future__ import annotations

import copy
from typing import Any

from pagecraft.kernel.normalizer import (
    enforce_content_invariants,
    normalize_animation,
    normalize_button_item,
    normalize_card_style,
    normalize_content,
    normalize_line_marks,
    normalize_page_base_style,
    normalize_page_meta,
    normalize_section_style,
)


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """New dict with `patch` layered over `base`. Neither input is modified."""
    out = dict(base)
    for key, value in patch.items():
        if value is None:
            out.pop(key, None)
        elif isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def merge_section_style(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    return normalize_section_style(deep_merge(base, patch))


def merge_card_style(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    return normalize_card_style(deep_merge(base, patch))


def merge_line_marks(base: dict[str, Any] | None, patch: dict[str, Any]) -> dict[str, Any] | None:
    """Merged marks, or None when the merge leaves nothing set."""
    return normalize_line_marks(deep_merge(base or {}, patch))


def merge_animation(base: dict[str, Any] | None, patch: dict[str, Any] | None) -> dict[str, Any] | None:
    """A None patch clears the animation."""
    if patch is None:
        return None
    return normalize_animation({**(base or {}), **patch})


def merge_page_style_group(page_style: dict[str, Any], group: str, patch: dict[str, Any]) -> dict[str, Any]:
    """Merge `patch` into one group (typography, colors, ...) of the page base style."""
    return normalize_page_base_style({**page_style, group: deep_merge(page_style.get(group, {}), patch)})


def merge_page_meta(meta: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    return normalize_page_meta(deep_merge(meta, patch))


def merge_content(content: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow merge: keys in `patch` (items, storeCsv, ...) replace the content's
    own. The structural invariants are re-applied by normalization, and a
    replacement item list without a title keeps the current title item.
    """
    merged = normalize_content({**content, **patch})
    if not any(item["type"] == "title" for item in merged["items"]):
        title = next((item for item in content.get("items", []) if item.get("type") == "title"), None)
        if title is not None:
            merged["items"] = enforce_content_invariants([copy.deepcopy(title), *merged["items"]])
    return merged


def merge_button(item: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Button fields replace; `style` merges into the existing style."""
    merged = {**item, **{k: v for k, v in patch.items() if k != "style"}}
    if "style" in patch:
        style = patch["style"]
        merged["style"] = None if style is None else deep_merge(item.get("style") or {}, style)
    return normalize_button_item(merged)
