"""
Pagecraft Kernel: Schema Normalizer

Maps loosely-typed input (fresh defaults, legacy saved files, half-edited
patches) onto the canonical document shape.

Every public function here is total and idempotent:
- never raises, whatever the input looks like
- normalize(normalize(x)) == normalize(x) under JSON equality

Known legacy shapes are migrated in one place each (`_migrate_legacy_content`,
`extract_legacy_preset_id`, the legacy title keys read by `normalize_section`)
before canonical validation runs.

Per-type default copy is not hard-coded here. Section types register a
default-content provider with `register_default_content`; the normalizer
calls it after the structural pass and re-applies the structural invariants
afterwards.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Callable
from typing import Any

from pagecraft.kernel.background import normalize_background_spec
from pagecraft.kernel.models import parse_button_target
from pagecraft.kernel.types import (
    ANIMATION_MS_RANGE,
    ANIMATION_PRESETS,
    BAND_SIZES,
    BORDER_WIDTH_RANGE,
    BULLETS,
    BUTTON_VARIANTS,
    CALLOUT_PADDINGS,
    CALLOUT_VARIANTS,
    CARD_HEADER_STYLES,
    CARD_SHADOW_OPACITY_RANGE,
    DEFAULT_ANIMATION,
    DEFAULT_BACKGROUND,
    DEFAULT_CALLOUT,
    DEFAULT_PAGE_BASE_STYLE,
    DEFAULT_PROJECT_META,
    DEFAULT_SECTION_CARD_STYLE,
    DEFAULT_SECTION_STYLE,
    DEFAULT_SECTION_TYPE,
    EASINGS,
    FONT_SIZE_RANGE,
    FONT_WEIGHT_RANGE,
    FULL_WIDTH_SECTION_TYPES,
    IMAGE_LAYOUTS,
    LETTER_SPACING_RANGE,
    LINE_HEIGHT_RANGE,
    MAX_WIDTH_RANGE,
    MIN_HEIGHT_RANGE,
    PADDING_RANGE,
    PAGE_META_PRESET_FLAGS,
    PAGE_META_TEXT_FIELDS,
    RADIUS_RANGE,
    SECTION_ANIMATION_TRIGGERS,
    SECTION_ANIMATION_TYPES,
    SECTION_GAP_RANGE,
    SECTION_TITLE_FALLBACK,
    SHADOWS,
    STORE_FILTER_OPERATORS,
    TEMPLATE_TYPES,
    TEXT_ALIGNS,
    clamp,
    clamp_number,
    coerce_number,
    new_id,
    now_iso,
)

logger = logging.getLogger(__name__)

LEGACY_TITLE_KEYS: tuple[str, ...] = ("title", "heading", "titleText")
LEGACY_PRESET_PATTERN = re.compile(r"--lp-section-preset\s*:\s*([a-zA-Z0-9_-]+)")

# Campaign period bars get the brand band colour instead of the neutral default
PERIOD_BAR_BACKGROUND = {"type": "solid", "color1": "#EB5505", "color2": "#EB5505"}
_NEUTRAL_BACKGROUNDS = (("#f1f1f1", "#ffffff"), ("#ffffff", "#f1f5f9"))

# ---------------------------------------------------------------------------
# Default-content providers
# ---------------------------------------------------------------------------

DefaultContentProvider = Callable[[list[dict[str, Any]], dict[str, Any]], list[dict[str, Any]]]

_DEFAULT_CONTENT: dict[str, DefaultContentProvider] = {}


def register_default_content(section_type: str) -> Callable[[DefaultContentProvider], DefaultContentProvider]:
    """
    Register `fn(items, data) -> items` as the default-content provider for
    `section_type`. Providers receive canonical items (title pinned first)
    and the section's `data`, and must only fill gaps.
    """

    def decorator(fn: DefaultContentProvider) -> DefaultContentProvider:
        _DEFAULT_CONTENT[section_type] = fn
        return fn

    return decorator


def default_content_provider(section_type: str) -> DefaultContentProvider | None:
    return _DEFAULT_CONTENT.get(section_type)


# ---------------------------------------------------------------------------
# Small coercions
# ---------------------------------------------------------------------------


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _choice(value: Any, options: tuple[str, ...], default: str) -> str:
    return value if isinstance(value, str) and value in options else default


def _id(value: Any, prefix: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return new_id(prefix)


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Marks and animation
# ---------------------------------------------------------------------------


def normalize_callout(callout: Any) -> dict[str, Any]:
    raw = _dict(callout)
    out: dict[str, Any] = {
        "enabled": bool(raw.get("enabled")),
        "variant": _choice(raw.get("variant"), CALLOUT_VARIANTS, DEFAULT_CALLOUT["variant"]),
        "bg": _bool(raw.get("bg"), DEFAULT_CALLOUT["bg"]),
        "border": _bool(raw.get("border"), DEFAULT_CALLOUT["border"]),
    }
    for key in ("bgColor", "borderColor"):
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            out[key] = value
    out["radius"] = clamp_number(raw.get("radius"), DEFAULT_CALLOUT["radius"], RADIUS_RANGE)
    out["padding"] = _choice(raw.get("padding"), CALLOUT_PADDINGS, DEFAULT_CALLOUT["padding"])
    out["shadow"] = _choice(raw.get("shadow"), SHADOWS, DEFAULT_CALLOUT["shadow"])
    return out


def normalize_line_marks(marks: Any) -> dict[str, Any] | None:
    """Canonical marks, or None when nothing recognisable is set."""
    if not isinstance(marks, dict):
        return None
    out: dict[str, Any] = {}
    if isinstance(marks.get("bold"), bool):
        out["bold"] = marks["bold"]
    if isinstance(marks.get("color"), str):
        out["color"] = marks["color"]
    size = coerce_number(marks.get("size"), None)
    if size is not None:
        out["size"] = clamp(size, FONT_SIZE_RANGE)
    if marks.get("textAlign") in TEXT_ALIGNS:
        out["textAlign"] = marks["textAlign"]
    if marks.get("bullet") in BULLETS:
        out["bullet"] = marks["bullet"]
    if isinstance(marks.get("callout"), dict):
        out["callout"] = normalize_callout(marks["callout"])
    return out or None


def normalize_animation(animation: Any) -> dict[str, Any] | None:
    if not isinstance(animation, dict):
        return None
    return {
        "preset": _choice(animation.get("preset"), ANIMATION_PRESETS, DEFAULT_ANIMATION["preset"]),
        "durationMs": clamp_number(
            animation.get("durationMs"), DEFAULT_ANIMATION["durationMs"], ANIMATION_MS_RANGE
        ),
        "delayMs": clamp_number(
            animation.get("delayMs"), DEFAULT_ANIMATION["delayMs"], ANIMATION_MS_RANGE
        ),
    }


def _with_extras(out: dict[str, Any], raw: dict[str, Any]) -> dict[str, Any]:
    """Attach normalized `marks`/`animation` when present."""
    marks = normalize_line_marks(raw.get("marks"))
    if marks is not None:
        out["marks"] = marks
    animation = normalize_animation(raw.get("animation"))
    if animation is not None:
        out["animation"] = animation
    return out


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


def empty_line() -> dict[str, Any]:
    return {"id": new_id("line"), "text": ""}


def normalize_line(line: Any) -> dict[str, Any] | None:
    if isinstance(line, str):
        return {"id": new_id("line"), "text": line}
    if not isinstance(line, dict):
        return None
    out = {"id": _id(line.get("id"), "line"), "text": _str(line.get("text"))}
    return _with_extras(out, line)


def _lines_from(lines: Any, fallback_text: str = "") -> list[dict[str, Any]]:
    normalized = [n for n in (normalize_line(line) for line in _list(lines)) if n is not None]
    if normalized:
        return normalized
    return [
        {"id": new_id("line"), "text": text}
        for text in (part.strip() for part in fallback_text.split("\n"))
        if text
    ]


def normalize_lines(lines: Any, fallback_text: str = "") -> list[dict[str, Any]]:
    """Line list with at least one entry (an empty line when nothing usable is given)."""
    return _lines_from(lines, fallback_text) or [empty_line()]


# ---------------------------------------------------------------------------
# Content items
# ---------------------------------------------------------------------------

_BUTTON_STYLE_STRINGS = ("presetId", "backgroundColor", "textColor", "borderColor")
_BUTTON_STYLE_NUMBERS = ("width", "radius", "borderWidth")


def normalize_title_item(item: dict[str, Any]) -> dict[str, Any]:
    out = {"id": _id(item.get("id"), "item"), "type": "title", "text": _str(item.get("text"))}
    return _with_extras(out, item)


def normalize_text_item(item: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": _id(item.get("id"), "item"),
        "type": "text",
        "lines": normalize_lines(item.get("lines"), _str(item.get("text"))),
    }
    animation = normalize_animation(item.get("animation"))
    if animation is not None:
        out["animation"] = animation
    return out


def normalize_image_entry(image: Any) -> dict[str, Any] | None:
    """An image needs a `src` or an `assetId`; anything else is dropped."""
    if not isinstance(image, dict):
        return None
    src = _str(image.get("src"))
    asset_id = _str(image.get("assetId"))
    if not src.strip() and not asset_id.strip():
        return None
    out: dict[str, Any] = {"id": _id(image.get("id"), "img"), "src": src, "alt": _str(image.get("alt"))}
    if asset_id.strip():
        out["assetId"] = asset_id
    animation = normalize_animation(image.get("animation"))
    if animation is not None:
        out["animation"] = animation
    return out


def normalize_image_item(item: dict[str, Any]) -> dict[str, Any]:
    images = [n for n in (normalize_image_entry(i) for i in _list(item.get("images"))) if n is not None]
    out: dict[str, Any] = {
        "id": _id(item.get("id"), "item"),
        "type": "image",
        "images": images,
        "layout": _choice(item.get("layout"), IMAGE_LAYOUTS, "auto"),
    }
    animation = normalize_animation(item.get("animation"))
    if animation is not None:
        out["animation"] = animation
    return out


def normalize_button_style(style: Any) -> dict[str, Any] | None:
    raw = _dict(style)
    out: dict[str, Any] = {}
    for key in _BUTTON_STYLE_STRINGS:
        value = raw.get(key)
        if isinstance(value, str) and value:
            out[key] = value
    if raw.get("align") in TEXT_ALIGNS:
        out["align"] = raw["align"]
    if isinstance(raw.get("fullWidth"), bool):
        out["fullWidth"] = raw["fullWidth"]
    for key in _BUTTON_STYLE_NUMBERS:
        value = coerce_number(raw.get(key), None)
        if value is not None:
            out[key] = max(0, value)
    return out or None


def normalize_button_item(item: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": _id(item.get("id"), "item"),
        "type": "button",
        "label": _str(item.get("label")),
        "target": parse_button_target(item.get("target")),
        "variant": _choice(item.get("variant"), BUTTON_VARIANTS, "primary"),
    }
    style = normalize_button_style(item.get("style"))
    if style is not None:
        out["style"] = style
    animation = normalize_animation(item.get("animation"))
    if animation is not None:
        out["animation"] = animation
    return out


_ITEM_NORMALIZERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "title": normalize_title_item,
    "text": normalize_text_item,
    "image": normalize_image_item,
    "button": normalize_button_item,
}


def normalize_content_item(item: Any) -> dict[str, Any] | None:
    """Unknown item types are read as text items."""
    if not isinstance(item, dict):
        return None
    item_type = item.get("type")
    if not isinstance(item_type, str):
        return normalize_text_item(item)
    normalizer = _ITEM_NORMALIZERS.get(item_type, normalize_text_item)
    return normalizer(item)


def pin_title_first(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Move the title item (if any) to index 0."""
    index = next((i for i, item in enumerate(items) if item.get("type") == "title"), -1)
    if index <= 0:
        return list(items)
    return [items[index], *items[:index], *items[index + 1:]]


def _title_as_text(item: dict[str, Any]) -> dict[str, Any]:
    line: dict[str, Any] = {"id": new_id("line"), "text": item.get("text", "")}
    if "marks" in item:
        line["marks"] = item["marks"]
    return {"id": item["id"], "type": "text", "lines": [line]}


def enforce_content_invariants(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Structural invariants on an item list of canonical items:
    one title at most (extra titles become text items), title pinned first,
    unique item ids, and no text item without lines.
    """
    out: list[dict[str, Any]] = []
    seen_ids: set[str] = set()
    has_title = False
    for item in items:
        if item["type"] == "title":
            if has_title:
                item = _title_as_text(item)
            has_title = True
        if item["id"] in seen_ids:
            item = {**item, "id": new_id("item")}
        seen_ids.add(item["id"])
        if item["type"] == "text" and not item["lines"]:
            item = {**item, "lines": [empty_line()]}
        out.append(item)
    return pin_title_first(out)


# ---------------------------------------------------------------------------
# Store table fragments
# ---------------------------------------------------------------------------


def normalize_store_csv(store_csv: Any) -> dict[str, Any] | None:
    if not isinstance(store_csv, dict):
        return None
    headers = [str(header) for header in _list(store_csv.get("headers"))]
    rows = [
        {str(key): _cell(value) for key, value in row.items()} if isinstance(row, dict) else {}
        for row in _list(store_csv.get("rows"))
    ]
    out: dict[str, Any] = {"headers": headers, "rows": rows}
    if isinstance(store_csv.get("importedAt"), str):
        out["importedAt"] = store_csv["importedAt"]

    raw_stats = store_csv.get("stats")
    if isinstance(raw_stats, dict):
        total = raw_stats.get("totalRows")
        stats: dict[str, Any] = {
            "totalRows": total if isinstance(total, int) and not isinstance(total, bool) else len(rows)
        }
        count = raw_stats.get("duplicateCount")
        if isinstance(count, int) and not isinstance(count, bool):
            stats["duplicateCount"] = count
        if isinstance(raw_stats.get("duplicateIds"), list):
            stats["duplicateIds"] = [str(entry) for entry in raw_stats["duplicateIds"]]
        out["stats"] = stats
    elif rows:
        out["stats"] = {"totalRows": len(rows)}
    return out


def _text_or(raw: dict[str, Any], key: str, default: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) and value.strip() else default


def normalize_store_labels(labels: Any) -> dict[str, Any] | None:
    if not isinstance(labels, dict):
        return None
    out: dict[str, Any] = {}
    for key, value in labels.items():
        if not isinstance(value, dict):
            continue
        column_key = _str(value.get("columnKey"), str(key))
        out[str(key)] = {
            "columnKey": column_key,
            "displayName": _text_or(value, "displayName", column_key),
            "color": _text_or(value, "color", "#CBD5F5"),
            "trueText": _text_or(value, "trueText", "ON"),
            "falseText": _text_or(value, "falseText", "OFF"),
            "valueDisplay": "raw" if value.get("valueDisplay") == "raw" else "toggle",
            "showAsFilter": _bool(value.get("showAsFilter"), True),
            "showAsBadge": _bool(value.get("showAsBadge"), True),
        }
    return out


def normalize_store_filters(filters: Any) -> dict[str, bool] | None:
    if not isinstance(filters, dict):
        return None
    return {str(key): bool(value) for key, value in filters.items()}


# ---------------------------------------------------------------------------
# Section content
# ---------------------------------------------------------------------------


def _migrate_legacy_content(raw: dict[str, Any]) -> list[dict[str, Any]]:
    """Lift the pre-item fields (primaryText/primaryLines, image, button) into items."""
    items: list[dict[str, Any]] = []

    lines = _lines_from(raw.get("primaryLines"), _str(raw.get("primaryText")))
    if lines:
        items.append({"id": new_id("item"), "type": "text", "lines": lines})

    image = raw.get("image")
    if isinstance(image, dict) and _str(image.get("src")).strip():
        items.append(normalize_image_item({
            "images": [{"src": image["src"], "alt": _str(image.get("alt"))}],
        }))

    button = raw.get("button")
    if isinstance(button, dict):
        label = _str(button.get("label"))
        href = _str(button.get("href"))
        if label.strip() or href.strip():
            items.append(normalize_button_item({
                "label": label,
                "target": {"kind": "url", "url": href},
            }))

    if items:
        logger.debug("migrated %d legacy content field(s) into items", len(items))
    return items


def normalize_content(content: Any) -> dict[str, Any]:
    """
    Canonical section content: `items` plus the optional store-table fragments.
    Legacy single-field content is lifted only when there are no items at all.
    """
    raw = _dict(content)
    items = [n for n in (normalize_content_item(i) for i in _list(raw.get("items"))) if n is not None]
    if not items:
        items = _migrate_legacy_content(raw)

    out: dict[str, Any] = {
        "items": enforce_content_invariants(items),
        "storeFilterOperator": _choice(raw.get("storeFilterOperator"), STORE_FILTER_OPERATORS, "AND"),
    }
    store_csv = normalize_store_csv(raw.get("storeCsv"))
    if store_csv is not None:
        out["storeCsv"] = store_csv
    labels = normalize_store_labels(raw.get("storeLabels"))
    if labels is not None:
        out["storeLabels"] = labels
    filters = normalize_store_filters(raw.get("storeFilters"))
    if filters is not None:
        out["storeFilters"] = filters
    return out


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------


def normalize_section_style(style: Any) -> dict[str, Any]:
    raw = _dict(style)
    defaults = DEFAULT_SECTION_STYLE
    typography = _dict(raw.get("typography"))
    background = _dict(raw.get("background"))
    border = _dict(raw.get("border"))
    layout = _dict(raw.get("layout"))
    padding = _dict(layout.get("padding"))
    d_typo, d_bg, d_border, d_layout = (
        defaults["typography"],
        defaults["background"],
        defaults["border"],
        defaults["layout"],
    )

    out: dict[str, Any] = {
        "typography": {
            "fontFamily": _str(typography.get("fontFamily"), d_typo["fontFamily"]),
            "fontSize": clamp_number(typography.get("fontSize"), d_typo["fontSize"], FONT_SIZE_RANGE),
            "fontWeight": clamp_number(typography.get("fontWeight"), d_typo["fontWeight"], FONT_WEIGHT_RANGE),
            "lineHeight": clamp_number(typography.get("lineHeight"), d_typo["lineHeight"], LINE_HEIGHT_RANGE),
            "letterSpacing": clamp_number(
                typography.get("letterSpacing"), d_typo["letterSpacing"], LETTER_SPACING_RANGE
            ),
            "textAlign": _choice(typography.get("textAlign"), TEXT_ALIGNS, d_typo["textAlign"]),
            "textColor": _str(typography.get("textColor"), d_typo["textColor"]),
        },
        "background": {
            "type": "gradient" if background.get("type") == "gradient" else "solid",
            "color1": _str(background.get("color1"), d_bg["color1"]),
            "color2": _str(background.get("color2"), d_bg["color2"]),
        },
        "border": {
            "enabled": _bool(border.get("enabled"), d_border["enabled"]),
            "width": clamp_number(border.get("width"), d_border["width"], BORDER_WIDTH_RANGE),
            "color": _str(border.get("color"), d_border["color"]),
        },
        "shadow": _choice(raw.get("shadow"), SHADOWS, defaults["shadow"]),
        "layout": {
            "padding": {
                side: clamp_number(padding.get(side), d_layout["padding"][side], PADDING_RANGE)
                for side in ("t", "r", "b", "l")
            },
            "maxWidth": clamp_number(layout.get("maxWidth"), d_layout["maxWidth"], MAX_WIDTH_RANGE),
            "align": _choice(layout.get("align"), ("left", "center"), d_layout["align"]),
            "radius": clamp_number(layout.get("radius"), d_layout["radius"], RADIUS_RANGE),
            "fullWidth": _bool(layout.get("fullWidth"), d_layout["fullWidth"]),
            "minHeight": clamp_number(layout.get("minHeight"), d_layout["minHeight"], MIN_HEIGHT_RANGE),
        },
        "customCss": _str(raw.get("customCss")),
    }
    spec = normalize_background_spec(raw.get("backgroundSpec"))
    if spec is not None:
        out["backgroundSpec"] = spec
    return out


def extract_legacy_preset_id(custom_css: Any) -> str | None:
    """Card preset named by a `--lp-section-preset: <id>` declaration in old custom CSS."""
    if not isinstance(custom_css, str):
        return None
    match = LEGACY_PRESET_PATTERN.search(custom_css)
    return match.group(1) if match else None


def normalize_card_style(style: Any) -> dict[str, Any]:
    """
    Canonical section card style. `presetId` is an opaque catalog key and is
    kept as given when it is a non-empty string.
    """
    raw = _dict(style)
    base = DEFAULT_SECTION_CARD_STYLE
    padding = _dict(raw.get("padding"))
    preset_id = raw.get("presetId")
    return {
        "presetId": preset_id if isinstance(preset_id, str) and preset_id.strip() else base["presetId"],
        "borderColor": _str(raw.get("borderColor"), base["borderColor"]),
        "borderWidth": clamp_number(raw.get("borderWidth"), base["borderWidth"], BORDER_WIDTH_RANGE),
        "radius": clamp_number(raw.get("radius"), base["radius"], RADIUS_RANGE),
        "padding": {
            side: clamp_number(padding.get(side), base["padding"][side], PADDING_RANGE)
            for side in ("t", "r", "b", "l")
        },
        "headerStyle": _choice(raw.get("headerStyle"), CARD_HEADER_STYLES, base["headerStyle"]),
        "headerBgColor": _str(raw.get("headerBgColor"), base["headerBgColor"]),
        "headerTextColor": _str(raw.get("headerTextColor"), base["headerTextColor"]),
        "labelChipEnabled": _bool(raw.get("labelChipEnabled"), base["labelChipEnabled"]),
        "labelChipBg": _choice(raw.get("labelChipBg"), BAND_SIZES, base["labelChipBg"]),
        "labelChipTextColor": _str(raw.get("labelChipTextColor"), base["labelChipTextColor"]),
        "shadowEnabled": _bool(raw.get("shadowEnabled"), base["shadowEnabled"]),
        "shadowOpacity": clamp_number(
            raw.get("shadowOpacity"), base["shadowOpacity"], CARD_SHADOW_OPACITY_RANGE
        ),
        "innerBgColor": _str(raw.get("innerBgColor"), base["innerBgColor"]),
        "textColor": _str(raw.get("textColor"), base["textColor"]),
    }


def normalize_page_base_style(style: Any) -> dict[str, Any]:
    raw = _dict(style)
    defaults = DEFAULT_PAGE_BASE_STYLE
    typography = _dict(raw.get("typography"))
    animation = _dict(raw.get("sectionAnimation"))
    colors = _dict(raw.get("colors"))
    spacing = _dict(raw.get("spacing"))
    padding = _dict(spacing.get("sectionPadding"))
    layout = _dict(raw.get("layout"))
    d_typo = defaults["typography"]
    d_anim = defaults["sectionAnimation"]
    d_spacing = defaults["spacing"]
    d_layout = defaults["layout"]

    return {
        "typography": {
            "fontFamily": _str(typography.get("fontFamily"), d_typo["fontFamily"]),
            "baseSize": clamp_number(typography.get("baseSize"), d_typo["baseSize"], FONT_SIZE_RANGE),
            "lineHeight": clamp_number(typography.get("lineHeight"), d_typo["lineHeight"], LINE_HEIGHT_RANGE),
            "letterSpacing": clamp_number(
                typography.get("letterSpacing"), d_typo["letterSpacing"], LETTER_SPACING_RANGE
            ),
            "fontWeight": clamp_number(typography.get("fontWeight"), d_typo["fontWeight"], FONT_WEIGHT_RANGE),
        },
        "sectionAnimation": {
            "type": _choice(animation.get("type"), SECTION_ANIMATION_TYPES, d_anim["type"]),
            "trigger": _choice(animation.get("trigger"), SECTION_ANIMATION_TRIGGERS, d_anim["trigger"]),
            "speed": clamp_number(animation.get("speed"), d_anim["speed"], ANIMATION_MS_RANGE),
            "easing": _choice(animation.get("easing"), EASINGS, d_anim["easing"]),
        },
        "colors": {
            key: _str(colors.get(key), default) for key, default in defaults["colors"].items()
        },
        "spacing": {
            "sectionPadding": {
                side: clamp_number(padding.get(side), d_spacing["sectionPadding"][side], PADDING_RANGE)
                for side in ("t", "r", "b", "l")
            },
            "sectionGap": clamp_number(spacing.get("sectionGap"), d_spacing["sectionGap"], SECTION_GAP_RANGE),
        },
        "layout": {
            "maxWidth": clamp_number(layout.get("maxWidth"), d_layout["maxWidth"], MAX_WIDTH_RANGE),
            "align": _choice(layout.get("align"), ("left", "center"), d_layout["align"]),
            "radius": clamp_number(layout.get("radius"), d_layout["radius"], RADIUS_RANGE),
            "shadow": _choice(layout.get("shadow"), SHADOWS, d_layout["shadow"]),
        },
    }


# ---------------------------------------------------------------------------
# Project-level settings and meta
# ---------------------------------------------------------------------------


def normalize_page_meta(meta: Any) -> dict[str, Any]:
    raw = _dict(meta)
    presets = _dict(raw.get("presets"))
    out: dict[str, Any] = {field: _str(raw.get(field)) for field in PAGE_META_TEXT_FIELDS}
    out["presets"] = {flag: bool(presets.get(flag)) for flag in PAGE_META_PRESET_FLAGS}
    return out


def normalize_settings(settings: Any) -> dict[str, Any]:
    """Unknown settings keys are kept; backgrounds and page meta are canonicalised."""
    raw = _dict(settings)
    backgrounds = _dict(raw.get("backgrounds"))
    return {
        **raw,
        "backgrounds": {
            "page": normalize_background_spec(backgrounds.get("page")) or dict(DEFAULT_BACKGROUND),
            "mv": normalize_background_spec(backgrounds.get("mv")) or dict(DEFAULT_BACKGROUND),
        },
        "pageMeta": normalize_page_meta(raw.get("pageMeta")),
    }


def normalize_meta(meta: Any) -> dict[str, Any]:
    raw = _dict(meta)
    stamp = now_iso()
    return {
        **raw,
        "projectName": _str(raw.get("projectName"), DEFAULT_PROJECT_META["projectName"]),
        "templateType": _choice(raw.get("templateType"), TEMPLATE_TYPES, DEFAULT_PROJECT_META["templateType"]),
        "version": _str(raw.get("version"), DEFAULT_PROJECT_META["version"]),
        "createdAt": _str(raw.get("createdAt"), stamp),
        "updatedAt": _str(raw.get("updatedAt"), stamp),
    }


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def derive_default_title(
    section_type: str,
    data: dict[str, Any],
    name: Any = None,
    legacy_title: str = "",
) -> str:
    """
    Title for a section that has none: the legacy content title, then
    `data.title`, `data.label`, the section name, then the per-type fallback.
    """
    candidates = (
        legacy_title,
        _str(data.get("title")),
        _str(data.get("label")),
        _str(name),
        SECTION_TITLE_FALLBACK.get(section_type, ""),
    )
    return next((c for c in candidates if c), "").strip()


def _legacy_title(content: dict[str, Any]) -> str:
    for key in LEGACY_TITLE_KEYS:
        value = content.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _ensure_title(items: list[dict[str, Any]], default_title: str) -> list[dict[str, Any]]:
    index = next((i for i, item in enumerate(items) if item["type"] == "title"), -1)
    if index == -1:
        return [{"id": new_id("item"), "type": "title", "text": default_title}, *items]
    title = items[index]
    if not title["text"].strip() and default_title:
        items = list(items)
        items[index] = {**title, "text": default_title}
    return items


def _card_style_for(raw: dict[str, Any]) -> dict[str, Any]:
    card = raw.get("sectionCardStyle")
    if isinstance(card, dict):
        return normalize_card_style(card)
    legacy = extract_legacy_preset_id(_dict(raw.get("style")).get("customCss"))
    if legacy:
        logger.debug("lifted legacy card preset %r out of customCss", legacy)
        return normalize_card_style({"presetId": legacy})
    return normalize_card_style(None)


def _style_for(section_type: str, raw_style: Any) -> dict[str, Any]:
    style = normalize_section_style(raw_style)
    explicit_full_width = _dict(_dict(raw_style).get("layout")).get("fullWidth")
    if not isinstance(explicit_full_width, bool):
        style["layout"]["fullWidth"] = section_type in FULL_WIDTH_SECTION_TYPES
    background = style["background"]
    if (
        section_type == "campaignPeriodBar"
        and background["type"] == "solid"
        and (background["color1"], background["color2"]) in _NEUTRAL_BACKGROUNDS
    ):
        style["background"] = dict(PERIOD_BAR_BACKGROUND)
    return style


def normalize_section(section: Any) -> dict[str, Any]:
    """
    Canonical section. Unknown keys on the section and inside `data` are kept.

    Content always carries exactly one title item at index 0; a missing title is
    synthesized from `derive_default_title`. The registered default-content
    provider for the section type (if any) fills remaining gaps.
    """
    raw = copy.deepcopy(_dict(section))
    section_type = raw.get("type")
    if not isinstance(section_type, str) or not section_type:
        section_type = DEFAULT_SECTION_TYPE
    data = _dict(raw.get("data"))
    raw_content = _dict(raw.get("content"))

    content = normalize_content(raw_content)
    items = content["items"]
    if not items and isinstance(data.get("body"), str):
        items = _lines_from(None, data["body"])
        items = [{"id": new_id("item"), "type": "text", "lines": items}] if items else []

    default_title = derive_default_title(section_type, data, raw.get("name"), _legacy_title(raw_content))
    items = _ensure_title(items, default_title)

    provider = default_content_provider(section_type)
    if provider is not None:
        items = provider(items, data)
    content["items"] = enforce_content_invariants(items)

    out: dict[str, Any] = {
        **raw,
        "id": _id(raw.get("id"), f"sec_{section_type}"),
        "type": section_type,
        "visible": _bool(raw.get("visible"), True),
        "locked": _bool(raw.get("locked"), False),
        "data": data,
        "content": content,
        "style": _style_for(section_type, raw.get("style")),
        "sectionCardStyle": _card_style_for(raw),
    }
    if isinstance(raw.get("name"), str):
        out["name"] = raw["name"]
    else:
        out.pop("name", None)
    return out


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


def normalize_project(project: Any) -> dict[str, Any]:
    """
    Canonical project. Unknown top-level keys are kept. Non-dict section
    entries are dropped, and later sections whose id repeats an earlier
    one get a fresh id.
    """
    raw = copy.deepcopy(_dict(project))
    sections: list[dict[str, Any]] = []
    seen: set[str] = set()
    for entry in _list(raw.get("sections")):
        if not isinstance(entry, dict):
            continue
        section = normalize_section(entry)
        if section["id"] in seen:
            fresh = new_id(f"sec_{section['type']}")
            logger.debug("re-issued duplicate section id %r as %r", section["id"], fresh)
            section["id"] = fresh
        seen.add(section["id"])
        sections.append(section)

    out: dict[str, Any] = {
        **raw,
        "meta": normalize_meta(raw.get("meta")),
        "settings": normalize_settings(raw.get("settings")),
        "pageBaseStyle": normalize_page_base_style(raw.get("pageBaseStyle")),
        "sections": sections,
        "assets": dict(_dict(raw.get("assets"))),
    }
    if not isinstance(raw.get("stores"), dict):
        out.pop("stores", None)
    return out
