"""
Pagecraft Kernel: Shared Types

Constants, canonical defaults and data classes used across the normalizer,
merge engine, reducer, history and editor session.

The document itself stays a plain JSON-compatible dict tree (the shape the
persistence and renderer collaborators exchange). Keys inside the document
keep their persisted camelCase names.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pagecraft.kernel.models import Selection

# ---------------------------------------------------------------------------
# Section and content vocabularies
# ---------------------------------------------------------------------------

SECTION_TYPES: tuple[str, ...] = (
    "brandBar",
    "heroImage",
    "campaignPeriodBar",
    "campaignOverview",
    "couponFlow",
    "targetStores",
    "excludedStoresList",
    "excludedBrandsList",
    "rankingTable",
    "paymentHistoryGuide",
    "tabbedNotes",
    "legalNotes",
    "footerHtml",
    "faq",
    "cta",
)

DEFAULT_SECTION_TYPE = "campaignOverview"

# Sections rendered edge to edge unless the style says otherwise
FULL_WIDTH_SECTION_TYPES: frozenset[str] = frozenset(
    {"brandBar", "campaignPeriodBar", "footerHtml"}
)

ITEM_TYPES: tuple[str, ...] = ("title", "text", "image", "button")

IMAGE_LAYOUTS: tuple[str, ...] = (
    "auto",
    "vertical",
    "horizontal",
    "columns2",
    "columns3",
    "grid",
    "slideshow",
)

TEXT_ALIGNS: tuple[str, ...] = ("left", "center", "right")
BULLETS: tuple[str, ...] = ("none", "disc")
CALLOUT_VARIANTS: tuple[str, ...] = ("note", "warn", "info")
CALLOUT_PADDINGS: tuple[str, ...] = ("sm", "md", "lg")
SHADOWS: tuple[str, ...] = ("none", "sm", "md")
ANIMATION_PRESETS: tuple[str, ...] = ("fade", "slideUp", "zoom")
BUTTON_VARIANTS: tuple[str, ...] = ("primary", "secondary")
CARD_HEADER_STYLES: tuple[str, ...] = ("bandBold", "box26")
BAND_SIZES: tuple[str, ...] = ("sm", "md", "lg")

SECTION_ANIMATION_TYPES: tuple[str, ...] = (
    "none",
    "fade",
    "slide",
    "slideDown",
    "slideLeft",
    "slideRight",
    "zoom",
    "bounce",
    "flip",
    "flipY",
    "rotate",
    "blur",
    "pop",
    "swing",
    "float",
    "pulse",
    "shake",
    "wobble",
    "skew",
    "roll",
    "tilt",
    "zoomOut",
    "stretch",
    "compress",
    "glide",
)
SECTION_ANIMATION_TRIGGERS: tuple[str, ...] = ("onView", "onScroll")
EASINGS: tuple[str, ...] = ("linear", "ease", "ease-in", "ease-out", "ease-in-out")

BACKGROUND_TYPES: tuple[str, ...] = (
    "solid",
    "gradient",
    "pattern",
    "layers",
    "image",
    "video",
    "preset",
)

TEMPLATE_TYPES: tuple[str, ...] = ("coupon", "point", "quickchance", "target")

SAVE_STATUSES: tuple[str, ...] = ("idle", "dirty", "saving", "saved", "error")

STORE_FILTER_OPERATORS: tuple[str, ...] = ("AND", "OR")

ACTION_TYPES: set[str] = {
    # Project
    "project.load",
    "project.reset",
    # Section
    "section.update_data",
    "section.update_content",
    "section.update_style",
    "section.update_card_style",
    "section.apply_appearance_to_all",
    "section.insert_after",
    "section.insert_from_template",
    "section.add",
    "section.rename",
    "section.toggle_visible",
    "section.set_visible",
    "section.toggle_locked",
    "section.set_locked",
    "section.set_all_locked",
    "section.duplicate",
    "section.delete",
    "section.move",
    "section.reorder",
    # Items
    "item.add",
    "item.remove",
    "item.reorder",
    "item.update_animation",
    "title.update_text",
    "title.update_marks",
    # Lines
    "line.add",
    "line.remove",
    "line.reorder",
    "line.update_text",
    "line.update_marks",
    "line.update_animation",
    "line.apply_marks_to_all",
    "line.promote_marks",
    "callout.apply",
    # Images and buttons
    "image.add",
    "image.remove",
    "image.set_layout",
    "image.update_animation",
    "button.update",
    # Page
    "page.set_typography",
    "page.set_colors",
    "page.set_spacing",
    "page.set_layout",
    "page.set_section_animation",
    "page.set_background",
    "page.set_mv_background",
    "page.set_meta",
    # Stores and assets
    "stores.set",
    "stores.update_data",
    "stores.update_content",
    "stores.update_config",
    "asset.add",
    # Brand presets
    "preset.save",
    "preset.delete",
    "preset.apply",
    # History
    "history.undo",
    "history.redo",
    "history.push",
    "history.clear",
    # Selection and UI
    "selection.select_section",
    "selection.set_section",
    "selection.set_item",
    "selection.set_line",
    "selection.set_images",
    "ui.set_preview_font_scale",
    "ui.set_save_status",
}

# Headers beyond these five are carried as extra columns
CANONICAL_STORE_KEYS: tuple[str, ...] = (
    "storeIdKey",
    "storeNameKey",
    "postalCodeKey",
    "addressKey",
    "prefectureKey",
)

PREFECTURE_FILTER_KEY = "都道府県"

UNTITLED_NAME = "無題"
COPY_SUFFIX = " のコピー"

SECTION_TITLE_FALLBACK: dict[str, str] = {
    "campaignOverview": "キャンペーン概要",
    "couponFlow": "クーポン利用の流れ",
    "targetStores": "対象店舗",
    "legalNotes": "注意事項",
    "faq": "よくある質問",
    "cta": "お申し込み",
    "rankingTable": "ランキング",
}

# ---------------------------------------------------------------------------
# Numeric ranges: (minimum, maximum)
# ---------------------------------------------------------------------------

FONT_SIZE_RANGE = (8, 96)
FONT_WEIGHT_RANGE = (100, 900)
LINE_HEIGHT_RANGE = (0.8, 4)
LETTER_SPACING_RANGE = (-10, 20)
BORDER_WIDTH_RANGE = (0, 40)
PADDING_RANGE = (0, 400)
MAX_WIDTH_RANGE = (240, 2400)
RADIUS_RANGE = (0, 200)
MIN_HEIGHT_RANGE = (0, 4000)
ANIMATION_MS_RANGE = (0, 10000)
SECTION_GAP_RANGE = (0, 400)
CARD_SHADOW_OPACITY_RANGE = (0.02, 0.3)
OPACITY_RANGE = (0, 1)
PREVIEW_FONT_SCALE_RANGE = (0.85, 1.2)

# ---------------------------------------------------------------------------
# Canonical defaults
# ---------------------------------------------------------------------------

DEFAULT_SECTION_STYLE: dict[str, Any] = {
    "typography": {
        "fontFamily": "system-ui",
        "fontSize": 16,
        "fontWeight": 400,
        "lineHeight": 1.6,
        "letterSpacing": 0,
        "textAlign": "left",
        "textColor": "#111111",
    },
    "background": {"type": "solid", "color1": "#f1f1f1", "color2": "#ffffff"},
    "border": {"enabled": False, "width": 1, "color": "#e5e7eb"},
    "shadow": "sm",
    "layout": {
        "padding": {"t": 0, "r": 24, "b": 0, "l": 24},
        "maxWidth": 920,
        "align": "center",
        "radius": 0,
        "fullWidth": False,
        "minHeight": 0,
    },
    "customCss": "",
}

DEFAULT_SECTION_CARD_STYLE: dict[str, Any] = {
    "presetId": "default",
    "borderColor": "transparent",
    "borderWidth": 0,
    "radius": 0,
    "padding": {"t": 0, "r": 0, "b": 0, "l": 0},
    "headerStyle": "bandBold",
    "headerBgColor": "#EB5505",
    "headerTextColor": "#ffffff",
    "labelChipEnabled": False,
    "labelChipBg": "lg",
    "labelChipTextColor": "center",
    "shadowEnabled": True,
    "shadowOpacity": 0.22,
    "innerBgColor": "",
    "textColor": "",
}

DEFAULT_PAGE_BASE_STYLE: dict[str, Any] = {
    "typography": {
        "fontFamily": "system-ui",
        "baseSize": 16,
        "lineHeight": 1.6,
        "letterSpacing": 0,
        "fontWeight": 400,
    },
    "sectionAnimation": {
        "type": "none",
        "trigger": "onView",
        "speed": 500,
        "easing": "ease-out",
    },
    "colors": {
        "background": "#ffffff",
        "text": "#111111",
        "accent": "#1f6feb",
        "border": "#e5e7eb",
    },
    "spacing": {
        "sectionPadding": {"t": 32, "r": 24, "b": 32, "l": 24},
        "sectionGap": 24,
    },
    "layout": {"maxWidth": 1200, "align": "center", "radius": 12, "shadow": "sm"},
}

# Callout box defaults; normalization materializes every field
DEFAULT_CALLOUT: dict[str, Any] = {
    "enabled": False,
    "variant": "note",
    "bg": True,
    "border": True,
    "radius": 12,
    "padding": "md",
    "shadow": "none",
}

DEFAULT_ANIMATION: dict[str, Any] = {"preset": "fade", "durationMs": 400, "delayMs": 0}

DEFAULT_BACKGROUND: dict[str, Any] = {"type": "solid", "color": "#ffffff"}

PAGE_META_TEXT_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "faviconUrl",
    "faviconAssetId",
    "ogpImageUrl",
    "ogpImageAssetId",
    "ogpTitle",
    "ogpDescription",
)
PAGE_META_PRESET_FLAGS: tuple[str, ...] = (
    "appendAuPayTitle",
    "ogpFromMv",
    "injectCampaignPeriod",
)

DEFAULT_TARGET_STORES_CONFIG: dict[str, Any] = {
    "labelKeys": [],
    "filterKeys": [PREFECTURE_FILTER_KEY],
    "pageSize": 10,
    "columnConfig": {},
}

DEFAULT_PROJECT_META: dict[str, Any] = {
    "projectName": "キャンペーンLP",
    "templateType": "coupon",
    "version": "1.0",
}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Action:
    """
    One edit request from the host. The reducer reads only `type` and `payload`.
    """

    id: str
    timestamp: str  # ISO 8601 UTC
    type: str
    payload: dict[str, Any]
    source: str = "editor"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "payload": self.payload,
            "source": self.source,
        }


@dataclass
class History:
    """
    Undo/redo stacks of whole-project snapshots.

    Snapshots are deep copies taken at push time and are never mutated
    afterwards, so new History values share them freely.
    """

    undo_stack: list[dict[str, Any]] = field(default_factory=list)
    redo_stack: list[dict[str, Any]] = field(default_factory=list)
    max_size: int = 100


@dataclass
class EditorState:
    """
    Everything one editing session owns: the live project, its history,
    the selection pointer and the editor-level status fields.
    """

    project: dict[str, Any]
    history: History = field(default_factory=History)
    selection: Selection = field(default_factory=Selection)
    save_status: str = "idle"
    save_status_message: str | None = None
    has_user_edits: bool = False
    preview_font_scale: float = 1.0
    brand_presets: list[dict[str, Any]] = field(default_factory=list)

    @property
    def can_undo(self) -> bool:
        return len(self.history.undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.history.redo_stack) > 0


@dataclass
class Warning:
    """A non-fatal issue encountered during reduction."""

    code: str
    message: str
    details: dict[str, Any] | None = None


@dataclass
class ReduceResult:
    """
    Result of applying one action to an editor state.
    The reducer never throws: it always returns one of these.
    """

    state: EditorState
    applied: bool
    warnings: list[Warning] = field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def new_id(prefix: str) -> str:
    """Fresh opaque id such as ``line_3f9c2a1b0d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def coerce_number(value: Any, fallback: float) -> float:
    """
    Read a number out of loosely-typed input.
    Numeric strings are parsed; booleans, NaN, infinities and garbage give `fallback`.
    """
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int | float):
        try:
            finite = math.isfinite(value)
        except OverflowError:
            return fallback
        return value if finite else fallback
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return fallback
        if not math.isfinite(parsed):
            return fallback
        return int(parsed) if parsed.is_integer() else parsed
    return fallback


def clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return min(high, max(low, value))


def clamp_number(value: Any, fallback: float, bounds: tuple[float, float]) -> float:
    return clamp(coerce_number(value, fallback), bounds)
