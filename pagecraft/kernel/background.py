"""
Pagecraft Kernel: Background Specs

Page, main-visual and section backgrounds are tagged dicts keyed by `type`.
This module repairs them into a canonical shape and resolves `preset`
references against whatever catalog the host supplies.

Preset resolution is a graph walk: presets may point at other presets,
and user-authored data can make that chain loop. The walk keeps a visited
set and a hard depth cap, and returns the fallback instead of recursing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pagecraft.kernel.types import (
    BACKGROUND_TYPES,
    OPACITY_RANGE,
    clamp_number,
    coerce_number,
)

logger = logging.getLogger(__name__)

MAX_PRESET_DEPTH = 3
MAX_LAYER_DEPTH = 4

BLEND_MODES: tuple[str, ...] = ("normal", "multiply", "screen", "overlay")

PresetLookup = Callable[[str], dict[str, Any] | None]


def is_background_spec(value: Any) -> bool:
    return isinstance(value, dict) and value.get("type") in BACKGROUND_TYPES


def _str(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _optional_numbers(raw: dict, out: dict, keys: tuple[str, ...]) -> None:
    for key in keys:
        if key in raw:
            value = coerce_number(raw[key], None)
            if value is not None:
                out[key] = value


def normalize_background_spec(spec: Any, *, _depth: int = 0) -> dict[str, Any] | None:
    """
    Canonical copy of a background spec, or None when `spec` is not one.
    Nested layer lists deeper than MAX_LAYER_DEPTH are dropped.
    """
    if not is_background_spec(spec):
        return None

    kind = spec["type"]

    if kind == "solid":
        return {"type": "solid", "color": _str(spec.get("color"), "#ffffff")}

    if kind == "gradient":
        stops = []
        for stop in _list(spec.get("stops")):
            if isinstance(stop, dict) and isinstance(stop.get("color"), str):
                stops.append({
                    "color": stop["color"],
                    "pos": clamp_number(stop.get("pos"), 0, (0, 100)),
                })
        if not stops:
            stops = [{"color": "#ffffff", "pos": 0}, {"color": "#f1f1f1", "pos": 100}]
        return {
            "type": "gradient",
            "angle": coerce_number(spec.get("angle"), 180),
            "stops": stops,
        }

    if kind == "pattern":
        return {
            "type": "pattern",
            "patternId": _str(spec.get("patternId"), "dots"),
            "foreground": _str(spec.get("foreground"), "#111111"),
            "background": _str(spec.get("background"), "#ffffff"),
            "size": clamp_number(spec.get("size"), 24, (4, 400)),
            "opacity": clamp_number(spec.get("opacity"), 1, OPACITY_RANGE),
        }

    if kind == "layers":
        layers: list[dict[str, Any]] = []
        if _depth < MAX_LAYER_DEPTH:
            for layer in _list(spec.get("layers")):
                normalized = normalize_background_spec(layer, _depth=_depth + 1)
                if normalized is not None:
                    layers.append(normalized)
        result: dict[str, Any] = {"type": "layers", "layers": layers}
        if isinstance(spec.get("backgroundColor"), str):
            result["backgroundColor"] = spec["backgroundColor"]
        return result

    if kind == "image":
        result = {
            "type": "image",
            "assetId": _str(spec.get("assetId"), ""),
            "repeat": _str(spec.get("repeat"), "no-repeat"),
            "size": _str(spec.get("size"), "cover"),
            "position": _str(spec.get("position"), "center"),
            "attachment": _str(spec.get("attachment"), "scroll"),
            "opacity": clamp_number(spec.get("opacity"), 1, OPACITY_RANGE),
        }
        _optional_numbers(spec, result, ("blur", "brightness", "saturation"))
        if isinstance(spec.get("overlayColor"), str):
            result["overlayColor"] = spec["overlayColor"]
        if "overlayOpacity" in spec:
            result["overlayOpacity"] = clamp_number(spec["overlayOpacity"], 0, OPACITY_RANGE)
        if spec.get("overlayBlendMode") in BLEND_MODES:
            result["overlayBlendMode"] = spec["overlayBlendMode"]
        return result

    if kind == "video":
        result = {"type": "video", "assetId": _str(spec.get("assetId"), "")}
        if isinstance(spec.get("overlayColor"), str):
            result["overlayColor"] = spec["overlayColor"]
        if "opacity" in spec:
            result["opacity"] = clamp_number(spec["opacity"], 1, OPACITY_RANGE)
        _optional_numbers(spec, result, ("blur", "brightness", "saturation"))
        for flag in ("autoPlay", "loop", "muted", "playsInline"):
            if isinstance(spec.get(flag), bool):
                result[flag] = spec[flag]
        return result

    # preset
    result = {"type": "preset", "presetId": _str(spec.get("presetId"), "")}
    if isinstance(spec.get("overrides"), dict):
        result["overrides"] = dict(spec["overrides"])
    return result


def resolve_background(
    spec: dict[str, Any],
    lookup: PresetLookup,
    *,
    fallback: dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    """
    Follow `preset` references until a concrete spec is reached.

    `lookup(preset_id)` returns the preset's spec or None. Overrides on a
    reference are layered over the resolved spec when the types agree and
    replace it when they don't. Cycles, chains deeper than MAX_PRESET_DEPTH
    and dangling references without typed overrides all yield `fallback`.
    """
    resolved = _resolve(spec, lookup, 0, frozenset())
    return resolved if resolved is not None else fallback


def _resolve(
    spec: dict[str, Any],
    lookup: PresetLookup,
    depth: int,
    seen: frozenset[str],
) -> dict[str, Any] | None:
    if spec.get("type") != "preset":
        return spec
    if depth > MAX_PRESET_DEPTH:
        logger.debug("background preset chain exceeded depth %d", MAX_PRESET_DEPTH)
        return None
    preset_id = spec.get("presetId")
    if not isinstance(preset_id, str):
        return None
    if preset_id in seen:
        logger.debug("background preset cycle at %r", preset_id)
        return None

    overrides = spec.get("overrides")
    if not isinstance(overrides, dict):
        overrides = {}
    typed_overrides = is_background_spec(overrides)

    preset = lookup(preset_id)
    if preset is None:
        return dict(overrides) if typed_overrides else None

    base = _resolve(preset, lookup, depth + 1, seen | {preset_id})
    if base is None:
        return None
    if typed_overrides and overrides["type"] != base.get("type"):
        return dict(overrides)
    return {**base, **overrides}
