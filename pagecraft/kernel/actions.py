"""
Pagecraft Kernel: Action Construction

Factory for well-formed actions. Used by the editor session to wrap host
requests before they reach the reducer, and by tests to build actions concisely.
"""

from __future__ import annotations

from typing import Any

from pagecraft.kernel.types import Action, new_id, now_iso


def make_action(
    type: str,
    payload: dict[str, Any] | None = None,
    *,
    source: str = "editor",
    timestamp: str | None = None,
    action_id: str | None = None,
) -> Action:
    """Build an Action from a type and an optional payload."""
    return Action(
        id=action_id or new_id("act"),
        timestamp=timestamp or now_iso(),
        type=type,
        payload={} if payload is None else payload,
        source=source,
    )


def action_from_dict(raw: dict[str, Any]) -> Action:
    """Inverse of `Action.to_dict`; missing metadata is filled in."""
    return make_action(
        raw["type"],
        raw.get("payload"),
        source=raw.get("source", "editor"),
        timestamp=raw.get("timestamp"),
        action_id=raw.get("id"),
    )
