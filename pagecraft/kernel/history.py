"""
Pagecraft Kernel: History

Bounded undo/redo over whole-project snapshots. All functions are pure:
they return a new History and never touch the stacks of the one passed in.

Snapshots are deep copies taken on the way in, and restored documents are
deep copies taken on the way out, so neither the live document nor anything
a caller holds on to ever aliases a stored snapshot.
"""

from __future__ import annotations

import copy
from dataclasses import replace
from typing import Any

from pagecraft.kernel.types import History


def _bounded(stack: list[dict[str, Any]], entry: dict[str, Any], max_size: int) -> list[dict[str, Any]]:
    """Append `entry`, evicting from the front past `max_size`."""
    if max_size <= 0:
        return []
    return [*stack, entry][-max_size:]


def push(history: History, project: dict[str, Any]) -> History:
    """
    Record `project` (the document before an edit) as an undo point.
    Any new edit invalidates the redo future.
    """
    return replace(
        history,
        undo_stack=_bounded(history.undo_stack, copy.deepcopy(project), history.max_size),
        redo_stack=[],
    )


def undo(history: History, current: dict[str, Any]) -> tuple[History, dict[str, Any]] | None:
    """(new history, restored document), or None when there is nothing to undo."""
    if not history.undo_stack:
        return None
    *rest, previous = history.undo_stack
    return (
        replace(
            history,
            undo_stack=rest,
            redo_stack=_bounded(history.redo_stack, copy.deepcopy(current), history.max_size),
        ),
        copy.deepcopy(previous),
    )


def redo(history: History, current: dict[str, Any]) -> tuple[History, dict[str, Any]] | None:
    if not history.redo_stack:
        return None
    *rest, following = history.redo_stack
    return (
        replace(
            history,
            undo_stack=_bounded(history.undo_stack, copy.deepcopy(current), history.max_size),
            redo_stack=rest,
        ),
        copy.deepcopy(following),
    )


def clear(history: History) -> History:
    return replace(history, undo_stack=[], redo_stack=[])
