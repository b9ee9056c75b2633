"""
Pagecraft Kernel: Editor Session

One Editor per open document. It owns the current EditorState and threads it
through the pure reducer: validate -> reduce -> keep the new state -> notify.

The reducer never raises; the editor only raises from `require`, for hosts
that prefer exceptions over inspecting a ReduceResult.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable
from typing import Any

from pagecraft.kernel.actions import make_action
from pagecraft.kernel.models import Selection
from pagecraft.kernel.reducer import initial_state, reduce
from pagecraft.kernel.types import ACTION_TYPES, Action, EditorState, ReduceResult
from pagecraft.kernel.validation import validate_action

logger = logging.getLogger(__name__)

Listener = Callable[[EditorState, Action], None]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UnknownActionError(Exception):
    """Action type is not part of the editor vocabulary."""


class ActionRejected(Exception):
    """Action was refused (locked section, invalid payload)."""

    def __init__(self, action: Action, error: str) -> None:
        super().__init__(f"{action.type}: {error}")
        self.action = action
        self.error = error


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Editor:
    """
    Editing session for one project.

    `project` may be any loosely-shaped dict (it is normalized); None starts
    from the default project. `max_history` overrides settings.MAX_HISTORY.
    """

    def __init__(self, project: dict[str, Any] | None = None, *, max_history: int | None = None) -> None:
        self._state = initial_state(project, max_history=max_history)
        self._listeners: list[Listener] = []

    # -- read side ----------------------------------------------------------

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def project(self) -> dict[str, Any]:
        return self._state.project

    @property
    def selection(self) -> Selection:
        return self._state.selection

    @property
    def can_undo(self) -> bool:
        return self._state.can_undo

    @property
    def can_redo(self) -> bool:
        return self._state.can_redo

    def export(self) -> dict[str, Any]:
        """Deep copy of the canonical project for the persistence collaborator."""
        return copy.deepcopy(self._state.project)

    # -- listeners ----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener(state, action)` after every committed document change.
        Returns an unsubscribe function.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- write side ---------------------------------------------------------

    def dispatch(self, action: Action | str, payload: dict[str, Any] | None = None) -> ReduceResult:
        """
        Validate and apply one action. Never raises.
        Accepts a ready Action or an action type plus payload.
        """
        if not isinstance(action, Action):
            action = make_action(action, payload)

        errors = validate_action(action.type, action.payload)
        if errors:
            code = "UNKNOWN_ACTION" if action.type not in ACTION_TYPES else "INVALID"
            logger.warning("editor: rejected %s: %s", action.type, "; ".join(errors))
            return ReduceResult(state=self._state, applied=False, error=f"{code}: {'; '.join(errors)}")

        previous = self._state
        result = reduce(previous, action)
        self._state = result.state

        if result.error:
            logger.info("editor: %s not applied: %s", action.type, result.error)
        elif not result.applied:
            logger.debug("editor: %s was a no-op (%s)", action.type, result.warnings[0].code)

        if result.applied and result.state.project is not previous.project:
            logger.debug(
                "editor: committed %s (undo=%d redo=%d)",
                action.type,
                len(result.state.history.undo_stack),
                len(result.state.history.redo_stack),
            )
            for listener in list(self._listeners):
                listener(result.state, action)

        return result

    def dispatch_many(self, actions: Iterable[Action | tuple[str, dict[str, Any]]]) -> list[ReduceResult]:
        """Apply actions in order. Refused actions are skipped, the rest still apply."""
        results: list[ReduceResult] = []
        for entry in actions:
            if isinstance(entry, Action):
                results.append(self.dispatch(entry))
            else:
                results.append(self.dispatch(*entry))
        return results

    def require(self, action: Action | str, payload: dict[str, Any] | None = None) -> ReduceResult:
        """
        Strict dispatch: raises UnknownActionError for an unknown type and
        ActionRejected when the action is refused. Silent no-ops still return.
        """
        if not isinstance(action, Action):
            action = make_action(action, payload)
        if action.type not in ACTION_TYPES:
            raise UnknownActionError(action.type)
        result = self.dispatch(action)
        if result.error:
            raise ActionRejected(action, result.error)
        return result

    # -- conveniences -------------------------------------------------------

    def load(self, project: dict[str, Any]) -> ReduceResult:
        return self.dispatch("project.load", {"project": project})

    def undo(self) -> ReduceResult:
        return self.dispatch("history.undo")

    def redo(self) -> ReduceResult:
        return self.dispatch("history.redo")
