"""
The session state machine.

transition() is pure: it takes the current state and one event and returns
the next state plus the effects the session program must carry out. It never
performs I/O itself.
"""

from dataclasses import replace
from typing import List, Tuple

from leaderboard.session.events import (
    Effect, Event, Jump, Navigate, Quit, Refreshed, RefreshFailed, Resize, Tick, ToggleFocus
)
from leaderboard.session.state import SessionState, clamp_selection

Transition = Tuple[SessionState, List[Effect]]


def transition(state: SessionState, event: Event) -> Transition:
    """Compute the next state and side effects for one event."""
    # Terminating is final
    if state.terminating:
        return state, []

    if isinstance(event, Tick):
        return state, [Effect.FETCH]

    if isinstance(event, Refreshed):
        # Whole-snapshot swap; the selection keeps its position
        return replace(
            state,
            snapshot=event.snapshot,
            selected=clamp_selection(state.selected, len(event.snapshot)),
            stale=False,
            last_error=None
        ), [Effect.REARM, Effect.RENDER]

    if isinstance(event, RefreshFailed):
        return replace(state, stale=True, last_error=event.reason), [Effect.REARM, Effect.RENDER]

    if isinstance(event, Navigate):
        if not state.focused or state.selected is None:
            return state, [Effect.RENDER]
        selected = clamp_selection(state.selected + event.delta, len(state.snapshot))
        return replace(state, selected=selected), [Effect.RENDER]

    if isinstance(event, Jump):
        if not state.focused or state.selected is None:
            return state, [Effect.RENDER]
        selected = len(state.snapshot) - 1 if event.to_last else 0
        return replace(state, selected=selected), [Effect.RENDER]

    if isinstance(event, ToggleFocus):
        focused = (not state.focused) if event.focused is None else event.focused
        return replace(state, focused=focused), [Effect.RENDER]

    if isinstance(event, Resize):
        return replace(state, width=max(event.width, 1), height=max(event.height, 1)), [Effect.RENDER]

    if isinstance(event, Quit):
        return replace(state, terminating=True), [Effect.CANCEL_TIMER, Effect.CLOSE]

    raise TypeError(f"Unknown session event: {event!r}")
