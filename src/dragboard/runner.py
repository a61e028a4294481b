from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .diff import diff_arrangements
from .session import Cancel, Event, Release, SessionState, Settle, transition


@dataclass(frozen=True, slots=True)
class PlayResult:
    state: SessionState
    commits: int = 0
    changes: list[object] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)


def play(state: SessionState, events: Iterable[Event]) -> PlayResult:
    """Fold gesture events through the session (events -> transitions -> diff).

    Every release or cancel is settled immediately, so the returned state is
    IDLE unless the stream ends mid-gesture. Useful for replaying recorded
    gestures and for tests.
    """

    commits = 0
    changes: list[object] = []
    diagnostics: list[str] = []
    for event in events:
        state = transition(state, event)
        if state.diagnostic:
            diagnostics.append(state.diagnostic)
        if isinstance(event, (Release, Cancel)):
            if state.changed and state.previous is not None:
                commits += 1
                changes.extend(diff_arrangements(state.previous, state.committed))
            state = transition(state, Settle())
    return PlayResult(state=state, commits=commits, changes=changes, diagnostics=diagnostics)
