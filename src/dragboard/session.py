"""Drag session state machine.

A session moves through ``IDLE -> ACTIVE -> COMMITTING | CANCELLED -> IDLE``.
:func:`transition` is a pure function from ``(state, event)`` to the next
state; nothing here touches storage.

While ACTIVE the session holds two arrangements: ``committed`` (the source of
truth, unchanged during the gesture) and ``working`` (the speculative copy the
renderer shows). Release promotes ``working``; cancel discards it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from .config import EngineConfig
from .geometry import Candidate, Rect, closest, moved_distance
from .keyboard import KeyCommand, interpret_key_command, step
from .models import Arrangement, InvariantViolation, ItemRef, check_transition
from .moves import derive_target_index, move_item

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class PickUp:
    """Seize an item. ``rect`` is ``None`` for keyboard pick-up."""

    item_id: str
    rect: Rect | None = None


@dataclass(frozen=True, slots=True)
class MoveOver:
    rect: Rect
    candidates: Sequence[Candidate] = ()


@dataclass(frozen=True, slots=True)
class KeyStep:
    command: KeyCommand | str


@dataclass(frozen=True, slots=True)
class Release:
    pass


@dataclass(frozen=True, slots=True)
class Cancel:
    pass


@dataclass(frozen=True, slots=True)
class Settle:
    """Return to IDLE once the commit or rollback has been observed."""


Event = Union[PickUp, MoveOver, KeyStep, Release, Cancel, Settle]


@dataclass(frozen=True, slots=True)
class DropTarget:
    container_id: str
    index: int


@dataclass(frozen=True, slots=True)
class Drag:
    item_id: str
    source_container: str
    source_index: int
    origin: Rect | None = None
    rect: Rect | None = None
    activated: bool = False
    target: DropTarget | None = None


@dataclass(frozen=True, slots=True)
class SessionState:
    committed: Arrangement
    phase: Phase = Phase.IDLE
    working: Arrangement | None = None
    drag: Drag | None = None
    previous: Arrangement | None = None
    diagnostic: str | None = None
    config: EngineConfig = field(default_factory=EngineConfig)

    @property
    def arrangement(self) -> Arrangement:
        """What the renderer should show right now."""

        return self.working if self.working is not None else self.committed

    @property
    def active_item(self) -> str | None:
        return self.drag.item_id if self.drag is not None else None

    @property
    def changed(self) -> bool:
        """True on COMMITTING when the release produced a new arrangement."""

        return self.previous is not None and self.previous != self.committed


def _place(
    state: SessionState,
    arrangement: Arrangement,
    item_id: str,
    container_id: str,
    index: int,
) -> tuple[Arrangement, str | None]:
    """Apply one move to ``arrangement``, returning it and any clamp diagnostic.

    Raises:
        InvariantViolation: If the move would break the arrangement.
    """

    config = state.config
    diagnostic = None
    if arrangement.container_of(item_id) == container_id and not config.strict:
        size = len(arrangement.sequence(container_id))
        if not 0 <= index < size:
            diagnostic = f"Clamped index {index} for {container_id!r} (length {size})"
            logger.warning(diagnostic)

    moved = move_item(arrangement, item_id, container_id, index, strict=config.strict)
    check_transition(arrangement, moved)
    return moved, diagnostic


def _pick_up(state: SessionState, event: PickUp) -> SessionState:
    if state.phase is not Phase.IDLE:
        return state
    placed = state.committed.locate(ItemRef(event.item_id))
    if placed is None:
        return replace(state, diagnostic=f"Unknown item: {event.item_id!r}")

    container_id, index = placed
    activated = event.rect is None or state.config.activation_distance <= 0
    logger.debug("Picked up %r from %r[%s]", event.item_id, container_id, index)
    return replace(
        state,
        phase=Phase.ACTIVE,
        working=state.committed,
        drag=Drag(
            item_id=event.item_id,
            source_container=container_id,
            source_index=index or 0,
            origin=event.rect,
            rect=event.rect,
            activated=activated,
        ),
        previous=None,
        diagnostic=None,
    )


def _move_over(state: SessionState, event: MoveOver) -> SessionState:
    if state.phase is not Phase.ACTIVE or state.drag is None or state.working is None:
        return state
    drag = replace(state.drag, rect=event.rect)
    config = state.config

    if not drag.activated:
        if drag.origin is not None and moved_distance(drag.origin, event.rect) < config.activation_distance:
            return replace(state, drag=drag)
        drag = replace(drag, activated=True)

    best = closest(event.rect, event.candidates, config.strategy)
    placement = None
    if best is not None:
        placement = derive_target_index(
            state.working,
            drag.item_id,
            best.ref,
            dragged=event.rect,
            target_rect=best.rect,
            axis=config.axis,
        )
    if placement is None:
        return replace(state, drag=replace(drag, target=None))

    container_id, index = placement
    working = state.working
    diagnostic = None
    if container_id != working.container_of(drag.item_id):
        try:
            working, diagnostic = _place(state, working, drag.item_id, container_id, index)
        except InvariantViolation as exc:
            logger.warning("Rejected speculative move of %r: %s", drag.item_id, exc)
            return replace(state, drag=replace(drag, target=None), diagnostic=str(exc))
        index = working.sequence(container_id).index(drag.item_id)
        logger.debug("Speculatively moved %r to %r[%s]", drag.item_id, container_id, index)

    return replace(
        state,
        working=working,
        drag=replace(drag, target=DropTarget(container_id, index)),
        diagnostic=diagnostic,
    )


def _key_step(state: SessionState, event: KeyStep) -> SessionState:
    if state.phase is not Phase.ACTIVE or state.drag is None or state.working is None:
        return state
    drag = replace(state.drag, activated=True)
    command = interpret_key_command(event.command)
    destination = step(state.working, drag.item_id, command) if command is not None else None
    if destination is None:
        return replace(state, drag=drag)

    container_id, index = destination
    try:
        working, diagnostic = _place(state, state.working, drag.item_id, container_id, index)
    except InvariantViolation as exc:
        logger.warning("Rejected keyboard move of %r: %s", drag.item_id, exc)
        return replace(state, drag=drag, diagnostic=str(exc))

    index = working.sequence(container_id).index(drag.item_id)
    return replace(
        state,
        working=working,
        drag=replace(drag, target=DropTarget(container_id, index)),
        diagnostic=diagnostic,
    )


def _release(state: SessionState) -> SessionState:
    if state.phase is not Phase.ACTIVE or state.drag is None or state.working is None:
        return state
    drag = state.drag

    if not drag.activated:
        # Never became a drag: nothing to commit.
        return replace(state, phase=Phase.COMMITTING, working=None, previous=state.committed)

    working = state.working
    diagnostic = None
    try:
        if drag.target is not None:
            target = drag.target
            working, diagnostic = _place(state, working, drag.item_id, target.container_id, target.index)
        check_transition(state.committed, working)
    except InvariantViolation as exc:
        logger.warning("Refused commit of %r: %s", drag.item_id, exc)
        return replace(
            state,
            phase=Phase.COMMITTING,
            working=None,
            previous=state.committed,
            diagnostic=str(exc),
        )

    logger.debug("Released %r at %r", drag.item_id, drag.target)
    return replace(
        state,
        phase=Phase.COMMITTING,
        committed=working,
        working=None,
        previous=state.committed,
        diagnostic=diagnostic,
    )


def _cancel(state: SessionState) -> SessionState:
    if state.phase is not Phase.ACTIVE:
        return state
    logger.debug("Cancelled drag of %r", state.active_item)
    return replace(state, phase=Phase.CANCELLED, working=None, previous=state.committed)


def _settle(state: SessionState) -> SessionState:
    if state.phase not in (Phase.COMMITTING, Phase.CANCELLED):
        return state
    return replace(state, phase=Phase.IDLE, working=None, drag=None, previous=None, diagnostic=None)


def transition(state: SessionState, event: Event) -> SessionState:
    """Apply one gesture event.

    Events that do not apply to the current phase return ``state`` unchanged.

    Raises:
        IndexError: On an out-of-range same-container index when
            ``state.config.strict`` is set.
    """

    if isinstance(event, PickUp):
        return _pick_up(state, event)
    if isinstance(event, MoveOver):
        return _move_over(state, event)
    if isinstance(event, KeyStep):
        return _key_step(state, event)
    if isinstance(event, Release):
        return _release(state)
    if isinstance(event, Cancel):
        return _cancel(state)
    if isinstance(event, Settle):
        return _settle(state)
    raise TypeError(f"Unknown session event: {event!r}")


def start(arrangement: Arrangement, config: EngineConfig | None = None) -> SessionState:
    """Idle session over ``arrangement``."""

    return SessionState(committed=arrangement, config=config or EngineConfig())
