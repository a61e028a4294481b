from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .config import EngineConfig
from .diff import diff_arrangements
from .geometry import Candidate, Rect
from .keyboard import KeyCommand
from .models import Arrangement, check_invariants
from .moves import add_item, remove_item
from .session import (
    Cancel,
    DropTarget,
    Event,
    KeyStep,
    MoveOver,
    Phase,
    PickUp,
    Release,
    SessionState,
    Settle,
    start,
    transition,
)
from .store import AsyncSnapshotWriter, BlobStore, JsonFileStore, MemoryStore, SnapshotAdapter

logger = logging.getLogger(__name__)


class EngineBusy(RuntimeError):
    """Raised when an operation needs an idle engine but a drag is in progress."""


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of a release or an explicit add/remove.

    ``token`` is the save token when a save was written or queued, ``None``
    when nothing changed or the save was dropped (not hydrated yet).
    """

    changed: bool
    changes: list[object] = field(default_factory=list)
    token: int | None = None
    diagnostic: str | None = None


class DragEngine:
    """Drag-reorder engine for one arrangement.

    Wires the session state machine to snapshot persistence. Gesture calls
    (``pick_up``, ``move_over``, ``key``) never touch storage; each committed
    change triggers exactly one save of the full arrangement.
    """

    def __init__(
        self,
        seed: Arrangement,
        *,
        config: EngineConfig | None = None,
        snapshots: SnapshotAdapter | None = None,
        writer: AsyncSnapshotWriter | None = None,
    ) -> None:
        check_invariants(seed)
        self._seed = seed
        self._config = config or EngineConfig()
        self._snapshots = writer.adapter if writer is not None else snapshots
        self._writer = writer
        self._state = start(seed, self._config)
        self._revision = 0

    @classmethod
    def open(
        cls,
        seed: Arrangement,
        *,
        config: EngineConfig | None = None,
        store: BlobStore | None = None,
    ) -> "DragEngine":
        """Build an engine and hydrate it synchronously.

        Without an explicit ``store`` a :class:`JsonFileStore` is used when
        ``config.snapshot_dir`` is set, a :class:`MemoryStore` otherwise.
        """

        config = config or EngineConfig()
        if store is None:
            store = JsonFileStore(config.snapshot_dir) if config.snapshot_dir else MemoryStore()
        engine = cls(seed, config=config, snapshots=SnapshotAdapter(store, namespace=config.namespace))
        engine.hydrate()
        return engine

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def arrangement(self) -> Arrangement:
        """What to render: the working copy during a drag, else the committed arrangement."""

        return self._state.arrangement

    @property
    def committed(self) -> Arrangement:
        return self._state.committed

    @property
    def active_item(self) -> str | None:
        return self._state.active_item

    @property
    def revision(self) -> int:
        """Number of committed changes (including resets) in this session."""

        return self._revision

    @property
    def hydrated(self) -> bool:
        return self._snapshots is None or self._snapshots.hydrated

    def hydrate(self) -> bool:
        """Load the stored snapshot and adopt it if the user has not acted yet.

        Returns:
            Whether a stored arrangement was adopted.
        """

        if self._snapshots is None:
            return False
        return self._adopt(self._snapshots.load())

    async def hydrate_async(self) -> bool:
        """Like :meth:`hydrate`, with the blocking load run in a worker thread."""

        if self._snapshots is None:
            return False
        return self._adopt(await asyncio.to_thread(self._snapshots.load))

    def _adopt(self, loaded: Arrangement | None) -> bool:
        if loaded is None:
            return False
        if self._revision or self._state.phase is not Phase.IDLE:
            logger.info("Kept in-session arrangement over late snapshot %r", self._config.namespace)
            return False
        self._state = start(loaded, self._config)
        logger.info("Restored arrangement from snapshot %r", self._config.namespace)
        return True

    def _apply(self, event: Event) -> SessionState:
        self._state = transition(self._state, event)
        return self._state

    def pick_up(self, item_id: str, rect: Rect | None = None) -> bool:
        """Start dragging ``item_id``. Returns whether a drag started."""

        return self._apply(PickUp(item_id, rect)).phase is Phase.ACTIVE

    def move_over(self, rect: Rect, candidates: Sequence[Candidate] = ()) -> DropTarget | None:
        """Feed a pointer position; returns the current drop target."""

        state = self._apply(MoveOver(rect, tuple(candidates)))
        return state.drag.target if state.drag is not None else None

    def key(self, command: KeyCommand | str) -> DropTarget | None:
        """Feed a keyboard step; returns the current drop target."""

        state = self._apply(KeyStep(command))
        return state.drag.target if state.drag is not None else None

    def release(self) -> CommitResult:
        state = self._apply(Release())
        if state.phase is not Phase.COMMITTING:
            return CommitResult(changed=False)

        try:
            if state.changed and state.previous is not None:
                return self._commit(state.previous, state.committed, state.diagnostic)
            if state.diagnostic:
                logger.warning("Release of %r rejected: %s", state.active_item, state.diagnostic)
            return CommitResult(changed=False, diagnostic=state.diagnostic)
        finally:
            self._apply(Settle())

    def cancel(self) -> None:
        """Abandon the drag and restore the pre-drag arrangement. Never touches storage."""

        if self._apply(Cancel()).phase is Phase.CANCELLED:
            self._apply(Settle())

    def reset(self) -> None:
        """Drop any drag, clear the stored snapshot and return to the seed."""

        self.cancel()
        if self._snapshots is not None:
            self._snapshots.clear()
        self._state = start(self._seed, self._config)
        self._revision += 1
        logger.info("Reset %r to seed", self._config.namespace)

    def add_item(
        self,
        container_id: str,
        item_id: str,
        payload: Any = None,
        *,
        index: int | None = None,
    ) -> CommitResult:
        self._require_idle()
        previous = self._state.committed
        return self._replace(previous, add_item(previous, container_id, item_id, payload, index=index))

    def remove_item(self, item_id: str) -> CommitResult:
        self._require_idle()
        previous = self._state.committed
        return self._replace(previous, remove_item(previous, item_id))

    def _require_idle(self) -> None:
        if self._state.phase is not Phase.IDLE:
            raise EngineBusy(f"Drag of {self._state.active_item!r} in progress")

    def _replace(self, previous: Arrangement, current: Arrangement) -> CommitResult:
        check_invariants(current)
        self._state = start(current, self._config)
        return self._commit(previous, current)

    def _commit(self, previous: Arrangement, current: Arrangement, diagnostic: str | None = None) -> CommitResult:
        self._revision += 1
        changes = diff_arrangements(previous, current)
        try:
            token = self._persist(current)
        except (OSError, TypeError, ValueError) as exc:
            # The commit stands in memory; only the save is lost.
            logger.exception("Could not save revision %s of %r", self._revision, self._config.namespace)
            token, diagnostic = None, f"Save failed: {exc}"
        logger.info("Committed revision %s of %r (%s changes)", self._revision, self._config.namespace, len(changes))
        return CommitResult(changed=True, changes=changes, token=token, diagnostic=diagnostic)

    def _persist(self, arrangement: Arrangement) -> int | None:
        """Save or queue ``arrangement``.

        Raises:
            OSError: If a synchronous write fails.
            TypeError: If a payload is not JSON serializable.
        """

        if self._writer is not None:
            return self._writer.submit(arrangement)
        if self._snapshots is not None:
            return self._snapshots.save(arrangement)
        return None
