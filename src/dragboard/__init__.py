"""dragboard core.

This package defines the arrangement model, collision resolution, the move
executor, the drag session state machine and snapshot persistence for
drag-to-reorder lists, grids and multi-container boards.
"""

from .config import EngineConfig
from .diff import diff_arrangements
from .engine import CommitResult, DragEngine, EngineBusy
from .events import ContainerReordered, ItemAdded, ItemMoved, ItemRemoved
from .geometry import Candidate, CollisionStrategy, Rect, resolve
from .keyboard import KeyCommand
from .models import Arrangement, Container, ContainerRef, InvariantViolation, ItemRef
from .moves import Axis, move_item, relocate, reorder
from .presets import PRESETS, Preset, get_preset
from .runner import play
from .session import Cancel, KeyStep, MoveOver, PickUp, Release, Settle, transition
from .store import AsyncSnapshotWriter, JsonFileStore, MemoryStore, SnapshotAdapter, SnapshotCorrupt

__all__ = [
    "Arrangement",
    "AsyncSnapshotWriter",
    "Axis",
    "Cancel",
    "Candidate",
    "CollisionStrategy",
    "CommitResult",
    "Container",
    "ContainerRef",
    "ContainerReordered",
    "DragEngine",
    "EngineBusy",
    "EngineConfig",
    "InvariantViolation",
    "ItemAdded",
    "ItemMoved",
    "ItemRef",
    "ItemRemoved",
    "JsonFileStore",
    "KeyCommand",
    "KeyStep",
    "MemoryStore",
    "MoveOver",
    "PRESETS",
    "PickUp",
    "Preset",
    "Rect",
    "Release",
    "Settle",
    "SnapshotAdapter",
    "SnapshotCorrupt",
    "diff_arrangements",
    "get_preset",
    "move_item",
    "play",
    "relocate",
    "reorder",
    "resolve",
    "transition",
]
