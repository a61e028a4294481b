from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .models import Ref


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle in screen coordinates (y grows downwards)."""

    left: float
    top: float
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.left + self.width / 2, self.top + self.height / 2)

    @property
    def corners(self) -> tuple[tuple[float, float], ...]:
        """Top-left, top-right, bottom-left, bottom-right."""

        return (
            (self.left, self.top),
            (self.right, self.top),
            (self.left, self.bottom),
            (self.right, self.bottom),
        )

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


@dataclass(frozen=True, slots=True)
class Candidate:
    """A potential drop target as laid out by the renderer.

    ``container_id`` is the renderer's view of where the target lives. The
    session always re-resolves placement against its own working copy.
    """

    ref: Ref
    rect: Rect
    container_id: str | None = None


class CollisionStrategy(str, Enum):
    CLOSEST_CENTER = "closest-center"
    CLOSEST_CORNERS = "closest-corners"

    @classmethod
    def from_any(cls, value: "str | CollisionStrategy") -> "CollisionStrategy":
        """Parse ``closest-center`` / ``closest_corners`` / ``CLOSEST_CENTER``.

        Raises:
            ValueError: If the strategy is not recognized.
        """

        if isinstance(value, cls):
            return value
        key = value.strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown collision strategy: {value!r}")


def _distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def center_distance(dragged: Rect, target: Rect) -> float:
    return _distance(dragged.center, target.center)


def corner_distance(dragged: Rect, target: Rect) -> float:
    return sum(_distance(a, b) for a, b in zip(dragged.corners, target.corners))


_METRICS = {
    CollisionStrategy.CLOSEST_CENTER: center_distance,
    CollisionStrategy.CLOSEST_CORNERS: corner_distance,
}


def closest(
    dragged: Rect,
    candidates: Sequence[Candidate],
    strategy: CollisionStrategy | str = CollisionStrategy.CLOSEST_CENTER,
) -> Candidate | None:
    """Return the best candidate under ``strategy``, or ``None`` if empty.

    Ties keep the earliest candidate. Zero-area rects are scored like any
    other rect.
    """

    metric = _METRICS[CollisionStrategy.from_any(strategy)]
    best: Candidate | None = None
    best_score = math.inf
    for candidate in candidates:
        score = metric(dragged, candidate.rect)
        # Strict comparison: first candidate wins ties, NaN never wins.
        if score < best_score:
            best, best_score = candidate, score
    return best


def resolve(
    dragged: Rect,
    candidates: Sequence[Candidate],
    strategy: CollisionStrategy | str = CollisionStrategy.CLOSEST_CENTER,
) -> Ref | None:
    """Resolve the drop target reference for ``dragged``."""

    best = closest(dragged, candidates, strategy)
    return best.ref if best is not None else None


def moved_distance(origin: Rect, current: Rect) -> float:
    """Distance travelled by the rect center since ``origin``."""

    return center_distance(origin, current)
