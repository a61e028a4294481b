from __future__ import annotations

import pytest

from dragboard.geometry import Candidate, Rect
from dragboard.models import Arrangement, ContainerRef, ItemRef

COLUMN_WIDTH = 200.0
COLUMN_GAP = 100.0
ROW_HEIGHT = 40.0
ROW_GAP = 10.0


def container_rect(column: int) -> Rect:
    return Rect(column * (COLUMN_WIDTH + COLUMN_GAP), 0.0, COLUMN_WIDTH, 400.0)


def item_rect(column: int, row: int) -> Rect:
    """Item slot ``row`` of ``column``: 10px inset, 40px tall, 10px apart."""

    return Rect(
        column * (COLUMN_WIDTH + COLUMN_GAP) + 10.0,
        10.0 + row * (ROW_HEIGHT + ROW_GAP),
        COLUMN_WIDTH - 20.0,
        ROW_HEIGHT,
    )


def layout(arrangement: Arrangement) -> list[Candidate]:
    """Candidates as a renderer would lay out ``arrangement``: items first, then columns."""

    candidates: list[Candidate] = []
    for column, cid in enumerate(arrangement.order):
        for row, iid in enumerate(arrangement.sequence(cid)):
            candidates.append(Candidate(ItemRef(iid), item_rect(column, row), cid))
    for column, cid in enumerate(arrangement.order):
        candidates.append(Candidate(ContainerRef(cid), container_rect(column), cid))
    return candidates


@pytest.fixture
def board() -> Arrangement:
    return Arrangement.build(
        {"todo": ["t1", "t2", "t3"], "done": ["d1"]},
        container_order=["todo", "done"],
    )
