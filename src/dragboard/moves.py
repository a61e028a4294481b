from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from enum import Enum
from typing import Any

from .geometry import Rect
from .models import Arrangement, ContainerRef, InvariantViolation, Ref


class Axis(str, Enum):
    """Main axis along which a container lays out its items."""

    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"

    @classmethod
    def from_any(cls, value: "str | Axis") -> "Axis":
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown axis: {value!r}") from None


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def reorder(sequence: Sequence[str], from_index: int, to_index: int) -> list[str]:
    """Move the element at ``from_index`` to ``to_index``.

    Intervening elements shift by one. Negative indices are not accepted.

    Raises:
        IndexError: If either index is out of bounds for ``sequence``.
    """

    size = len(sequence)
    for name, index in (("from_index", from_index), ("to_index", to_index)):
        if not 0 <= index < size:
            raise IndexError(f"{name} {index} out of range for sequence of length {size}")

    out = list(sequence)
    if from_index == to_index:
        return out
    out.insert(to_index, out.pop(from_index))
    return out


def relocate(
    source: Sequence[str],
    target: Sequence[str],
    item_id: str,
    target_index: int,
) -> tuple[list[str], list[str]]:
    """Move ``item_id`` from ``source`` into ``target`` at ``target_index``.

    The index is clamped to ``[0, len(target)]``. When ``source`` and
    ``target`` are the same sequence the move is a reorder, with the index
    interpreted against the sequence without ``item_id``.

    Raises:
        InvariantViolation: If ``item_id`` is missing from ``source`` or
            already present in a distinct ``target``.
    """

    if item_id not in source:
        raise InvariantViolation(f"Item {item_id!r} is not in the source sequence")

    if source is target:
        from_index = source.index(item_id)
        reordered = reorder(source, from_index, _clamp(target_index, 0, len(source) - 1))
        return reordered, list(reordered)

    if item_id in target:
        raise InvariantViolation(f"Item {item_id!r} is already in the target sequence")

    new_source = [iid for iid in source if iid != item_id]
    new_target = list(target)
    new_target.insert(_clamp(target_index, 0, len(new_target)), item_id)
    return new_source, new_target


def move_item(
    arrangement: Arrangement,
    item_id: str,
    container_id: str,
    index: int,
    *,
    strict: bool = True,
) -> Arrangement:
    """Place ``item_id`` at ``index`` of ``container_id``.

    Dispatches to :func:`reorder` when the item already lives in
    ``container_id`` and to :func:`relocate` otherwise.

    Args:
        strict: When false, an out-of-range same-container index is clamped
            instead of raising ``IndexError``.

    Raises:
        InvariantViolation: If the item or container is unknown.
        IndexError: On an out-of-range same-container index in strict mode.
    """

    source_id = arrangement.container_of(item_id)
    if source_id is None:
        raise InvariantViolation(f"Item {item_id!r} is not placed in any container")
    if container_id not in arrangement.containers:
        raise InvariantViolation(f"Unknown container: {container_id!r}")

    source = arrangement.sequence(source_id)
    if source_id == container_id:
        if not strict:
            index = _clamp(index, 0, len(source) - 1)
        return arrangement.with_sequences(
            {source_id: reorder(source, source.index(item_id), index)}
        )

    new_source, new_target = relocate(source, arrangement.sequence(container_id), item_id, index)
    return arrangement.with_sequences({source_id: new_source, container_id: new_target})


def is_past(dragged: Rect, sibling: Rect, axis: Axis = Axis.VERTICAL) -> bool:
    """True when the dragged rect's leading edge is beyond the sibling's trailing edge."""

    if axis is Axis.HORIZONTAL:
        return dragged.left > sibling.right
    return dragged.top > sibling.bottom


def derive_target_index(
    arrangement: Arrangement,
    item_id: str,
    target: Ref,
    *,
    dragged: Rect | None = None,
    target_rect: Rect | None = None,
    axis: Axis = Axis.VERTICAL,
) -> tuple[str, int] | None:
    """Turn a resolved drop target into ``(container_id, index)``.

    Over a sibling in the same container the sibling's index is used as-is.
    Over an item in another container the index moves one further when the
    dragged rect has passed the sibling ("insert after"). Over a container
    the item goes to the end of it.

    Returns ``None`` for references that do not exist in ``arrangement``.
    """

    placed = arrangement.locate(target)
    current = arrangement.container_of(item_id)
    if placed is None or current is None:
        return None

    container_id, index = placed
    if isinstance(target, ContainerRef) or index is None:
        size = len(arrangement.sequence(container_id))
        return container_id, size - 1 if container_id == current else size

    if container_id != current and dragged is not None and target_rect is not None:
        if is_past(dragged, target_rect, axis):
            index += 1
    return container_id, index


def add_item(
    arrangement: Arrangement,
    container_id: str,
    item_id: str,
    payload: Any = None,
    *,
    index: int | None = None,
) -> Arrangement:
    """Insert a new item, appending unless ``index`` is given.

    Raises:
        ValueError: If the container is unknown, the id is already in use,
            or a payload is given for an arrangement without a payload table.
    """

    if container_id not in arrangement.containers:
        raise ValueError(f"Unknown container: {container_id!r}")
    if item_id in arrangement.items or arrangement.container_of(item_id) is not None:
        raise ValueError(f"Item id already in use: {item_id!r}")

    has_items = bool(arrangement.item_ids())
    if payload is not None and has_items and not arrangement.items:
        raise ValueError("Arrangement has no payload table; cannot attach a payload")

    sequence = list(arrangement.sequence(container_id))
    position = len(sequence) if index is None else _clamp(index, 0, len(sequence))
    sequence.insert(position, item_id)

    moved = arrangement.with_sequences({container_id: sequence})
    if arrangement.items or not has_items and payload is not None:
        items = dict(arrangement.items)
        items[item_id] = payload
        moved = replace(moved, items=items)
    return moved


def remove_item(arrangement: Arrangement, item_id: str) -> Arrangement:
    """Remove an item and its payload.

    Raises:
        ValueError: If the item is unknown.
    """

    container_id = arrangement.container_of(item_id)
    if container_id is None:
        raise ValueError(f"Unknown item: {item_id!r}")

    sequence = [iid for iid in arrangement.sequence(container_id) if iid != item_id]
    moved = arrangement.with_sequences({container_id: sequence})
    if item_id in arrangement.items:
        items = {k: v for k, v in arrangement.items.items() if k != item_id}
        moved = replace(moved, items=items)
    return moved
