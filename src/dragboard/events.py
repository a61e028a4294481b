from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ItemAdded:
    item_id: str
    container_id: str


@dataclass(frozen=True, slots=True)
class ItemRemoved:
    item_id: str
    container_id: str


@dataclass(frozen=True, slots=True)
class ItemMoved:
    """An item changed container."""

    item_id: str
    old: str
    new: str
    index: int


@dataclass(frozen=True, slots=True)
class ContainerReordered:
    """Same items, new order.

    Containers that gained or lost items are reported through the item events
    instead.
    """

    container_id: str
    old: tuple[str, ...]
    new: tuple[str, ...]
