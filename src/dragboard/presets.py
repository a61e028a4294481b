"""Seed arrangements and settings for the common use cases.

Each preset pairs a seed factory with an :class:`EngineConfig`: plain lists
and grids sort by closest center, boards with droppable containers use
closest corners and a small activation distance.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .config import EngineConfig
from .geometry import CollisionStrategy
from .models import Arrangement
from .moves import Axis


def list_sorting_seed() -> Arrangement:
    items = {
        "1": {"title": "Complete project proposal", "completed": True},
        "2": {"title": "Review UI designs", "completed": False},
        "3": {"title": "Implement auth", "completed": False},
        "4": {"title": "Write unit tests", "completed": False},
        "5": {"title": "Deploy", "completed": False},
        "6": {"title": "Gather feedback", "completed": False},
    }
    return Arrangement.build({"list": list(items)}, items=items)


def gallery_seed() -> Arrangement:
    items = {
        f"photo-{n}": {"title": title}
        for n, title in enumerate(
            ["Mountains", "Forest", "Lake", "Desert", "Coast", "City", "Canyon", "Meadow"],
            start=1,
        )
    }
    return Arrangement.build({"gallery": list(items)}, items=items)


def board_seed() -> Arrangement:
    items = {
        "task-1": {"content": "Research drag and drop libraries"},
        "task-2": {"content": "Implement basic board"},
        "task-3": {"content": "Add drag overlay"},
        "task-4": {"content": "Persist state"},
        "task-5": {"content": "Add keyboard accessibility"},
        "task-6": {"content": "Refine styling"},
    }
    return Arrangement.build(
        {
            "todo": ["task-4", "task-5", "task-6"],
            "doing": ["task-2", "task-3"],
            "done": ["task-1"],
        },
        items=items,
        container_order=["todo", "doing", "done"],
        meta={
            "todo": {"title": "To Do"},
            "doing": {"title": "In Progress"},
            "done": {"title": "Done"},
        },
    )


def tier_list_seed() -> Arrangement:
    names = ["burger", "pizza", "sushi", "taco", "pasta", "salad", "steak", "icecream", "cake", "donut"]
    tiers = ["S", "A", "B", "C", "D"]
    sequences: dict[str, list[str]] = {tier: [] for tier in tiers}
    sequences["unranked"] = list(names)
    return Arrangement.build(
        sequences,
        items={name: {"title": name.title()} for name in names},
        container_order=[*tiers, "unranked"],
        meta={tier: {"label": tier} for tier in tiers},
    )


def transfer_list_seed() -> Arrangement:
    items = {
        "react": {"label": "React"},
        "vue": {"label": "Vue"},
        "svelte": {"label": "Svelte"},
        "angular": {"label": "Angular"},
        "solid": {"label": "Solid"},
        "qwik": {"label": "Qwik"},
    }
    return Arrangement.build(
        {"available": list(items), "selected": []},
        items=items,
        container_order=["available", "selected"],
    )


@dataclass(frozen=True, slots=True)
class Preset:
    name: str
    seed: Callable[[], Arrangement]
    config: EngineConfig


_SORTABLE = dict(strategy=CollisionStrategy.CLOSEST_CENTER)
_BOARD = dict(strategy=CollisionStrategy.CLOSEST_CORNERS, activation_distance=5.0)

PRESETS: dict[str, Preset] = {
    preset.name: preset
    for preset in (
        Preset("list-sorting", list_sorting_seed, EngineConfig(namespace="dnd-list-sorting", **_SORTABLE)),
        Preset(
            "gallery",
            gallery_seed,
            EngineConfig(namespace="dnd-gallery", axis=Axis.HORIZONTAL, **_SORTABLE),
        ),
        Preset("trello-board", board_seed, EngineConfig(namespace="dnd-trello", **_BOARD)),
        Preset("kanban-board", board_seed, EngineConfig(namespace="dnd-kanban", **_BOARD)),
        Preset("tier-list", tier_list_seed, EngineConfig(namespace="dnd-tier-list", **_BOARD)),
        Preset(
            "transfer-list",
            transfer_list_seed,
            EngineConfig(namespace="dnd-transfer-list", strategy=CollisionStrategy.CLOSEST_CORNERS),
        ),
    )
}


def get_preset(name: str) -> Preset:
    """Look up a preset by name.

    Raises:
        ValueError: If no preset has that name.
    """

    try:
        return PRESETS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown preset: {name!r}") from None
