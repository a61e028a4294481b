"""Keyboard stepping for an item that has been picked up.

Discrete commands move the dragged item one slot at a time, or across to the
neighbouring container in display order.
"""

from __future__ import annotations

from enum import Enum

from .models import Arrangement


class KeyCommand(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    HOME = "home"
    END = "end"


_ALIASES: dict[str, KeyCommand] = {
    "up": KeyCommand.UP,
    "arrowup": KeyCommand.UP,
    "down": KeyCommand.DOWN,
    "arrowdown": KeyCommand.DOWN,
    "left": KeyCommand.LEFT,
    "arrowleft": KeyCommand.LEFT,
    "right": KeyCommand.RIGHT,
    "arrowright": KeyCommand.RIGHT,
    "home": KeyCommand.HOME,
    "ctrl+home": KeyCommand.HOME,
    "top": KeyCommand.HOME,
    "end": KeyCommand.END,
    "ctrl+end": KeyCommand.END,
    "bottom": KeyCommand.END,
}


def interpret_key_command(command: str | KeyCommand) -> KeyCommand | None:
    """Map a key name (``ArrowUp``, ``ctrl+home``, ...) to a command.

    Unknown keys return ``None``.
    """

    if isinstance(command, KeyCommand):
        return command
    return _ALIASES.get(command.strip().lower())


def step(arrangement: Arrangement, item_id: str, command: KeyCommand) -> tuple[str, int] | None:
    """Destination ``(container_id, index)`` for one keyboard step.

    Returns ``None`` when the step would leave the item where it is (top of
    the list, last container, unknown item).
    """

    container_id = arrangement.container_of(item_id)
    if container_id is None:
        return None
    sequence = arrangement.sequence(container_id)
    index = sequence.index(item_id)
    last = len(sequence) - 1

    if command in (KeyCommand.UP, KeyCommand.DOWN, KeyCommand.HOME, KeyCommand.END):
        new_index = {
            KeyCommand.UP: index - 1,
            KeyCommand.DOWN: index + 1,
            KeyCommand.HOME: 0,
            KeyCommand.END: last,
        }[command]
        if new_index == index or not 0 <= new_index <= last:
            return None
        return container_id, new_index

    order = arrangement.order
    position = order.index(container_id) + (1 if command is KeyCommand.RIGHT else -1)
    if not 0 <= position < len(order):
        return None
    neighbour = order[position]
    # Keep the row when possible.
    return neighbour, min(index, len(arrangement.sequence(neighbour)))
