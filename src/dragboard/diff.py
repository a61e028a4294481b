from __future__ import annotations

from .events import ContainerReordered, ItemAdded, ItemMoved, ItemRemoved
from .models import Arrangement


def _placements(arrangement: Arrangement) -> dict[str, tuple[str, int]]:
    return {
        iid: (cid, index)
        for cid, container in arrangement.containers.items()
        for index, iid in enumerate(container.item_ids)
    }


def diff_arrangements(previous: Arrangement, current: Arrangement) -> list[object]:
    """Diff two arrangements.

    Args:
        previous: The arrangement before a commit.
        current: The arrangement after it.

    Returns:
        A list of change events: removals, additions, container changes, then
        reorders. Each group is sorted by id so the output is deterministic.
    """

    events: list[object] = []

    prev = _placements(previous)
    curr = _placements(current)
    prev_ids = set(prev)
    curr_ids = set(curr)

    for iid in sorted(prev_ids - curr_ids):
        events.append(ItemRemoved(item_id=iid, container_id=prev[iid][0]))

    for iid in sorted(curr_ids - prev_ids):
        events.append(ItemAdded(item_id=iid, container_id=curr[iid][0]))

    for iid in sorted(prev_ids & curr_ids):
        old_cid = prev[iid][0]
        new_cid, new_index = curr[iid]
        if old_cid != new_cid:
            events.append(ItemMoved(item_id=iid, old=old_cid, new=new_cid, index=new_index))

    for cid in sorted(set(previous.containers) & set(current.containers)):
        old_seq = previous.sequence(cid)
        new_seq = current.sequence(cid)
        if old_seq != new_seq and set(old_seq) == set(new_seq):
            events.append(ContainerReordered(container_id=cid, old=old_seq, new=new_seq))

    return events
