from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Union


class InvariantViolation(AssertionError):
    """Raised when an arrangement breaks its structural invariants.

    This signals a programming defect (an id in two containers, an id that
    vanished), not a user error. Callers must refuse the offending state
    rather than try to repair it.
    """


@dataclass(frozen=True, slots=True)
class ItemRef:
    """Reference to an item, by item id."""

    id: str


@dataclass(frozen=True, slots=True)
class ContainerRef:
    """Reference to a whole container, by container id."""

    id: str


Ref = Union[ItemRef, ContainerRef]


@dataclass(frozen=True, slots=True)
class Container:
    """An ordered sequence of item ids.

    Notes:
        ``meta`` is opaque to the engine (titles, labels, colours) and is only
        carried through snapshots.
    """

    id: str
    item_ids: tuple[str, ...] = ()
    meta: Mapping[str, Any] = field(default_factory=dict)

    def with_items(self, item_ids: Iterable[str]) -> "Container":
        return replace(self, item_ids=tuple(item_ids))


@dataclass(frozen=True, slots=True)
class Arrangement:
    """The full state: containers, their order and the shared payload table.

    Arrangements are values. Every operation in :mod:`dragboard.moves`
    returns a new instance and leaves its input untouched.
    """

    containers: Mapping[str, Container]
    container_order: tuple[str, ...] = ()
    items: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        sequences: Mapping[str, Iterable[str]],
        *,
        items: Mapping[str, Any] | None = None,
        container_order: Iterable[str] = (),
        meta: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> "Arrangement":
        """Convenience constructor from plain ``{container_id: [item ids]}``."""

        meta = meta or {}
        containers = {
            cid: Container(id=cid, item_ids=tuple(ids), meta=dict(meta.get(cid, {})))
            for cid, ids in sequences.items()
        }
        return cls(
            containers=containers,
            container_order=tuple(container_order),
            items=dict(items or {}),
        )

    @property
    def order(self) -> tuple[str, ...]:
        """Container ids in display order."""

        return self.container_order or tuple(self.containers)

    def sequence(self, container_id: str) -> tuple[str, ...]:
        return self.containers[container_id].item_ids

    def sequences(self) -> dict[str, tuple[str, ...]]:
        return {cid: c.item_ids for cid, c in self.containers.items()}

    def item_ids(self) -> list[str]:
        """All item ids, container by container in display order."""

        return [iid for cid in self.order for iid in self.containers[cid].item_ids]

    def known_items(self) -> set[str]:
        if self.items:
            return set(self.items)
        return set(self.item_ids())

    def container_of(self, item_id: str) -> str | None:
        for cid in self.order:
            if item_id in self.containers[cid].item_ids:
                return cid
        return None

    def locate(self, ref: Ref) -> tuple[str, int | None] | None:
        """Resolve a reference to ``(container_id, index)``.

        Item references yield the item's current index; container references
        yield ``None`` as the index. Unknown references yield ``None``.
        """

        if isinstance(ref, ContainerRef):
            return (ref.id, None) if ref.id in self.containers else None
        cid = self.container_of(ref.id)
        if cid is None:
            return None
        return cid, self.containers[cid].item_ids.index(ref.id)

    def with_sequences(self, updates: Mapping[str, Iterable[str]]) -> "Arrangement":
        """Return a copy with the given container sequences replaced.

        Raises:
            InvariantViolation: If ``updates`` names an unknown container.
        """

        unknown = set(updates) - set(self.containers)
        if unknown:
            raise InvariantViolation(f"Unknown containers: {sorted(unknown)!r}")
        containers = dict(self.containers)
        for cid, ids in updates.items():
            containers[cid] = containers[cid].with_items(ids)
        return replace(self, containers=containers)

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict."""

        return {
            "containers": {cid: list(c.item_ids) for cid, c in self.containers.items()},
            "containerOrder": list(self.container_order),
            "items": dict(self.items),
            "containerMeta": {cid: dict(c.meta) for cid, c in self.containers.items() if c.meta},
        }

    @classmethod
    def from_snapshot(cls, blob: Any) -> "Arrangement":
        """Parse a serialized arrangement.

        Raises:
            ValueError: If the blob does not have the expected shape.
        """

        if not isinstance(blob, Mapping):
            raise ValueError("Snapshot must be an object")
        raw_containers = blob.get("containers")
        if not isinstance(raw_containers, Mapping):
            raise ValueError("Snapshot is missing 'containers'")

        sequences: dict[str, list[str]] = {}
        for cid, ids in raw_containers.items():
            if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
                raise ValueError(f"Container {cid!r} must be a list of item ids")
            sequences[str(cid)] = ids

        order = blob.get("containerOrder", [])
        items = blob.get("items", {})
        meta = blob.get("containerMeta", {})
        if not isinstance(order, list) or not all(isinstance(c, str) for c in order):
            raise ValueError("'containerOrder' must be a list of container ids")
        if not isinstance(items, Mapping):
            raise ValueError("'items' must be an object")
        if not isinstance(meta, Mapping) or not all(isinstance(m, Mapping) for m in meta.values()):
            raise ValueError("'containerMeta' must map container ids to objects")

        return cls.build(sequences, items=items, container_order=order, meta=meta)


def check_invariants(arrangement: Arrangement) -> None:
    """Verify the structural invariants of a single arrangement.

    Raises:
        InvariantViolation: On duplicate ids, ids in two containers, ids
            missing from or unknown to the payload table, or a container
            order that does not name every container once.
    """

    seen: dict[str, str] = {}
    for cid, container in arrangement.containers.items():
        if container.id != cid:
            raise InvariantViolation(f"Container keyed {cid!r} has id {container.id!r}")
        for iid in container.item_ids:
            if iid in seen:
                where = "twice in" if seen[iid] == cid else f"in both {seen[iid]!r} and"
                raise InvariantViolation(f"Item {iid!r} appears {where} {cid!r}")
            seen[iid] = cid

    if arrangement.items:
        placed = set(seen)
        known = set(arrangement.items)
        if placed != known:
            raise InvariantViolation(
                f"Placed items differ from known items "
                f"(orphaned={sorted(known - placed)!r}, phantom={sorted(placed - known)!r})"
            )

    if arrangement.container_order:
        order = arrangement.container_order
        if len(set(order)) != len(order) or set(order) != set(arrangement.containers):
            raise InvariantViolation(f"Container order {list(order)!r} does not match containers")


def check_transition(before: Arrangement, after: Arrangement) -> None:
    """Verify that ``after`` is a valid rearrangement of ``before``.

    Same container ids, same item set, and ``after`` valid on its own.
    """

    check_invariants(after)
    if set(before.containers) != set(after.containers):
        raise InvariantViolation("Container ids changed during a move")
    if set(before.item_ids()) != set(after.item_ids()):
        raise InvariantViolation("Item set changed during a move")
