from __future__ import annotations

import json
from pathlib import Path

import pytest

from dragboard.models import (
    Arrangement,
    ContainerRef,
    InvariantViolation,
    ItemRef,
    check_invariants,
    check_transition,
)


def _read_fixture(name: str) -> str:
    return (Path(__file__).parent / "fixtures" / name).read_text(encoding="utf-8")


def test_locate_keeps_item_and_container_namespaces_apart() -> None:
    # An item that shares its id with a container.
    arrangement = Arrangement.build({"inbox": ["done"], "done": []})

    assert arrangement.locate(ItemRef("done")) == ("inbox", 0)
    assert arrangement.locate(ContainerRef("done")) == ("done", None)
    assert arrangement.locate(ItemRef("missing")) is None
    assert arrangement.locate(ContainerRef("missing")) is None


def test_order_falls_back_to_mapping_order(board: Arrangement) -> None:
    unordered = Arrangement.build({"b": ["x"], "a": ["y"]})

    assert board.order == ("todo", "done")
    assert unordered.order == ("b", "a")
    assert unordered.item_ids() == ["x", "y"]


def test_with_sequences_returns_new_value(board: Arrangement) -> None:
    moved = board.with_sequences({"done": ["d1", "t3"], "todo": ["t1", "t2"]})

    assert board.sequence("todo") == ("t1", "t2", "t3")
    assert moved.sequence("done") == ("d1", "t3")
    assert moved.container_order == board.container_order


def test_with_sequences_rejects_unknown_container(board: Arrangement) -> None:
    with pytest.raises(InvariantViolation, match="Unknown containers"):
        board.with_sequences({"archive": ["t1"]})


def test_from_snapshot_reads_fixture() -> None:
    arrangement = Arrangement.from_snapshot(json.loads(_read_fixture("board_snapshot.json")))

    assert arrangement.sequence("done") == ("t2", "t1")
    assert arrangement.sequence("todo") == ()
    assert arrangement.order == ("todo", "done")
    assert arrangement.items["t1"] == {"content": "Write tests"}
    assert arrangement.containers["done"].meta == {"title": "Done"}
    assert arrangement.to_snapshot() == json.loads(_read_fixture("board_snapshot.json"))


@pytest.mark.parametrize(
    "blob",
    [
        [],
        {},
        {"containers": []},
        {"containers": {"todo": "t1"}},
        {"containers": {"todo": [1, 2]}},
        {"containers": {"todo": []}, "containerOrder": "todo"},
        {"containers": {"todo": []}, "items": []},
        {"containers": {"todo": []}, "containerMeta": {"todo": "To Do"}},
    ],
)
def test_from_snapshot_rejects_shape_mismatch(blob: object) -> None:
    with pytest.raises(ValueError):
        Arrangement.from_snapshot(blob)


def test_check_invariants_accepts_valid_board(board: Arrangement) -> None:
    check_invariants(board)


@pytest.mark.parametrize(
    "sequences,items,order,match",
    [
        ({"a": ["x", "x"]}, {}, [], "twice"),
        ({"a": ["x"], "b": ["x"]}, {}, [], "in both"),
        ({"a": ["x"]}, {"x": 1, "y": 2}, [], "orphaned"),
        ({"a": ["x", "z"]}, {"x": 1}, [], "phantom"),
        ({"a": [], "b": []}, {}, ["a"], "Container order"),
        ({"a": [], "b": []}, {}, ["a", "a", "b"], "Container order"),
    ],
)
def test_check_invariants_rejects(
    sequences: dict[str, list[str]], items: dict[str, int], order: list[str], match: str
) -> None:
    arrangement = Arrangement.build(sequences, items=items, container_order=order)

    with pytest.raises(InvariantViolation, match=match):
        check_invariants(arrangement)


def test_check_transition_rejects_dropped_item(board: Arrangement) -> None:
    dropped = board.with_sequences({"todo": ["t1", "t2"]})

    with pytest.raises(InvariantViolation, match="Item set changed"):
        check_transition(board, dropped)


def test_invariant_violation_is_an_assertion() -> None:
    assert issubclass(InvariantViolation, AssertionError)
