from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from pathlib import Path

import pytest

from dragboard.models import Arrangement
from dragboard.store import (
    AsyncSnapshotWriter,
    JsonFileStore,
    MemoryStore,
    SnapshotAdapter,
    SnapshotCorrupt,
    decode_snapshot,
    encode_snapshot,
)


def _read_fixture(name: str) -> str:
    return (Path(__file__).parent / "fixtures" / name).read_text(encoding="utf-8")


def _hydrated(store: MemoryStore, namespace: str = "board") -> SnapshotAdapter:
    adapter = SnapshotAdapter(store, namespace=namespace)
    adapter.load()
    return adapter


def test_json_file_store_round_trips_blobs(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path / "snapshots")

    assert store.get("board") is None

    store.put("board", '{"containers": {}}')
    assert store.path_for("board") == tmp_path / "snapshots" / "board.json"
    assert store.get("board") == '{"containers": {}}'
    assert not (tmp_path / "snapshots" / "board.json.tmp").exists()

    store.delete("board")
    store.delete("board")
    assert store.get("board") is None


def test_load_restores_valid_snapshot() -> None:
    adapter = SnapshotAdapter(MemoryStore({"board": _read_fixture("board_snapshot.json")}), namespace="board")

    assert not adapter.hydrated
    arrangement = adapter.load()

    assert adapter.hydrated
    assert arrangement is not None
    assert arrangement.sequence("done") == ("t2", "t1")


def test_load_without_snapshot_returns_none() -> None:
    adapter = SnapshotAdapter(MemoryStore(), namespace="board")

    assert adapter.load() is None
    assert adapter.hydrated


@pytest.mark.parametrize("fixture", ["truncated.json", "duplicated_item.json"])
def test_load_treats_corrupt_snapshot_as_absent(fixture: str, caplog: pytest.LogCaptureFixture) -> None:
    adapter = SnapshotAdapter(MemoryStore({"board": _read_fixture(fixture)}), namespace="board")

    with caplog.at_level(logging.WARNING, logger="dragboard.store"):
        assert adapter.load() is None

    assert adapter.hydrated
    assert "corrupt snapshot" in caplog.text


def test_decode_snapshot_raises_snapshot_corrupt() -> None:
    with pytest.raises(SnapshotCorrupt):
        decode_snapshot(_read_fixture("duplicated_item.json"))


def test_load_survives_read_errors(tmp_path: Path) -> None:
    # A directory where the file should be makes read_text fail.
    (tmp_path / "board.json").mkdir()
    adapter = SnapshotAdapter(JsonFileStore(tmp_path), namespace="board")

    assert adapter.load() is None
    assert adapter.hydrated


def test_save_before_load_is_dropped(board: Arrangement) -> None:
    store = MemoryStore({"board": "previous"})
    adapter = SnapshotAdapter(store, namespace="board")

    assert adapter.save(board) is None
    assert store.blobs == {"board": "previous"}


def test_save_writes_full_arrangement(board: Arrangement) -> None:
    store = MemoryStore()
    adapter = _hydrated(store)

    assert adapter.save(board) == 1
    assert json.loads(store.blobs["board"]) == board.to_snapshot()
    assert decode_snapshot(store.blobs["board"]) == board


def test_stale_write_is_dropped(board: Arrangement) -> None:
    store = MemoryStore()
    adapter = _hydrated(store)
    older = adapter.issue_token()
    newer = adapter.issue_token()
    latest = board.with_sequences({"done": ["d1", "t3"], "todo": ["t1", "t2"]})

    assert adapter.write(latest, newer)
    assert not adapter.write(board, older)
    assert store.blobs["board"] == encode_snapshot(latest)


def test_clear_deletes_blob_and_invalidates_pending_writes(board: Arrangement) -> None:
    store = MemoryStore()
    adapter = _hydrated(store)
    adapter.save(board)
    pending = adapter.issue_token()

    adapter.clear()

    assert "board" not in store.blobs
    assert not adapter.write(board, pending)
    assert "board" not in store.blobs
    assert adapter.save(board) is not None


def test_async_writer_writes_in_submission_order(board: Arrangement) -> None:
    store = MemoryStore()
    adapter = _hydrated(store)
    second = board.with_sequences({"todo": ["t2", "t1", "t3"]})
    third = board.with_sequences({"todo": ["t3", "t2", "t1"]})

    async def scenario() -> list[int]:
        async with AsyncSnapshotWriter(adapter) as writer:
            tokens = [writer.submit(a) for a in (board, second, third)]
            await writer.drain()
            assert tokens == [1, 2, 3]
            return writer.written

    assert asyncio.run(scenario()) == [1, 2, 3]
    assert store.blobs["board"] == encode_snapshot(third)


def test_async_writer_drops_saves_submitted_before_hydration(board: Arrangement) -> None:
    store = MemoryStore({"board": "previous"})
    adapter = SnapshotAdapter(store, namespace="board")

    async def scenario() -> int | None:
        async with AsyncSnapshotWriter(adapter) as writer:
            token = writer.submit(board)
            await asyncio.to_thread(adapter.load)
            await writer.drain()
            return token

    assert asyncio.run(scenario()) is None
    assert store.blobs == {"board": "previous"}


def test_load_treats_non_utf8_file_as_absent(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "board.json").write_bytes(b'{"containers": {"todo": ["\xff"]}}')
    adapter = SnapshotAdapter(JsonFileStore(tmp_path), namespace="board")

    with caplog.at_level(logging.WARNING, logger="dragboard.store"):
        assert adapter.load() is None

    assert adapter.hydrated
    assert "corrupt snapshot" in caplog.text


@pytest.mark.parametrize("namespace", ["", ".", "..", "../escape", "nested/board", "nested\\board"])
def test_json_file_store_rejects_namespaces_outside_directory(tmp_path: Path, namespace: str) -> None:
    store = JsonFileStore(tmp_path / "snapshots")

    with pytest.raises(ValueError, match="Invalid snapshot namespace"):
        store.put(namespace, "{}")
    assert not (tmp_path / "escape.json").exists()


def test_async_writer_rejects_unserializable_arrangement_and_keeps_going() -> None:
    store = MemoryStore()
    adapter = _hydrated(store)
    bad = Arrangement.build({"list": ["a"]}, items={"a": {"due": date(2024, 1, 1)}})
    good = Arrangement.build({"list": ["a"]}, items={"a": {"due": "2024-01-01"}})

    async def scenario() -> tuple[int | None, list[int]]:
        async with AsyncSnapshotWriter(adapter) as writer:
            with pytest.raises(TypeError):
                writer.submit(bad)
            token = writer.submit(good)
            await writer.drain()
            return token, writer.written

    token, written = asyncio.run(scenario())

    assert token == 1
    assert written == [1]
    assert decode_snapshot(store.blobs["board"]) == good


class _FlakyStore(MemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.failures = 1

    def put(self, key: str, blob: str) -> None:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("backend offline")
        super().put(key, blob)


def test_async_writer_survives_unexpected_write_errors(board: Arrangement) -> None:
    store = _FlakyStore()
    adapter = _hydrated(store)
    later = board.with_sequences({"todo": ["t3", "t2", "t1"]})

    async def scenario() -> list[int]:
        async with AsyncSnapshotWriter(adapter) as writer:
            writer.submit(board)
            writer.submit(later)
            await writer.drain()
            return writer.written

    assert asyncio.run(scenario()) == [2]
    assert store.blobs["board"] == encode_snapshot(later)
