"""Snapshot persistence.

The medium is an opaque key-value blob store (:class:`BlobStore`). The
:class:`SnapshotAdapter` on top of it owns the two ordering rules:

* nothing is written until the first :meth:`SnapshotAdapter.load` has
  completed (hydration gate), so a default arrangement can never overwrite a
  snapshot that has not been read yet;
* writes carry increasing sequence tokens and a write older than the last one
  written is dropped (last write wins in commit order).
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Protocol

from .models import Arrangement, InvariantViolation, check_invariants

logger = logging.getLogger(__name__)


class SnapshotCorrupt(ValueError):
    """Raised when a stored blob cannot be decoded into a valid arrangement."""


def check_namespace(namespace: str) -> str:
    """Return ``namespace`` if it is usable as a single file name.

    Raises:
        ValueError: If it is empty, ``.``/``..`` or contains a path separator.
    """

    if not namespace or namespace in (".", "..") or "/" in namespace or "\\" in namespace:
        raise ValueError(f"Invalid snapshot namespace: {namespace!r}")
    return namespace


class BlobStore(Protocol):
    """Port interface for the persistence medium."""

    def get(self, key: str) -> str | None:
        """Return the blob stored under ``key``, or ``None``."""

    def put(self, key: str, blob: str) -> None:
        """Store ``blob`` under ``key``, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are not an error."""


class MemoryStore:
    """Dict-backed store, handy for tests and ephemeral sessions."""

    def __init__(self, blobs: dict[str, str] | None = None) -> None:
        self.blobs: dict[str, str] = dict(blobs or {})

    def get(self, key: str) -> str | None:
        return self.blobs.get(key)

    def put(self, key: str, blob: str) -> None:
        self.blobs[key] = blob

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


class JsonFileStore:
    """One ``<key>.json`` file per namespace under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def path_for(self, key: str) -> Path:
        """Path of the blob for ``key``.

        Raises:
            ValueError: If ``key`` would resolve outside ``directory``.
        """

        check_namespace(key)
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise SnapshotCorrupt(f"{path} is not UTF-8: {exc}") from exc

    def put(self, key: str, blob: str) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(blob, encoding="utf-8")
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def decode_snapshot(blob: str) -> Arrangement:
    """Parse and validate a stored blob.

    Raises:
        SnapshotCorrupt: If the blob is not JSON, has the wrong shape, or
            breaks the arrangement invariants.
    """

    try:
        arrangement = Arrangement.from_snapshot(json.loads(blob))
        check_invariants(arrangement)
    except (ValueError, InvariantViolation) as exc:
        raise SnapshotCorrupt(str(exc)) from exc
    return arrangement


def encode_snapshot(arrangement: Arrangement) -> str:
    return json.dumps(arrangement.to_snapshot(), indent=2, sort_keys=True) + "\n"


class SnapshotAdapter:
    """Loads, saves and clears the arrangement blob for one namespace."""

    def __init__(self, store: BlobStore, *, namespace: str) -> None:
        self._store = store
        self._namespace = namespace
        self._hydrated = False
        self._issued = 0
        self._written = 0
        self._lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def hydrated(self) -> bool:
        """True once :meth:`load` has completed, whatever its outcome."""

        return self._hydrated

    def load(self) -> Arrangement | None:
        """Return the stored arrangement, or ``None`` if absent or unusable.

        Corrupt snapshots and read errors are logged and treated as absent.
        """

        try:
            blob = self._store.get(self._namespace)
            if blob is None:
                logger.info("No snapshot stored under %r", self._namespace)
                return None
            arrangement = decode_snapshot(blob)
            logger.info("Loaded snapshot %r", self._namespace)
            return arrangement
        except SnapshotCorrupt as exc:
            logger.warning("Ignoring corrupt snapshot %r: %s", self._namespace, exc)
            return None
        except OSError as exc:
            logger.warning("Could not read snapshot %r: %s", self._namespace, exc)
            return None
        finally:
            self._hydrated = True

    def issue_token(self) -> int:
        self._issued += 1
        return self._issued

    def write(self, arrangement: Arrangement, token: int) -> bool:
        """Persist ``arrangement`` if ``token`` is the newest write so far.

        Returns:
            Whether the blob was written.

        Raises:
            TypeError: If a payload is not JSON serializable.
            OSError: If the store cannot be written.
        """

        return self.write_encoded(encode_snapshot(arrangement), token)

    def write_encoded(self, blob: str, token: int) -> bool:
        """Like :meth:`write`, for a blob already produced by :func:`encode_snapshot`."""

        with self._lock:
            if not self._hydrated:
                logger.warning("Dropped save #%s for %r: snapshot not loaded yet", token, self._namespace)
                return False
            if token <= self._written:
                logger.debug("Dropped stale save #%s for %r (last written #%s)", token, self._namespace, self._written)
                return False
            self._store.put(self._namespace, blob)
            self._written = token
            return True

    def save(self, arrangement: Arrangement) -> int | None:
        """Write synchronously. Returns the token written, or ``None`` if dropped."""

        token = self.issue_token()
        return token if self.write(arrangement, token) else None

    def clear(self) -> None:
        """Delete the blob and invalidate every write issued so far."""

        with self._lock:
            self._store.delete(self._namespace)
            self._written = self._issued
        logger.info("Cleared snapshot %r", self._namespace)


class AsyncSnapshotWriter:
    """Single-flight asyncio queue that performs saves in submission order.

    Blocking store I/O runs in a worker thread via :func:`asyncio.to_thread`;
    only one write is in flight at a time.
    """

    def __init__(self, adapter: SnapshotAdapter) -> None:
        self._adapter = adapter
        self._queue: asyncio.Queue[tuple[int, str]] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self.written: list[int] = []

    @property
    def adapter(self) -> SnapshotAdapter:
        return self._adapter

    def submit(self, arrangement: Arrangement) -> int | None:
        """Queue a save and return its token. Never blocks.

        Saves submitted before the adapter is hydrated are dropped here rather
        than when they reach the front of the queue. The arrangement is
        encoded here too, so an unserializable payload fails in the caller.

        Raises:
            TypeError: If a payload is not JSON serializable.
        """

        if not self._adapter.hydrated:
            logger.warning("Dropped save for %r: snapshot not loaded yet", self._adapter.namespace)
            return None
        blob = encode_snapshot(arrangement)
        token = self._adapter.issue_token()
        self._queue.put_nowait((token, blob))
        return token

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            token, blob = await self._queue.get()
            try:
                if await asyncio.to_thread(self._adapter.write_encoded, blob, token):
                    self.written.append(token)
            except Exception:
                # Keep serving the queue; drain() waits on every item.
                logger.exception("Failed to write snapshot #%s", token)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every submitted save has been handled."""

        await self._queue.join()

    async def close(self) -> None:
        await self.drain()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def __aenter__(self) -> "AsyncSnapshotWriter":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
