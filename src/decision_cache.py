# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import collections
import contextlib
import copy
import json
import os
import time
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Optional, TypedDict, cast

from typing_extensions import TypeAlias

from src.constants import DECISION_CACHE_FILE
from src.exceptions import DecisionCacheError


class DecisionEntry(TypedDict, total=False):
    decision: str
    firstSeen: int
    lastSeen: int
    infoHash: str


Decisions: TypeAlias = dict[str, dict[str, DecisionEntry]]


def now_ms() -> int:
    return int(time.time() * 1000)


async def _read_json_file(path: str) -> Any:
    content = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    return json.loads(content)


def _replace_file(path: str, content: str) -> None:
    tmp_path = f"{path}.tmp"
    Path(tmp_path).write_text(content, encoding="utf-8")
    os.replace(tmp_path, path)


async def _write_json_file(path: str, data: Any, indent: int = 4) -> None:
    content = json.dumps(data, indent=indent)
    await asyncio.to_thread(_replace_file, path, content)


class DecisionCache:
    """
    Last decision reached for every (searchee name, candidate guid) pair.

    The whole store lives in memory and is written back to a single JSON
    document after every mutation. Mutations go through `transaction()`, which
    holds the store lock, so there is only ever one writer. Entries are created
    or updated, never deleted.

    Usage:
        cache = DecisionCache(cache_dir)
        await cache.open()
        async with cache.transaction() as decisions:
            decisions.setdefault(name, {})[guid] = entry
        await cache.close()
    """

    def __init__(self, cache_dir: str) -> None:
        self.cache_dir = cache_dir
        self.path = os.path.join(cache_dir, DECISION_CACHE_FILE)
        self._data: dict[str, Any] = {"decisions": {}}
        self._is_open = False
        self._lock = asyncio.Lock()
        # held by the assessor for the whole assessment of one key
        self._key_locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._key_lock_users: collections.Counter[tuple[str, str]] = collections.Counter()

    async def __aenter__(self) -> "DecisionCache":
        await self.open()
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._is_open

    async def open(self) -> None:
        if self._is_open:
            return
        try:
            await asyncio.to_thread(os.makedirs, self.cache_dir, exist_ok=True)
            if os.path.exists(self.path):
                data = await _read_json_file(self.path)
            else:
                data = {"decisions": {}}
        except (OSError, json.JSONDecodeError) as e:
            raise DecisionCacheError(f"Could not load decision cache {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(cast(dict[str, Any], data).get("decisions", {}), dict):
            raise DecisionCacheError(f"Decision cache {self.path} is not a valid cache document")

        self._data = cast(dict[str, Any], data)
        self._data.setdefault("decisions", {})
        self._is_open = True

    async def close(self) -> None:
        if not self._is_open:
            return
        await self.flush()
        self._is_open = False

    @property
    def decisions(self) -> Decisions:
        self._ensure_open()
        return cast(Decisions, self._data["decisions"])

    def get(self, searchee_name: str, guid: str) -> Optional[DecisionEntry]:
        """Return a copy of the stored entry, or None."""
        entry = self.decisions.get(searchee_name, {}).get(guid)
        if not isinstance(entry, dict):
            return None
        return cast(DecisionEntry, dict(entry))

    @contextlib.asynccontextmanager
    async def key_lock(self, searchee_name: str, guid: str) -> AsyncIterator[None]:
        """Serialize work on one (searchee, guid) pair. The lock is dropped once nobody holds or awaits it."""
        key = (searchee_name, guid)
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        self._key_lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._key_lock_users[key] -= 1
            if self._key_lock_users[key] <= 0:
                del self._key_lock_users[key]
                del self._key_locks[key]

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[Decisions]:
        """
        Mutate the store and make the change durable before returning.

        On any failure, including a failed flush, the in-memory store is
        restored to its state before the transaction and the error re-raised.
        """
        self._ensure_open()
        async with self._lock:
            snapshot = copy.deepcopy(self._data)
            try:
                yield cast(Decisions, self._data["decisions"])
                await self._flush()
            except BaseException:
                self._data = snapshot
                raise

    async def put(self, searchee_name: str, guid: str, entry: DecisionEntry) -> None:
        async with self.transaction() as decisions:
            decisions.setdefault(searchee_name, {})[guid] = entry

    async def flush(self) -> None:
        self._ensure_open()
        async with self._lock:
            await self._flush()

    async def _flush(self) -> None:
        try:
            await _write_json_file(self.path, self._data)
        except (OSError, TypeError, ValueError) as e:
            raise DecisionCacheError(f"Could not write decision cache {self.path}: {e}") from e

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise DecisionCacheError("Decision cache is not open")
