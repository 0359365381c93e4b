"""
Per-user persistence of acknowledged notification ids.

Read state is best-effort: a missing or corrupt entry reads as "nothing read yet"
and a failed write is logged and dropped. Nothing here ever raises to the caller.

The read set only grows. ``add_read_ids`` is serialized per user within the
process, and the Mongo backend additionally unions on the server so that
writers in other processes cannot drop each other's ids.
"""

import asyncio
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Set

from config import config
from constants import READ_STATE_KEY_PREFIX
from logging_config import get_logger

logger = get_logger("read_state")


def storage_key(user_id: str) -> str:
    return f"{READ_STATE_KEY_PREFIX}{user_id}"


def _decode_ids(payload: Any) -> Set[str]:
    """Accept a JSON string or an already-decoded list; anything else is corrupt."""
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    if not isinstance(payload, list) or not all(isinstance(i, str) for i in payload):
        raise ValueError(f"expected a list of ids, got {type(payload).__name__}")
    return set(payload)


class ReadStateStore:
    """Base class: subclasses only move raw payloads in and out of durable storage."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    async def _load(self, key: str) -> Any:
        raise NotImplementedError

    async def _store(self, key: str, user_id: str, ids: list):
        raise NotImplementedError

    async def _add(self, user_id: str, ids: Set[str]) -> Set[str]:
        read_ids = await self.get_read_ids(user_id)
        read_ids.update(ids)
        await self.save_read_ids(user_id, read_ids)
        return read_ids

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def get_read_ids(self, user_id: str) -> Set[str]:
        key = storage_key(user_id)
        try:
            payload = await self._load(key)
            if payload is None:
                return set()
            return _decode_ids(payload)
        except Exception as e:
            logger.warning(
                f"Read state unreadable, treating as empty: {e}",
                extra={"data": {"key": key, "backend": type(self).__name__}}
            )
            return set()

    async def save_read_ids(self, user_id: str, ids: Iterable[str]):
        key = storage_key(user_id)
        try:
            await self._store(key, user_id, sorted(set(ids)))
        except Exception as e:
            logger.warning(
                f"Read state write dropped: {e}",
                extra={"data": {"key": key, "backend": type(self).__name__}}
            )

    async def add_read_ids(self, user_id: str, ids: Iterable[str]) -> Set[str]:
        """Union ``ids`` into the persisted set. Returns the set as stored afterwards."""
        ids = set(ids)
        async with self._lock_for(user_id):
            return await self._add(user_id, ids)


class MemoryReadStateStore(ReadStateStore):
    """Process-local store holding serialized payloads, used in tests and as a last resort."""

    def __init__(self):
        super().__init__()
        self.entries: Dict[str, str] = {}

    async def _load(self, key: str) -> Optional[str]:
        return self.entries.get(key)

    async def _store(self, key: str, user_id: str, ids: list):
        self.entries[key] = json.dumps(ids)


class FileReadStateStore(ReadStateStore):
    """One JSON file per user under ``directory``. File I/O runs in a worker thread."""

    def __init__(self, directory: str):
        super().__init__()
        self.directory = directory

    def _path(self, key: str) -> str:
        safe_key = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return os.path.join(self.directory, f"{safe_key}.json")

    def _read_file(self, path: str) -> Optional[str]:
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _write_file(self, path: str, ids: list):
        os.makedirs(self.directory, exist_ok=True)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(ids, f)
        os.replace(tmp_path, path)

    async def _load(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read_file, self._path(key))

    async def _store(self, key: str, user_id: str, ids: list):
        await asyncio.to_thread(self._write_file, self._path(key), ids)


class MongoReadStateStore(ReadStateStore):
    """One document per user: {"_id": key, "user_id", "ids": [...], "updated_at"}."""

    def __init__(self, collection):
        super().__init__()
        self.collection = collection

    async def _load(self, key: str) -> Any:
        doc = await self.collection.find_one({"_id": key})
        if doc is None:
            return None
        return doc.get("ids")

    async def _store(self, key: str, user_id: str, ids: list):
        await self.collection.update_one(
            {"_id": key},
            {"$set": {"user_id": user_id, "ids": ids, "updated_at": datetime.now(timezone.utc)}},
            upsert=True
        )

    async def _add(self, user_id: str, ids: Set[str]) -> Set[str]:
        key = storage_key(user_id)
        try:
            await self.collection.update_one(
                {"_id": key},
                {
                    "$addToSet": {"ids": {"$each": sorted(ids)}},
                    "$set": {"user_id": user_id, "updated_at": datetime.now(timezone.utc)},
                },
                upsert=True
            )
        except Exception as e:
            # $addToSet refuses a non-array "ids"; rewrite the document instead
            logger.warning(
                f"Atomic read state update failed, rewriting document: {e}",
                extra={"data": {"key": key}}
            )
            return await super()._add(user_id, ids)
        return await self.get_read_ids(user_id)


def build_read_state_store(backend: Optional[str] = None) -> ReadStateStore:
    backend = (backend or config.READ_STATE_BACKEND).lower()
    if backend == "mongo":
        from database import read_state_collection
        return MongoReadStateStore(read_state_collection)
    if backend == "file":
        return FileReadStateStore(config.READ_STATE_DIR)
    if backend == "memory":
        logger.warning("Using in-memory read state; acknowledgements will not survive a restart")
        return MemoryReadStateStore()
    raise ValueError(f"Unknown READ_STATE_BACKEND: {backend}")
