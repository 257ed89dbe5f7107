"""Persistent Translation Cache - Durable Per-Language Store

One JSON document per target language holds every translation ever produced
for that language. The whole document is loaded into memory on activation,
mutated in memory and written back:

- after a quiet period following the last write (debounced flush)
- on a fixed interval regardless of activity (periodic flush)

Persistence failures never escape this module: an unreadable store starts
cold, and a failed write leaves the store dirty so the next tick retries.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from autotranslate.services.storage import Storage

logger = logging.getLogger(__name__)

CACHE_DIR = "cache"


def store_path(target_lang: str) -> str:
    return f"{CACHE_DIR}/translations-{target_lang}.json"


class PersistentCache:
    """Durable fingerprint -> translation mapping for the active target language."""

    def __init__(
        self,
        storage: Storage,
        debounce_seconds: float = 1.0,
        flush_interval_seconds: float = 5.0,
    ):
        self._storage = storage
        self.debounce_seconds = debounce_seconds
        self.flush_interval_seconds = flush_interval_seconds
        self.target_lang: Optional[str] = None
        self.path: Optional[str] = None
        self._entries: dict[str, str] = {}
        self._dirty = False
        self._debounce_task: Optional[asyncio.Task] = None
        self._periodic_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def dirty(self) -> bool:
        return self._dirty

    async def activate(self, target_lang: str) -> None:
        """Load the store for ``target_lang`` and make it the active one.

        The previously active store is written out once the switch is done, so
        writes that land while the new store is loading are not lost.
        """
        path = store_path(target_lang)
        try:
            await self._storage.mkdir(CACHE_DIR)
        except OSError as e:
            logger.warning(f"Could not create cache directory '{CACHE_DIR}': {e}")

        loaded = await self._load(path)

        await self._stop_timers()
        previous_path, previous_entries, previous_dirty = self.path, self._entries, self._dirty
        self.target_lang = target_lang
        self.path = path
        self._entries = loaded
        self._dirty = False
        self._periodic_task = asyncio.create_task(self._periodic_flush())

        logger.info(f"Persistent cache activated for '{target_lang}' ({len(loaded)} entries)")

        if previous_path and previous_dirty:
            try:
                await self._storage.write(previous_path, json.dumps(previous_entries, ensure_ascii=False))
            except OSError as e:
                logger.error(f"Final write of '{previous_path}' failed, recent entries lost: {e}")

    async def _load(self, path: str) -> dict[str, str]:
        try:
            if not await self._storage.exists(path):
                return {}
            raw = await self._storage.read(path)
            data = json.loads(raw or "{}")
        except (OSError, ValueError) as e:
            logger.warning(f"Cache read failed for '{path}', starting cold: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Cache file '{path}' is not a JSON object, starting cold")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        # No await between marking dirty and scheduling the flush
        self._entries[key] = value
        self._dirty = True
        self._schedule_flush()

    def entries(self) -> dict[str, str]:
        """Snapshot of the active mapping."""
        return dict(self._entries)

    def replace(self, entries: dict[str, str]) -> None:
        """Swap the whole active mapping (used by cache import)."""
        self._entries = dict(entries)
        self._dirty = True
        self._schedule_flush()

    def _schedule_flush(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(self._debounced_flush())

    async def _debounced_flush(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Past the quiet period: later writes schedule a new task instead of cancelling this write
        if self._debounce_task is asyncio.current_task():
            self._debounce_task = None
        await self.flush()

    async def _periodic_flush(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval_seconds)
            await self.flush()

    async def flush(self) -> bool:
        """Write the active mapping if it changed since the last successful write.

        Returns:
            True if a write happened and succeeded, False otherwise
        """
        if not self._dirty or self.path is None:
            return False

        path = self.path
        payload = json.dumps(self._entries, ensure_ascii=False)
        self._dirty = False
        try:
            await self._storage.write(path, payload)
        except OSError as e:
            self._dirty = True
            logger.error(f"Cache write failed for '{path}', will retry: {e}")
            return False
        except asyncio.CancelledError:
            self._dirty = True
            raise

        logger.debug(f"Flushed {path}")
        return True

    async def _stop_timers(self) -> None:
        tasks = [t for t in (self._debounce_task, self._periodic_task) if t is not None]
        self._debounce_task = None
        self._periodic_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel timers and write any pending changes."""
        await self._stop_timers()
        await self.flush()
