"""Translation Controller - Live Configuration and Operator Actions

Owns the live settings and the wired translation components, and applies every
reconfiguration the way the rendering layer expects:

- toggling, changing the render mode, changing the target language and explicit
  refreshes advance the generation so in-flight passes are discarded
- changing the target language re-activates the persistent cache before any
  further cache access
- changing the memory-cache capacity rebuilds the memory tier empty
- invalid capacity or rate-limit input is coerced to defaults

Also hosts the operator actions: pre-building the cache from a list of strings,
exporting/importing the raw cache mapping and a one-off diagnostic translation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import httpx

from autotranslate.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CACHE_LIMIT,
    DEFAULT_RPS,
    DEFAULT_TARGET_LANG,
    PROVIDERS,
    RENDER_MODES,
    Settings,
    coerce_positive_int,
    normalize_lang,
)
from autotranslate.services.batch_dispatcher import BatchDispatcher, SleepFunc
from autotranslate.services.generation import GenerationCounter, StampedTranslations
from autotranslate.services.memory_cache import MemoryCache
from autotranslate.services.persistent_cache import CACHE_DIR, PersistentCache
from autotranslate.services.providers import ProviderConfigurationError, create_provider
from autotranslate.services.storage import LocalStorage, Storage
from autotranslate.services.translation_orchestrator import (
    NoProviderConfiguredError,
    TranslationOrchestrator,
)

logger = logging.getLogger(__name__)


class CacheImportError(Exception):
    """The file given to ``import_cache`` is missing or not a flat JSON object."""


def export_path(target_lang: str) -> str:
    return f"{CACHE_DIR}/export-{target_lang}.json"


class TranslationController:
    def __init__(
        self,
        settings: Settings,
        storage: Storage,
        orchestrator: TranslationOrchestrator,
        client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.settings = settings
        self.storage = storage
        self.orchestrator = orchestrator
        self._client = client
        self._sleep = sleep

    @property
    def generation(self) -> GenerationCounter:
        return self.orchestrator.generation

    @property
    def persistent_cache(self) -> PersistentCache:
        return self.orchestrator.persistent_cache

    @property
    def memory_cache(self) -> MemoryCache:
        return self.orchestrator.memory_cache

    @property
    def target_lang(self) -> str:
        """Language of the active persistent store, which all fingerprints must agree with."""
        return self.persistent_cache.target_lang or self.settings.target_lang

    async def start(self) -> None:
        await self.persistent_cache.activate(self.settings.target_lang)

    async def close(self) -> None:
        await self.orchestrator.dispatcher.close()
        await self.persistent_cache.close()
        if self._client is not None:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    def refresh(self) -> int:
        return self.generation.increment()

    def set_enabled(self, enabled: bool) -> None:
        self.settings.enabled = bool(enabled)
        self.generation.increment()
        logger.info(f"Translation {'enabled' if self.settings.enabled else 'disabled'}")

    def toggle(self) -> bool:
        self.set_enabled(not self.settings.enabled)
        return self.settings.enabled

    def set_mode(self, mode: str) -> None:
        mode = (mode or "").strip().lower()
        if mode not in RENDER_MODES:
            raise ValueError(f"mode must be one of {', '.join(RENDER_MODES)}")
        self.settings.mode = mode
        self.generation.increment()

    def set_source_lang(self, lang: Optional[str]) -> None:
        self.settings.source_lang = lang

    async def set_target_lang(self, lang: Optional[str]) -> None:
        # Settings follow the store only once it is active
        target_lang = normalize_lang(lang, DEFAULT_TARGET_LANG)
        await self.persistent_cache.activate(target_lang)
        self.settings.target_lang = target_lang
        self.generation.increment()

    def set_provider(self, provider_id: str) -> None:
        provider_id = (provider_id or "").strip().lower()
        if provider_id not in PROVIDERS:
            raise ProviderConfigurationError(f"Unknown translation provider '{provider_id}'")
        self.settings.provider = provider_id

    def set_offline_only(self, offline_only: bool) -> None:
        self.settings.offline_only = bool(offline_only)
        logger.info(f"Cache-only mode {'on' if self.settings.offline_only else 'off'}")

    def set_cache_limit(self, value) -> int:
        limit = coerce_positive_int(value, DEFAULT_CACHE_LIMIT)
        self.settings.cache_limit = limit
        self.orchestrator.memory_cache = self.memory_cache.resize(limit)
        return limit

    def set_rate_limit(self, rps=None, batch_size=None) -> None:
        if rps is not None:
            self.settings.rate_limit_rps = coerce_positive_int(rps, DEFAULT_RPS)
        if batch_size is not None:
            self.settings.rate_limit_batch_size = coerce_positive_int(batch_size, DEFAULT_BATCH_SIZE)

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    async def translate(self, texts: list[str]) -> StampedTranslations:
        """Translate with the live settings; nothing is translated while disabled."""
        if not self.settings.enabled:
            return StampedTranslations([], [], self.generation.capture())
        return await self.orchestrator.translate_stamped(
            texts,
            self.settings.provider,
            self.settings.source_lang,
            self.target_lang,
            self.settings.offline_only,
        )

    async def diagnose(self, text: str = "Hello") -> str:
        results = await self.orchestrator.translate_many(
            [text],
            self.settings.provider,
            self.settings.source_lang,
            self.target_lang,
            self.settings.offline_only,
        )
        return results[0]

    async def prebuild_cache(self, texts: list[str]) -> int:
        """Translate and store every distinct text, then switch to cache-only mode.

        Chunks are paced with the same interval as the dispatcher.

        Returns:
            Number of distinct entries translated
        """
        if self.settings.provider not in self.orchestrator.providers:
            raise NoProviderConfiguredError("Set provider and key first")

        unique = list(dict.fromkeys(t.strip() for t in texts if t and t.strip()))
        chunk_size = self.settings.rate_limit_batch_size
        for start in range(0, len(unique), chunk_size):
            chunk = unique[start:start + chunk_size]
            await self.orchestrator.translate_and_cache(
                chunk,
                self.settings.provider,
                self.settings.source_lang,
                self.target_lang,
            )
            logger.info(f"Pre-translated {min(start + chunk_size, len(unique))}/{len(unique)} entries")
            await self._sleep(self.settings.min_dispatch_interval)

        await self.persistent_cache.flush()
        self.set_offline_only(True)
        logger.info(f"Pre-translation done: {len(unique)} entries, cache-only mode on")
        return len(unique)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    async def export_cache(self, path: Optional[str] = None) -> str:
        path = path or export_path(self.target_lang)
        raw = json.dumps(self.persistent_cache.entries(), ensure_ascii=False, indent=2)
        await self.storage.write(path, raw)
        logger.info(f"Exported cache to {path}")
        return path

    async def import_cache(self, path: str) -> int:
        """Replace the active store with the mapping in ``path`` and persist it."""
        try:
            data = json.loads(await self.storage.read(path) or "{}")
        except (OSError, ValueError) as e:
            raise CacheImportError(f"Import failed for '{path}': {e}") from e
        if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
            raise CacheImportError(f"Import failed for '{path}': expected a JSON object of strings")

        self.persistent_cache.replace(data)
        await self.persistent_cache.flush()
        logger.info(f"Imported {len(data)} cache entries from {path}")
        return len(data)


def build_translation_controller(
    settings: Settings,
    storage: Optional[Storage] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> TranslationController:
    """Wire caches, dispatcher, providers and orchestrator around one settings object.

    Call ``await controller.start()`` before translating.
    """
    storage = storage or LocalStorage(settings.storage_root)
    if client is None:
        client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
    providers = {provider_id: create_provider(provider_id, settings, client=client) for provider_id in PROVIDERS}
    orchestrator = TranslationOrchestrator(
        memory_cache=MemoryCache(settings.cache_limit),
        persistent_cache=PersistentCache(
            storage,
            debounce_seconds=settings.cache_debounce_seconds,
            flush_interval_seconds=settings.cache_flush_interval_seconds,
        ),
        dispatcher=BatchDispatcher(settings, sleep=sleep),
        providers=providers,
        generation=GenerationCounter(),
    )
    return TranslationController(settings, storage, orchestrator, client=client, sleep=sleep)
