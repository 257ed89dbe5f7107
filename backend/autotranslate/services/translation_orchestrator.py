"""Translation Orchestrator - Cache-First Translation Facade

Resolves every requested string against the memory tier, then the persistent
tier, and sends only the misses through the shared batch dispatcher. Fresh
results are written back to both tiers.

A provider outage never reaches the caller: if any batch carrying this call's
misses fails, every miss is served untranslated. The only error that escapes
``translate_many`` is ``NoProviderConfiguredError``.

Concurrent calls share caches and queue. Two overlapping calls that both miss
on the same text may both send it to the provider; there is no per-key
single-flight.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from autotranslate.services.batch_dispatcher import BatchDispatcher
from autotranslate.services.fingerprint import fingerprint
from autotranslate.services.generation import GenerationCounter, StampedTranslations
from autotranslate.services.memory_cache import MemoryCache
from autotranslate.services.persistent_cache import PersistentCache
from autotranslate.services.providers.base import ProviderConfigurationError, TranslationProvider

logger = logging.getLogger(__name__)


class NoProviderConfiguredError(ProviderConfigurationError):
    """A network translation was needed but no provider is registered under the requested id."""


class TranslationOrchestrator:
    def __init__(
        self,
        memory_cache: MemoryCache,
        persistent_cache: PersistentCache,
        dispatcher: BatchDispatcher,
        providers: Mapping[str, TranslationProvider],
        generation: Optional[GenerationCounter] = None,
    ):
        self.memory_cache = memory_cache
        self.persistent_cache = persistent_cache
        self.dispatcher = dispatcher
        self.providers = providers
        self.generation = generation or GenerationCounter()

    def _provider(self, provider_id: str) -> TranslationProvider:
        provider = self.providers.get(provider_id)
        if provider is None:
            raise NoProviderConfiguredError(f"No translation provider configured for '{provider_id}'")
        return provider

    def lookup(self, key: str) -> Optional[str]:
        """Memory tier first, then persistent tier; persistent hits are promoted."""
        cached = self.memory_cache.get(key)
        if not cached:
            cached = self.persistent_cache.get(key)
        if cached:
            self.memory_cache.set(key, cached)
            return cached
        return None

    def store(self, key: str, value: str, target_lang: Optional[str] = None) -> None:
        self.memory_cache.set(key, value)
        active = self.persistent_cache.target_lang
        if target_lang is not None and active is not None and active != target_lang:
            # The store was switched while this pass was in flight
            logger.debug(f"Skipping persistent write for '{target_lang}', active store is '{active}'")
            return
        self.persistent_cache.set(key, value)

    async def translate_many(
        self,
        texts: list[str],
        provider_id: str,
        source_lang: str,
        target_lang: str,
        offline_only: bool = False,
    ) -> list[str]:
        """Translate ``texts``, returning a list of the same length and order.

        Args:
            texts: Raw strings to translate
            provider_id: Provider used both for the fingerprint and for misses
            source_lang: Source language code or "auto"
            target_lang: Target language code
            offline_only: Serve misses untranslated instead of calling the provider

        Returns:
            Translations, with the source text wherever no translation is available

        Raises:
            NoProviderConfiguredError: There are misses, ``offline_only`` is off
                and ``provider_id`` is not registered
        """
        keys = [fingerprint(provider_id, source_lang, target_lang, text) for text in texts]
        out: list[Optional[str]] = [None] * len(texts)
        miss_indices: list[int] = []

        for i, key in enumerate(keys):
            cached = self.lookup(key)
            if cached is not None:
                out[i] = cached
            else:
                miss_indices.append(i)

        if not miss_indices:
            return out  # type: ignore[return-value]

        miss_texts = [texts[i] for i in miss_indices]
        if offline_only:
            for i in miss_indices:
                out[i] = texts[i]
            return out  # type: ignore[return-value]

        provider = self._provider(provider_id)
        try:
            translated = await self.dispatcher.batch(miss_texts, provider, source_lang, target_lang)
        except Exception as e:
            logger.warning(f"Translation of {len(miss_texts)} texts failed, serving originals: {e}")
            for i in miss_indices:
                out[i] = texts[i]
            return out  # type: ignore[return-value]

        for j, i in enumerate(miss_indices):
            value = translated[j] if j < len(translated) and translated[j] else texts[i]
            self.store(keys[i], value, target_lang)
            out[i] = value

        logger.debug(
            f"translate_many: {len(texts) - len(miss_indices)} cached, "
            f"{len(miss_indices)} translated via {provider_id}"
        )
        return out  # type: ignore[return-value]

    async def translate_stamped(
        self,
        texts: list[str],
        provider_id: str,
        source_lang: str,
        target_lang: str,
        offline_only: bool = False,
    ) -> StampedTranslations:
        """Like ``translate_many`` but tagged with the generation current at call time."""
        token = self.generation.capture()
        translations = await self.translate_many(texts, provider_id, source_lang, target_lang, offline_only)
        return StampedTranslations(list(texts), translations, token)

    async def translate_and_cache(
        self,
        texts: list[str],
        provider_id: str,
        source_lang: str,
        target_lang: str,
    ) -> list[str]:
        """Translate ``texts`` straight through the provider and store every result.

        Bypasses cache reads and the dispatch queue; the caller paces the calls.
        Provider errors propagate.
        """
        provider = self._provider(provider_id)
        translated = await provider.translate_many(list(texts), source_lang, target_lang)
        results = []
        for i, text in enumerate(texts):
            value = translated[i] if i < len(translated) and translated[i] else text
            self.store(fingerprint(provider_id, source_lang, target_lang, text), value, target_lang)
            results.append(value)
        await self.persistent_cache.flush()
        return results
