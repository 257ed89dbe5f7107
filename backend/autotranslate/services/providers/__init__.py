"""Translation provider backends."""
from typing import Optional

import httpx

from autotranslate.config import Settings
from autotranslate.services.providers.azure import AzureProvider
from autotranslate.services.providers.base import (
    ProviderConfigurationError,
    ProviderError,
    TranslationProvider,
)
from autotranslate.services.providers.deepl import DeepLProvider
from autotranslate.services.providers.google import GoogleProvider

PROVIDER_CLASSES: dict[str, type[TranslationProvider]] = {
    AzureProvider.provider_id: AzureProvider,
    GoogleProvider.provider_id: GoogleProvider,
    DeepLProvider.provider_id: DeepLProvider,
}


def create_provider(
    provider_id: str,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> TranslationProvider:
    provider_class = PROVIDER_CLASSES.get((provider_id or "").lower())
    if provider_class is None:
        raise ProviderConfigurationError(f"Unknown translation provider '{provider_id}'")
    return provider_class(settings, client=client)


__all__ = [
    "AzureProvider",
    "DeepLProvider",
    "GoogleProvider",
    "PROVIDER_CLASSES",
    "ProviderConfigurationError",
    "ProviderError",
    "TranslationProvider",
    "create_provider",
]
