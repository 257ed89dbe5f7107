import logging
from typing import List

from autotranslate.services.providers.base import (
    ProviderConfigurationError,
    TranslationProvider,
    has_source,
)

logger = logging.getLogger(__name__)


class AzureProvider(TranslationProvider):
    """Azure AI Translator (Text Translation v3.0)."""

    provider_id = "azure"
    display_name = "Azure"

    async def translate_many(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        key = self.settings.azure_key
        if not key:
            raise ProviderConfigurationError("Azure key missing")
        if not texts:
            return []

        url = self.settings.azure_endpoint.rstrip("/") + "/translate"
        params = {"api-version": "3.0", "to": target_lang}
        if has_source(source_lang):
            params["from"] = source_lang

        headers = {
            "Content-Type": "application/json; charset=UTF-8",
            "Ocp-Apim-Subscription-Key": key,
        }
        if self.settings.azure_region:
            headers["Ocp-Apim-Subscription-Region"] = self.settings.azure_region

        response = await self._post(
            url,
            params=params,
            headers=headers,
            json=[{"Text": text} for text in texts],
        )
        data = self._json(response)

        results = []
        for item in data or []:
            translations = item.get("translations") if isinstance(item, dict) else None
            results.append(translations[0].get("text", "") if translations else "")
        logger.debug(f"Azure translated {len(results)}/{len(texts)} texts to {target_lang}")
        return results
