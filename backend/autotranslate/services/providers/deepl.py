from typing import List

from autotranslate.config import DEFAULT_DEEPL_ENDPOINT
from autotranslate.services.providers.base import (
    ProviderConfigurationError,
    TranslationProvider,
    has_source,
)


class DeepLProvider(TranslationProvider):
    """DeepL API (Free or Pro endpoint)."""

    provider_id = "deepl"
    display_name = "DeepL"

    async def translate_many(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        key = self.settings.deepl_key
        if not key:
            raise ProviderConfigurationError("DeepL key missing")
        if not texts:
            return []

        # DeepL expects upper-case language codes
        form = {
            "text": list(texts),
            "target_lang": (target_lang or "ko").upper(),
        }
        if has_source(source_lang):
            form["source_lang"] = source_lang.upper()

        endpoint = self.settings.deepl_endpoint or DEFAULT_DEEPL_ENDPOINT
        response = await self._post(
            endpoint.rstrip("/") + "/v2/translate",
            headers={"Authorization": f"DeepL-Auth-Key {key}"},
            data=form,
        )
        data = self._json(response)
        return [item.get("text") or "" for item in data.get("translations") or []]
