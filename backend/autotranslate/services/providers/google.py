from typing import List

from autotranslate.services.providers.base import (
    ProviderConfigurationError,
    TranslationProvider,
    has_source,
)

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"


class GoogleProvider(TranslationProvider):
    """Google Cloud Translation (Basic, v2) with an API key."""

    provider_id = "google"
    display_name = "Google"

    async def translate_many(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        key = self.settings.google_key
        if not key:
            raise ProviderConfigurationError("Google key missing")
        if not texts:
            return []

        params = {"key": key, "target": target_lang}
        if has_source(source_lang):
            params["source"] = source_lang

        response = await self._post(
            GOOGLE_TRANSLATE_URL,
            params=params,
            data={"q": list(texts)},
        )
        data = self._json(response)
        translations = (data.get("data") or {}).get("translations") or []
        return [item.get("translatedText") or "" for item in translations]
