from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from autotranslate.config import Settings


class ProviderError(Exception):
    """A provider call failed as a whole (transport error or non-success response)."""


class ProviderConfigurationError(ProviderError):
    """The provider cannot be called with the current configuration (e.g. missing key)."""


class TranslationProvider(ABC):
    """Abstract base class for translation backends.

    A provider either returns one translation per input text, in order, or raises.
    There are no partial results.
    """

    provider_id: str = ""
    display_name: str = ""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        # Settings are read at call time so key/endpoint edits apply to the next batch
        self.settings = settings
        self._client = client

    @abstractmethod
    async def translate_many(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        """Translate ``texts`` from ``source_lang`` ("auto" to let the backend detect) to ``target_lang``."""
        pass

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        """POST through the shared client, or a short-lived one when none was injected."""
        try:
            if self._client is not None:
                response = await self._client.post(url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.settings.provider_timeout_seconds) as client:
                    response = await client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.display_name} request failed: {e}") from e

        if not response.is_success:
            raise ProviderError(f"{self.display_name} {response.status_code}")
        return response

    @staticmethod
    def _json(response: httpx.Response):
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON in provider response: {e}") from e


def has_source(source_lang: Optional[str]) -> bool:
    return bool(source_lang) and source_lang != "auto"
