import json
from urllib.parse import parse_qs

import httpx
import pytest

from autotranslate.config import Settings
from autotranslate.services.providers import (
    AzureProvider,
    DeepLProvider,
    GoogleProvider,
    ProviderConfigurationError,
    ProviderError,
    create_provider,
)


def _client(handler, seen: list) -> httpx.AsyncClient:
    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(_record))


def _form(request: httpx.Request) -> dict:
    return parse_qs(request.content.decode("utf-8"))


@pytest.mark.asyncio
async def test_azure_request_shape_and_parsing() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, azure_key="az-key", azure_region="koreacentral")

    def handler(request):
        return httpx.Response(
            200,
            json=[{"translations": [{"text": "설정", "to": "ko"}]}, {"translations": [{"text": "단축키", "to": "ko"}]}],
        )

    async with _client(handler, seen) as client:
        provider = AzureProvider(settings, client=client)
        results = await provider.translate_many(["Settings", "Hotkeys"], "en", "ko")

    assert results == ["설정", "단축키"]
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/translate"
    assert request.url.params["api-version"] == "3.0"
    assert request.url.params["to"] == "ko"
    assert request.url.params["from"] == "en"
    assert request.headers["Ocp-Apim-Subscription-Key"] == "az-key"
    assert request.headers["Ocp-Apim-Subscription-Region"] == "koreacentral"
    assert json.loads(request.content) == [{"Text": "Settings"}, {"Text": "Hotkeys"}]


@pytest.mark.asyncio
async def test_azure_auto_source_and_no_region_are_omitted() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, azure_key="az-key")

    async with _client(lambda request: httpx.Response(200, json=[{"translations": [{"text": "x"}]}]), seen) as client:
        await AzureProvider(settings, client=client).translate_many(["a"], "auto", "ko")

    assert "from" not in seen[0].url.params
    assert "Ocp-Apim-Subscription-Region" not in seen[0].headers


@pytest.mark.asyncio
async def test_google_request_shape_and_parsing() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, google_key="g-key")

    def handler(request):
        return httpx.Response(
            200,
            json={"data": {"translations": [{"translatedText": "설정"}, {"translatedText": "단축키"}]}},
        )

    async with _client(handler, seen) as client:
        results = await GoogleProvider(settings, client=client).translate_many(["Settings", "Hotkeys"], "auto", "ko")

    assert results == ["설정", "단축키"]
    request = seen[0]
    assert request.url.host == "translation.googleapis.com"
    assert request.url.params["key"] == "g-key"
    assert request.url.params["target"] == "ko"
    assert "source" not in request.url.params
    assert _form(request)["q"] == ["Settings", "Hotkeys"]


@pytest.mark.asyncio
async def test_deepl_request_shape_and_parsing() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, deepl_key="d-key", deepl_endpoint="https://api.deepl.com/")

    def handler(request):
        return httpx.Response(200, json={"translations": [{"text": "설정"}, {"text": ""}]})

    async with _client(handler, seen) as client:
        results = await DeepLProvider(settings, client=client).translate_many(["Settings", "Hotkeys"], "en", "ko")

    assert results == ["설정", ""]
    request = seen[0]
    assert str(request.url) == "https://api.deepl.com/v2/translate"
    assert request.headers["Authorization"] == "DeepL-Auth-Key d-key"
    form = _form(request)
    assert form["text"] == ["Settings", "Hotkeys"]
    assert form["target_lang"] == ["KO"]
    assert form["source_lang"] == ["EN"]


@pytest.mark.parametrize(
    "provider_class, message",
    [
        (AzureProvider, "Azure key missing"),
        (GoogleProvider, "Google key missing"),
        (DeepLProvider, "DeepL key missing"),
    ],
)
@pytest.mark.asyncio
async def test_missing_key_fails_without_request(provider_class, message) -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, azure_key="", google_key="", deepl_key="")

    async with _client(lambda request: httpx.Response(200, json={}), seen) as client:
        with pytest.raises(ProviderConfigurationError, match=message):
            await provider_class(settings, client=client).translate_many(["a"], "auto", "ko")

    assert seen == []


@pytest.mark.asyncio
async def test_non_success_status_raises_provider_error() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, azure_key="az-key")

    async with _client(lambda request: httpx.Response(401, text="unauthorized"), seen) as client:
        with pytest.raises(ProviderError, match="Azure 401"):
            await AzureProvider(settings, client=client).translate_many(["a"], "auto", "ko")


@pytest.mark.asyncio
async def test_transport_error_raises_provider_error() -> None:
    settings = Settings(_env_file=None, google_key="g-key")

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderError, match="request failed"):
            await GoogleProvider(settings, client=client).translate_many(["a"], "auto", "ko")


@pytest.mark.asyncio
async def test_invalid_json_raises_provider_error() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, deepl_key="d-key")

    async with _client(lambda request: httpx.Response(200, text="<html>"), seen) as client:
        with pytest.raises(ProviderError, match="Invalid JSON"):
            await DeepLProvider(settings, client=client).translate_many(["a"], "auto", "ko")


@pytest.mark.asyncio
async def test_settings_are_read_at_call_time() -> None:
    seen: list[httpx.Request] = []
    settings = Settings(_env_file=None, azure_key="old-key")

    async with _client(lambda request: httpx.Response(200, json=[{"translations": [{"text": "x"}]}]), seen) as client:
        provider = AzureProvider(settings, client=client)
        settings.azure_key = "new-key"
        await provider.translate_many(["a"], "auto", "ko")

    assert seen[0].headers["Ocp-Apim-Subscription-Key"] == "new-key"


def test_create_provider_resolves_ids() -> None:
    settings = Settings(_env_file=None)

    assert isinstance(create_provider("azure", settings), AzureProvider)
    assert isinstance(create_provider("Google", settings), GoogleProvider)
    assert isinstance(create_provider("deepl", settings), DeepLProvider)
    with pytest.raises(ProviderConfigurationError):
        create_provider("papago", settings)
