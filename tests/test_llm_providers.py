import asyncio
import json

import httpx
import pytest

from chartchat.assistant.config import LLMProviderConfig
from chartchat.assistant.llm_providers import (
    AzureOpenAIProvider,
    ChatGPTProvider,
    LLMProviderFactory,
)
from chartchat.errors import ConfigurationError, UpstreamError


def _azure_config(**overrides) -> LLMProviderConfig:
    values = {
        "azure_openai_endpoint": "https://example.openai.azure.com/",
        "azure_openai_api_key": "azure-key",
        "azure_openai_deployment": "gpt-4o",
        "azure_openai_api_version": "2024-02-01",
        "openai_api_key": "",
    }
    values.update(overrides)
    return LLMProviderConfig(**values)


def _completion(content, usage=None):
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if usage:
        body["usage"] = usage
    return httpx.Response(200, json=body)


def test_azure_provider_posts_to_deployment():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return _completion('{"chatResponse": "hi"}', {"total_tokens": 42})

    provider = AzureOpenAIProvider(_azure_config(), transport=httpx.MockTransport(handler))

    reply = asyncio.run(provider.complete("system text", "sales by month"))

    assert reply == '{"chatResponse": "hi"}'
    assert captured["url"] == (
        "https://example.openai.azure.com/openai/deployments/gpt-4o/chat/completions"
        "?api-version=2024-02-01"
    )
    assert captured["headers"]["api-key"] == "azure-key"
    assert captured["body"]["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "sales by month"},
    ]
    assert captured["body"]["max_tokens"] == 1000
    assert captured["body"]["temperature"] == 0.1
    assert provider.last_usage == {"total_tokens": 42}


def test_chatgpt_provider_sends_model_and_bearer_token():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return _completion("plain words")

    config = LLMProviderConfig(openai_api_key="sk-test", openai_model="gpt-4o-mini")
    provider = ChatGPTProvider(config, transport=httpx.MockTransport(handler))

    assert asyncio.run(provider.complete("s", "u")) == "plain words"
    assert captured["auth"] == "Bearer sk-test"
    assert captured["body"]["model"] == "gpt-4o-mini"


def test_http_error_becomes_upstream_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(429, text="rate limited"))
    provider = AzureOpenAIProvider(_azure_config(), transport=transport)

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(provider.complete("s", "u"))

    assert excinfo.value.detail == "rate limited"


def test_transport_error_becomes_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = AzureOpenAIProvider(_azure_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamError):
        asyncio.run(provider.complete("s", "u"))


def test_empty_choice_returns_placeholder():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
    provider = AzureOpenAIProvider(_azure_config(), transport=transport)

    assert asyncio.run(provider.complete("s", "u")) == "No response generated"


@pytest.mark.parametrize("body", [["not", "an", "object"], {"choices": ["oops"]}, {"choices": "oops"}])
def test_unexpected_body_shape_becomes_upstream_error(body):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    provider = AzureOpenAIProvider(_azure_config(), transport=transport)

    with pytest.raises(UpstreamError, match="invalid response"):
        asyncio.run(provider.complete("s", "u"))


def test_missing_azure_settings_raise_configuration_error():
    with pytest.raises(ConfigurationError):
        AzureOpenAIProvider(_azure_config(azure_openai_api_key=""))


def test_factory_aliases():
    config = _azure_config(openai_api_key="sk-test")

    assert isinstance(LLMProviderFactory.create("azure-openai", config), AzureOpenAIProvider)
    assert isinstance(LLMProviderFactory.create("openai", config), ChatGPTProvider)
    provider = LLMProviderFactory.create("gpt-4.1", config)
    assert isinstance(provider, ChatGPTProvider)
    assert provider.model == "gpt-4.1"
    with pytest.raises(ValueError):
        LLMProviderFactory.create("claude", config)


def test_from_config_requires_some_provider():
    config = LLMProviderConfig(
        azure_openai_endpoint="",
        azure_openai_api_key="",
        azure_openai_deployment="",
        openai_api_key="",
    )

    with pytest.raises(ConfigurationError, match="OpenAI service not configured"):
        LLMProviderFactory.from_config(config)


def test_from_config_falls_back_to_openai():
    config = LLMProviderConfig(
        azure_openai_endpoint="",
        azure_openai_api_key="",
        azure_openai_deployment="",
        openai_api_key="sk-test",
    )

    assert isinstance(LLMProviderFactory.from_config(config), ChatGPTProvider)
