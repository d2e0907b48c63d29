"""Shared FastAPI dependency definitions."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from chartchat.assistant.chat_service import ChatService
from chartchat.assistant.llm_providers import LLMProvider, LLMProviderFactory
from chartchat.core.config import Settings, get_settings
from chartchat.powerbi.client import PowerBIClient
from chartchat.powerbi.schema_provider import SchemaProvider

# One client and one schema cache per process so the token and the schema
# snapshot are shared by every request.


@lru_cache(maxsize=1)
def get_powerbi_client() -> PowerBIClient:
    return PowerBIClient(get_settings().powerbi)


@lru_cache(maxsize=1)
def get_schema_provider() -> SchemaProvider:
    settings = get_settings()
    return SchemaProvider(
        get_powerbi_client().fetch_schema,
        ttl=settings.cache.schema_ttl,
        grace=settings.cache.schema_grace,
    )


def get_llm_provider() -> LLMProvider:
    """Resolve the configured model provider.

    Raises:
        ConfigurationError: neither Azure OpenAI nor OpenAI is configured.
    """
    return LLMProviderFactory.from_config()


def get_chat_service(
    schema_provider: SchemaProvider = Depends(get_schema_provider),
) -> ChatService:
    # The provider is resolved inside the turn so a bad request is rejected first.
    return ChatService(schema_provider, provider_factory=get_llm_provider)


def get_app_settings() -> Settings:
    return get_settings()
