"""
LLM Provider Abstraction Layer
Supports Azure OpenAI deployments and OpenAI GPT models
"""
import httpx
import logging
from typing import Optional, Dict, Any, List
from abc import ABC, abstractmethod

from chartchat.errors import ConfigurationError, UpstreamError

from .config import LLMProviderConfig, chatbot_config, llm_config

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Base class for LLM providers.

    Providers only move text: they never parse or validate what the model
    returns. A single attempt is made; failures raise ``UpstreamError``.
    """

    name = "base"

    def __init__(
        self,
        config: Optional[LLMProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or llm_config
        self.transport = transport
        self.last_usage: Dict[str, Any] = {}

    @abstractmethod
    def _endpoint(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def _headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def _payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Send the system prompt and user message, return the raw reply text."""

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        endpoint = self._endpoint()

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self.transport
            ) as client:
                response = await client.post(
                    endpoint, headers=self._headers(), json=self._payload(messages)
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "%s API error (%s): %s", self.name, e.response.status_code, e.response.text
            )
            raise UpstreamError(
                f"{self.name} API request failed with status {e.response.status_code}",
                detail=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.name} API error: {str(e)}")
            raise UpstreamError(f"{self.name} API request failed", detail=str(e)) from e
        except ValueError as e:
            logger.error(f"{self.name} API returned a non-JSON body: {str(e)}")
            raise UpstreamError(f"{self.name} API returned an invalid response", detail=str(e)) from e

        if not isinstance(data, dict):
            logger.error(f"{self.name} API returned {type(data).__name__} instead of an object")
            raise UpstreamError(f"{self.name} API returned an invalid response", detail=str(data))

        usage = data.get("usage")
        self.last_usage = usage if isinstance(usage, dict) else {}
        choices = data.get("choices") or [{}]
        choice = choices[0] if isinstance(choices, list) else None
        message = (choice.get("message") or {}) if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            logger.error(f"{self.name} API returned a malformed choice: {choices!r}")
            raise UpstreamError(f"{self.name} API returned an invalid response", detail=str(choices))
        return message.get("content") or "No response generated"


class AzureOpenAIProvider(LLMProvider):
    """Azure OpenAI chat completions against a named deployment"""

    name = "azure-openai"

    def __init__(
        self,
        config: Optional[LLMProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, transport)
        missing = [
            env_name
            for env_name, value in (
                ("AZURE_OPENAI_ENDPOINT", self.config.azure_openai_endpoint),
                ("AZURE_OPENAI_API_KEY", self.config.azure_openai_api_key),
                ("AZURE_OPENAI_DEPLOYMENT_NAME", self.config.azure_openai_deployment),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing Azure OpenAI configuration: {', '.join(missing)}")

    def _endpoint(self) -> str:
        base = self.config.azure_openai_endpoint.rstrip("/")
        return (
            f"{base}/openai/deployments/{self.config.azure_openai_deployment}"
            f"/chat/completions?api-version={self.config.azure_openai_api_version}"
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "api-key": self.config.azure_openai_api_key,
        }


class ChatGPTProvider(LLMProvider):
    """OpenAI GPT chat completions"""

    name = "chatgpt"

    def __init__(
        self,
        config: Optional[LLMProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        model: Optional[str] = None,
    ):
        super().__init__(config, transport)
        self.model = model or self.config.openai_model
        if not self.config.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")

    def _endpoint(self) -> str:
        return "https://api.openai.com/v1/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.openai_api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        payload = super()._payload(messages)
        payload["model"] = self.model
        return payload


class LLMProviderFactory:
    """Factory to create appropriate LLM provider"""

    ALIASES = {
        "azure": "azure",
        "azure-openai": "azure",
        "chatgpt": "chatgpt",
        "openai": "chatgpt",
    }

    @staticmethod
    def create(
        provider_name: str,
        config: Optional[LLMProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> LLMProvider:
        """
        Create LLM provider instance

        Args:
            provider_name: 'azure', 'chatgpt', an alias, or a gpt-* model name
            config: Provider settings (defaults to the module config)
            transport: Optional httpx transport, used by tests

        Returns:
            Configured LLM provider instance
        """
        normalized = (provider_name or "").strip().lower()
        key = LLMProviderFactory.ALIASES.get(normalized)

        if key == "azure":
            return AzureOpenAIProvider(config, transport)
        if key == "chatgpt":
            return ChatGPTProvider(config, transport)
        if normalized.startswith("gpt"):
            return ChatGPTProvider(config, transport, model=provider_name)

        raise ValueError(f"Unknown LLM provider: {provider_name}")

    @staticmethod
    def from_config(
        config: Optional[LLMProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> LLMProvider:
        """Pick Azure when its deployment is configured, otherwise OpenAI."""

        config = config or llm_config
        if chatbot_config.default_provider == "azure" and config.azure_configured:
            return AzureOpenAIProvider(config, transport)
        if config.openai_configured:
            return ChatGPTProvider(config, transport)
        if config.azure_configured:
            return AzureOpenAIProvider(config, transport)
        raise ConfigurationError("OpenAI service not configured")
