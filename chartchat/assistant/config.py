"""
Chart Assistant Configuration Module
Centralized configuration for LLM providers and chat settings
"""
import os
from typing import Literal

from pydantic import BaseModel, Field


class LLMProviderConfig(BaseModel):
    """Configuration for LLM providers"""

    # Azure OpenAI Configuration
    azure_openai_endpoint: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_ENDPOINT", "")
    )
    azure_openai_api_key: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_API_KEY", "")
    )
    azure_openai_deployment: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", "")
    )
    azure_openai_api_version: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_API_VERSION") or "2023-12-01-preview"
    )

    # OpenAI Configuration
    openai_api_key: str = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", "")
    )
    openai_model: str = Field(
        default_factory=lambda: os.getenv("OPENAI_MODEL") or "gpt-4o-mini"
    )

    # Shared request settings; low temperature keeps chart logic consistent
    max_tokens: int = 1000
    temperature: float = 0.1
    timeout_seconds: float = 60.0

    @property
    def azure_configured(self) -> bool:
        return bool(
            self.azure_openai_endpoint
            and self.azure_openai_api_key
            and self.azure_openai_deployment
        )

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)


class ChatbotConfig(BaseModel):
    """General chat configuration"""

    # Recency-only memory: older turns are dropped
    max_conversation_history: int = 4
    default_provider: Literal["azure", "chatgpt"] = Field(
        default_factory=lambda: "chatgpt" if os.getenv("LLM_PROVIDER", "").lower() == "chatgpt" else "azure"
    )


# Global config instances
llm_config = LLMProviderConfig()
chatbot_config = ChatbotConfig()
