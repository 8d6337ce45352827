"""Provider contract shared by every language-model client."""
from __future__ import annotations

from typing import Dict, Optional, Protocol


class ProviderError(RuntimeError):
    """Transport, authentication, quota or configuration failure of a provider."""

    def __init__(self, message: str, provider_id: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider_id = provider_id
        self.status_code = status_code


class ProviderTimeout(ProviderError):
    """The provider did not answer within the request deadline."""

    def __init__(self, provider_id: Optional[str], timeout: float):
        super().__init__(
            f"Provider '{provider_id}' did not respond within {timeout:g}s",
            provider_id=provider_id,
        )
        self.timeout = timeout


class UnknownProviderError(ProviderError):
    """The requested provider is not supported or has no credentials."""


class LLMProvider(Protocol):
    provider_id: str
    model: str

    def generate(self, prompt: str, *, max_tokens: int) -> str:
        ...

    def close(self) -> None:
        ...


PROVIDER_INFO: Dict[str, Dict[str, str]] = {
    "anthropic": {
        "name": "Anthropic Claude",
        "description": "Best for complex reasoning and code generation",
    },
    "openai": {
        "name": "OpenAI GPT-4o",
        "description": "Excellent general-purpose AI with strong BPMN knowledge",
    },
    "gemini": {
        "name": "Google Gemini",
        "description": "Fast and efficient with good multimodal capabilities",
    },
    "groq": {
        "name": "Groq",
        "description": "Ultra-fast inference with open-source models",
    },
}

# Initialization and fallback order.
PROVIDER_ORDER: tuple[str, ...] = ("anthropic", "openai", "gemini", "groq")
