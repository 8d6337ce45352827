"""Registry of configured language-model providers."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional

from bpmn_assistant.llm.base import PROVIDER_INFO, PROVIDER_ORDER, LLMProvider, UnknownProviderError
from bpmn_assistant.llm.clients import AnthropicProvider, GeminiProvider, GroqProvider, OpenAIProvider
from bpmn_assistant.utils.config import Settings

logger = logging.getLogger(__name__)


def _factories(settings: Settings) -> Dict[str, tuple[str, Callable[[], LLMProvider]]]:
    return {
        "anthropic": (
            settings.anthropic_api_key,
            lambda: AnthropicProvider(settings.anthropic_api_key, settings.anthropic_model),
        ),
        "openai": (
            settings.openai_api_key,
            lambda: OpenAIProvider(settings.openai_api_key, settings.openai_model),
        ),
        "gemini": (
            settings.gemini_api_key,
            lambda: GeminiProvider(
                settings.gemini_api_key,
                settings.gemini_model,
                temperature=settings.gemini_temperature,
            ),
        ),
        "groq": (
            settings.groq_api_key,
            lambda: GroqProvider(settings.groq_api_key, settings.groq_model),
        ),
    }


class ProviderRegistry:
    """Holds the providers that have credentials and picks one per request."""

    def __init__(self, providers: Mapping[str, LLMProvider], default_provider: str = ""):
        self._providers: Dict[str, LLMProvider] = dict(providers)
        self.default_provider = default_provider if default_provider in self._providers else ""
        if default_provider and not self.default_provider:
            logger.warning("Default provider '%s' is not configured; falling back", default_provider)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderRegistry":
        providers: Dict[str, LLMProvider] = {}
        for provider_id, (api_key, factory) in _factories(settings).items():
            if not api_key:
                continue
            providers[provider_id] = factory()
            logger.info("%s initialized", PROVIDER_INFO[provider_id]["name"])
        return cls(providers, default_provider=settings.default_provider)

    def available(self) -> List[str]:
        return [provider_id for provider_id in PROVIDER_ORDER if provider_id in self._providers] + [
            provider_id for provider_id in self._providers if provider_id not in PROVIDER_ORDER
        ]

    @property
    def fallback_id(self) -> Optional[str]:
        if self.default_provider:
            return self.default_provider
        available = self.available()
        return available[0] if available else None

    def resolve(self, provider_id: Optional[str] = None) -> LLMProvider:
        wanted = provider_id or self.fallback_id
        if not wanted:
            raise UnknownProviderError("No AI providers are configured")
        provider = self._providers.get(wanted)
        if provider is None:
            if wanted in PROVIDER_INFO:
                raise UnknownProviderError(f"Provider '{wanted}' is not configured", provider_id=wanted)
            raise UnknownProviderError(f"Unsupported AI provider: {wanted}", provider_id=wanted)
        return provider

    def describe(self) -> List[dict]:
        described = []
        for provider_id in self.available():
            info = PROVIDER_INFO.get(provider_id, {})
            described.append(
                {
                    "id": provider_id,
                    "name": info.get("name", provider_id),
                    "model": self._providers[provider_id].model,
                    "description": info.get("description", ""),
                }
            )
        return described

    def close(self) -> None:
        for provider_id, provider in self._providers.items():
            try:
                provider.close()
            except Exception:
                logger.debug("Failed to close provider %s", provider_id, exc_info=True)

    def __len__(self) -> int:
        return len(self._providers)
