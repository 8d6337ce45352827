"""Synchronous clients for the supported language-model providers."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from openai import OpenAI, OpenAIError

from bpmn_assistant.llm.base import ProviderError

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

_GEMINI_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def _build_httpx_client() -> httpx.Client:
    """Create an httpx client without deprecated proxy kwargs."""
    return httpx.Client(
        timeout=httpx.Timeout(connect=10.0, read=120.0, write=120.0, pool=120.0),
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        follow_redirects=True,
    )


class OpenAIProvider:
    """Chat completions through the OpenAI SDK."""

    provider_id = "openai"
    base_url: Optional[str] = None

    def __init__(self, api_key: str, model: str, client: Any = None):
        if not api_key and client is None:
            raise ProviderError(f"{self.provider_id} API key is not set", provider_id=self.provider_id)
        self.model = model
        if client is None:
            kwargs = {"api_key": api_key, "http_client": _build_httpx_client()}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            client = OpenAI(**kwargs)
        self._client = client

    def generate(self, prompt: str, *, max_tokens: int) -> str:
        logger.info("Generating response using %s (%s)", self.provider_id, self.model)
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as exc:
            raise ProviderError(
                f"{self.provider_id} request failed: {exc}",
                provider_id=self.provider_id,
                status_code=getattr(exc, "status_code", None),
            ) from exc
        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise ProviderError(f"{self.provider_id} returned an empty response", provider_id=self.provider_id)
        return text

    def close(self) -> None:
        self._client.close()


class GroqProvider(OpenAIProvider):
    """Groq through its OpenAI-compatible endpoint."""

    provider_id = "groq"
    base_url = GROQ_BASE_URL


class GeminiProvider:
    """Google Gemini through the google-genai SDK."""

    provider_id = "gemini"

    def __init__(self, api_key: str, model: str, temperature: float = 0.7, client: Any = None):
        if not api_key and client is None:
            raise ProviderError("Gemini API key is not set", provider_id=self.provider_id)
        if api_key and not api_key.startswith("AI"):
            logger.warning("Gemini API key might be invalid - should start with 'AI'")
        self.model = model
        self.temperature = temperature
        self._client = client if client is not None else genai.Client(api_key=api_key)

    def _config(self, max_tokens: int) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            temperature=self.temperature,
            safety_settings=[
                types.SafetySetting(category=category, threshold="BLOCK_NONE")
                for category in _GEMINI_SAFETY_CATEGORIES
            ],
        )

    def generate(self, prompt: str, *, max_tokens: int) -> str:
        logger.info("Generating response using gemini (%s)", self.model)
        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config(max_tokens),
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise ProviderError(f"Gemini API Error: {exc}", provider_id=self.provider_id) from exc

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            raise ProviderError(f"Gemini blocked the request: {block_reason}", provider_id=self.provider_id)
        text = getattr(response, "text", None)
        if not text:
            raise ProviderError("Gemini returned empty response", provider_id=self.provider_id)
        return text

    def close(self) -> None:
        # The genai client holds no resources that need explicit release.
        return None


class AnthropicProvider:
    """Anthropic Messages API over plain httpx."""

    provider_id = "anthropic"

    def __init__(self, api_key: str, model: str, http_client: Optional[httpx.Client] = None):
        if not api_key:
            raise ProviderError("Anthropic API key is not set", provider_id=self.provider_id)
        self.api_key = api_key
        self.model = model
        self._client = http_client or _build_httpx_client()

    def _headers(self) -> dict:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def generate(self, prompt: str, *, max_tokens: int) -> str:
        logger.info("Generating response using anthropic (%s)", self.model)
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = self._client.post(ANTHROPIC_MESSAGES_URL, headers=self._headers(), json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"Anthropic request failed with status {exc.response.status_code}: {exc.response.text[:500]}",
                provider_id=self.provider_id,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Anthropic request failed: {exc}", provider_id=self.provider_id) from exc

        data = response.json()
        blocks = data.get("content") or []
        text = "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
        if not text:
            raise ProviderError("Anthropic returned an empty response", provider_id=self.provider_id)
        return text

    def close(self) -> None:
        self._client.close()
