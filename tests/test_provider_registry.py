import pytest

from bpmn_assistant.app_context import AppContext
from bpmn_assistant.llm import registry
from bpmn_assistant.llm.base import UnknownProviderError
from bpmn_assistant.llm.registry import ProviderRegistry
from bpmn_assistant.services.telemetry import LoggingTelemetrySink, NullTelemetrySink
from bpmn_assistant.utils.config import ConfigurationError, load_settings


def _settings(**overrides):
    values = {
        "_env_file": None,
        "anthropic_api_key": "",
        "openai_api_key": "",
        "GEMINI_API_KEY": "",
        "groq_api_key": "",
        "default_provider": "",
    }
    values.update(overrides)
    return load_settings(**values)


def _stub(provider_id):
    class _Stub:
        def __init__(self, api_key, model, **kwargs):
            self.provider_id = provider_id
            self.api_key = api_key
            self.model = model
            self.closed = False

        def generate(self, prompt, *, max_tokens):
            return "{}"

        def close(self):
            self.closed = True

    return _Stub


@pytest.fixture(autouse=True)
def stub_clients(monkeypatch):
    monkeypatch.setattr(registry, "AnthropicProvider", _stub("anthropic"))
    monkeypatch.setattr(registry, "OpenAIProvider", _stub("openai"))
    monkeypatch.setattr(registry, "GeminiProvider", _stub("gemini"))
    monkeypatch.setattr(registry, "GroqProvider", _stub("groq"))


def test_only_providers_with_keys_are_initialized():
    providers = ProviderRegistry.from_settings(_settings(groq_api_key="gsk", openai_api_key="sk"))
    assert providers.available() == ["openai", "groq"]
    assert len(providers) == 2


def test_fallback_follows_initialization_order():
    providers = ProviderRegistry.from_settings(
        _settings(groq_api_key="gsk", GEMINI_API_KEY="AIza", anthropic_api_key="ak")
    )
    assert providers.fallback_id == "anthropic"
    assert providers.resolve().provider_id == "anthropic"
    assert providers.resolve("groq").provider_id == "groq"


def test_configured_default_provider_wins():
    providers = ProviderRegistry.from_settings(
        _settings(openai_api_key="sk", groq_api_key="gsk", default_provider="groq")
    )
    assert providers.resolve(None).provider_id == "groq"


def test_unconfigured_default_provider_falls_back():
    providers = ProviderRegistry.from_settings(_settings(openai_api_key="sk", default_provider="gemini"))
    assert providers.fallback_id == "openai"


def test_resolve_distinguishes_unconfigured_and_unsupported():
    providers = ProviderRegistry.from_settings(_settings(openai_api_key="sk"))
    with pytest.raises(UnknownProviderError, match="Provider 'anthropic' is not configured"):
        providers.resolve("anthropic")
    with pytest.raises(UnknownProviderError, match="Unsupported AI provider: mistral"):
        providers.resolve("mistral")


def test_empty_registry_cannot_resolve():
    with pytest.raises(UnknownProviderError, match="No AI providers are configured"):
        ProviderRegistry({}).resolve()


def test_describe_uses_provider_metadata_and_model():
    providers = ProviderRegistry.from_settings(_settings(openai_api_key="sk", openai_model="gpt-4o-mini"))
    assert providers.describe() == [
        {
            "id": "openai",
            "name": "OpenAI GPT-4o",
            "model": "gpt-4o-mini",
            "description": "Excellent general-purpose AI with strong BPMN knowledge",
        }
    ]


def test_close_releases_every_provider():
    providers = ProviderRegistry.from_settings(_settings(openai_api_key="sk", groq_api_key="gsk"))
    clients = [providers.resolve("openai"), providers.resolve("groq")]
    providers.close()
    assert all(client.closed for client in clients)


def test_context_requires_at_least_one_provider():
    with pytest.raises(ConfigurationError, match="No AI provider API keys are set"):
        AppContext.build(_settings())


def test_context_telemetry_follows_settings():
    enabled = AppContext.build(_settings(openai_api_key="sk", APP_ENVIRONMENT="staging"))
    assert isinstance(enabled.telemetry, LoggingTelemetrySink)
    assert enabled.telemetry.tags["environment"] == "staging"

    disabled = AppContext.build(_settings(openai_api_key="sk", telemetry_enabled=False))
    assert isinstance(disabled.telemetry, NullTelemetrySink)
