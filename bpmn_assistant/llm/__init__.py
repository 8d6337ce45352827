"""Language-model provider clients."""
from bpmn_assistant.llm.base import LLMProvider, ProviderError, ProviderTimeout, UnknownProviderError
from bpmn_assistant.llm.registry import ProviderRegistry

__all__ = ["LLMProvider", "ProviderError", "ProviderRegistry", "ProviderTimeout", "UnknownProviderError"]
