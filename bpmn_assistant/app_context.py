"""Process-level dependencies, built once at startup and passed to request handlers.

Lifecycle: ``AppContext.build(settings)`` creates the provider clients and
fails with :class:`ConfigurationError` when no provider has credentials, so the
server never starts accepting traffic without one. ``close()`` releases the
provider HTTP clients; the FastAPI lifespan calls it on shutdown.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from bpmn_assistant.llm.registry import ProviderRegistry
from bpmn_assistant.services.telemetry import LoggingTelemetrySink, NullTelemetrySink, TelemetrySink
from bpmn_assistant.tools.bpmn_repair import RepairPipeline
from bpmn_assistant.utils.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)


def build_telemetry(settings: Settings) -> TelemetrySink:
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled")
        return NullTelemetrySink()
    return LoggingTelemetrySink(environment=settings.environment, release=settings.release)


@dataclass
class AppContext:
    settings: Settings
    providers: ProviderRegistry
    telemetry: TelemetrySink
    pipeline: RepairPipeline = field(default_factory=RepairPipeline)

    @classmethod
    def build(
        cls,
        settings: Settings,
        providers: Optional[ProviderRegistry] = None,
        telemetry: Optional[TelemetrySink] = None,
    ) -> "AppContext":
        registry = providers if providers is not None else ProviderRegistry.from_settings(settings)
        if len(registry) == 0:
            raise ConfigurationError(
                "No AI provider API keys are set. Configure at least one of "
                "ANTHROPIC_API_KEY, OPENAI_API_KEY, GEMINI_API_KEY or GROQ_API_KEY."
            )
        logger.info("Available AI providers: %s", ", ".join(registry.available()))
        return cls(
            settings=settings,
            providers=registry,
            telemetry=telemetry if telemetry is not None else build_telemetry(settings),
        )

    def close(self) -> None:
        self.providers.close()
