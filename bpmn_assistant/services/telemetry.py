"""Fire-and-forget error and event reporting."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


class TelemetrySink(Protocol):
    def capture_exception(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        ...

    def capture_message(
        self, message: str, level: str = "info", context: Optional[Dict[str, Any]] = None
    ) -> None:
        ...


def _truncate_for_log(obj: Any, max_str_len: int = 2000) -> Any:
    """Recursively truncate long strings so documents do not flood the log."""
    if isinstance(obj, str):
        return obj[:max_str_len] + "..." if len(obj) > max_str_len else obj
    if isinstance(obj, dict):
        return {k: _truncate_for_log(v, max_str_len) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_truncate_for_log(v, max_str_len) for v in obj]
    return obj


class LoggingTelemetrySink:
    """Report events through a dedicated logger, tagged with service metadata."""

    def __init__(
        self,
        environment: str = "development",
        release: str = "",
        component: str = "bpmn-ai-editor-backend",
        service: str = "api",
        sink_logger: Optional[logging.Logger] = None,
    ):
        self.tags = {
            "component": component,
            "service": service,
            "environment": environment,
            "release": release,
        }
        self._logger = sink_logger or logging.getLogger("bpmn_assistant.telemetry")

    def _extra(self, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {"tags": dict(self.tags), "context": _truncate_for_log(dict(context or {}))}

    def capture_exception(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        try:
            self._logger.error(
                "%s: %s",
                type(error).__name__,
                error,
                exc_info=(type(error), error, error.__traceback__),
                extra=self._extra(context),
            )
        except Exception:
            logger.debug("Failed to capture exception", exc_info=True)

    def capture_message(
        self, message: str, level: str = "info", context: Optional[Dict[str, Any]] = None
    ) -> None:
        try:
            self._logger.log(_LEVELS.get(level, logging.INFO), message, extra=self._extra(context))
        except Exception:
            logger.debug("Failed to capture message", exc_info=True)


class NullTelemetrySink:
    """Used when telemetry is disabled."""

    def capture_exception(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        return None

    def capture_message(
        self, message: str, level: str = "info", context: Optional[Dict[str, Any]] = None
    ) -> None:
        return None
