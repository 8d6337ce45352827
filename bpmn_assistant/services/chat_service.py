"""Chat round-trip between the editor and a language model.

Every path out of :func:`handle_chat` yields a :class:`ChatResult` whose body
holds a renderable document: the validated (possibly repaired) model output,
or the document the client sent.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bpmn_assistant.app_context import AppContext
from bpmn_assistant.llm.base import LLMProvider, ProviderError, ProviderTimeout, UnknownProviderError
from bpmn_assistant.prompts.chat import compose_prompt
from bpmn_assistant.schemas import ChatRequest, ChatResponse, RenderErrorReport
from bpmn_assistant.services.reply_parser import ResponseParseError, parse_model_reply
from bpmn_assistant.tools.bpmn_repair import RepairOutcome, RepairPipeline
from bpmn_assistant.tools.bpmn_validator import DocumentValidationError

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "No specific response provided."
PROVIDER_FAILURE_RESPONSE = "Error: Failed to get response from AI."
TIMEOUT_RESPONSE = "Error: The AI provider did not respond in time. Your diagram was not changed."
INTERNAL_FAILURE_RESPONSE = "Error: Something went wrong while processing your request. Your diagram was not changed."
RENDER_FAILURE_RESPONSE = (
    "The updated diagram could not be displayed by the editor, so the previous version was restored."
)

_REPAIR_NOTES = {
    "sanitize": "Note: the generated diagram had malformed attribute quoting and was repaired automatically.",
    "rebuild": (
        "Note: the generated diagram was malformed and has been simplified to its process definition; "
        "the diagram layout was reset."
    ),
}


class RenderImportError(RuntimeError):
    """The editor rejected a document that passed validation."""


@dataclass
class ChatResult:
    status_code: int
    body: ChatResponse


class ResponseGuard:
    """Marks that a reply went out for one exchange so late results are dropped."""

    def __init__(self) -> None:
        self.sent = False
        self.discarded = 0

    def claim(self) -> bool:
        if self.sent:
            return False
        self.sent = True
        return True


def _discard_late_result(guard: ResponseGuard, provider_id: str, future: "asyncio.Future[str]") -> None:
    failed = future.cancelled() or future.exception() is not None
    if guard.sent:
        guard.discarded += 1
        logger.warning(
            "Discarding late %s from provider %s; a response was already sent",
            "failure" if failed else "result",
            provider_id,
        )


async def call_provider(
    provider: LLMProvider,
    prompt: str,
    *,
    max_tokens: int,
    timeout: float,
    guard: ResponseGuard,
) -> str:
    """Run the blocking provider call in a worker thread, bounded by ``timeout``.

    On timeout the call keeps running; its eventual result is dropped by a
    done-callback once the timeout response has claimed ``guard``.
    """
    task = asyncio.ensure_future(asyncio.to_thread(provider.generate, prompt, max_tokens=max_tokens))
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()
    task.add_done_callback(functools.partial(_discard_late_result, guard, provider.provider_id))
    raise ProviderTimeout(provider.provider_id, timeout)


def apply_document(pipeline: RepairPipeline, candidate: str) -> RepairOutcome:
    outcome = pipeline.run(candidate)
    if not outcome.accepted:
        raise DocumentValidationError(outcome.error or "Document failed validation", outcome)
    return outcome


def _annotate(message: str, note: Optional[str]) -> str:
    return f"{message}\n\n{note}" if note else message


def _reply_from_model(context: AppContext, raw_text: str, original: str, provider_id: str) -> ChatResponse:
    try:
        reply = parse_model_reply(raw_text)
    except ResponseParseError as exc:
        logger.error("Failed to parse model response as JSON", extra={"provider_id": provider_id})
        context.telemetry.capture_exception(exc, {"provider": {"id": provider_id, "raw_response": raw_text}})
        return ChatResponse(
            response=f"Error: Could not parse AI response. Raw response: {raw_text}",
            updated_document_text=original,
            error_kind="response_parse",
            provider_id=provider_id,
        )

    message = reply.message or FALLBACK_RESPONSE
    impact = reply.impact_analysis or None
    candidate = reply.document_text
    if candidate is None:
        return ChatResponse(
            response=message,
            updated_document_text=original,
            impact_analysis=impact,
            provider_id=provider_id,
        )

    try:
        outcome = apply_document(context.pipeline, candidate)
    except DocumentValidationError as exc:
        context.telemetry.capture_message(
            "Generated document rejected",
            "warning",
            {"validation": exc.outcome.as_dict() if exc.outcome else {"error": str(exc)}},
        )
        note = (
            "Note: the generated diagram failed validation and was not applied; "
            f"keeping the previous diagram. Details: {exc}"
        )
        return ChatResponse(
            response=_annotate(message, note),
            updated_document_text=original,
            impact_analysis=impact,
            error_kind="document_validation",
            repair_strategy="none",
            provider_id=provider_id,
        )

    if outcome.repaired:
        context.telemetry.capture_message(
            f"Generated document repaired with strategy '{outcome.strategy}'",
            "info",
            {"validation": outcome.as_dict()},
        )
    return ChatResponse(
        response=_annotate(message, _REPAIR_NOTES.get(outcome.strategy)),
        updated_document_text=outcome.document_text,
        impact_analysis=impact,
        repair_strategy=outcome.strategy,
        provider_id=provider_id,
    )


def _respond(guard: ResponseGuard, status_code: int, body: ChatResponse) -> ChatResult:
    if not guard.claim():
        raise RuntimeError("A response was already sent for this exchange")
    return ChatResult(status_code, body)


async def handle_chat(
    context: AppContext,
    request: ChatRequest,
    guard: Optional[ResponseGuard] = None,
) -> ChatResult:
    """Answer one chat request; never raises for provider, parse or validation failures."""
    guard = guard or ResponseGuard()
    original = request.document_text
    request_context: Dict[str, Any] = {
        "provider_id": request.provider_id,
        "selected_elements": list(request.selected_element_ids),
        "prompt_length": len(request.prompt),
    }
    started = time.perf_counter()
    provider_id = request.provider_id
    try:
        provider = context.providers.resolve(request.provider_id)
        provider_id = provider.provider_id
        prompt = compose_prompt(original, request.selected_element_ids, request.prompt)
        raw_text = await call_provider(
            provider,
            prompt,
            max_tokens=context.settings.max_output_tokens,
            timeout=context.settings.provider_timeout_seconds,
            guard=guard,
        )
        body = _reply_from_model(context, raw_text, original, provider_id)
        logger.info(
            "Chat request completed",
            extra={
                "provider_id": provider_id,
                "duration_ms": int((time.perf_counter() - started) * 1000),
                "repair_strategy": body.repair_strategy,
                "error_kind": body.error_kind,
            },
        )
        return _respond(guard, 200, body)
    except UnknownProviderError as exc:
        logger.warning("Rejected chat request: %s", exc)
        return _respond(
            guard,
            400,
            ChatResponse(response=f"Error: {exc}", updated_document_text=original, error_kind="provider_unavailable"),
        )
    except ProviderTimeout as exc:
        logger.warning("%s", exc)
        context.telemetry.capture_message(str(exc), "warning", {"request": request_context})
        return _respond(
            guard,
            504,
            ChatResponse(
                response=TIMEOUT_RESPONSE,
                updated_document_text=original,
                error_kind="provider_timeout",
                provider_id=provider_id,
            ),
        )
    except ProviderError as exc:
        logger.error("Error communicating with provider %s: %s", provider_id, exc)
        context.telemetry.capture_exception(exc, {"request": request_context})
        return _respond(
            guard,
            502,
            ChatResponse(
                response=PROVIDER_FAILURE_RESPONSE,
                updated_document_text=original,
                error_kind="provider_error",
                provider_id=provider_id,
            ),
        )
    except Exception as exc:
        logger.exception("Unexpected error while handling chat request")
        context.telemetry.capture_exception(exc, {"request": request_context})
        return _respond(
            guard,
            500,
            ChatResponse(
                response=INTERNAL_FAILURE_RESPONSE,
                updated_document_text=original,
                error_kind="internal",
                provider_id=provider_id,
            ),
        )


def handle_render_failure(context: AppContext, report: RenderErrorReport) -> ChatResult:
    """Record that the editor could not import a document and hand back the previous one."""
    error = RenderImportError(report.message or "The editor rejected the document")
    context.telemetry.capture_exception(
        error,
        {"render": {"message": report.message, "document_text": report.document_text}},
    )
    logger.warning("Editor failed to import a validated document: %s", error)
    return ChatResult(
        200,
        ChatResponse(
            response=RENDER_FAILURE_RESPONSE,
            updated_document_text=report.previous_document_text,
            error_kind="render_import",
        ),
    )
