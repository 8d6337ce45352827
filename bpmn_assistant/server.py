"""REST API server."""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bpmn_assistant.app_context import AppContext
from bpmn_assistant.schemas import (
    ChatRequest,
    ChatResponse,
    DefaultDiagramResponse,
    ProviderDescription,
    ProvidersResponse,
    RenderErrorReport,
)
from bpmn_assistant.services.chat_service import ChatResult, handle_chat, handle_render_failure
from bpmn_assistant.tools.bpmn_templates import DEFAULT_DIAGRAM
from bpmn_assistant.utils.config import Settings, load_settings
from bpmn_assistant.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def _json_result(result: ChatResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body.to_json())


def _original_document(payload: object) -> str:
    """Best-effort recovery of the caller's document from a rejected request body."""
    if not isinstance(payload, dict):
        return ""
    for key in ("previousDocumentText", "documentText", "diagramXML", "document_text"):
        value = payload.get(key)
        if isinstance(value, str):
            return value
    return ""


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = ChatResponse(
        response="Error: Invalid request.",
        updated_document_text=_original_document(exc.body),
        error_kind="invalid_request",
    ).to_json()
    body["detail"] = json.loads(json.dumps(exc.errors(), default=str))
    return JSONResponse(status_code=422, content=body)


def create_app(context: Optional[AppContext] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API.

    The context is built eagerly so missing provider credentials fail here,
    before the server accepts traffic.
    """
    if context is None:
        settings = settings or load_settings()
        setup_logging(settings.log_level, settings.log_file)
        context = AppContext.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down; closing provider clients")
        app.state.context.close()

    app = FastAPI(title="BPMN AI Assistant API", lifespan=lifespan)
    app.state.context = context
    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.get("/")
    async def index():
        return {"status": "ok"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/providers", response_model=ProvidersResponse)
    async def list_providers(ctx: AppContext = Depends(get_context)):
        return ProvidersResponse(
            providers=[ProviderDescription(**item) for item in ctx.providers.describe()],
            default=ctx.providers.fallback_id,
        )

    @app.get("/api/diagram/default", response_model=DefaultDiagramResponse)
    async def default_diagram():
        return DefaultDiagramResponse(document_text=DEFAULT_DIAGRAM)

    @app.post("/api/chat")
    async def chat_endpoint(payload: ChatRequest, ctx: AppContext = Depends(get_context)):
        return _json_result(await handle_chat(ctx, payload))

    @app.post("/api/render-errors")
    async def render_error_endpoint(payload: RenderErrorReport, ctx: AppContext = Depends(get_context)):
        return _json_result(handle_render_failure(ctx, payload))

    return app
