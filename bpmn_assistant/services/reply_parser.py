"""Extract the structured reply from free-form model output.

The model is asked for a JSON object, optionally fenced in a markdown code
block. Large documents may arrive in batched mode::

    {"batched": true, "batchCount": 2, "batchPart1": "<bpmn:...", "batchPart2": "...>"}

The payload is resolved once into :class:`DirectDocument` or
:class:`BatchedDocument`; downstream code only reads ``ModelReply.document_text``.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ResponseParseError(ValueError):
    """Raised when model output holds no usable JSON object."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


@dataclass(frozen=True)
class DirectDocument:
    text: str


@dataclass(frozen=True)
class BatchedDocument:
    parts: Tuple[str, ...]

    @property
    def text(self) -> str:
        return "".join(self.parts)


DocumentPayload = Union[DirectDocument, BatchedDocument]


@dataclass(frozen=True)
class ModelReply:
    response: Optional[str] = None
    impact_analysis: Optional[str] = None
    document: Optional[DocumentPayload] = None

    @property
    def document_text(self) -> Optional[str]:
        return self.document.text if self.document is not None else None

    @property
    def message(self) -> Optional[str]:
        return self.response or self.impact_analysis or None


class _ReplyPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    updated_document_text: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("updatedDocumentText", "updatedDiagramXML"),
    )
    response: Optional[str] = None
    impact_analysis: Optional[str] = Field(default=None, validation_alias=AliasChoices("impactAnalysis"))
    batched: bool = False
    batch_count: Optional[int] = Field(default=None, validation_alias=AliasChoices("batchCount"))

    @field_validator("response", "impact_analysis", mode="before")
    @classmethod
    def _message_as_text(cls, value: Any) -> Optional[str]:
        """Models sometimes send lists or objects here; keep them as text."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)):
            return "\n".join(item if isinstance(item, str) else json.dumps(item) for item in value)
        return json.dumps(value)


_THINK_RE = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_FENCED_JSON_RE = re.compile(r"```(?:json)?[ \t]*\n([\s\S]*?)\n?```", re.IGNORECASE)
_OBJECT_SPAN_RE = re.compile(r"\{[\s\S]*\}")


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        cleaned = candidate.replace("“", '"').replace("”", '"')
        cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first JSON object found in ``text``.

    Tries a fenced code block, then the whole text, then the outermost
    ``{...}`` span.
    """
    if not isinstance(text, str) or not text.strip():
        raise ResponseParseError("Model returned an empty response", raw_text=text or "")
    content = _THINK_RE.sub("", text).strip()

    candidates = [match.group(1) for match in _FENCED_JSON_RE.finditer(content)]
    candidates.append(content)
    span = _OBJECT_SPAN_RE.search(content)
    if span:
        candidates.append(span.group(0))

    for candidate in candidates:
        data = _loads_object(candidate.strip())
        if data is not None:
            return data
    raise ResponseParseError("No JSON object found in model output", raw_text=text)


def _resolve_document(payload: _ReplyPayload, raw_text: str) -> Optional[DocumentPayload]:
    if not payload.batched:
        if payload.updated_document_text is None:
            return None
        return DirectDocument(payload.updated_document_text)

    count = payload.batch_count
    if count is None or count < 1:
        raise ResponseParseError("Batched reply needs a positive batchCount", raw_text=raw_text)
    extra = payload.model_extra or {}
    parts = []
    for index in range(1, count + 1):
        part = extra.get(f"batchPart{index}")
        if not isinstance(part, str):
            raise ResponseParseError(f"Batched reply is missing batchPart{index}", raw_text=raw_text)
        parts.append(part)
    return BatchedDocument(tuple(parts))


def parse_model_reply(text: str) -> ModelReply:
    """Parse model output into a :class:`ModelReply`."""
    data = extract_json_object(text)
    try:
        payload = _ReplyPayload.model_validate(data)
    except ValidationError as exc:
        raise ResponseParseError(f"Unexpected reply fields: {exc.errors()[0]['msg']}", raw_text=text) from exc

    document = _resolve_document(payload, text)
    if isinstance(document, BatchedDocument):
        logger.info("Reassembled batched document from %d part(s)", len(document.parts))
    return ModelReply(
        response=payload.response,
        impact_analysis=payload.impact_analysis,
        document=document,
    )
