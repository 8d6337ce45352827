"""Pydantic schemas for API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_text: str = Field(
        validation_alias=AliasChoices("documentText", "diagramXML", "document_text"),
        serialization_alias="documentText",
    )
    selected_element_ids: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selectedElementIds", "selected_element_ids"),
        serialization_alias="selectedElementIds",
    )
    prompt: str = Field(min_length=1)
    provider_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("providerId", "provider", "provider_id"),
        serialization_alias="providerId",
    )


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    updated_document_text: str = Field(serialization_alias="updatedDocumentText")
    impact_analysis: Optional[str] = Field(default=None, serialization_alias="impactAnalysis")
    error_kind: Optional[str] = Field(default=None, serialization_alias="errorKind")
    repair_strategy: Optional[str] = Field(default=None, serialization_alias="repairStrategy")
    provider_id: Optional[str] = Field(default=None, serialization_alias="providerId")

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RenderErrorReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_text: str = Field(
        default="",
        validation_alias=AliasChoices("documentText", "document_text"),
    )
    previous_document_text: str = Field(
        validation_alias=AliasChoices("previousDocumentText", "previous_document_text"),
    )
    message: str = ""


class ProviderDescription(BaseModel):
    id: str
    name: str
    model: str
    description: str


class ProvidersResponse(BaseModel):
    providers: List[ProviderDescription]
    default: Optional[str] = None


class DefaultDiagramResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_text: str = Field(serialization_alias="documentText")
