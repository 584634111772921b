# gateway/schemas.py
# Pydantic v2 request DTOs for the handler groups and the response envelopes.

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GeneratePlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(..., min_length=1, max_length=200)
    level: Literal["beginner", "intermediate", "advanced"] = "beginner"
    duration_weeks: int = Field(default=4, ge=1, le=52, alias="durationWeeks")
    goals: Optional[str] = Field(default=None, max_length=1000)


class CurateResourcesRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200)
    level: Literal["beginner", "intermediate", "advanced"] = "beginner"
    limit: int = Field(default=8, ge=1, le=20)


class PdfChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(..., min_length=1, alias="documentId")
    question: str = Field(..., min_length=1, max_length=4000)


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: Optional[str] = None


class ErrorEnvelope(BaseModel):
    error: str
    details: str
