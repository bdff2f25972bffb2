"""
API Schemas
===========

Pydantic models for API request/response handling.
"""

from typing import Optional

from pydantic import BaseModel, Field

from core.models import Investigation, PipelineKind


class InvestigationRequest(BaseModel):
    """Request to start an investigation."""
    query: str = Field(..., min_length=1, description="Natural-language investigation request")
    pipelines: Optional[list[PipelineKind]] = Field(
        default=None,
        description="Explicit pipeline kinds in execution order; parsed from the query when omitted",
    )


class InvestigationStartResponse(BaseModel):
    """Response from starting an investigation."""
    investigation_id: str
    status: str
    message: str
    live_url: Optional[str] = None
    investigation: Investigation


class StopResponse(BaseModel):
    """Response from stopping the current investigation."""
    status: str
    investigation: Investigation


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str
    error_code: Optional[str] = None
