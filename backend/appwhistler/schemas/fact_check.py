"""
Pydantic schemas for fact-check data exchanged with the verification provider
and returned by the API.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from appwhistler.models.fact_check import Verdict


class Source(BaseModel):
    """A supporting source; at least one of label or url is present."""
    label: Optional[str] = None
    url: Optional[str] = None

    @model_validator(mode="after")
    def require_label_or_url(self) -> "Source":
        if not self.label and not self.url:
            raise ValueError("source needs a label or a url")
        return self


class ProviderVerdict(BaseModel):
    """Fresh verdict returned by a verification provider for one claim."""
    verdict: Verdict
    confidence: float = Field(..., ge=0.0, le=1.0)
    sources: List[Source] = []
    explanation: str = ""


class FactCheckUpdateResponse(BaseModel):
    """Schema for one entry of a fact-check's update history."""
    id: UUID
    fact_check_id: UUID
    old_verdict: str
    new_verdict: str
    old_confidence: float
    new_confidence: float
    reason: str
    created_at: datetime

    class Config:
        from_attributes = True


class FactCheckHistoryResponse(BaseModel):
    """Schema for a fact-check's current verdict together with its history."""
    fact_check_id: UUID
    verdict: str
    confidence_score: float
    last_verified_at: Optional[datetime] = None
    automated_update_count: int
    updates: List[FactCheckUpdateResponse]
