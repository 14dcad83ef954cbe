"""
Pydantic schemas for re-verification results, cycle statistics, and the
administrative API.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class ReverificationResult(BaseModel):
    """Outcome of re-verifying a single fact-check."""
    fact_check_id: UUID
    verdict_changed: bool
    old_verdict: str
    new_verdict: str
    old_confidence: float
    new_confidence: float


class CycleStats(BaseModel):
    """Counters collected while a cycle runs."""
    trigger: str = "scheduled"
    candidates: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0
    notifications_sent: int = 0

    @property
    def processed(self) -> int:
        return self.updated + self.unchanged + self.errors


class CycleLogResponse(BaseModel):
    """Schema for a persisted cycle log row."""
    id: UUID
    updated_count: int
    unchanged_count: int
    error_count: int
    triggered_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class CycleLogListResponse(BaseModel):
    """Schema for the most recent cycle log rows."""
    logs: List[CycleLogResponse]
    total: int


class ReverificationStatsResponse(BaseModel):
    """Aggregated cycle statistics over a trailing window."""
    window_days: int
    total_cycles: int = 0
    total_updated: int = 0
    total_unchanged: int = 0
    total_errors: int = 0
    last_run: Optional[datetime] = None


class ReverificationRunResponse(BaseModel):
    """Schema returned when a manual cycle has been queued."""
    request_id: UUID
    status: str
    message: str
