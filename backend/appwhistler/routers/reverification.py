"""
API routes for operating automated fact-check re-verification.
Handles manual cycle requests, cycle statistics, and update history.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from appwhistler.config import get_settings
from appwhistler.db.database import get_db
from appwhistler.schemas.fact_check import FactCheckHistoryResponse
from appwhistler.schemas.reverification import (
    CycleLogListResponse, CycleLogResponse, ReverificationRunResponse, ReverificationStatsResponse
)
from appwhistler.services.cycle_log_service import CycleLogService
from appwhistler.services.fact_check_service import FactCheckNotFoundError, FactCheckService
from appwhistler.services.kafka_service import KafkaConnectionError, KafkaService
from appwhistler.utils.logger import get_logger, set_correlation_id

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/api", tags=["reverification"])


@router.post("/reverification/run", response_model=ReverificationRunResponse, status_code=202)
def request_manual_cycle(
    requested_by: Optional[str] = Query(None, max_length=100, description="Operator requesting the run")
) -> ReverificationRunResponse:
    """
    Queue a manual re-verification cycle.

    The worker runs the cycle; if one is already in progress the request is skipped.
    """
    correlation_id = set_correlation_id()
    request_id = uuid.uuid4()

    logger.info("Manual re-verification requested", request_id=request_id, requested_by=requested_by)

    try:
        with KafkaService() as kafka:
            kafka.publish_reverification_request(request_id, requested_by)

    except KafkaConnectionError as e:
        logger.error("Failed to queue re-verification request", request_id=request_id, error=str(e))
        raise HTTPException(status_code=503, detail={
            "error": {
                "code": "QUEUE_ERROR",
                "message": "Unable to queue re-verification request",
                "correlation_id": correlation_id
            }
        })

    return ReverificationRunResponse(
        request_id=request_id,
        status="queued",
        message="Re-verification cycle queued for the worker"
    )


@router.get("/reverification/stats", response_model=ReverificationStatsResponse)
def get_reverification_stats(
    days: int = Query(settings.stats_window_days, ge=1, le=365, description="Trailing window in days"),
    db: Session = Depends(get_db)
) -> ReverificationStatsResponse:
    """Aggregate counters of the cycles run in the trailing window."""
    set_correlation_id()
    return CycleLogService(db).get_stats(days=days)


@router.get("/reverification/logs", response_model=CycleLogListResponse)
def list_cycle_logs(
    limit: int = Query(20, ge=1, le=100, description="Number of cycles to return (max 100)"),
    db: Session = Depends(get_db)
) -> CycleLogListResponse:
    """List the most recent cycle logs, newest first."""
    set_correlation_id()
    logs, total = CycleLogService(db).list_recent(limit=limit)
    return CycleLogListResponse(
        logs=[CycleLogResponse.model_validate(log) for log in logs],
        total=total
    )


@router.get("/fact-checks/{fact_check_id}/updates", response_model=FactCheckHistoryResponse)
def get_fact_check_updates(
    fact_check_id: uuid.UUID,
    db: Session = Depends(get_db)
) -> FactCheckHistoryResponse:
    """
    Get a fact-check's current verdict and its automated update history.

    Raises FactCheckNotFoundError, rendered as a 404 by the application handler.
    """
    set_correlation_id()
    return FactCheckService(db).get_update_history(fact_check_id)
