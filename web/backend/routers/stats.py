#!/usr/bin/env python3
"""
Stats endpoints - match counts and feedback summary.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.app_context import AppContext
from ..dependencies import get_db, get_context
from ..services.match_service import MatchService
from ..models.responses import StatsResponse

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context)
):
    """
    Get overall statistics about matches in the database.

    Returns counts per status, the average score and feedback totals.
    """
    stats = MatchService(db).get_stats()
    return StatsResponse(success=True, queue=ctx.job_queue.get_queue_status(), **stats)
