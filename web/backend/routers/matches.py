#!/usr/bin/env python3
"""
Match endpoints - list, inspect and act on matches.
"""

import uuid
import logging
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session

from core.app_context import AppContext
from ..dependencies import get_db, get_context
from ..services.match_service import MatchService
from ..models.requests import StatusUpdate, FeedbackRequest
from ..models.responses import MatchListResponse, MatchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/matches", tags=["matches"])


def validate_uuid(match_id: str) -> str:
    """Validate that match_id is a valid UUID format."""
    try:
        uuid.UUID(match_id)
        return match_id
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid match_id format: {match_id}. Must be a valid UUID."
        )


def _service(db: Session, ctx: AppContext) -> MatchService:
    return MatchService(db, subjects=ctx.subjects, opportunities=ctx.opportunities)


@router.get("/subject/{subject_id}", response_model=MatchListResponse)
def get_subject_matches(
    subject_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    min_score: int = Query(default=30, ge=0, le=100),
    include_details: bool = Query(default=False, description="Attach each opportunity record"),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context)
):
    """
    Get matches for a subject, highest score first.
    """
    result = _service(db, ctx).list_for_subject(
        subject_id, page=page, limit=limit, min_score=min_score, include_details=include_details
    )
    return MatchListResponse(success=True, **result)


@router.get("/opportunity/{opportunity_id}", response_model=MatchListResponse)
def get_opportunity_matches(
    opportunity_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    min_score: int = Query(default=30, ge=0, le=100),
    include_details: bool = Query(default=False, description="Attach each subject record"),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context)
):
    """
    Get matches for an opportunity, highest score first.
    """
    result = _service(db, ctx).list_for_opportunity(
        opportunity_id, page=page, limit=limit, min_score=min_score, include_details=include_details
    )
    return MatchListResponse(success=True, **result)


@router.get("/{match_id}", response_model=MatchResponse)
def get_match(
    match_id: str,
    db: Session = Depends(get_db)
):
    validate_uuid(match_id)
    return MatchResponse(success=True, match=MatchService(db).get_match(match_id))


@router.put("/{match_id}/status", response_model=MatchResponse)
def update_match_status(
    match_id: str,
    body: StatusUpdate,
    db: Session = Depends(get_db)
):
    """
    Move a match along its lifecycle.

    Allowed: forward along pending, viewed, interested, applied, or to
    rejected from any other status. Anything else is a 409.
    """
    validate_uuid(match_id)
    match = MatchService(db).update_status(match_id, body.status)
    return MatchResponse(success=True, match=match)


@router.post("/{match_id}/feedback", response_model=MatchResponse)
def submit_feedback(
    match_id: str,
    body: FeedbackRequest,
    db: Session = Depends(get_db)
):
    """
    Attach feedback to a match, replacing any earlier feedback.
    """
    validate_uuid(match_id)
    match = MatchService(db).add_feedback(match_id, body.rating, body.comment, body.helpful)
    return MatchResponse(success=True, match=match)
