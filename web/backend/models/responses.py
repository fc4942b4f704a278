#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any


class FeedbackView(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = None
    helpful: Optional[bool] = None
    submitted_at: Optional[str] = None


class MatchView(BaseModel):
    """A persisted match."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "match_id": "550e8400-e29b-41d4-a716-446655440000",
                "subject_id": "64f1c2a7e4b0a1b2c3d4e5f6",
                "opportunity_id": "64f1c2a7e4b0a1b2c3d4e5f7",
                "score": 72,
                "factors": {
                    "skill": 100.0,
                    "experience": 75.0,
                    "availability": 50.0,
                    "location": 50.0,
                    "interest": 50.0
                },
                "reasons": ["Strong skill match - you have 100% of required skills"],
                "status": "pending",
                "feedback": None,
                "trigger_source": "event",
                "created_at": "2026-02-01T12:00:00+00:00",
                "updated_at": "2026-02-01T12:00:00+00:00"
            }
        }
    )

    match_id: str
    subject_id: str
    opportunity_id: str
    score: int = Field(ge=0, le=100)
    factors: Dict[str, float]
    reasons: List[str]
    status: str
    feedback: Optional[FeedbackView] = None
    trigger_source: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    # Opposite-side record from the collaborator when include_details=true
    details: Optional[Dict[str, Any]] = None


class Pagination(BaseModel):
    page: int
    pages: int
    total: int
    limit: int


class MatchListResponse(BaseModel):
    success: bool
    matches: List[MatchView]
    pagination: Pagination


class MatchResponse(BaseModel):
    success: bool
    match: MatchView


class GenerateResponse(BaseModel):
    """Queued job id, or the inline trigger summary when running synchronously."""
    success: bool
    queued: bool
    job_id: Optional[str] = None
    result: Optional[Dict[str, Any]] = None


class StatsResponse(BaseModel):
    success: bool
    total_matches: int
    by_status: Dict[str, int]
    average_score: Optional[float] = None
    feedback_count: int = 0
    average_rating: Optional[float] = None
    queue: Optional[Dict[str, Any]] = None
