#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional


class StatusUpdate(BaseModel):
    """Request to move a match along its lifecycle."""
    status: str = Field(..., description="Target status: viewed, interested, applied or rejected")


class FeedbackRequest(BaseModel):
    """Qualitative feedback on a match."""
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, max_length=2000)
    helpful: Optional[bool] = None


class GenerateRequest(BaseModel):
    """Manual (re)generation for exactly one entity."""
    subject_id: Optional[str] = Field(None, min_length=1)
    opportunity_id: Optional[str] = Field(None, min_length=1)

    @model_validator(mode="after")
    def _exactly_one(self) -> "GenerateRequest":
        if (self.subject_id is None) == (self.opportunity_id is None):
            raise ValueError("Provide exactly one of subject_id or opportunity_id")
        return self
