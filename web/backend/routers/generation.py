#!/usr/bin/env python3
"""
Generation endpoint - manually (re)compute matches for one entity.
"""

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from ..dependencies import get_context
from ..services.generation_service import GenerationService
from ..models.requests import GenerateRequest
from ..models.responses import GenerateResponse

router = APIRouter(prefix="/api/matches", tags=["generation"])


@router.post("/generate", response_model=GenerateResponse)
def generate_matches(
    body: GenerateRequest,
    ctx: AppContext = Depends(get_context)
):
    """
    Trigger matching for a subject or an opportunity.

    Queued on the worker when async mode is on; otherwise runs inline and
    returns the trigger summary.
    """
    submission = GenerationService(ctx.job_queue).generate(
        subject_id=body.subject_id,
        opportunity_id=body.opportunity_id
    )
    return GenerateResponse(
        success=True,
        queued=submission.queued,
        job_id=submission.job_id,
        result=submission.result.as_dict() if submission.result is not None else None
    )
