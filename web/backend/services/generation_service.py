#!/usr/bin/env python3
"""
Generation service - manual (re)generation of matches for one entity.
"""

import logging
from typing import Optional

from core.snapshots import SUBJECT, OPPORTUNITY
from core.triggers import Trigger, SOURCE_MANUAL
from events.queue import MatchingJobQueue, QueueSubmission

logger = logging.getLogger(__name__)


class GenerationService:
    def __init__(self, job_queue: MatchingJobQueue):
        self.job_queue = job_queue

    def generate(self, subject_id: Optional[str] = None, opportunity_id: Optional[str] = None) -> QueueSubmission:
        """
        Queue (or run inline) a trigger for the given entity.

        Raises:
            CollaboratorUnavailableError: inline run could not reach a collaborator.
            EntityNotFoundError: inline run found no such entity.
        """
        if subject_id is not None:
            trigger = Trigger(SUBJECT, subject_id, SOURCE_MANUAL)
        else:
            trigger = Trigger(OPPORTUNITY, opportunity_id, SOURCE_MANUAL)

        logger.info(f"Manual generation requested for {trigger}")
        return self.job_queue.submit(trigger)
