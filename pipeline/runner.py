"""Shared matching pipeline runner module.

One parameterised pipeline used by the event consumer, the manual
generation API (inline or through the RQ worker) and the reconciliation
job. A run enumerates candidate pairs for a trigger, scores them, persists
qualifying matches idempotently and publishes one batch event.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from core.enumerator import CandidatePairEnumerator
from core.metrics import MATCHES_CREATED, TRIGGER_ABORTED, TRIGGER_ERROR, TRIGGER_SUCCESS, record_trigger
from core.scorer import ScoringService
from core.snapshots import SubjectSnapshot, OpportunitySnapshot
from core.triggers import Trigger
from database.database import Database
from database.uow import match_uow


logger = logging.getLogger(__name__)

CREATED = "created"
DUPLICATE = "duplicate"
BELOW_THRESHOLD = "below_threshold"
SKIPPED = "skipped"


@dataclass(frozen=True)
class MatchSummary:
    """Detached view of a newly created match, safe to use after its session closed."""
    match_id: str
    subject_id: str
    opportunity_id: str
    score: int
    reasons: List[str]

    @classmethod
    def from_match(cls, match) -> "MatchSummary":
        return cls(
            match_id=str(match.id),
            subject_id=match.subject_id,
            opportunity_id=match.opportunity_id,
            score=match.score,
            reasons=list(match.reasons or []),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            'match_id': self.match_id,
            'subject_id': self.subject_id,
            'opportunity_id': self.opportunity_id,
            'score': self.score,
            'reasons': list(self.reasons),
        }


@dataclass
class TriggerResult:
    """Result of running the pipeline for one trigger."""
    trigger: Trigger
    candidates: int = 0
    scored: int = 0
    created: int = 0
    duplicates: int = 0
    below_threshold: int = 0
    failed: int = 0
    skipped_collaborators: int = 0
    skipped_existing: int = 0
    aborted: bool = False
    created_matches: List[MatchSummary] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def top_matches(self, limit: int) -> List[MatchSummary]:
        return sorted(self.created_matches, key=lambda m: (-m.score, m.match_id))[:limit]

    def as_dict(self) -> Dict[str, Any]:
        return {
            'trigger': self.trigger.as_dict(),
            'candidates': self.candidates,
            'scored': self.scored,
            'created': self.created,
            'duplicates': self.duplicates,
            'below_threshold': self.below_threshold,
            'failed': self.failed,
            'skipped_collaborators': self.skipped_collaborators,
            'skipped_existing': self.skipped_existing,
            'aborted': self.aborted,
            'matches': [m.as_dict() for m in self.top_matches(len(self.created_matches))],
            'elapsed_seconds': round(self.elapsed_seconds, 3),
        }


class MatchingPipeline:
    """
    Runs triggers end to end.

    Responsibilities:
    - Enumerate candidates (a collaborator failure aborts the whole trigger)
    - Score and persist pairs concurrently, each pair in its own unit of work
    - Honour a stop event between pairs
    - Publish one batch event per completed trigger
    """

    def __init__(
        self,
        database: Database,
        enumerator: CandidatePairEnumerator,
        scoring: ScoringService,
        publisher=None,
        pair_concurrency: int = 8
    ):
        self.database = database
        self.enumerator = enumerator
        self.scoring = scoring
        self.publisher = publisher
        self.pair_concurrency = max(1, pair_concurrency)

    def _process_pair(
        self,
        trigger: Trigger,
        subject: SubjectSnapshot,
        opportunity: OpportunitySnapshot,
        stop_event: threading.Event
    ):
        if stop_event.is_set():
            return SKIPPED, None

        result = self.scoring.score_pair(subject, opportunity)
        if not result.qualifies:
            return BELOW_THRESHOLD, None

        with match_uow(self.database) as repo:
            match = repo.create_if_absent(subject.id, opportunity.id, result, trigger.source)
            if match is None:
                return DUPLICATE, None
            summary = MatchSummary.from_match(match)

        return CREATED, summary

    def run_trigger(self, trigger: Trigger, stop_event: Optional[threading.Event] = None) -> TriggerResult:
        """Run the pipeline for one trigger.

        Raises:
            CollaboratorUnavailableError: enumeration could not reach a collaborator;
                nothing was written.
            EntityNotFoundError: the anchor entity does not exist.
        """
        if stop_event is None:
            stop_event = threading.Event()

        start = time.time()
        result = TriggerResult(trigger=trigger)
        logger.info(f"Trigger {trigger}: starting")

        if stop_event.is_set():
            result.aborted = True
            record_trigger(trigger.side, TRIGGER_ABORTED)
            logger.info(f"Trigger {trigger}: aborted before enumeration")
            return result

        try:
            enumeration = self.enumerator.enumerate(trigger)
        except Exception:
            record_trigger(trigger.side, TRIGGER_ERROR)
            raise
        result.candidates = len(enumeration.candidates)
        result.skipped_collaborators = enumeration.skipped_collaborators
        result.skipped_existing = enumeration.skipped_existing

        if enumeration.candidates:
            workers = min(self.pair_concurrency, len(enumeration.candidates))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pair") as executor:
                futures = {
                    executor.submit(self._process_pair, trigger, subject, opportunity, stop_event): (subject.id, opportunity.id)
                    for subject, opportunity in enumeration.pairs()
                }
                for future in as_completed(futures):
                    subject_id, opportunity_id = futures[future]
                    try:
                        outcome, summary = future.result()
                    except Exception as e:
                        result.failed += 1
                        logger.error(
                            f"Trigger {trigger}: pair {subject_id}->{opportunity_id} failed: {e}",
                            exc_info=True
                        )
                        continue

                    if outcome == SKIPPED:
                        continue
                    result.scored += 1
                    if outcome == CREATED:
                        result.created += 1
                        result.created_matches.append(summary)
                    elif outcome == DUPLICATE:
                        result.duplicates += 1
                    else:
                        result.below_threshold += 1

        result.aborted = stop_event.is_set()
        result.elapsed_seconds = time.time() - start
        MATCHES_CREATED.labels(trigger.source).inc(result.created)

        if result.aborted:
            record_trigger(trigger.side, TRIGGER_ABORTED)
            logger.warning(
                f"Trigger {trigger}: aborted by shutdown after {result.scored}/{result.candidates} pairs "
                f"({result.created} created)"
            )
            return result

        if self.publisher is not None:
            try:
                self.publisher.publish_batch(result)
            except Exception as e:
                logger.error(f"Trigger {trigger}: failed to publish batch event: {e}", exc_info=True)

        record_trigger(trigger.side, TRIGGER_SUCCESS)
        logger.info(
            f"Trigger {trigger}: completed in {result.elapsed_seconds:.2f}s - "
            f"candidates={result.candidates}, created={result.created}, duplicates={result.duplicates}, "
            f"below_threshold={result.below_threshold}, failed={result.failed}"
        )
        return result
