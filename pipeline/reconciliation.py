#!/usr/bin/env python3
"""
Scheduled Reconciliation Job - catches triggers the event path missed.

Each sweep fetches recently active subjects and opportunities and runs the
matching pipeline for every one of them. The pipeline is idempotent, so a
sweep that overlaps the event path only produces duplicates that are
skipped at insert time.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional

from redis import Redis

from core.collaborators import SubjectServiceClient, OpportunityServiceClient
from core.config_loader import ReconciliationConfig
from core.errors import MatchingError
from core.snapshots import SUBJECT, OPPORTUNITY
from core.triggers import Trigger, SOURCE_RECONCILIATION
from pipeline.runner import MatchingPipeline

logger = logging.getLogger(__name__)

LOCK_NAME = "matching:reconciliation:lock"


@dataclass
class ReconciliationResult:
    skipped: bool = False
    subjects: int = 0
    opportunities: int = 0
    triggers_run: int = 0
    triggers_failed: int = 0
    matches_created: int = 0
    aborted: bool = False
    elapsed_seconds: float = 0.0


def _batches(items: List[Trigger], size: int) -> List[List[Trigger]]:
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


class ReconciliationJob:
    def __init__(
        self,
        pipeline: MatchingPipeline,
        subjects: SubjectServiceClient,
        opportunities: OpportunityServiceClient,
        config: ReconciliationConfig,
        redis_conn: Optional[Redis] = None
    ):
        self.pipeline = pipeline
        self.subjects = subjects
        self.opportunities = opportunities
        self.config = config
        self.redis = redis_conn

    def _recent_ids(self, side: str) -> List[str]:
        """Ids of recently active entities on one side; a fetch failure yields none."""
        client = self.subjects if side == SUBJECT else self.opportunities
        try:
            records = client.recent(self.config.recency_hours, self.config.max_entities)
        except MatchingError as e:
            logger.error(f"Reconciliation: could not fetch recent {side} records: {e}")
            return []

        ids = []
        for record in records[:self.config.max_entities]:
            entity_id = record.get("_id", record.get("id")) if isinstance(record, dict) else None
            if entity_id:
                ids.append(str(entity_id))
            else:
                logger.warning(f"Reconciliation: skipping {side} record without id")
        return ids

    def _run_batch(self, batch: List[Trigger], stop_event: threading.Event, result: ReconciliationResult, lock: threading.Lock):
        for trigger in batch:
            if stop_event.is_set():
                return
            try:
                outcome = self.pipeline.run_trigger(trigger, stop_event=stop_event)
            except Exception as e:
                logger.error(f"Reconciliation: trigger {trigger} failed: {e}")
                with lock:
                    result.triggers_failed += 1
                continue
            with lock:
                result.triggers_run += 1
                result.matches_created += outcome.created

    def _sweep(self, stop_event: threading.Event) -> ReconciliationResult:
        result = ReconciliationResult()

        subject_ids = self._recent_ids(SUBJECT)
        opportunity_ids = self._recent_ids(OPPORTUNITY)
        result.subjects = len(subject_ids)
        result.opportunities = len(opportunity_ids)

        triggers = [Trigger(SUBJECT, sid, SOURCE_RECONCILIATION) for sid in subject_ids]
        triggers += [Trigger(OPPORTUNITY, oid, SOURCE_RECONCILIATION) for oid in opportunity_ids]
        batches = _batches(triggers, self.config.batch_size)

        logger.info(
            f"Reconciliation: {result.subjects} subjects, {result.opportunities} opportunities "
            f"in {len(batches)} batches"
        )

        if batches:
            counter_lock = threading.Lock()
            workers = min(max(1, self.config.concurrency), len(batches))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reconcile") as executor:
                futures = [
                    executor.submit(self._run_batch, batch, stop_event, result, counter_lock)
                    for batch in batches
                ]
                for future in as_completed(futures):
                    future.result()

        result.aborted = stop_event.is_set()
        return result

    def run_once(self, stop_event: Optional[threading.Event] = None) -> ReconciliationResult:
        if stop_event is None:
            stop_event = threading.Event()

        start = time.time()
        logger.info("=" * 60)
        logger.info("STARTING RECONCILIATION SWEEP")
        logger.info("=" * 60)

        lock = None
        if self.redis is not None:
            lock = self.redis.lock(LOCK_NAME, timeout=self.config.lock_timeout_seconds, blocking=False)
            if not lock.acquire(blocking=False):
                logger.info("Reconciliation: another sweep holds the lock, skipping")
                return ReconciliationResult(skipped=True)

        try:
            result = self._sweep(stop_event)
        finally:
            if lock is not None:
                try:
                    lock.release()
                except Exception as e:
                    logger.warning(f"Reconciliation: failed to release lock: {e}")

        result.elapsed_seconds = time.time() - start
        logger.info(
            f"RECONCILIATION COMPLETED in {result.elapsed_seconds:.2f}s: "
            f"triggers={result.triggers_run}, failed={result.triggers_failed}, "
            f"created={result.matches_created}, aborted={result.aborted}"
        )
        return result


class ReconciliationScheduler:
    """Runs the reconciliation job on a fixed interval until stopped."""

    def __init__(self, job: ReconciliationJob, interval_seconds: int, sleep_slice_seconds: float = 5.0):
        self.job = job
        self.interval_seconds = interval_seconds
        self.sleep_slice_seconds = sleep_slice_seconds

    def run_forever(self, stop_event: threading.Event) -> int:
        """Returns the number of completed sweeps."""
        sweeps = 0
        while not stop_event.is_set():
            try:
                self.job.run_once(stop_event)
                sweeps += 1
            except Exception as e:
                logger.error(f"Error in reconciliation loop: {e}", exc_info=True)

            if stop_event.is_set():
                break
            logger.info(f"Next reconciliation sweep in {self.interval_seconds} seconds")
            # Sleep in slices so shutdown stays responsive
            deadline = time.time() + self.interval_seconds
            while not stop_event.is_set():
                remaining = deadline - time.time()
                if remaining <= 0:
                    break
                stop_event.wait(min(self.sleep_slice_seconds, remaining))
        return sweeps
