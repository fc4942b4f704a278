"""
RQ-backed queue for manual (re)generation requests.

When async mode is disabled in config, or Redis cannot be reached at
startup, submissions run synchronously in the caller's process.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from redis import Redis
from rq import Queue, Retry

from core.config_loader import QueueConfig
from core.errors import EntityNotFoundError
from core.triggers import Trigger, SOURCE_MANUAL

logger = logging.getLogger(__name__)


@dataclass
class QueueSubmission:
    """Either a queued job id or the inline TriggerResult."""
    queued: bool
    job_id: Optional[str] = None
    result: Any = None


class MatchingJobQueue:
    def __init__(self, config: QueueConfig, redis_conn: Optional[Redis], pipeline):
        self.config = config
        self.pipeline = pipeline
        self.redis_conn = None
        self.queue = None
        self.async_mode = False

        if not config.use_async_queue:
            logger.info("Async queue disabled via config. Using sync mode.")
        elif redis_conn is None:
            logger.warning("No Redis connection. Using sync mode.")
        else:
            try:
                redis_conn.ping()
                self.redis_conn = redis_conn
                self.queue = Queue(config.name, connection=redis_conn)
                self.async_mode = True
                logger.info(f"Matching queue '{config.name}' connected to Redis")
            except Exception as e:
                logger.error(f"Redis connection failed: {e}. Falling back to sync mode.")

    def submit(self, trigger: Trigger) -> QueueSubmission:
        if self.async_mode:
            job = self.queue.enqueue(
                process_trigger_task,
                trigger.side,
                trigger.entity_id,
                trigger.source,
                job_timeout=self.config.job_timeout,
                result_ttl=self.config.result_ttl,
                retry=Retry(max=3, interval=[30, 60, 120])
            )
            logger.info(f"Queued trigger {trigger} as job {job.id}")
            return QueueSubmission(queued=True, job_id=job.id)

        result = self.pipeline.run_trigger(trigger)
        return QueueSubmission(queued=False, result=result)

    def get_queue_status(self) -> Dict[str, Any]:
        if not self.async_mode:
            return {'status': 'sync_mode', 'queue_length': 0}

        try:
            return {
                'status': 'active',
                'queue_length': len(self.queue),
                'redis_connected': self.redis_conn.ping()
            }
        except Exception as e:
            return {'status': 'error', 'error': str(e)}


# Worker task - must be at module level for RQ
def process_trigger_task(side: str, entity_id: str, source: str = SOURCE_MANUAL) -> Dict[str, Any]:
    """
    Run one trigger inside an RQ worker.

    CollaboratorUnavailableError propagates so RQ retries the job; a missing
    entity is final and reported in the job result instead.
    """
    from core.app_context import AppContext
    from core.config_loader import load_config

    trigger = Trigger(side=side, entity_id=entity_id, source=source)
    logger.info(f"Processing queued trigger {trigger}")

    with AppContext.build(load_config()) as ctx:
        try:
            result = ctx.pipeline.run_trigger(trigger)
        except EntityNotFoundError as e:
            logger.warning(f"Queued trigger {trigger} dropped: {e}")
            return {'trigger': trigger.as_dict(), 'error': str(e)}

    return result.as_dict()
