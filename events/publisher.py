"""Publishes match batch events to the outbound Redis stream."""

import logging
from typing import Optional

from redis import Redis

from core.config_loader import EventsConfig
from events.messages import MATCH_CREATED_BATCH, build_batch_payload, encode_entry

logger = logging.getLogger(__name__)


class MatchEventPublisher:
    def __init__(self, redis_conn: Redis, config: EventsConfig):
        self.redis = redis_conn
        self.config = config

    def publish(self, stream: str, event_type: str, payload: dict) -> str:
        entry_id = self.redis.xadd(
            stream,
            encode_entry(event_type, payload),
            maxlen=self.config.outbound_maxlen,
            approximate=True
        )
        if isinstance(entry_id, bytes):
            entry_id = entry_id.decode("utf-8")
        return entry_id

    def publish_batch(self, result) -> Optional[str]:
        """Publish one match.created-batch event for a completed trigger.

        Returns the stream entry id, or None when nothing was published.
        """
        if result.created == 0 and not self.config.publish_empty_batches:
            logger.debug(f"Trigger {result.trigger}: no matches, batch event suppressed")
            return None

        payload = build_batch_payload(result, self.config.preview_size)
        entry_id = self.publish(self.config.outbound_stream, MATCH_CREATED_BATCH, payload)
        logger.info(
            f"Published {MATCH_CREATED_BATCH} for {result.trigger} "
            f"({result.created} matches) as {entry_id}"
        )
        return entry_id
