#!/usr/bin/env python3
"""
Event Consumer - reads subject/opportunity events from Redis Streams.

Each inbound stream is read through a consumer group. A message is
acknowledged once it has been handled or can never succeed (unknown type,
malformed payload, missing entity). It is left pending when the failure is
transient or the trigger was interrupted by shutdown; pending messages idle
longer than reclaim_idle_ms are claimed again, and after max_deliveries
attempts they are copied to the dead-letter stream and acknowledged.
"""

import os
import socket
import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from redis import Redis
from redis.exceptions import ResponseError

from core.config_loader import EventsConfig
from core.errors import CollaboratorUnavailableError, EntityNotFoundError, MalformedEventError
from core.metrics import EVENTS_DEAD_LETTERED, record_event
from events.messages import decode_entry, encode_entry
from events.router import EventTriggerRouter

logger = logging.getLogger(__name__)

ACK = "ack"
NACK = "nack"


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def default_consumer_name() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class EventConsumer:
    """
    Consumer-group reader for the inbound event streams.

    Responsibilities:
    - Create consumer groups on startup
    - Dispatch messages to the router on a bounded thread pool
    - Acknowledge or leave pending according to the outcome
    - Reclaim stale pending messages and dead-letter poison ones
    """

    def __init__(
        self,
        redis_conn: Redis,
        router: EventTriggerRouter,
        config: EventsConfig,
        stop_event: Optional[threading.Event] = None
    ):
        self.redis = redis_conn
        self.router = router
        self.config = config
        self.stop_event = stop_event or threading.Event()
        self.group = config.consumer_group
        self.consumer_name = config.consumer_name or default_consumer_name()
        self.streams = [config.subject_stream, config.opportunity_stream]
        # XAUTOCLAIM cursor per stream; "0-0" means start of the pending list
        self._reclaim_cursors = {stream: "0-0" for stream in self.streams}
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, config.consumer_concurrency),
            thread_name_prefix="event"
        )

    def ensure_groups(self) -> None:
        for stream in self.streams:
            try:
                self.redis.xgroup_create(stream, self.group, id="0", mkstream=True)
                logger.info(f"Created consumer group {self.group} on {stream}")
            except ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    def handle_message(self, stream: str, message_id: str, fields: Dict[Any, Any]) -> str:
        """Process one message and return ACK or NACK. Never raises."""
        decision, reason = self._decide(stream, message_id, fields)
        record_event(decision, reason)
        return decision

    def _decide(self, stream: str, message_id: str, fields: Dict[Any, Any]) -> Tuple[str, str]:
        try:
            event_type, payload = decode_entry(fields)
            result = self.router.handle(event_type, payload, stop_event=self.stop_event)
        except MalformedEventError as e:
            logger.warning(f"Dropping malformed message {stream}/{message_id}: {e}")
            return ACK, "malformed"
        except EntityNotFoundError as e:
            logger.warning(f"Dropping message {stream}/{message_id}: {e}")
            return ACK, "not_found"
        except CollaboratorUnavailableError as e:
            logger.warning(f"Leaving message {stream}/{message_id} for redelivery: {e}")
            return NACK, "unavailable"
        except Exception as e:
            logger.error(f"Unexpected error handling {stream}/{message_id}: {e}", exc_info=True)
            return NACK, "error"

        if result is None:
            return ACK, "ignored"
        if result.aborted:
            logger.info(f"Trigger for {stream}/{message_id} interrupted; leaving for redelivery")
            return NACK, "aborted"
        return ACK, "processed"

    def _process(self, stream: str, message_id: str, fields: Dict[Any, Any]) -> str:
        decision = self.handle_message(stream, message_id, fields)
        if decision == ACK:
            self.redis.xack(stream, self.group, message_id)
        return decision

    def _dispatch(self, messages: List[Tuple[str, str, Dict[Any, Any]]]) -> Dict[str, int]:
        outcome = {ACK: 0, NACK: 0}
        futures = [self._executor.submit(self._process, *message) for message in messages]
        for future in futures:
            try:
                outcome[future.result()] += 1
            except Exception as e:
                # xack itself failed; the message stays pending and will be reclaimed
                outcome[NACK] += 1
                logger.error(f"Failed to acknowledge message: {e}")
        return outcome

    @staticmethod
    def _flatten(response) -> List[Tuple[str, str, Dict[Any, Any]]]:
        if not response:
            return []
        entries = response.items() if isinstance(response, dict) else response
        messages = []
        for stream, stream_messages in entries:
            for message_id, fields in stream_messages:
                messages.append((_text(stream), _text(message_id), fields))
        return messages

    def poll_once(self) -> Dict[str, int]:
        """Read one batch of new messages and handle it."""
        response = self.redis.xreadgroup(
            self.group,
            self.consumer_name,
            {stream: ">" for stream in self.streams},
            count=self.config.read_count,
            block=self.config.block_ms
        )
        messages = self._flatten(response)
        if not messages:
            return {ACK: 0, NACK: 0}
        return self._dispatch(messages)

    def _delivery_count(self, stream: str, message_id: str) -> int:
        pending = self.redis.xpending_range(stream, self.group, min=message_id, max=message_id, count=1)
        if not pending:
            return 0
        return int(pending[0].get("times_delivered", 0))

    def dead_letter(self, stream: str, message_id: str, fields: Dict[Any, Any], deliveries: int) -> None:
        decoded = {_text(k): _text(v) for k, v in (fields or {}).items()}
        entry = encode_entry(decoded.get("type", "unknown"), {
            "source_stream": stream,
            "message_id": message_id,
            "deliveries": deliveries,
            "payload": decoded.get("payload"),
        })
        self.redis.xadd(self.config.dead_letter_stream, entry)
        self.redis.xack(stream, self.group, message_id)
        EVENTS_DEAD_LETTERED.labels(stream).inc()
        logger.error(
            f"Message {stream}/{message_id} dead-lettered after {deliveries} deliveries"
        )

    @property
    def reclaim_in_progress(self) -> bool:
        """True while a reclaim scan stopped part way through some pending list."""
        return any(cursor != "0-0" for cursor in self._reclaim_cursors.values())

    def reclaim_once(self) -> Dict[str, int]:
        """Claim messages other consumers (or earlier attempts) left pending too long."""
        outcome = {ACK: 0, NACK: 0, "dead_lettered": 0}
        to_process = []
        for stream in self.streams:
            response = self.redis.xautoclaim(
                stream,
                self.group,
                self.consumer_name,
                min_idle_time=self.config.reclaim_idle_ms,
                start_id=self._reclaim_cursors[stream],
                count=self.config.read_count
            )
            if not response:
                self._reclaim_cursors[stream] = "0-0"
                continue
            self._reclaim_cursors[stream] = _text(response[0]) if response[0] else "0-0"
            claimed = response[1] if len(response) > 1 else []
            for message_id, fields in claimed:
                message_id = _text(message_id)
                if not fields:
                    # entry was trimmed from the stream
                    self.redis.xack(stream, self.group, message_id)
                    continue
                deliveries = self._delivery_count(stream, message_id)
                if deliveries > self.config.max_deliveries:
                    self.dead_letter(stream, message_id, fields, deliveries)
                    outcome["dead_lettered"] += 1
                else:
                    to_process.append((stream, message_id, fields))

        if to_process:
            logger.info(f"Reclaimed {len(to_process)} pending messages")
            dispatched = self._dispatch(to_process)
            outcome[ACK] += dispatched[ACK]
            outcome[NACK] += dispatched[NACK]
        return outcome

    def run(self) -> None:
        """Consume until the stop event is set."""
        self.ensure_groups()
        logger.info(
            f"Consumer {self.consumer_name} reading {', '.join(self.streams)} "
            f"as group {self.group}"
        )
        reclaim_interval = self.config.reclaim_idle_ms / 1000.0
        last_reclaim = 0.0

        while not self.stop_event.is_set():
            try:
                if time.time() - last_reclaim >= reclaim_interval or self.reclaim_in_progress:
                    self.reclaim_once()
                    last_reclaim = time.time()
                self.poll_once()
            except Exception as e:
                logger.error(f"Error in consumer loop: {e}", exc_info=True)
                self.stop_event.wait(1)

        logger.info("Consumer stopped")

    def close(self) -> None:
        self._executor.shutdown(wait=True)
