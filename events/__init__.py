"""
Broker integration for the matching engine.

Inbound subject/opportunity events and outbound match batches travel over
Redis Streams; manual generation requests go through an RQ queue.
"""

from events.messages import (
    SUBJECT_CREATED,
    SUBJECT_UPDATED,
    OPPORTUNITY_CREATED,
    MATCH_CREATED_BATCH,
    decode_entry,
    encode_entry,
    build_batch_payload,
)
from events.router import EventTriggerRouter
from events.publisher import MatchEventPublisher
from events.consumer import EventConsumer
from events.queue import MatchingJobQueue, QueueSubmission, process_trigger_task

__all__ = [
    'SUBJECT_CREATED',
    'SUBJECT_UPDATED',
    'OPPORTUNITY_CREATED',
    'MATCH_CREATED_BATCH',
    'decode_entry',
    'encode_entry',
    'build_batch_payload',
    'EventTriggerRouter',
    'MatchEventPublisher',
    'EventConsumer',
    'MatchingJobQueue',
    'QueueSubmission',
    'process_trigger_task',
]
