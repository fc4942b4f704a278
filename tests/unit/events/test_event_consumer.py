#!/usr/bin/env python3
"""
Tests for EventConsumer acknowledgement decisions, polling and reclaiming.
"""

import json
import unittest
from unittest.mock import MagicMock

from redis.exceptions import ResponseError

from core.config_loader import EventsConfig
from core.errors import CollaboratorUnavailableError, EntityNotFoundError
from events.consumer import EventConsumer, ACK, NACK
from events.router import EventTriggerRouter


def _fields(event_type="subject.created", payload=None):
    return {b"type": event_type.encode(), b"payload": json.dumps(payload or {"subjectId": "s1"}).encode()}


class TestEventConsumer(unittest.TestCase):
    def setUp(self):
        self.redis = MagicMock()
        self.pipeline = MagicMock()
        self.pipeline.run_trigger.return_value = MagicMock(aborted=False)
        self.config = EventsConfig(consumer_name="test-consumer", consumer_concurrency=2, max_deliveries=3)
        self.consumer = EventConsumer(self.redis, EventTriggerRouter(self.pipeline), self.config)

    def tearDown(self):
        self.consumer.close()

    def test_ack_on_success(self):
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", _fields()), ACK)
        self.pipeline.run_trigger.assert_called_once()

    def test_ack_on_unknown_type(self):
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", _fields("user.deleted")), ACK)
        self.pipeline.run_trigger.assert_not_called()

    def test_ack_on_malformed_payload(self):
        fields = {b"type": b"subject.created", b"payload": b"not json"}
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", fields), ACK)

    def test_ack_on_missing_identifier(self):
        fields = _fields(payload={"name": "nobody"})
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", fields), ACK)

    def test_ack_on_entity_not_found(self):
        self.pipeline.run_trigger.side_effect = EntityNotFoundError("subject", "s1")
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", _fields()), ACK)

    def test_nack_on_collaborator_unavailable(self):
        self.pipeline.run_trigger.side_effect = CollaboratorUnavailableError("subject-service", "timeout")
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", _fields()), NACK)

    def test_nack_on_unexpected_error(self):
        self.pipeline.run_trigger.side_effect = RuntimeError("boom")
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", _fields()), NACK)

    def test_nack_on_aborted_trigger(self):
        self.pipeline.run_trigger.return_value = MagicMock(aborted=True)
        self.assertEqual(self.consumer.handle_message("subject_events", "1-0", _fields()), NACK)

    def test_poll_once_acks_handled_messages(self):
        self.pipeline.run_trigger.side_effect = [
            MagicMock(aborted=False),
            CollaboratorUnavailableError("opportunity-service", "503"),
        ]
        self.redis.xreadgroup.return_value = [
            (b"subject_events", [(b"1-0", _fields())]),
        ]

        outcome = self.consumer.poll_once()
        self.assertEqual(outcome, {ACK: 1, NACK: 0})
        self.redis.xack.assert_called_once_with("subject_events", "matching-service", "1-0")

        args, kwargs = self.redis.xreadgroup.call_args
        self.assertEqual(args[0], "matching-service")
        self.assertEqual(args[1], "test-consumer")
        self.assertEqual(args[2], {"subject_events": ">", "opportunity_events": ">"})
        self.assertEqual(kwargs["count"], 16)

    def test_poll_once_leaves_failed_message_pending(self):
        self.pipeline.run_trigger.side_effect = CollaboratorUnavailableError("opportunity-service", "503")
        self.redis.xreadgroup.return_value = {
            "opportunity_events": [("5-0", _fields("project.created", {"projectId": "p1"}))],
        }

        self.assertEqual(self.consumer.poll_once(), {ACK: 0, NACK: 1})
        self.redis.xack.assert_not_called()

    def test_poll_once_empty(self):
        self.redis.xreadgroup.return_value = []
        self.assertEqual(self.consumer.poll_once(), {ACK: 0, NACK: 0})

    def test_reclaim_dead_letters_poison_message(self):
        self.redis.xautoclaim.side_effect = [
            [b"0-0", [(b"1-0", _fields()), (b"2-0", _fields())], []],
            [b"0-0", [], []],
        ]
        self.redis.xpending_range.side_effect = [
            [{"message_id": b"1-0", "times_delivered": 4}],
            [{"message_id": b"2-0", "times_delivered": 2}],
        ]

        outcome = self.consumer.reclaim_once()

        self.assertEqual(outcome, {ACK: 1, NACK: 0, "dead_lettered": 1})
        self.redis.xadd.assert_called_once()
        args, _ = self.redis.xadd.call_args
        self.assertEqual(args[0], "matching_events_dead_letter")
        body = json.loads(args[1]["payload"])
        self.assertEqual(body["message_id"], "1-0")
        self.assertEqual(body["deliveries"], 4)
        self.assertEqual(self.pipeline.run_trigger.call_count, 1)

    def test_reclaim_acks_trimmed_entries(self):
        self.redis.xautoclaim.side_effect = [
            [b"0-0", [(b"9-0", None)], []],
            [b"0-0", [], []],
        ]

        outcome = self.consumer.reclaim_once()

        self.assertEqual(outcome["dead_lettered"], 0)
        self.redis.xack.assert_called_once_with("subject_events", "matching-service", "9-0")
        self.pipeline.run_trigger.assert_not_called()

    def test_reclaim_resumes_from_returned_cursor(self):
        self.redis.xautoclaim.side_effect = [
            [b"5-0", [], []],
            [b"0-0", [], []],
            [b"0-0", [], []],
            [b"0-0", [], []],
        ]

        self.consumer.reclaim_once()
        self.assertTrue(self.consumer.reclaim_in_progress)

        self.consumer.reclaim_once()
        self.assertFalse(self.consumer.reclaim_in_progress)

        start_ids = [call.kwargs["start_id"] for call in self.redis.xautoclaim.call_args_list]
        self.assertEqual(start_ids, ["0-0", "0-0", "5-0", "0-0"])

    def test_ensure_groups_ignores_existing(self):
        self.redis.xgroup_create.side_effect = ResponseError("BUSYGROUP Consumer Group name already exists")
        self.consumer.ensure_groups()
        self.assertEqual(self.redis.xgroup_create.call_count, 2)

    def test_ensure_groups_raises_other_errors(self):
        self.redis.xgroup_create.side_effect = ResponseError("WRONGTYPE")
        with self.assertRaises(ResponseError):
            self.consumer.ensure_groups()


if __name__ == '__main__':
    unittest.main()
