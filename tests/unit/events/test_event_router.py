#!/usr/bin/env python3
"""
Tests for EventTriggerRouter.
"""

import unittest
from unittest.mock import MagicMock

from core.errors import MalformedEventError
from core.triggers import Trigger
from events.router import EventTriggerRouter


class TestEventTriggerRouter(unittest.TestCase):
    def setUp(self):
        self.pipeline = MagicMock()
        self.router = EventTriggerRouter(self.pipeline)

    def test_subject_events(self):
        for event_type in ("subject.created", "subject.updated", "user.created", "user.updated"):
            trigger = EventTriggerRouter.resolve(event_type, {"subjectId": "s1"})
            self.assertEqual(trigger, Trigger("subject", "s1", "event"))

    def test_opportunity_events(self):
        for event_type in ("opportunity.created", "project.created"):
            trigger = EventTriggerRouter.resolve(event_type, {"opportunityId": "p1"})
            self.assertEqual(trigger, Trigger("opportunity", "p1", "event"))

    def test_legacy_payload_keys(self):
        self.assertEqual(EventTriggerRouter.resolve("user.created", {"userId": "u7"}).entity_id, "u7")
        self.assertEqual(EventTriggerRouter.resolve("project.created", {"projectId": "p7"}).entity_id, "p7")
        self.assertEqual(EventTriggerRouter.resolve("subject.updated", {"id": 12}).entity_id, "12")

    def test_unknown_event_ignored(self):
        self.assertIsNone(self.router.handle("project.updated", {"projectId": "p1"}))
        self.pipeline.run_trigger.assert_not_called()

    def test_missing_identifier(self):
        with self.assertRaises(MalformedEventError):
            self.router.handle("subject.created", {"name": "x"})
        with self.assertRaises(MalformedEventError):
            self.router.handle("opportunity.created", {"opportunityId": ""})

    def test_handle_runs_pipeline(self):
        stop_event = MagicMock()
        self.pipeline.run_trigger.return_value = "result"

        outcome = self.router.handle("user.updated", {"userId": "u1"}, stop_event=stop_event)

        self.assertEqual(outcome, "result")
        self.pipeline.run_trigger.assert_called_once_with(Trigger("subject", "u1", "event"), stop_event=stop_event)


if __name__ == '__main__':
    unittest.main()
