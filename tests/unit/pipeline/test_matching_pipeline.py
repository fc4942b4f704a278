#!/usr/bin/env python3
"""
Tests for MatchingPipeline.run_trigger.
"""

import shutil
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

from core.config_loader import ScoringConfig
from core.enumerator import Enumeration
from core.errors import CollaboratorUnavailableError
from core.scorer import ScoringService
from core.snapshots import SubjectSnapshot
from core.triggers import Trigger
from database.uow import match_uow
from pipeline.runner import MatchingPipeline
from tests import make_sqlite_database, subject, opportunity


class MatchingPipelineTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix="matching-pipeline-")
        self.database = make_sqlite_database(self.tmpdir)
        self.enumerator = MagicMock()
        self.publisher = MagicMock()
        self.pipeline = MatchingPipeline(
            database=self.database,
            enumerator=self.enumerator,
            scoring=ScoringService(ScoringConfig()),
            publisher=self.publisher,
            pair_concurrency=4
        )

    def tearDown(self):
        self.database.dispose()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _subject_side(self, subject_snapshot, opportunities, **counts):
        self.enumerator.enumerate.return_value = Enumeration(
            anchor=subject_snapshot, candidates=list(opportunities), **counts
        )


class TestRunTrigger(MatchingPipelineTestCase):
    def test_creates_qualifying_matches_and_publishes_once(self):
        s1 = SubjectSnapshot(id="s1", skills=["javascript", "react"], location="Berlin",
                             project_types=["Web"], interests=["frontend"])
        self._subject_side(s1, [
            opportunity(opportunity_id="p1", required=("javascript", "react")),
            opportunity(opportunity_id="p2", required=("python",), location="Paris",
                        category="Games", tags=["unity"]),
        ], skipped_collaborators=2, skipped_existing=1)

        result = self.pipeline.run_trigger(Trigger("subject", "s1"))

        self.assertEqual(result.candidates, 2)
        self.assertEqual(result.scored, 2)
        self.assertEqual(result.created, 1)
        self.assertEqual(result.below_threshold, 1)
        self.assertEqual(result.skipped_collaborators, 2)
        self.assertEqual(result.skipped_existing, 1)
        self.assertFalse(result.aborted)
        self.assertEqual(result.created_matches[0].opportunity_id, "p1")
        self.publisher.publish_batch.assert_called_once_with(result)

        with match_uow(self.database) as repo:
            items, total = repo.list_for_subject("s1", min_score=0)
            self.assertEqual(total, 1)
            self.assertEqual(items[0].trigger_source, "event")

    def test_rerun_is_idempotent(self):
        self._subject_side(subject(subject_id="s1"), [opportunity(opportunity_id="p1")])

        first = self.pipeline.run_trigger(Trigger("subject", "s1"))
        second = self.pipeline.run_trigger(Trigger("subject", "s1", "reconciliation"))

        self.assertEqual(first.created, 1)
        self.assertEqual(second.created, 0)
        self.assertEqual(second.duplicates, 1)
        with match_uow(self.database) as repo:
            self.assertEqual(repo.list_for_subject("s1", min_score=0)[1], 1)

    def test_zero_candidates_still_publishes(self):
        self._subject_side(subject(subject_id="s1"), [])

        result = self.pipeline.run_trigger(Trigger("subject", "s1"))

        self.assertEqual(result.created, 0)
        self.publisher.publish_batch.assert_called_once_with(result)

    def test_enumeration_failure_aborts_without_writes(self):
        self.enumerator.enumerate.side_effect = CollaboratorUnavailableError("opportunity-service", "down")

        with self.assertRaises(CollaboratorUnavailableError):
            self.pipeline.run_trigger(Trigger("subject", "s1"))
        self.publisher.publish_batch.assert_not_called()

    def test_one_failing_pair_does_not_abort_batch(self):
        self._subject_side(subject(subject_id="s1"), [
            opportunity(opportunity_id="p1"), opportunity(opportunity_id="p2"), opportunity(opportunity_id="p3")
        ])
        original = self.pipeline.scoring.score_pair

        def flaky(subj, opp):
            if opp.id == "p2":
                raise RuntimeError("boom")
            return original(subj, opp)

        with patch.object(self.pipeline.scoring, "score_pair", side_effect=flaky):
            result = self.pipeline.run_trigger(Trigger("subject", "s1"))

        self.assertEqual(result.failed, 1)
        self.assertEqual(result.created, 2)
        self.assertEqual(sorted(m.opportunity_id for m in result.created_matches), ["p1", "p3"])

    def test_stop_event_set_before_start(self):
        stop_event = threading.Event()
        stop_event.set()

        result = self.pipeline.run_trigger(Trigger("subject", "s1"), stop_event=stop_event)

        self.assertTrue(result.aborted)
        self.enumerator.enumerate.assert_not_called()
        self.publisher.publish_batch.assert_not_called()

    def test_stop_event_skips_pairs_not_started(self):
        stop_event = threading.Event()
        self._subject_side(subject(subject_id="s1"), [opportunity(opportunity_id=f"p{i}") for i in range(6)])
        pipeline = MatchingPipeline(
            database=self.database,
            enumerator=self.enumerator,
            scoring=ScoringService(ScoringConfig()),
            publisher=self.publisher,
            pair_concurrency=1
        )
        original = pipeline.scoring.score_pair

        def stop_after_first(subj, opp):
            stop_event.set()
            return original(subj, opp)

        with patch.object(pipeline.scoring, "score_pair", side_effect=stop_after_first):
            result = pipeline.run_trigger(Trigger("subject", "s1"), stop_event=stop_event)

        self.assertTrue(result.aborted)
        self.assertEqual(result.scored, 1)
        self.assertEqual(result.created, 1)
        self.publisher.publish_batch.assert_not_called()

    def test_publish_failure_is_logged_not_raised(self):
        self._subject_side(subject(subject_id="s1"), [opportunity(opportunity_id="p1")])
        self.publisher.publish_batch.side_effect = ConnectionError("redis down")

        result = self.pipeline.run_trigger(Trigger("subject", "s1"))

        self.assertEqual(result.created, 1)

    def test_opportunity_side_pairs(self):
        anchor = opportunity(opportunity_id="p1", required=("go",))
        self.enumerator.enumerate.return_value = Enumeration(
            anchor=anchor,
            candidates=[subject(subject_id="s1", skills=("go",)), subject(subject_id="s2", skills=("go",))]
        )

        result = self.pipeline.run_trigger(Trigger("opportunity", "p1"))

        self.assertEqual(result.created, 2)
        self.assertEqual({m.subject_id for m in result.created_matches}, {"s1", "s2"})
        self.assertEqual(result.as_dict()["trigger"], {"side": "opportunity", "id": "p1", "source": "event"})


class TestConcurrentTriggers(MatchingPipelineTestCase):
    def test_subject_and_opportunity_triggers_race_on_same_pair(self):
        s1 = subject(subject_id="s1", skills=("go",))
        p1 = opportunity(opportunity_id="p1", required=("go",))

        def enumerate_for(trigger):
            if trigger.side == "subject":
                return Enumeration(anchor=s1, candidates=[p1])
            return Enumeration(anchor=p1, candidates=[s1])

        self.enumerator.enumerate.side_effect = enumerate_for
        barrier = threading.Barrier(2)
        results = {}

        def run(trigger):
            barrier.wait()
            results[trigger.side] = self.pipeline.run_trigger(trigger)

        threads = [
            threading.Thread(target=run, args=(Trigger("subject", "s1"),)),
            threading.Thread(target=run, args=(Trigger("opportunity", "p1"),)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results["subject"].created + results["opportunity"].created, 1)
        self.assertEqual(results["subject"].duplicates + results["opportunity"].duplicates, 1)
        self.assertEqual(results["subject"].failed + results["opportunity"].failed, 0)
        with match_uow(self.database) as repo:
            self.assertEqual(repo.list_for_subject("s1", min_score=0)[1], 1)


if __name__ == '__main__':
    unittest.main()
