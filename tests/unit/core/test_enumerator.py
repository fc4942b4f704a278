#!/usr/bin/env python3
"""
Tests for CandidatePairEnumerator: exclusions and failure semantics.
"""

import unittest
from unittest.mock import MagicMock

from core.config_loader import EnumerationConfig
from core.enumerator import CandidatePairEnumerator
from core.errors import CollaboratorUnavailableError, EntityNotFoundError
from core.triggers import Trigger
from tests import subject_payload, opportunity_payload


class TestCandidatePairEnumerator(unittest.TestCase):
    def setUp(self):
        self.subjects = MagicMock()
        self.opportunities = MagicMock()
        self.existing_opportunity_ids = MagicMock(return_value=set())
        self.existing_subject_ids = MagicMock(return_value=set())
        self.enumerator = CandidatePairEnumerator(
            self.subjects,
            self.opportunities,
            self.existing_opportunity_ids,
            self.existing_subject_ids,
            EnumerationConfig(page_size=50)
        )

    def test_subject_trigger_lists_active_opportunities(self):
        self.subjects.get_subject.return_value = subject_payload("s1")
        self.opportunities.list_active.return_value = [opportunity_payload("p1"), opportunity_payload("p2")]

        result = self.enumerator.enumerate(Trigger("subject", "s1"))

        self.opportunities.list_active.assert_called_once_with(50)
        self.assertEqual([o.id for o in result.candidates], ["p1", "p2"])
        pairs = [(s.id, o.id) for s, o in result.pairs()]
        self.assertEqual(pairs, [("s1", "p1"), ("s1", "p2")])

    def test_subject_trigger_excludes_collaborations(self):
        self.subjects.get_subject.return_value = subject_payload("s1")
        self.opportunities.list_active.return_value = [
            opportunity_payload("p1", collaborators=[{"userId": "s1", "role": "owner"}]),
            opportunity_payload("p2"),
        ]

        result = self.enumerator.enumerate(Trigger("subject", "s1"))

        self.assertEqual([o.id for o in result.candidates], ["p2"])
        self.assertEqual(result.skipped_collaborators, 1)

    def test_subject_trigger_excludes_existing_pairs(self):
        self.subjects.get_subject.return_value = subject_payload("s1")
        self.opportunities.list_active.return_value = [opportunity_payload("p1"), opportunity_payload("p2")]
        self.existing_opportunity_ids.return_value = {"p1"}

        result = self.enumerator.enumerate(Trigger("subject", "s1"))

        self.existing_opportunity_ids.assert_called_once_with("s1", ["p1", "p2"])
        self.assertEqual([o.id for o in result.candidates], ["p2"])
        self.assertEqual(result.skipped_existing, 1)

    def test_inactive_and_malformed_candidates_dropped(self):
        self.subjects.get_subject.return_value = subject_payload("s1")
        self.opportunities.list_active.return_value = [
            opportunity_payload("p1", status="completed"),
            {"title": "no id"},
            opportunity_payload("p3"),
        ]

        result = self.enumerator.enumerate(Trigger("subject", "s1"))

        self.assertEqual([o.id for o in result.candidates], ["p3"])
        self.assertEqual(result.skipped_inactive, 1)
        self.assertEqual(result.skipped_malformed, 1)

    def test_malformed_fields_skip_only_that_candidate(self):
        self.subjects.get_subject.return_value = subject_payload("s1")
        self.opportunities.list_active.return_value = [
            opportunity_payload("p1"),
            opportunity_payload("p2", requiredSkills=5),
            opportunity_payload("p3", collaborators="owner"),
        ]

        result = self.enumerator.enumerate(Trigger("subject", "s1"))

        self.assertEqual([o.id for o in result.candidates], ["p1"])
        self.assertEqual(result.skipped_malformed, 2)

    def test_corrupted_subject_profile_skipped(self):
        self.opportunities.get_opportunity.return_value = opportunity_payload("p1")
        self.subjects.find_by_skills.return_value = [
            subject_payload("s1"),
            {"_id": "s2", "profile": "corrupted"},
            subject_payload("s3", preferences=["remote"]),
        ]

        result = self.enumerator.enumerate(Trigger("opportunity", "p1"))

        self.assertEqual([s.id for s in result.candidates], ["s1"])
        self.assertEqual(result.skipped_malformed, 2)

    def test_inactive_subject_has_no_candidates(self):
        self.subjects.get_subject.return_value = subject_payload("s1", isActive=False)
        self.opportunities.list_active.return_value = [opportunity_payload("p1")]

        result = self.enumerator.enumerate(Trigger("subject", "s1"))

        self.assertEqual(result.candidates, [])

    def test_opportunity_trigger_queries_by_required_skills(self):
        self.opportunities.get_opportunity.return_value = opportunity_payload(
            "p1", required=("react", "node"), collaborators=[{"userId": "owner"}]
        )
        self.subjects.find_by_skills.return_value = [
            subject_payload("owner"),
            subject_payload("s2"),
            subject_payload("s3", isActive=False),
            subject_payload("s4"),
        ]
        self.existing_subject_ids.return_value = {"s4"}

        result = self.enumerator.enumerate(Trigger("opportunity", "p1"))

        self.subjects.find_by_skills.assert_called_once_with(["react", "node"], 50)
        self.assertEqual([s.id for s in result.candidates], ["s2"])
        self.assertEqual(result.skipped_collaborators, 1)
        self.assertEqual(result.skipped_inactive, 1)
        self.assertEqual(result.skipped_existing, 1)
        self.assertEqual([(s.id, o.id) for s, o in result.pairs()], [("s2", "p1")])

    def test_collaborator_failure_propagates(self):
        self.subjects.get_subject.return_value = subject_payload("s1")
        self.opportunities.list_active.side_effect = CollaboratorUnavailableError("opportunity-service", "timeout")

        with self.assertRaises(CollaboratorUnavailableError):
            self.enumerator.enumerate(Trigger("subject", "s1"))
        self.existing_opportunity_ids.assert_not_called()

    def test_missing_anchor(self):
        self.opportunities.get_opportunity.side_effect = EntityNotFoundError("opportunity", "p404")

        with self.assertRaises(EntityNotFoundError):
            self.enumerator.enumerate(Trigger("opportunity", "p404"))
        self.subjects.find_by_skills.assert_not_called()

    def test_anchor_without_id_treated_as_missing(self):
        self.subjects.get_subject.return_value = {"profile": {}}

        with self.assertRaises(EntityNotFoundError):
            self.enumerator.enumerate(Trigger("subject", "s1"))


if __name__ == '__main__':
    unittest.main()
