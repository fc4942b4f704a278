#!/usr/bin/env python3
"""
Candidate Pair Enumerator - decides which pairs to score for a trigger.

For a subject trigger the candidates are active opportunities; for an
opportunity trigger they are subjects holding its required skills. Pairs in
which the subject already collaborates on the opportunity, and pairs that
already have a persisted match, are excluded before scoring.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Set, Tuple, Union

from core.collaborators import SubjectServiceClient, OpportunityServiceClient
from core.config_loader import EnumerationConfig
from core.errors import MalformedSnapshotError, EntityNotFoundError
from core.snapshots import SubjectSnapshot, OpportunitySnapshot, SUBJECT, OPPORTUNITY
from core.triggers import Trigger

logger = logging.getLogger(__name__)

Snapshot = Union[SubjectSnapshot, OpportunitySnapshot]
# (anchor_id, candidate_ids) -> ids that already have a persisted match
ExistingLookup = Callable[[str, List[str]], Set[str]]


@dataclass
class Enumeration:
    anchor: Snapshot
    candidates: List[Snapshot] = field(default_factory=list)
    skipped_collaborators: int = 0
    skipped_existing: int = 0
    skipped_inactive: int = 0
    skipped_malformed: int = 0

    @property
    def anchor_is_subject(self) -> bool:
        return isinstance(self.anchor, SubjectSnapshot)

    def pairs(self) -> Iterator[Tuple[SubjectSnapshot, OpportunitySnapshot]]:
        """Yield (subject, opportunity) for every candidate."""
        for candidate in self.candidates:
            if self.anchor_is_subject:
                yield self.anchor, candidate
            else:
                yield candidate, self.anchor


class CandidatePairEnumerator:
    """Fetches the anchor entity and its candidate counterparts."""

    def __init__(
        self,
        subjects: SubjectServiceClient,
        opportunities: OpportunityServiceClient,
        existing_opportunity_ids: ExistingLookup,
        existing_subject_ids: ExistingLookup,
        config: Optional[EnumerationConfig] = None
    ):
        self.subjects = subjects
        self.opportunities = opportunities
        self.existing_opportunity_ids = existing_opportunity_ids
        self.existing_subject_ids = existing_subject_ids
        self.config = config or EnumerationConfig()

    @staticmethod
    def _parse(parser, payloads, label: str) -> Tuple[List[Snapshot], int]:
        snapshots = []
        malformed = 0
        for payload in payloads:
            try:
                snapshots.append(parser(payload))
            except (MalformedSnapshotError, TypeError, ValueError, AttributeError) as e:
                malformed += 1
                logger.warning(f"Skipping malformed {label} record: {e}")
        return snapshots, malformed

    def enumerate(self, trigger: Trigger) -> Enumeration:
        """
        Build the candidate set for a trigger.

        Raises:
            CollaboratorUnavailableError: any collaborator call failed.
            EntityNotFoundError: the anchor entity does not exist.
        """
        if trigger.side == SUBJECT:
            return self._enumerate_for_subject(trigger.entity_id)
        return self._enumerate_for_opportunity(trigger.entity_id)

    def _enumerate_for_subject(self, subject_id: str) -> Enumeration:
        try:
            subject = SubjectSnapshot.from_payload(self.subjects.get_subject(subject_id))
        except MalformedSnapshotError as e:
            raise EntityNotFoundError(SUBJECT, subject_id) from e

        payloads = self.opportunities.list_active(self.config.page_size)
        opportunities, malformed = self._parse(OpportunitySnapshot.from_payload, payloads, "opportunity")

        result = Enumeration(anchor=subject, skipped_malformed=malformed)
        if not subject.is_active:
            logger.info(f"Subject {subject_id} is inactive; no candidates")
            return result

        remaining = []
        for opportunity in opportunities:
            if not opportunity.is_active:
                result.skipped_inactive += 1
            elif opportunity.has_collaborator(subject.id):
                result.skipped_collaborators += 1
            else:
                remaining.append(opportunity)

        existing = self.existing_opportunity_ids(subject.id, [o.id for o in remaining])
        result.candidates = [o for o in remaining if o.id not in existing]
        result.skipped_existing = len(remaining) - len(result.candidates)

        logger.info(
            f"Subject {subject_id}: {len(result.candidates)} candidates "
            f"(collaborators={result.skipped_collaborators}, existing={result.skipped_existing}, "
            f"inactive={result.skipped_inactive}, malformed={result.skipped_malformed})"
        )
        return result

    def _enumerate_for_opportunity(self, opportunity_id: str) -> Enumeration:
        try:
            opportunity = OpportunitySnapshot.from_payload(self.opportunities.get_opportunity(opportunity_id))
        except MalformedSnapshotError as e:
            raise EntityNotFoundError(OPPORTUNITY, opportunity_id) from e

        payloads = self.subjects.find_by_skills(opportunity.required_skills or [], self.config.page_size)
        subjects, malformed = self._parse(SubjectSnapshot.from_payload, payloads, "subject")

        result = Enumeration(anchor=opportunity, skipped_malformed=malformed)
        if not opportunity.is_active:
            logger.info(f"Opportunity {opportunity_id} is not active; no candidates")
            return result

        remaining = []
        for subject in subjects:
            if not subject.is_active:
                result.skipped_inactive += 1
            elif opportunity.has_collaborator(subject.id):
                result.skipped_collaborators += 1
            else:
                remaining.append(subject)

        existing = self.existing_subject_ids(opportunity.id, [s.id for s in remaining])
        result.candidates = [s for s in remaining if s.id not in existing]
        result.skipped_existing = len(remaining) - len(result.candidates)

        logger.info(
            f"Opportunity {opportunity_id}: {len(result.candidates)} candidates "
            f"(collaborators={result.skipped_collaborators}, existing={result.skipped_existing}, "
            f"inactive={result.skipped_inactive}, malformed={result.skipped_malformed})"
        )
        return result
