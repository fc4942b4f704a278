#!/usr/bin/env python3
"""
Scoring Service - deterministic multi-factor compatibility scoring.

Computes five factor sub-scores for a (subject, opportunity) pair, derives
the overall 0-100 score as their weighted sum and attaches explanation
strings. Pure computation: no I/O and no shared mutable state, so a single
instance can be used from many threads at once.
"""

from typing import Callable
import logging

from core.config_loader import ScoringConfig
from core.snapshots import SubjectSnapshot, OpportunitySnapshot
from core.scorer.models import FactorScores, ScoreResult
from core.scorer import coverage
from core.scorer import experience
from core.scorer import preferences
from core.scorer.reasons import generate_reasons
from core.scorer.weighting import calculate_overall_score, round_factor

logger = logging.getLogger(__name__)


class ScoringService:
    """Scores subject/opportunity pairs against a static ScoringConfig."""

    def __init__(self, config: ScoringConfig):
        self.config = config

    def _safe_factor(self, name: str, compute: Callable[[], float]) -> float:
        """Run one factor computation; malformed input yields the neutral score."""
        try:
            return round_factor(compute())
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            logger.warning(f"Factor '{name}' fell back to neutral: {e}")
            return round_factor(self.config.neutral_score)

    def calculate_factors(
        self,
        subject: SubjectSnapshot,
        opportunity: OpportunitySnapshot
    ) -> FactorScores:
        cfg = self.config
        return FactorScores(
            skill=self._safe_factor("skill", lambda: coverage.calculate_skill_score(
                subject.skills, opportunity.required_skills, opportunity.optional_skills, cfg
            )),
            experience=self._safe_factor("experience", lambda: experience.calculate_experience_score(
                subject.experience, opportunity.difficulty, cfg
            )),
            availability=self._safe_factor("availability", lambda: preferences.calculate_availability_score(
                subject.availability, cfg
            )),
            location=self._safe_factor("location", lambda: preferences.calculate_location_score(
                subject.location, opportunity.location, cfg
            )),
            interest=self._safe_factor("interest", lambda: preferences.calculate_interest_score(
                subject.project_types, subject.interests, opportunity.category, opportunity.tags, cfg
            )),
        )

    def qualifies(self, score: int) -> bool:
        """Whether an overall score clears the creation threshold."""
        return score >= self.config.creation_threshold

    def score_pair(
        self,
        subject: SubjectSnapshot,
        opportunity: OpportunitySnapshot
    ) -> ScoreResult:
        factors = self.calculate_factors(subject, opportunity)
        score = calculate_overall_score(factors, self.config.weights)
        reasons = generate_reasons(factors, self.config.reason_thresholds)

        logger.debug(
            f"Scored subject={subject.id} opportunity={opportunity.id}: "
            f"{score} {factors.as_dict()}"
        )

        return ScoreResult(
            factors=factors,
            score=score,
            reasons=reasons,
            qualifies=self.qualifies(score)
        )
