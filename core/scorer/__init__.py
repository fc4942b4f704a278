#!/usr/bin/env python3
"""
Scoring Module - the deterministic weighted-factor Scoring Engine.

Public API:
- ScoringService: scores one (subject, opportunity) pair
- FactorScores / ScoreResult: result dataclasses

Split into single-responsibility modules:

- models.py: Data structures (FactorScores, ScoreResult)
- coverage.py: Skill factor (required/optional coverage)
- experience.py: Experience tier distance
- preferences.py: Availability, location and interest factors
- weighting.py: Exact weighted overall score
- reasons.py: Explanation strings
- service.py: ScoringService orchestrator
"""

from core.scorer.models import FactorScores, ScoreResult, FACTOR_NAMES
from core.scorer.service import ScoringService
from core.scorer.weighting import calculate_overall_score

__all__ = ['ScoringService', 'FactorScores', 'ScoreResult', 'FACTOR_NAMES', 'calculate_overall_score']
