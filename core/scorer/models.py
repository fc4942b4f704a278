#!/usr/bin/env python3
"""
Scoring Models - Data structures for scoring results.
"""

from typing import List, Dict
from dataclasses import dataclass, field, asdict

FACTOR_NAMES = ("skill", "experience", "availability", "location", "interest")


@dataclass(frozen=True)
class FactorScores:
    """Fixed-shape per-factor sub-scores, each 0-100 with two decimals."""
    skill: float
    experience: float
    availability: float
    location: float
    interest: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def items(self):
        """(name, value) pairs in factor declaration order."""
        return [(name, getattr(self, name)) for name in FACTOR_NAMES]


@dataclass(frozen=True)
class ScoreResult:
    """Complete scoring of one (subject, opportunity) pair."""
    factors: FactorScores
    score: int
    reasons: List[str] = field(default_factory=list)
    qualifies: bool = False
