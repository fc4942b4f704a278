#!/usr/bin/env python3
"""
Explainability - human-readable reasons for a match.

Reasons are derived from the factor scores alone and follow factor
declaration order, so the same factors always yield the same list. They are
for display only and never feed into ranking.
"""

from typing import List

from core.config_loader import ReasonThresholds
from core.scorer.models import FactorScores

_REASON_TEMPLATES = {
    "skill": "Strong skill match - you have {value:.0f}% of required skills",
    "experience": "Your experience level aligns well with project difficulty",
    "availability": "Your availability matches project requirements",
    "location": "You're in the same location as the project",
    "interest": "This project matches your interests and preferences",
}


def generate_reasons(factors: FactorScores, thresholds: ReasonThresholds) -> List[str]:
    reasons = []
    for name, value in factors.items():
        if value > getattr(thresholds, name):
            reasons.append(_REASON_TEMPLATES[name].format(value=value))
    return reasons
