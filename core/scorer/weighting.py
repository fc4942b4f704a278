#!/usr/bin/env python3
"""
Weighted Overall Score.

The overall score is always derived from the factor values, never stored
independently. Arithmetic is done in Decimal so that a stored set of factors
reproduces its stored score exactly.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from core.config_loader import FactorWeights
from core.scorer.models import FactorScores, FACTOR_NAMES

_FACTOR_QUANTUM = Decimal("0.01")
_SCORE_QUANTUM = Decimal("1")


def round_factor(value: Union[float, Decimal]) -> float:
    """Clamp a factor to [0, 100] and round it half-up to two decimals."""
    clamped = min(Decimal(100), max(Decimal(0), Decimal(str(value))))
    return float(clamped.quantize(_FACTOR_QUANTUM, rounding=ROUND_HALF_UP))


def weighted_sum(factors: FactorScores, weights: FactorWeights) -> Decimal:
    """Exact weighted sum of the factors."""
    return sum(
        (Decimal(str(getattr(weights, name))) * Decimal(str(getattr(factors, name)))
         for name in FACTOR_NAMES),
        Decimal(0)
    )


def calculate_overall_score(factors: FactorScores, weights: FactorWeights) -> int:
    """Weighted sum rounded half-up to an integer and clamped to [0, 100]."""
    total = weighted_sum(factors, weights).quantize(_SCORE_QUANTUM, rounding=ROUND_HALF_UP)
    return max(0, min(100, int(total)))
