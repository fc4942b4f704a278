#!/usr/bin/env python3
"""
Experience Fit - Ordinal distance between subject tier and opportunity difficulty.
"""

from typing import Dict, Optional

from core.config_loader import ScoringConfig


def _level(label: Optional[str], levels: Dict[str, int]) -> Optional[int]:
    if not label:
        return None
    return levels.get(label.strip().lower())


def calculate_experience_score(
    subject_experience: Optional[str],
    opportunity_difficulty: Optional[str],
    config: ScoringConfig
) -> float:
    """
    Experience factor (0-100).

    100 at distance 0, minus ``experience_penalty_per_level`` per level of
    difference in either direction, floored at 0. An unknown or missing tier
    on either side scores neutral.
    """
    subject_level = _level(subject_experience, config.experience_levels)
    opportunity_level = _level(opportunity_difficulty, config.difficulty_levels)

    if subject_level is None or opportunity_level is None:
        return config.neutral_score

    distance = abs(subject_level - opportunity_level)
    return max(0.0, 100.0 - distance * config.experience_penalty_per_level)
