#!/usr/bin/env python3
"""
Skill Coverage - Required and optional skill coverage metrics.

Calculates what share of an opportunity's skills the subject holds and
turns it into the skill factor.
"""

from typing import Iterable, Optional, Set, Tuple
import logging

from core.config_loader import ScoringConfig

logger = logging.getLogger(__name__)


def normalize_skills(skills: Optional[Iterable[str]]) -> Set[str]:
    """Lower-case, trimmed, de-duplicated skill set."""
    if not skills:
        return set()
    return {s.strip().lower() for s in skills if s and s.strip()}


def calculate_coverage(
    held_skills: Iterable[str],
    required_skills: Iterable[str],
    optional_skills: Iterable[str]
) -> Tuple[float, float]:
    """
    Calculate required and optional coverage fractions.

    Returns: (required_coverage, optional_coverage), each 0.0 when the
    corresponding skill list is empty.
    """
    held = normalize_skills(held_skills)
    required = normalize_skills(required_skills)
    optional = normalize_skills(optional_skills)

    required_coverage = len(required & held) / len(required) if required else 0.0
    optional_coverage = len(optional & held) / len(optional) if optional else 0.0

    return required_coverage, optional_coverage


def calculate_skill_score(
    held_skills: Iterable[str],
    required_skills: Optional[Iterable[str]],
    optional_skills: Iterable[str],
    config: ScoringConfig
) -> float:
    """
    Skill factor (0-100).

    Formula: required_share * RequiredCoverage + optional_share * OptionalCoverage

    An opportunity with no skill requirements declared at all (``None``) scores neutral.
    An opportunity that declares zero required skills scores 0: there is no
    skill requirement to satisfy, which is not the same as a perfect match.
    """
    if required_skills is None:
        return config.neutral_score

    if not normalize_skills(required_skills):
        return 0.0

    required_coverage, optional_coverage = calculate_coverage(
        held_skills, required_skills, optional_skills
    )

    score = (
        config.required_skill_share * required_coverage +
        config.optional_skill_share * optional_coverage
    )
    return min(100.0, score)
