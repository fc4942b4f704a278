#!/usr/bin/env python3
"""
Preference Factors - availability, location and interest alignment.

Each factor falls back to the configured neutral score when the data it
needs is missing, so incomplete profiles are not penalised outright.
"""

from typing import List, Optional
import logging

from core.config_loader import ScoringConfig

logger = logging.getLogger(__name__)


def calculate_availability_score(
    availability: Optional[str],
    config: ScoringConfig
) -> float:
    """Lookup of the declared availability class; unknown classes score neutral."""
    if not availability:
        return config.neutral_score
    return config.availability_scores.get(availability.strip().lower(), config.neutral_score)


def _location_parts(location: str) -> List[str]:
    return [part.strip().lower() for part in location.split(",") if part.strip()]


def calculate_location_score(
    subject_location: Optional[str],
    opportunity_location: Optional[str],
    config: ScoringConfig
) -> float:
    """
    Location factor (0-100).

    Exact (case-insensitive) match scores 100. Otherwise the share of common
    comma-delimited components (city, region, country) over the longer of
    the two locations.
    """
    if not subject_location or not opportunity_location:
        return config.neutral_score

    if subject_location.strip().lower() == opportunity_location.strip().lower():
        return 100.0

    subject_parts = _location_parts(subject_location)
    opportunity_parts = _location_parts(opportunity_location)
    longest = max(len(subject_parts), len(opportunity_parts))
    if longest == 0:
        return config.neutral_score

    common = [part for part in subject_parts if part in opportunity_parts]
    return min(100.0, len(common) / longest * 100.0)


def calculate_interest_score(
    project_types: Optional[List[str]],
    interests: Optional[List[str]],
    category: Optional[str],
    tags: List[str],
    config: ScoringConfig
) -> float:
    """
    Interest factor (0-100).

    Category membership in the subject's preferred project types contributes
    ``category_share``; tags found in the subject's declared interests
    contribute ``tag_share`` proportionally. No preference data at all scores
    neutral.
    """
    if not project_types and not interests:
        return config.neutral_score

    score = 0.0

    if category and project_types:
        preferred = {p.strip().lower() for p in project_types}
        if category.strip().lower() in preferred:
            score += config.category_share

    if tags and interests:
        lowered_interests = [i.lower() for i in interests]
        matching = [
            tag for tag in tags
            if any(tag.strip().lower() in interest for interest in lowered_interests)
        ]
        score += len(matching) / len(tags) * config.tag_share

    return min(100.0, score)
