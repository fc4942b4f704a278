#!/usr/bin/env python3
"""
Test suite configuration and utilities.

    # Run all tests (PostgreSQL tests are skipped without Docker)
    python -m pytest tests/ -v

    # Run only unit tests
    python -m pytest tests/ -v -m "not db"

Repository behaviour is exercised against a file-backed SQLite database so
the unit suite needs no external services. The `db` suite runs the same
operations against PostgreSQL through testcontainers, or against
TEST_DATABASE_URL when it is set.
"""

import os
import tempfile
from typing import Optional

from core.config_loader import DatabaseConfig, ScoringConfig
from core.scorer.models import FactorScores, ScoreResult
from core.snapshots import SubjectSnapshot, OpportunitySnapshot
from database.database import Database


def make_sqlite_database(directory: Optional[str] = None) -> Database:
    """A fresh file-backed SQLite database with the schema created."""
    directory = directory or tempfile.mkdtemp(prefix="matching-test-")
    path = os.path.join(directory, "matching.db")
    database = Database(DatabaseConfig(url=f"sqlite:///{path}"))
    database.create_all()
    return database


def make_result(score: int = 72, qualifies: bool = True, reasons=None, **factors) -> ScoreResult:
    values = dict(skill=100.0, experience=75.0, availability=50.0, location=50.0, interest=50.0)
    values.update(factors)
    return ScoreResult(
        factors=FactorScores(**values),
        score=score,
        reasons=list(reasons or []),
        qualifies=qualifies
    )


def subject_payload(subject_id="s1", skills=("javascript", "react"), **overrides) -> dict:
    payload = {
        "_id": subject_id,
        "profile": {"skills": list(skills)},
        "preferences": {},
        "isActive": True,
    }
    payload.update(overrides)
    return payload


def opportunity_payload(opportunity_id="p1", required=("javascript", "react"), **overrides) -> dict:
    payload = {
        "_id": opportunity_id,
        "title": "Test project",
        "requiredSkills": list(required) if required is not None else None,
        "status": "active",
        "collaborators": [],
    }
    if required is None:
        del payload["requiredSkills"]
    payload.update(overrides)
    return payload


def default_scoring_config() -> ScoringConfig:
    return ScoringConfig()


def subject(**kwargs) -> SubjectSnapshot:
    return SubjectSnapshot.from_payload(subject_payload(**kwargs))


def opportunity(**kwargs) -> OpportunitySnapshot:
    return OpportunitySnapshot.from_payload(opportunity_payload(**kwargs))
