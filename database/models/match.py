import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Text, TIMESTAMP, Boolean, Integer, Numeric, JSON, Uuid, UniqueConstraint, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB

from core.scorer.models import FactorScores
from .base import Base

# Forward path; rejected is reachable from every status except itself.
STATUS_PENDING = 'pending'
STATUS_VIEWED = 'viewed'
STATUS_INTERESTED = 'interested'
STATUS_APPLIED = 'applied'
STATUS_REJECTED = 'rejected'

FORWARD_PATH = (STATUS_PENDING, STATUS_VIEWED, STATUS_INTERESTED, STATUS_APPLIED)
MATCH_STATUSES = FORWARD_PATH + (STATUS_REJECTED,)
TERMINAL_STATUSES = frozenset({STATUS_REJECTED})


def is_allowed_transition(current: str, requested: str) -> bool:
    """Forward moves along the path, or rejection of a non-terminal match."""
    if current in TERMINAL_STATUSES:
        return False
    if requested == STATUS_REJECTED:
        return True
    if current in FORWARD_PATH and requested in FORWARD_PATH:
        return FORWARD_PATH.index(requested) > FORWARD_PATH.index(current)
    return False


def _utcnow():
    return datetime.now(timezone.utc)


JsonType = JSON().with_variant(JSONB(), 'postgresql')


class Match(Base):
    """
    A persisted compatibility result between a subject and an opportunity.

    Tracks:
    - Overall score and the five factor sub-scores it is derived from
    - Explanation strings for display
    - Lifecycle status and optional qualitative feedback

    At most one record exists per (subject_id, opportunity_id); the unique
    constraint is what enforces it under concurrent triggers.
    """
    __tablename__ = 'match'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    subject_id = Column(Text, nullable=False)
    opportunity_id = Column(Text, nullable=False)

    score = Column(Integer, nullable=False)

    skill_score = Column(Numeric(5, 2), nullable=False)
    experience_score = Column(Numeric(5, 2), nullable=False)
    availability_score = Column(Numeric(5, 2), nullable=False)
    location_score = Column(Numeric(5, 2), nullable=False)
    interest_score = Column(Numeric(5, 2), nullable=False)

    reasons = Column(JsonType, nullable=False, default=list)

    status = Column(Text, nullable=False, default=STATUS_PENDING)

    feedback_rating = Column(Integer, nullable=True)
    feedback_comment = Column(Text, nullable=True)
    feedback_helpful = Column(Boolean, nullable=True)
    feedback_at = Column(TIMESTAMP(timezone=True), nullable=True)

    trigger_source = Column(Text, nullable=True)  # event | manual | reconciliation

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint('subject_id', 'opportunity_id', name='uq_match_subject_opportunity'),
        CheckConstraint('score >= 0 AND score <= 100', name='ck_match_score_range'),
        CheckConstraint(
            "status IN ('pending', 'viewed', 'interested', 'applied', 'rejected')",
            name='ck_match_status'
        ),
        Index('idx_match_subject_score', 'subject_id', 'score'),
        Index('idx_match_opportunity_score', 'opportunity_id', 'score'),
        Index('idx_match_status', 'status'),
        Index('idx_match_created', 'created_at'),
    )

    @property
    def factors(self) -> FactorScores:
        return FactorScores(
            skill=float(self.skill_score),
            experience=float(self.experience_score),
            availability=float(self.availability_score),
            location=float(self.location_score),
            interest=float(self.interest_score),
        )

    @property
    def has_feedback(self) -> bool:
        return self.feedback_at is not None

    def __repr__(self):
        return f"<Match {self.id} {self.subject_id}->{self.opportunity_id} score={self.score} status={self.status}>"
