import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql, sqlite

from core.errors import MatchNotFoundError, InvalidStatusError, InvalidStatusTransitionError
from core.scorer.models import ScoreResult
from database.models import Match, MATCH_STATUSES, is_allowed_transition
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def _as_uuid(match_id: Any) -> uuid.UUID:
    if isinstance(match_id, uuid.UUID):
        return match_id
    try:
        return uuid.UUID(str(match_id))
    except (ValueError, TypeError):
        raise MatchNotFoundError(match_id)


def _factor_decimal(value: float) -> Decimal:
    return Decimal(str(value))


class MatchRepository(BaseRepository):
    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Unsupported database dialect for match creation: {dialect}")

    def create_if_absent(
        self,
        subject_id: str,
        opportunity_id: str,
        result: ScoreResult,
        trigger_source: Optional[str] = None
    ) -> Optional[Match]:
        """Insert a match unless one already exists for the pair.

        Returns the new Match, or None when the pair is already persisted.
        Concurrent callers racing on the same pair are resolved by the
        unique constraint: exactly one insert returns a row.
        """
        if not result.qualifies:
            raise ValueError(
                f"Refusing to persist match {subject_id}->{opportunity_id} "
                f"with score {result.score} below the creation threshold"
            )

        factors = result.factors
        stmt = self._insert()(Match).values(
            id=uuid.uuid4(),
            subject_id=subject_id,
            opportunity_id=opportunity_id,
            score=result.score,
            skill_score=_factor_decimal(factors.skill),
            experience_score=_factor_decimal(factors.experience),
            availability_score=_factor_decimal(factors.availability),
            location_score=_factor_decimal(factors.location),
            interest_score=_factor_decimal(factors.interest),
            reasons=list(result.reasons),
            trigger_source=trigger_source,
        ).on_conflict_do_nothing(
            index_elements=['subject_id', 'opportunity_id']
        ).returning(Match.id)

        new_id = self.db.execute(stmt).scalar_one_or_none()
        if new_id is None:
            logger.debug(f"Match already exists for {subject_id}->{opportunity_id}")
            return None

        return self.db.get(Match, new_id)

    def get(self, match_id: Any) -> Optional[Match]:
        try:
            key = _as_uuid(match_id)
        except MatchNotFoundError:
            return None
        return self.db.get(Match, key)

    def get_or_raise(self, match_id: Any, for_update: bool = False) -> Match:
        stmt = select(Match).where(Match.id == _as_uuid(match_id))
        if for_update:
            stmt = stmt.with_for_update()
        match = self.db.execute(stmt).scalar_one_or_none()
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    def transition_status(self, match_id: Any, new_status: str) -> Match:
        if new_status not in MATCH_STATUSES:
            raise InvalidStatusError(
                f"Unknown status '{new_status}'; expected one of {', '.join(MATCH_STATUSES)}"
            )

        match = self.get_or_raise(match_id, for_update=True)
        if not is_allowed_transition(match.status, new_status):
            raise InvalidStatusTransitionError(match.id, match.status, new_status)

        previous = match.status
        match.status = new_status
        match.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.info(f"Match {match.id} status {previous} -> {new_status}")
        return match

    def attach_feedback(
        self,
        match_id: Any,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
        helpful: Optional[bool] = None
    ) -> Match:
        """Record feedback, replacing any earlier one. Every field is optional."""
        if rating is not None and not 1 <= rating <= 5:
            raise ValueError(f"Feedback rating must be between 1 and 5, got {rating}")

        match = self.get_or_raise(match_id, for_update=True)
        now = datetime.now(timezone.utc)
        match.feedback_rating = rating
        match.feedback_comment = comment
        match.feedback_helpful = helpful
        match.feedback_at = now
        match.updated_at = now
        self.db.flush()
        return match

    def _list(self, column, entity_id: str, min_score: int, page: int, limit: int) -> Tuple[List[Match], int]:
        page = max(1, page)
        conditions = [column == entity_id]
        if min_score:
            conditions.append(Match.score >= min_score)

        total = self.db.execute(
            select(func.count()).select_from(Match).where(*conditions)
        ).scalar_one()

        stmt = select(Match).where(*conditions).order_by(
            Match.score.desc(),
            Match.created_at.desc(),
            Match.id
        ).offset((page - 1) * limit).limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total

    def list_for_subject(
        self,
        subject_id: str,
        min_score: int = 0,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Match], int]:
        return self._list(Match.subject_id, subject_id, min_score, page, limit)

    def list_for_opportunity(
        self,
        opportunity_id: str,
        min_score: int = 0,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Match], int]:
        return self._list(Match.opportunity_id, opportunity_id, min_score, page, limit)

    def existing_opportunity_ids(self, subject_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        ids = list(candidate_ids)
        if not ids:
            return set()
        stmt = select(Match.opportunity_id).where(
            Match.subject_id == subject_id,
            Match.opportunity_id.in_(ids)
        )
        return set(self.db.execute(stmt).scalars().all())

    def existing_subject_ids(self, opportunity_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        ids = list(candidate_ids)
        if not ids:
            return set()
        stmt = select(Match.subject_id).where(
            Match.opportunity_id == opportunity_id,
            Match.subject_id.in_(ids)
        )
        return set(self.db.execute(stmt).scalars().all())

    def status_counts(self) -> Dict[str, int]:
        rows = self.db.execute(
            select(Match.status, func.count()).group_by(Match.status)
        ).all()
        counts = {status: 0 for status in MATCH_STATUSES}
        for status, count in rows:
            counts[status] = count
        return counts

    def feedback_summary(self) -> Dict[str, Any]:
        count, avg_rating = self.db.execute(
            select(func.count(Match.feedback_at), func.avg(Match.feedback_rating))
        ).one()
        return {
            'count': count or 0,
            'average_rating': round(float(avg_rating), 2) if avg_rating is not None else None,
        }

    def average_score(self) -> Optional[float]:
        value = self.db.execute(select(func.avg(Match.score))).scalar_one()
        return round(float(value), 2) if value is not None else None
