#!/usr/bin/env python3
"""
Match service - business logic for querying matches and recording user actions.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.errors import MatchingError
from database.models import Match
from database.repositories.match import MatchRepository
from ..models.responses import FeedbackView, MatchView, Pagination
from ..utils import safe_datetime_iso, page_count

logger = logging.getLogger(__name__)


def to_match_view(match: Match, details: Optional[Dict[str, Any]] = None) -> MatchView:
    feedback = None
    if match.has_feedback:
        feedback = FeedbackView(
            rating=match.feedback_rating,
            comment=match.feedback_comment,
            helpful=match.feedback_helpful,
            submitted_at=safe_datetime_iso(match.feedback_at)
        )

    return MatchView(
        match_id=str(match.id),
        subject_id=match.subject_id,
        opportunity_id=match.opportunity_id,
        score=match.score,
        factors=match.factors.as_dict(),
        reasons=list(match.reasons or []),
        status=match.status,
        feedback=feedback,
        trigger_source=match.trigger_source,
        created_at=safe_datetime_iso(match.created_at),
        updated_at=safe_datetime_iso(match.updated_at),
        details=details
    )


class MatchService:
    """Service for reading and updating matches."""

    def __init__(self, db: Session, subjects=None, opportunities=None):
        self.db = db
        self.repo = MatchRepository(db)
        self.subjects = subjects
        self.opportunities = opportunities

    def _fetch_details(self, fetch, entity_id: str) -> Optional[Dict[str, Any]]:
        """Collaborator lookup for enrichment; failures leave the item as is."""
        if fetch is None:
            return None
        try:
            return fetch(entity_id)
        except MatchingError as e:
            logger.warning(f"Could not enrich match with {entity_id}: {e}")
            return None

    def _page(self, items: List[Match], total: int, page: int, limit: int, enrich) -> Dict[str, Any]:
        return {
            'matches': [to_match_view(m, enrich(m) if enrich else None) for m in items],
            'pagination': Pagination(page=page, pages=page_count(total, limit), total=total, limit=limit)
        }

    def list_for_subject(
        self,
        subject_id: str,
        page: int = 1,
        limit: int = 20,
        min_score: int = 30,
        include_details: bool = False
    ) -> Dict[str, Any]:
        """
        Matches for one subject, best first.

        With include_details, each match carries the opportunity record.
        """
        items, total = self.repo.list_for_subject(subject_id, min_score=min_score, page=page, limit=limit)
        enrich = None
        if include_details and self.opportunities is not None:
            enrich = lambda m: self._fetch_details(self.opportunities.get_opportunity, m.opportunity_id)
        return self._page(items, total, page, limit, enrich)

    def list_for_opportunity(
        self,
        opportunity_id: str,
        page: int = 1,
        limit: int = 20,
        min_score: int = 30,
        include_details: bool = False
    ) -> Dict[str, Any]:
        """
        Matches for one opportunity, best first.

        With include_details, each match carries the subject record.
        """
        items, total = self.repo.list_for_opportunity(opportunity_id, min_score=min_score, page=page, limit=limit)
        enrich = None
        if include_details and self.subjects is not None:
            enrich = lambda m: self._fetch_details(self.subjects.get_subject, m.subject_id)
        return self._page(items, total, page, limit, enrich)

    def get_match(self, match_id: str) -> MatchView:
        return to_match_view(self.repo.get_or_raise(match_id))

    def update_status(self, match_id: str, status: str) -> MatchView:
        match = self.repo.transition_status(match_id, status)
        view = to_match_view(match)
        self.db.commit()
        return view

    def add_feedback(
        self,
        match_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
        helpful: Optional[bool] = None
    ) -> MatchView:
        match = self.repo.attach_feedback(match_id, rating, comment, helpful)
        view = to_match_view(match)
        self.db.commit()
        return view

    def get_stats(self) -> Dict[str, Any]:
        by_status = self.repo.status_counts()
        feedback = self.repo.feedback_summary()
        return {
            'total_matches': sum(by_status.values()),
            'by_status': by_status,
            'average_score': self.repo.average_score(),
            'feedback_count': feedback['count'],
            'average_rating': feedback['average_rating'],
        }
