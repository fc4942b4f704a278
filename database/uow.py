import contextlib
import logging

from database.database import Database
from database.repositories.match import MatchRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def match_uow(database: Database):
    """Per-unit-of-work transaction scope.

    Yields a MatchRepository bound to a fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with match_uow(database) as repo:
            match = repo.create_if_absent(subject_id, opportunity_id, result, "event")
        # commit happens automatically on successful exit
    """
    session = database.SessionLocal()
    try:
        repo = MatchRepository(session)
        yield repo
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
