#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

import threading
import logging
from typing import Generator, Optional

from sqlalchemy.orm import Session

from core.app_context import AppContext
from .config import get_config

logger = logging.getLogger(__name__)

_context: Optional[AppContext] = None
_context_lock = threading.Lock()


def get_context() -> AppContext:
    """
    The process-wide application context, built on first use.

    Building it does not touch the database or Redis; connections are made
    when a request first needs them.
    """
    global _context
    if _context is None:
        with _context_lock:
            if _context is None:
                _context = AppContext.build(get_config())
    return _context


def close_context() -> None:
    global _context
    with _context_lock:
        if _context is not None:
            _context.close()
            _context = None


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a database session.

    Usage:
        @app.get("/endpoint")
        def my_endpoint(db: Session = Depends(get_db)):
            ...

    Yields:
        Session: Database session that will be automatically closed.
    """
    yield from get_context().database.get_session()
