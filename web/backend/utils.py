#!/usr/bin/env python3
"""
Utility functions for the web application.
"""

import math
from typing import Optional
from datetime import datetime


def safe_datetime_iso(dt: Optional[datetime]) -> Optional[str]:
    """
    Safely convert datetime to ISO format string.

    Args:
        dt: Datetime object.

    Returns:
        ISO format string or None.
    """
    if dt is None:
        return None
    return dt.isoformat()


def page_count(total: int, limit: int) -> int:
    """Number of pages needed for total items at limit per page."""
    if total <= 0 or limit <= 0:
        return 0
    return math.ceil(total / limit)
