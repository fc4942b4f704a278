from .base import Base
from .match import (
    Match,
    MATCH_STATUSES,
    FORWARD_PATH,
    TERMINAL_STATUSES,
    STATUS_PENDING,
    STATUS_VIEWED,
    STATUS_INTERESTED,
    STATUS_APPLIED,
    STATUS_REJECTED,
    is_allowed_transition,
)

__all__ = [
    'Base',
    'Match',
    'MATCH_STATUSES',
    'FORWARD_PATH',
    'TERMINAL_STATUSES',
    'STATUS_PENDING',
    'STATUS_VIEWED',
    'STATUS_INTERESTED',
    'STATUS_APPLIED',
    'STATUS_REJECTED',
    'is_allowed_transition',
]
