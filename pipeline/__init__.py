"""Pipeline execution modules for the matching engine."""

from .runner import MatchingPipeline, TriggerResult, MatchSummary
from .reconciliation import ReconciliationJob, ReconciliationScheduler, ReconciliationResult

__all__ = [
    'MatchingPipeline',
    'TriggerResult',
    'MatchSummary',
    'ReconciliationJob',
    'ReconciliationScheduler',
    'ReconciliationResult',
]
