"""Business logic services."""

from .match_service import MatchService
from .generation_service import GenerationService
