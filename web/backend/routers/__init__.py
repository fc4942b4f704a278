"""API route handlers."""

from .generation import router as generation_router
from .matches import router as matches_router
from .stats import router as stats_router
