"""Recency and study progress tracking for library documents."""

from .models import ProgressList, StudyProgress
from .progress import ProgressTracker
from .recency import DEFAULT_RECENT_LIMIT, RecencyTracker

__all__ = [
    "StudyProgress",
    "ProgressList",
    "ProgressTracker",
    "RecencyTracker",
    "DEFAULT_RECENT_LIMIT",
]
