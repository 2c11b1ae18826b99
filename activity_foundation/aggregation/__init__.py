"""Cross-activity collections, summaries and training load analysis."""

from .summary import ActivityCollection, summarize, weekly_distance
from .training_load import analyze

__all__ = [
    "ActivityCollection",
    "summarize",
    "weekly_distance",
    "analyze",
]
