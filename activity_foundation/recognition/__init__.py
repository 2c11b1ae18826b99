"""Interval detection and effort classification."""

from .classify import classify_activity, classify_many, training_load_stats
from .intervals import detect_interval

__all__ = [
    "detect_interval",
    "classify_activity",
    "classify_many",
    "training_load_stats",
]
