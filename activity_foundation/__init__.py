"""Foundation package for activity analysis: zone distribution, effort
classification, interval recognition and training load assessment.

Modules:
- io: Loading Strava exports, TCX, FIT and API payloads into activities
- models: Typed domain objects, zone configuration and athlete profile
- metrics: Zones, zone distribution, running and power metrics
- recognition: Interval detection and effort classification
- aggregation: Collections, summaries and training load analysis
- storage: CSV export helpers
- cli: Command line interface
"""

__version__ = "1.0.0"

__all__ = [
    "io",
    "models",
    "metrics",
    "recognition",
    "aggregation",
    "storage",
    "cli",
]
