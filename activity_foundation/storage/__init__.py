"""CSV export helpers."""
