from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..models.types import Activity, Classification, IntervalResult, LoadReport


def classifications_frame(
    pairs: Iterable[Tuple[Activity, Classification]],
    intervals: Optional[Dict[str, IntervalResult]] = None,
) -> pd.DataFrame:
    rows = []
    for activity, c in pairs:
        d = c.distribution
        iv = intervals.get(activity.id) if intervals else None
        row = {
            "id": activity.id,
            "date": activity.date,
            "sport": activity.sport,
            "distance_km": activity.distance,
            "duration_s": activity.duration,
            "avg_hr": activity.avg_hr,
            "max_hr": activity.max_hr,
            "category": c.category,
            "tendency": c.tendency,
            "label": c.label,
            "is_long": c.is_long,
            "data_type": c.data_type,
            "pct_z1": d.percent_z1 if d else None,
            "pct_z2": d.percent_z2 if d else None,
            "pct_z3": d.percent_z3 if d else None,
            "pct_z4": d.percent_z4 if d else None,
            "pct_z5": d.percent_z5 if d else None,
            "pct_z6": d.percent_z6 if d else None,
            "is_interval": iv.is_interval if iv else None,
            "intervals": iv.intervals if iv else None,
            "interval_details": iv.details if iv else None,
            "source": activity.source,
        }
        rows.append(row)
    return pd.DataFrame(rows)


def export_classifications_csv(
    pairs: Iterable[Tuple[Activity, Classification]],
    path: str,
    intervals: Optional[Dict[str, IntervalResult]] = None,
) -> None:
    classifications_frame(pairs, intervals).to_csv(path, index=False)


def export_training_load_csv(reports: Dict[str, LoadReport], path: str) -> None:
    rows: List[dict] = []
    for key, r in reports.items():
        row = {"analysis": key, "metric": r.metric, "status": r.status, "message": r.message}
        row.update({f"value_{k}": v for k, v in r.values.items()})
        rows.append(row)
    pd.DataFrame(rows).to_csv(path, index=False)


def export_weekly_distance_csv(weekly: pd.DataFrame, path: str) -> None:
    weekly.to_csv(path, index=False)
