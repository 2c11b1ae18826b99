import gzip
from datetime import datetime, timedelta

import pytest

from activity_foundation.models.context import AnalysisContext
from activity_foundation.models.types import Activity, HRStream, PaceStream, PowerStream

AS_OF = datetime(2024, 5, 10, 12, 0, 0)

ACTIVITIES_CSV = (
    "Activity ID,Activity Date,Activity Name,Activity Type,Elapsed Time,Distance,"
    "Max Heart Rate,Moving Time,Average Heart Rate,Average Watts,Filename,Distance\n"
    '123,"May 1, 2024, 7:00:00 AM",Morning Run,Run,3700,10.0,172,3600,150,,activities/123.tcx.gz,10000.0\n'
    '124,"May 3, 2024, 6:30:00 PM",Evening Ride,Ride,4000,25.0,160,3900,135,180,,25000.0\n'
    '125,"May 4, 2024, 9:00:00 AM",Walk,Walk,1800,2.0,,1800,,,,2000.0\n'
    '126,"May 5, 2024, 9:00:00 AM",Broken Run,Run,0,0.0,,0,,,,0.0\n'
    '127,"May 6, 2024, 7:00:00 AM",Recovery Run,Run,1900,5.0,140,1800,130,,activities/127.tcx.gz,5000.0\n'
)


def tcx_document(heart_rates, start="2024-05-01T07:00:00Z", step_s=5, step_deg=0.0001):
    """Minimal Garmin TCX with one trackpoint per heart-rate value, heading north."""
    start_ts = datetime.strptime(start, "%Y-%m-%dT%H:%M:%SZ")
    points = []
    for i, hr in enumerate(heart_rates):
        ts = (start_ts + timedelta(seconds=i * step_s)).strftime("%Y-%m-%dT%H:%M:%SZ")
        points.append(
            "<Trackpoint>"
            f"<Time>{ts}</Time>"
            f"<Position><LatitudeDegrees>{45.0 + i * step_deg:.6f}</LatitudeDegrees>"
            "<LongitudeDegrees>7.0</LongitudeDegrees></Position>"
            f"<AltitudeMeters>{200 + i}</AltitudeMeters>"
            f"<HeartRateBpm><Value>{hr}</Value></HeartRateBpm>"
            "</Trackpoint>"
        )
    total_s = max(len(heart_rates) - 1, 0) * step_s
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<TrainingCenterDatabase xmlns="http://www.garmin.com/xmlschemas/TrainingCenterDatabase/v2">'
        f'<Activities><Activity Sport="Running"><Id>{start}</Id><Lap StartTime="{start}">'
        f"<TotalTimeSeconds>{total_s}</TotalTimeSeconds><DistanceMeters>0</DistanceMeters>"
        "<Calories>0</Calories><Intensity>Active</Intensity><TriggerMethod>Manual</TriggerMethod><Track>"
        + "".join(points)
        + "</Track></Lap></Activity></Activities></TrainingCenterDatabase>"
    )


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def context():
    return AnalysisContext()


@pytest.fixture
def make_activity():
    """Factory for activities; `hr`, `pace` and `watts` lists become 1 Hz streams."""

    def _make(
        id="1",
        days_ago=1,
        sport="run",
        distance=10.0,
        duration=3600.0,
        hr=None,
        pace=None,
        watts=None,
        **kwargs,
    ):
        return Activity(
            id=str(id),
            date=AS_OF - timedelta(days=days_ago),
            sport=sport,
            distance=distance,
            duration=duration,
            hr_stream=HRStream(heartrate=list(hr), time=list(range(len(hr)))) if hr is not None else None,
            pace_stream=PaceStream(pace=list(pace), time=list(range(len(pace)))) if pace is not None else None,
            power_stream=PowerStream(watts=list(watts), time=list(range(len(watts)))) if watts is not None else None,
            **kwargs,
        )

    return _make


@pytest.fixture
def export_dir(tmp_path):
    """An extracted Strava bulk export with two TCX stream files."""
    root = tmp_path / "export"
    (root / "activities").mkdir(parents=True)
    (root / "activities.csv").write_text(ACTIVITIES_CSV, encoding="utf-8")
    (root / "activities" / "123.tcx.gz").write_bytes(gzip.compress(tcx_document([140, 150, 155, 160]).encode("utf-8")))
    (root / "activities" / "127.tcx.gz").write_bytes(b"not a gzip stream")
    return root


@pytest.fixture
def tcx_text():
    return tcx_document
