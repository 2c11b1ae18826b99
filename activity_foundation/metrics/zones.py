from __future__ import annotations

from typing import Optional

from ..config import POWER_ZONE_FRACTIONS, Z1_FRACTION_OF_Z2
from ..models.context import ZoneConfig
from ..models.types import ZoneBoundaries


def get_zones_bpm(zones: ZoneConfig, max_hr: float) -> ZoneBoundaries:
    """Absolute HR zone upper bounds; plain multiplication, no clamping."""
    return ZoneBoundaries(
        z2_upper=zones.z2_upper * max_hr,
        z3_upper=zones.z3_upper * max_hr,
        z4_upper=zones.z4_upper * max_hr,
        z5_upper=zones.z5_upper * max_hr,
    )


def get_zone(value: float, boundaries: ZoneBoundaries) -> int:
    """Zone 2..6 for a single value.

    A single reading is never classified as recovery; zone 1 only exists in
    time distributions.
    """
    if value <= boundaries.z2_upper:
        return 2
    if value <= boundaries.z3_upper:
        return 3
    if value <= boundaries.z4_upper:
        return 4
    if value <= boundaries.z5_upper:
        return 5
    return 6


def power_zone_boundaries(ftp: float) -> ZoneBoundaries:
    """Coggan-style cut points at 55/75/90/105/120 % of FTP."""
    z1, z2, z3, z4, z5 = (f * ftp for f in POWER_ZONE_FRACTIONS)
    return ZoneBoundaries(z2_upper=z2, z3_upper=z3, z4_upper=z4, z5_upper=z5, z1_upper=z1)


def get_power_zone(watts: Optional[float], ftp: Optional[float]) -> Optional[int]:
    """Power zone 1..6 (strict `<` cut points), None without power or FTP."""
    if watts is None or ftp is None or ftp <= 0:
        return None
    pct = watts / ftp * 100.0
    if pct < 55:
        return 1
    if pct < 75:
        return 2
    if pct < 90:
        return 3
    if pct < 105:
        return 4
    if pct < 120:
        return 5
    return 6


def zone_label(zone: int, zones: ZoneConfig, max_hr: float) -> str:
    """Human-readable HR band, e.g. ``"Z3: 75-85% (142-162 bpm)"``."""
    fractions = [0.0, zones.z2_upper * Z1_FRACTION_OF_Z2, zones.z2_upper, zones.z3_upper, zones.z4_upper, zones.z5_upper]
    if zone < 1 or zone > 6:
        raise ValueError(f"Zone must be between 1 and 6, got {zone}")
    if zone == 6:
        low = zones.z5_upper
        return f"Z6: >{low * 100:.0f}% (>{low * max_hr:.0f} bpm)"
    low, high = fractions[zone - 1], fractions[zone]
    if zone == 1:
        return f"Z1: <{high * 100:.0f}% (<{high * max_hr:.0f} bpm)"
    return f"Z{zone}: {low * 100:.0f}-{high * 100:.0f}% ({low * max_hr:.0f}-{high * max_hr:.0f} bpm)"
