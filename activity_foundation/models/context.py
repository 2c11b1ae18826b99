"""
Athlete configuration for the analysis pipeline.

`AnalysisContext` is the immutable snapshot every analyzer receives.
`AthleteSettings` is the mutable holder the application edits; each setter
validates first and only then replaces the stored value, so a rejected
update leaves the previous configuration in effect.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Union

from .. import config
from .types import ZoneBoundaries

logger = logging.getLogger(__name__)


class InvalidSettingError(ValueError):
    """Raised when an athlete setting is outside its accepted range."""


class InvalidZoneConfigError(InvalidSettingError):
    """Raised for non-ascending or out-of-range zone fractions."""


@dataclass(frozen=True)
class ZoneConfig:
    """Zone upper bounds as fractions of max HR (each strictly in (0, 1), ascending)."""
    z2_upper: float = config.ZONE_FRACTIONS[0]
    z3_upper: float = config.ZONE_FRACTIONS[1]
    z4_upper: float = config.ZONE_FRACTIONS[2]
    z5_upper: float = config.ZONE_FRACTIONS[3]

    def __post_init__(self) -> None:
        values = [self.z2_upper, self.z3_upper, self.z4_upper, self.z5_upper]
        for v in values:
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise InvalidZoneConfigError(f"Zone boundary must be a number, got {v!r}")
            if not 0.0 < v < 1.0:
                raise InvalidZoneConfigError(f"Zone boundary {v} must lie strictly between 0 and 1")
        if not all(a < b for a, b in zip(values, values[1:])):
            raise InvalidZoneConfigError(f"Zone boundaries must be ascending: {values}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ZoneConfig":
        """Build from {z2Upper|z2_upper: ...} style mappings."""
        def pick(name: str) -> Any:
            camel = name.replace("_upper", "Upper")
            if name in data:
                return data[name]
            if camel in data:
                return data[camel]
            raise InvalidZoneConfigError(f"Missing zone boundary: {name}")

        return cls(
            z2_upper=pick("z2_upper"),
            z3_upper=pick("z3_upper"),
            z4_upper=pick("z4_upper"),
            z5_upper=pick("z5_upper"),
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class AnalysisContext:
    """Everything an analyzer needs besides the activities themselves."""
    zones: ZoneConfig = field(default_factory=ZoneConfig)
    max_hr: float = config.MAX_HR_BPM
    ftp: float = config.FTP_WATTS
    resting_hr: float = config.RESTING_HR_BPM
    threshold_pace: Optional[float] = None  # min/km

    def zones_bpm(self) -> ZoneBoundaries:
        from ..metrics.zones import get_zones_bpm

        return get_zones_bpm(self.zones, self.max_hr)

    def power_zones(self) -> ZoneBoundaries:
        from ..metrics.zones import power_zone_boundaries

        return power_zone_boundaries(self.ftp)


def _positive_number(value: Any, name: str, upper: Optional[float] = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSettingError(f"{name} must be a number, got {value!r}")
    if value <= 0 or (upper is not None and value >= upper):
        bound = f" and below {upper}" if upper is not None else ""
        raise InvalidSettingError(f"{name} must be positive{bound}, got {value}")
    return value


class AthleteSettings:
    """Mutable zone / max HR / FTP configuration with validated setters."""

    def __init__(self, context: Optional[AnalysisContext] = None):
        self._context = context or AnalysisContext()

    @property
    def zones(self) -> ZoneConfig:
        return self._context.zones

    @property
    def max_hr(self) -> float:
        return self._context.max_hr

    @property
    def ftp(self) -> float:
        return self._context.ftp

    @property
    def resting_hr(self) -> float:
        return self._context.resting_hr

    @property
    def threshold_pace(self) -> Optional[float]:
        return self._context.threshold_pace

    def set_zones(self, zones: Union[ZoneConfig, Mapping[str, Any]]) -> ZoneConfig:
        try:
            new_zones = zones if isinstance(zones, ZoneConfig) else ZoneConfig.from_mapping(zones)
        except InvalidZoneConfigError:
            logger.debug("Rejected zone update %r; keeping %r", zones, self._context.zones)
            raise
        self._context = replace(self._context, zones=new_zones)
        logger.debug("Zones updated: %s", new_zones)
        return new_zones

    def set_max_hr(self, max_hr: float) -> None:
        value = _positive_number(max_hr, "Max HR", upper=config.HR_VALID_RANGE[1])
        self._context = replace(self._context, max_hr=value)

    def set_ftp(self, ftp: float) -> None:
        value = _positive_number(ftp, "FTP", upper=config.FTP_VALID_RANGE[1])
        self._context = replace(self._context, ftp=value)

    def set_resting_hr(self, resting_hr: float) -> None:
        value = _positive_number(resting_hr, "Resting HR", upper=self._context.max_hr)
        self._context = replace(self._context, resting_hr=value)

    def set_threshold_pace(self, pace: Optional[float]) -> None:
        if pace is None:
            self._context = replace(self._context, threshold_pace=None)
            return
        value = _positive_number(pace, "Threshold pace", upper=config.PACE_VALID_RANGE[1])
        self._context = replace(self._context, threshold_pace=value)

    def context(self) -> AnalysisContext:
        """Snapshot of the current settings; later updates do not affect it."""
        return self._context

    def get_summary(self) -> Dict[str, Any]:
        return {
            "zones": self._context.zones.to_dict(),
            "max_hr": self._context.max_hr,
            "ftp": self._context.ftp,
            "resting_hr": self._context.resting_hr,
            "threshold_pace": self._context.threshold_pace,
        }
