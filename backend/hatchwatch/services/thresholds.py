"""
Band classification and device status.

The on-screen status of a device compares its latest reading against the
device's own target ± tolerance band, independent of the fixed global
rules in ``alerting_service``.
"""
import enum
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from hatchwatch.config import settings


class Classification(str, enum.Enum):
    BELOW = "below"
    ABOVE = "above"
    WITHIN = "within"
    UNKNOWN = "unknown"


class StatusLevel(str, enum.Enum):
    OK = "ok"
    WARN = "warn"
    ALERT = "alert"
    OFFLINE = "offline"


@dataclass(frozen=True)
class Band:
    """Acceptable value range of one channel."""
    min: float
    max: float

    @classmethod
    def from_target(cls, target: Optional[float], tolerance: Optional[float],
                    default_target: float, default_tolerance: float) -> "Band":
        t = default_target if target is None else target
        tol = default_tolerance if tolerance is None else tolerance
        return cls(min=t - tol, max=t + tol)


@dataclass
class DeviceStatus:
    online: bool
    level: StatusLevel
    issues: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        if not self.online:
            return "Offline"
        if self.issues:
            return " • ".join(self.issues)
        return "OK"


def is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def classify(value: Optional[float], band: Band) -> Classification:
    if is_missing(value):
        return Classification.UNKNOWN
    if value < band.min:
        return Classification.BELOW
    if value > band.max:
        return Classification.ABOVE
    return Classification.WITHIN


def temperature_band(state) -> Band:
    return Band.from_target(
        getattr(state, "target_temp", None),
        getattr(state, "tol_temp", None),
        settings.default_target_temperature,
        settings.default_temperature_tolerance,
    )


def humidity_band(state) -> Band:
    return Band.from_target(
        getattr(state, "target_hum", None),
        getattr(state, "tol_hum", None),
        settings.default_target_humidity,
        settings.default_humidity_tolerance,
    )


_ISSUE_LABELS = {
    ("Temperature", Classification.BELOW): "Temperature low",
    ("Temperature", Classification.ABOVE): "Temperature high",
    ("Humidity", Classification.BELOW): "Humidity low",
    ("Humidity", Classification.ABOVE): "Humidity high",
}


def evaluate_issues(
    temperature: Optional[float],
    humidity: Optional[float],
    temp_band: Band,
    hum_band: Band,
) -> List[str]:
    """Ordered issue labels, temperature before humidity."""
    issues = []
    for channel, value, band in (
        ("Temperature", temperature, temp_band),
        ("Humidity", humidity, hum_band),
    ):
        label = _ISSUE_LABELS.get((channel, classify(value, band)))
        if label:
            issues.append(label)
    return issues


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_online(updated_at: Optional[datetime], now: Optional[datetime] = None,
              window_minutes: Optional[int] = None) -> bool:
    if updated_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    window = timedelta(minutes=window_minutes or settings.online_window_minutes)
    return as_utc(now) - as_utc(updated_at) < window


def device_status(state, now: Optional[datetime] = None) -> DeviceStatus:
    """Status pill for a device state row (or any object with the same fields)."""
    if state is None or not is_online(getattr(state, "updated_at", None), now):
        return DeviceStatus(online=False, level=StatusLevel.OFFLINE)

    issues = evaluate_issues(state.temp, state.hum, temperature_band(state), humidity_band(state))
    if not issues:
        level = StatusLevel.OK
    elif any(issue.startswith("Temperature") for issue in issues):
        level = StatusLevel.ALERT
    else:
        level = StatusLevel.WARN
    return DeviceStatus(online=True, level=level, issues=issues)
