"""
Chart series preparation: smoothing, axis domain and alert overlay points.

One parametrized builder serves every chart; the smoothing window and the
overlay strategy are configuration rather than separate implementations.

Overlay strategies:
- nearest: alert drawn at the sample closest in time (earliest on ties)
- interpolate: alert drawn at its own timestamp, value linearly
  interpolated between the bracketing samples
- none: no overlay points
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from hatchwatch.services.thresholds import Band, as_utc, is_missing

OverlayStrategy = Literal["nearest", "interpolate", "none"]


@dataclass(frozen=True)
class ChannelSpec:
    """How one measurement channel is charted."""
    key: str
    label: str
    unit: str
    pad: float
    decimals: int
    alert_prefix: str


TEMPERATURE = ChannelSpec(key="temp", label="Temperature", unit="°C", pad=0.2, decimals=1, alert_prefix="TEMP_")
HUMIDITY = ChannelSpec(key="hum", label="Humidity", unit="%", pad=2.0, decimals=0, alert_prefix="HUM_")
CHANNELS = (TEMPERATURE, HUMIDITY)


@dataclass(frozen=True)
class ChartConfig:
    smoothing_window: int = 1
    overlay: OverlayStrategy = "nearest"


@dataclass
class Sample:
    ts: datetime
    value: Optional[float]


@dataclass
class AlertEvent:
    ts: datetime
    code: Optional[str] = None
    message: Optional[str] = None


@dataclass
class OverlayPoint:
    x: datetime
    y: float
    label: str


@dataclass
class ChannelChart:
    channel: ChannelSpec
    points: List[Sample]
    domain: Tuple[float, float]
    band: Band
    overlay: List[OverlayPoint] = field(default_factory=list)


def round_half_up(value: float, decimals: int) -> float:
    k = 10 ** decimals
    return math.floor(value * k + 0.5) / k


def compute_domain(
    values: Sequence[Optional[float]],
    band: Band,
    pad: float,
    decimals: int,
) -> Tuple[float, float]:
    """Axis range covering the data extrema and the band, padded and rounded."""
    nums = [v for v in values if not is_missing(v)]

    lo, hi = band.min, band.max
    if nums:
        lo = min(min(nums), band.min)
        hi = max(max(nums), band.max)

    # Padding both sides also keeps a single-value axis non-degenerate
    lo -= pad
    hi += pad

    return round_half_up(lo, decimals), round_half_up(hi, decimals)


def smooth(samples: Sequence[Sample], window: int) -> List[Sample]:
    """Trailing moving average over the last ``window`` non-null values.

    Null samples stay null so gaps remain visible.
    """
    if window <= 1:
        return list(samples)

    out = []
    recent: List[float] = []
    for s in samples:
        if is_missing(s.value):
            out.append(Sample(ts=s.ts, value=None))
            continue
        recent.append(s.value)
        if len(recent) > window:
            recent.pop(0)
        out.append(Sample(ts=s.ts, value=sum(recent) / len(recent)))
    return out


def nearest_index(timestamps: Sequence[float], at: float) -> int:
    best_i = 0
    best_d = math.inf
    for i, t in enumerate(timestamps):
        d = abs(t - at)
        # Strictly smaller only, so the earliest index wins ties
        if d < best_d:
            best_d = d
            best_i = i
    return best_i


def _label(alert: AlertEvent) -> str:
    return alert.message or alert.code or "Alert"


def _nearest_point(samples, xs, alert: AlertEvent) -> Optional[OverlayPoint]:
    i = nearest_index(xs, as_utc(alert.ts).timestamp())
    y = samples[i].value
    if is_missing(y):
        return None
    return OverlayPoint(x=samples[i].ts, y=y, label=_label(alert))


def _interpolated_point(samples, xs, alert: AlertEvent) -> Optional[OverlayPoint]:
    at = as_utc(alert.ts).timestamp()
    for i in range(len(xs) - 1):
        if xs[i] <= at <= xs[i + 1]:
            y0, y1 = samples[i].value, samples[i + 1].value
            if is_missing(y0) or is_missing(y1):
                break
            span = xs[i + 1] - xs[i]
            ratio = 0.0 if span == 0 else (at - xs[i]) / span
            return OverlayPoint(x=as_utc(alert.ts), y=y0 + (y1 - y0) * ratio, label=_label(alert))
    return _nearest_point(samples, xs, alert)


def align_alerts(
    samples: Sequence[Sample],
    alerts: Sequence[AlertEvent],
    strategy: OverlayStrategy = "nearest",
) -> List[OverlayPoint]:
    """Place alert events on the series; of points with equal (x, y) the last one wins."""
    if not samples or not alerts or strategy == "none":
        return []

    xs = [as_utc(s.ts).timestamp() for s in samples]
    place = _interpolated_point if strategy == "interpolate" else _nearest_point

    unique: Dict[Tuple[Any, float], OverlayPoint] = {}
    for alert in alerts:
        point = place(samples, xs, alert)
        if point is None:
            continue
        unique[(point.x, point.y)] = point
    return list(unique.values())


def alerts_for_channel(alerts: Sequence[AlertEvent], channel: ChannelSpec) -> List[AlertEvent]:
    """Alerts whose code belongs to the channel; codes of no known channel go everywhere."""
    prefixes = tuple(c.alert_prefix for c in CHANNELS)
    out = []
    for a in alerts:
        code = a.code or ""
        if code.startswith(channel.alert_prefix) or not code.startswith(prefixes):
            out.append(a)
    return out


def build_channel_chart(
    samples: Sequence[Sample],
    channel: ChannelSpec,
    alerts: Sequence[AlertEvent],
    band: Band,
    config: ChartConfig = ChartConfig(),
) -> ChannelChart:
    points = smooth(samples, config.smoothing_window)
    return ChannelChart(
        channel=channel,
        points=points,
        domain=compute_domain([p.value for p in points], band, channel.pad, channel.decimals),
        band=band,
        overlay=align_alerts(points, alerts_for_channel(alerts, channel), config.overlay),
    )


def samples_for(rows, channel: ChannelSpec) -> List[Sample]:
    """Pick one channel out of measurement rows (objects with ``ts``, ``temp``, ``hum``)."""
    return [Sample(ts=as_utc(r.ts), value=getattr(r, channel.key)) for r in rows]
