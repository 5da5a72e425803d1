"""
Daily averages of a device's measurements within one incubation cycle.

Days are UTC calendar days. Each channel is averaged over its non-null
values only; a day without values for a channel reports None for it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from hatchwatch.models import Cycle, Measurement
from hatchwatch.services.chart_service import round_half_up
from hatchwatch.services.thresholds import as_utc, is_missing

logger = logging.getLogger(__name__)


@dataclass
class DailyAverage:
    day: str
    temp_avg: Optional[float]
    hum_avg: Optional[float]


@dataclass
class _Bucket:
    t_sum: float = 0.0
    t_n: int = 0
    h_sum: float = 0.0
    h_n: int = 0


def daily_averages(rows: Sequence) -> List[DailyAverage]:
    """Bucket rows (``ts``, ``temp``, ``hum``) by UTC day, ascending."""
    buckets: Dict[str, _Bucket] = {}
    for r in rows:
        day = as_utc(r.ts).strftime("%Y-%m-%d")
        bucket = buckets.setdefault(day, _Bucket())
        if not is_missing(r.temp):
            bucket.t_sum += r.temp
            bucket.t_n += 1
        if not is_missing(r.hum):
            bucket.h_sum += r.hum
            bucket.h_n += 1

    return [
        DailyAverage(
            day=day,
            temp_avg=round_half_up(b.t_sum / b.t_n, 1) if b.t_n else None,
            hum_avg=round_half_up(b.h_sum / b.h_n, 1) if b.h_n else None,
        )
        for day, b in sorted(buckets.items())
    ]


def cycle_window(cycle: Cycle, now: Optional[datetime] = None,
                 days: Optional[int] = None) -> tuple:
    """[start, end) of a cycle, optionally narrowed to the last ``days`` days."""
    end = as_utc(cycle.ended_at) if cycle.ended_at else (now or datetime.now(timezone.utc))
    start = as_utc(cycle.started_at)
    if days:
        start = max(start, end - timedelta(days=days))
    return start, end


def fetch_measurements(db: Session, device_id: str, start: datetime, end: datetime) -> List[Measurement]:
    return (
        db.query(Measurement)
        .filter(
            Measurement.device_id == device_id,
            Measurement.ts >= start,
            Measurement.ts < end,
        )
        .order_by(Measurement.ts.asc())
        .all()
    )


def daily_averages_for_cycle(
    db: Session,
    cycle: Cycle,
    now: Optional[datetime] = None,
    days: Optional[int] = None,
) -> List[DailyAverage]:
    start, end = cycle_window(cycle, now, days)
    rows = fetch_measurements(db, cycle.device_id, start, end)
    logger.debug(f"Aggregating {len(rows)} measurements for cycle {cycle.id} ({start} to {end})")
    return daily_averages(rows)
