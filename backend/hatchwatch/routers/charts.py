"""Chart API: 24 hour series with alert overlay, and daily averages per cycle."""
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from hatchwatch.database import get_db
from hatchwatch.deps import get_owned_device
from hatchwatch.models import Alert, Cycle, Device, DeviceState
from hatchwatch.schemas import (
    BandResponse,
    ChannelChartResponse,
    ChartPoint,
    ChartResponse,
    DailyAverageResponse,
    DailyAverageRow,
    OverlayPointResponse,
)
from hatchwatch.services.aggregation_service import daily_averages_for_cycle, fetch_measurements
from hatchwatch.services.chart_service import (
    HUMIDITY,
    TEMPERATURE,
    AlertEvent,
    ChannelChart,
    ChartConfig,
    build_channel_chart,
    samples_for,
)
from hatchwatch.services.thresholds import as_utc, humidity_band, temperature_band

router = APIRouter(prefix="/devices/{device_id}", tags=["charts"])

DAILY_RANGES = (7, 21, 28)


def _channel_response(chart: ChannelChart) -> ChannelChartResponse:
    return ChannelChartResponse(
        key=chart.channel.key,
        label=chart.channel.label,
        unit=chart.channel.unit,
        points=[ChartPoint(ts=p.ts, value=p.value) for p in chart.points],
        domain=chart.domain,
        band=BandResponse(min=chart.band.min, max=chart.band.max),
        alerts=[OverlayPointResponse(x=p.x, y=p.y, label=p.label) for p in chart.overlay],
    )


@router.get("/chart", response_model=ChartResponse)
def get_chart(
    hours: int = Query(default=24, ge=1, le=24 * 7),
    smoothing: int = Query(default=1, ge=1, le=60),
    overlay: Literal["nearest", "interpolate", "none"] = "nearest",
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """
    Time series for the last ``hours`` hours.

    The axis domain of each channel always includes the device's band, and
    alerts logged in the window are placed on the matching channel's curve.
    """
    to_ts = datetime.now(timezone.utc)
    from_ts = to_ts - timedelta(hours=hours)

    rows = fetch_measurements(db, device.device_id, from_ts, to_ts)
    alerts = (
        db.query(Alert)
        .filter(Alert.device_id == device.device_id, Alert.ts >= from_ts)
        .order_by(Alert.ts.asc())
        .all()
    )
    events = [AlertEvent(ts=as_utc(a.ts), code=a.code, message=a.message) for a in alerts]

    state = db.query(DeviceState).filter(DeviceState.device_id == device.device_id).first()
    config = ChartConfig(smoothing_window=smoothing, overlay=overlay)

    temp_chart = build_channel_chart(samples_for(rows, TEMPERATURE), TEMPERATURE, events, temperature_band(state), config)
    hum_chart = build_channel_chart(samples_for(rows, HUMIDITY), HUMIDITY, events, humidity_band(state), config)

    return ChartResponse(
        device_id=device.device_id,
        from_ts=from_ts,
        to_ts=to_ts,
        smoothing_window=smoothing,
        overlay=overlay,
        temperature=_channel_response(temp_chart),
        humidity=_channel_response(hum_chart),
    )


@router.get("/daily", response_model=DailyAverageResponse)
def get_daily_averages(
    cycle_id: Optional[UUID] = None,
    days: Optional[int] = Query(default=None),
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """
    Per-day mean temperature and humidity within an incubation cycle.

    Defaults to the device's current cycle. Without any cycle the response
    carries ``state = "no_cycle_selected"`` and no rows.
    """
    if days is not None and days not in DAILY_RANGES:
        raise HTTPException(status_code=400, detail="days must be one of 7, 21 or 28")

    selected = cycle_id or device.current_cycle_id
    if selected is None:
        return DailyAverageResponse(device_id=device.device_id, state="no_cycle_selected")

    cycle = db.query(Cycle).filter(Cycle.id == selected, Cycle.device_id == device.device_id).first()
    if not cycle:
        raise HTTPException(status_code=404, detail="Cycle not found")

    rows = daily_averages_for_cycle(db, cycle, days=days)
    return DailyAverageResponse(
        device_id=device.device_id,
        cycle_id=cycle.id,
        state="ok",
        rows=[DailyAverageRow(day=r.day, temp_avg=r.temp_avg, hum_avg=r.hum_avg) for r in rows],
    )
