"""Alert log and destructive data operations."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from hatchwatch.config import settings
from hatchwatch.database import get_db
from hatchwatch.deps import get_owned_device
from hatchwatch.models import Alert, Device
from hatchwatch.schemas import (
    AlertResponse,
    ClearAlertsRequest,
    ClearAlertsResponse,
    WipeRequest,
    WipeResponse,
)
from hatchwatch.services.wipe_service import clear_alerts, is_wipe_confirmed, wipe_device_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices/{device_id}", tags=["alerts"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/alerts", response_model=List[AlertResponse])
def list_alerts(
    limit: int = Query(default=200, ge=1, le=1000),
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """Alert log of a device, newest first."""
    return (
        db.query(Alert)
        .filter(Alert.device_id == device.device_id)
        .order_by(Alert.ts.desc())
        .limit(limit)
        .all()
    )


@router.post("/alerts/clear", response_model=ClearAlertsResponse)
@limiter.limit(settings.destructive_rate_limit)
def clear_device_alerts(
    request: Request,
    data: ClearAlertsRequest,
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """Delete every alert of a device. Requires the exact confirmation phrase."""
    if data.confirmation != settings.alert_clear_phrase:
        raise HTTPException(
            status_code=400,
            detail=f"Type {settings.alert_clear_phrase} exactly to confirm clearing the alert log",
        )
    deleted = clear_alerts(db, device.device_id)
    return ClearAlertsResponse(device_id=device.device_id, deleted=deleted)


@router.post("/wipe", response_model=WipeResponse)
@limiter.limit(settings.destructive_rate_limit)
def wipe_device(
    request: Request,
    data: WipeRequest,
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """
    Delete all measurements, alerts and cycles of a device.

    Confirmed by typing the device id or by a slider value of 100. Tables
    are cleared in sequence without a shared transaction; a failure part way
    is reported together with what was already cleared.
    """
    if not is_wipe_confirmed(device.device_id, data.confirmation, data.slider):
        raise HTTPException(
            status_code=400,
            detail="Type the device id or slide to 100% to confirm the wipe",
        )

    result = wipe_device_data(db, device.device_id)
    if not result.ok:
        raise HTTPException(
            status_code=500,
            detail={
                "message": f"Wipe failed while clearing {result.failed_table}: {result.error}",
                "deleted": result.deleted,
                "failed_table": result.failed_table,
            },
        )
    return WipeResponse(device_id=device.device_id, deleted=result.deleted)
