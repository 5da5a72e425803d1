"""Device state API: latest reading, bands and status, plus state patches."""
import logging
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Mapping, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hatchwatch.database import get_db
from hatchwatch.deps import get_owned_device
from hatchwatch.models import Animal, Device, DeviceState
from hatchwatch.schemas import BandResponse, DeviceStatePatch, DeviceStateResponse, StatusResponse
from hatchwatch.services.alerting_service import evaluate_and_log_alerts
from hatchwatch.services.realtime import state_feed
from hatchwatch.services.state_reducer import STATE_FIELDS
from hatchwatch.services.thresholds import as_utc, device_status, humidity_band, temperature_band

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices/{device_id}/state", tags=["state"])


def state_to_dict(state: DeviceState) -> dict:
    data = {f: getattr(state, f) for f in STATE_FIELDS}
    data["updated_at"] = as_utc(state.updated_at)
    data["animal_label"] = state.animal_label
    return data


def serialize_state(state, now: Optional[datetime] = None) -> DeviceStateResponse:
    """Build the API view of a state row or of a reducer state dict."""
    if isinstance(state, Mapping):
        defaults = {f: None for f in STATE_FIELDS}
        defaults["animal_label"] = None
        state = SimpleNamespace(**{**defaults, **state})

    t_band = temperature_band(state)
    h_band = humidity_band(state)
    status = device_status(state, now)

    return DeviceStateResponse(
        device_id=state.device_id,
        animal_type=state.animal_type,
        animal_label=state.animal_label,
        day=state.day,
        temp=state.temp,
        hum=state.hum,
        target_temp=state.target_temp,
        tol_temp=state.tol_temp,
        target_hum=state.target_hum,
        tol_hum=state.tol_hum,
        updated_at=as_utc(state.updated_at),
        temp_band=BandResponse(min=t_band.min, max=t_band.max),
        hum_band=BandResponse(min=h_band.min, max=h_band.max),
        status=StatusResponse(
            online=status.online,
            level=status.level.value,
            issues=status.issues,
            text=status.text,
        ),
    )


def animal_names(db: Session) -> dict:
    return {a.id: a.name or a.id for a in db.query(Animal).all()}


@router.get("", response_model=DeviceStateResponse)
def get_state(
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """Latest state of a device with its bands and status."""
    state = db.query(DeviceState).filter(DeviceState.device_id == device.device_id).first()
    if not state:
        raise HTTPException(status_code=404, detail="No state reported for this device yet")
    return serialize_state(state)


@router.post("", response_model=DeviceStateResponse)
def patch_state(
    data: DeviceStatePatch,
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """
    Apply a partial state update.

    Updates older than the stored ``updated_at`` are rejected with 409.
    Accepted updates are published to live subscribers and evaluated
    against the alert rules.
    """
    changes = data.model_dump(exclude_unset=True)
    updated_at = as_utc(changes.pop("updated_at", None)) or datetime.now(timezone.utc)

    if changes.get("animal_type") is not None:
        if not db.query(Animal).filter(Animal.id == changes["animal_type"]).first():
            raise HTTPException(status_code=400, detail="Unknown animal type")

    state = db.query(DeviceState).filter(DeviceState.device_id == device.device_id).first()
    if state is None:
        state = DeviceState(device_id=device.device_id)
        db.add(state)
    elif state.updated_at is not None and updated_at < as_utc(state.updated_at):
        raise HTTPException(status_code=409, detail="Stale state update ignored")

    for key, value in changes.items():
        setattr(state, key, value)
    state.updated_at = updated_at

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(state)

    change = {"device_id": device.device_id, "updated_at": updated_at.isoformat(), **changes}
    delivered = state_feed.publish(device.device_id, change)
    logger.debug(f"State of {device.device_id} updated, published to {delivered} subscribers")

    if "temp" in changes or "hum" in changes:
        evaluate_and_log_alerts(db, device.device_id, state.temp, state.hum)

    return serialize_state(state)
