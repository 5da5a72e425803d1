"""Device list and device association API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from hatchwatch.database import get_db
from hatchwatch.deps import get_current_user_id
from hatchwatch.models import Device, DeviceState, UserDevice
from hatchwatch.routers.state import serialize_state
from hatchwatch.schemas import DeviceCreate, DeviceOverview, DeviceResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices", tags=["devices"])


def _user_devices(db: Session, user_id: str) -> List[Device]:
    return (
        db.query(Device)
        .join(UserDevice, UserDevice.device_id == Device.device_id)
        .options(joinedload(Device.state).joinedload(DeviceState.animal))
        .filter(UserDevice.user_id == user_id)
        .order_by(Device.created_at.desc())
        .all()
    )


@router.get("", response_model=List[DeviceOverview])
def list_devices(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Devices associated with the caller, merged with their live state."""
    out = []
    for device in _user_devices(db, user_id):
        base = DeviceResponse.model_validate(device)
        state = serialize_state(device.state) if device.state is not None else None
        out.append(DeviceOverview(**base.model_dump(), state=state))
    return out


@router.post("", response_model=DeviceResponse, status_code=201)
def add_device(
    data: DeviceCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Register a device and associate it with the caller.

    An existing device or an existing association is not an error: adding an
    already known device id just links it to the caller.
    """
    device = db.query(Device).filter(Device.device_id == data.device_id).first()
    if device is None:
        device = Device(
            device_id=data.device_id,
            name=(data.name or data.device_id).strip(),
            location=(data.location or "").strip(),
            is_active=True,
        )
        try:
            db.add(device)
            db.commit()
            logger.info(f"Device {data.device_id} created by {user_id}")
        except IntegrityError:
            # Created concurrently by someone else
            db.rollback()
            device = db.query(Device).filter(Device.device_id == data.device_id).first()

    link = db.query(UserDevice).filter(
        UserDevice.user_id == user_id,
        UserDevice.device_id == data.device_id,
    ).first()
    if link is None:
        try:
            db.add(UserDevice(user_id=user_id, device_id=data.device_id))
            db.commit()
        except IntegrityError:
            db.rollback()

    return device


@router.delete("/{device_id}", status_code=204)
def remove_device(
    device_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Detach a device from the caller.

    The association is always removed first. The device row itself is then
    deleted on a best-effort basis; failing that is only logged.
    """
    removed = db.query(UserDevice).filter(
        UserDevice.user_id == user_id,
        UserDevice.device_id == device_id,
    ).delete(synchronize_session=False)
    db.commit()
    if not removed:
        raise HTTPException(status_code=404, detail="Device not found")

    still_linked = db.query(UserDevice).filter(UserDevice.device_id == device_id).first()
    if still_linked:
        return None

    try:
        db.query(Device).filter(Device.device_id == device_id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Device {device_id} detached but not deleted: {e}")

    return None
