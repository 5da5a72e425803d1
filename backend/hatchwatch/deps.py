"""Request dependencies shared by the routers.

Users are authenticated upstream; the gateway forwards the user id in the
``X-User-Id`` header.
"""
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from hatchwatch.database import get_db
from hatchwatch.models import Device, UserDevice


def get_current_user_id(x_user_id: str = Header(default=None, alias="X-User-Id")) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No signed-in user",
        )
    return x_user_id.strip()


def get_owned_device(
    device_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> Device:
    """Resolve a device the current user is associated with, or 404."""
    device = (
        db.query(Device)
        .join(UserDevice, UserDevice.device_id == Device.device_id)
        .filter(Device.device_id == device_id, UserDevice.user_id == user_id)
        .first()
    )
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")
    return device
