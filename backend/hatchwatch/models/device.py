from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from hatchwatch.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Device(Base):
    """Incubator registered on the platform."""
    __tablename__ = "devices"

    device_id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    location = Column(String(255), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    current_cycle_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("cycles.id", ondelete="SET NULL", use_alter=True, name="fk_devices_current_cycle"),
        nullable=True,
    )

    state = relationship("DeviceState", uselist=False, back_populates="device", passive_deletes=True)


class UserDevice(Base):
    """Association of a user account with a device it may see."""
    __tablename__ = "user_devices"

    user_id = Column(String(64), primary_key=True)
    device_id = Column(String(64), ForeignKey("devices.device_id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
