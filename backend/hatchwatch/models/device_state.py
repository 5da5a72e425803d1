from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from hatchwatch.database import Base


class DeviceState(Base):
    """Latest reading and configured bands of a device, one row per device.

    Written by device telemetry; the UI only patches it occasionally.
    """
    __tablename__ = "device_state"

    device_id = Column(String(64), ForeignKey("devices.device_id", ondelete="CASCADE"), primary_key=True)
    animal_type = Column(String(50), ForeignKey("animals.id"), nullable=True)
    day = Column(Integer, nullable=True)
    temp = Column(Float, nullable=True)
    hum = Column(Float, nullable=True)

    target_temp = Column(Float, nullable=True)
    tol_temp = Column(Float, nullable=True)
    target_hum = Column(Float, nullable=True)
    tol_hum = Column(Float, nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=True)

    device = relationship("Device", back_populates="state")
    animal = relationship("Animal", lazy="joined")

    @property
    def animal_label(self):
        if self.animal is not None and self.animal.name:
            return self.animal.name
        return self.animal_type
