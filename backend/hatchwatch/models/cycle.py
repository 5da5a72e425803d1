import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from hatchwatch.database import Base


class Cycle(Base):
    """One incubation run of a device. ``ended_at`` unset means current."""
    __tablename__ = "cycles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    device_id = Column(String(64), ForeignKey("devices.device_id", ondelete="CASCADE"), nullable=False, index=True)
    animal_type = Column(String(50), ForeignKey("animals.id"), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
