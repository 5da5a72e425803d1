from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, String

from hatchwatch.database import Base


class Measurement(Base):
    """Timeseries of device readings. Immutable once recorded."""
    __tablename__ = "measurements"

    device_id = Column(String(64), ForeignKey("devices.device_id", ondelete="CASCADE"), primary_key=True)
    ts = Column(DateTime(timezone=True), primary_key=True)
    temp = Column(Float, nullable=True)
    hum = Column(Float, nullable=True)

    __table_args__ = (
        Index("ix_measurements_device_ts", "device_id", "ts"),
    )
