import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Index, String, Uuid

from hatchwatch.database import Base


class Severity(str, enum.Enum):
    WARN = "warn"
    ALERT = "alert"


class Alert(Base):
    """Logged out-of-range condition. Never updated, only bulk-deleted."""
    __tablename__ = "alerts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    device_id = Column(String(64), ForeignKey("devices.device_id", ondelete="CASCADE"), nullable=False)
    ts = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    level = Column(
        Enum(
            Severity,
            name="alert_level",
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
        ),
        nullable=False,
    )
    code = Column(String(32), nullable=False)
    message = Column(String(255), nullable=False)
    value = Column(Float, nullable=True)

    __table_args__ = (
        Index("ix_alerts_device_code_ts", "device_id", "code", "ts"),
    )
