"""
Bulk deletion of a device's recorded data.

Tables are cleared one after another, each in its own transaction. A failure
stops the sequence; tables already cleared stay cleared.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hatchwatch.models import Alert, Cycle, Device, Measurement

logger = logging.getLogger(__name__)


@dataclass
class WipeResult:
    deleted: Dict[str, int] = field(default_factory=dict)
    failed_table: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_table is None


def is_wipe_confirmed(device_id: str, confirmation: Optional[str], slider: Optional[int]) -> bool:
    """Typed device id or the slider pushed all the way confirm a wipe."""
    if slider is not None and slider >= 100:
        return True
    return confirmation is not None and confirmation == device_id


def clear_alerts(db: Session, device_id: str) -> int:
    count = db.query(Alert).filter(Alert.device_id == device_id).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Cleared {count} alerts for {device_id}")
    return count


def _delete_measurements(db: Session, device_id: str) -> int:
    return db.query(Measurement).filter(Measurement.device_id == device_id).delete(synchronize_session=False)


def _delete_alerts(db: Session, device_id: str) -> int:
    return db.query(Alert).filter(Alert.device_id == device_id).delete(synchronize_session=False)


def _delete_cycles(db: Session, device_id: str) -> int:
    db.query(Device).filter(Device.device_id == device_id).update(
        {Device.current_cycle_id: None}, synchronize_session=False
    )
    return db.query(Cycle).filter(Cycle.device_id == device_id).delete(synchronize_session=False)


WIPE_STEPS = (
    ("measurements", _delete_measurements),
    ("alerts", _delete_alerts),
    ("cycles", _delete_cycles),
)


def wipe_device_data(db: Session, device_id: str) -> WipeResult:
    result = WipeResult()
    for table, step in WIPE_STEPS:
        try:
            result.deleted[table] = step(db, device_id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            result.failed_table = table
            result.error = str(e)
            logger.error(f"Wipe of {device_id} failed at {table} after clearing {list(result.deleted)}: {e}")
            break
    else:
        logger.info(f"Wiped data of {device_id}: {result.deleted}")
    return result
