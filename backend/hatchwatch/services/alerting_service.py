"""
Alert rules and deduplicated alert logging.

Rules are fixed and global, independent of the per-device band used for the
status pill. A code is not logged again for the same device within the
cooldown window.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hatchwatch.config import settings
from hatchwatch.models import Alert, DeviceState, Severity
from hatchwatch.services.thresholds import is_missing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertRule:
    code: str
    level: Severity
    threshold: float
    message: str
    above: bool

    def matches(self, value: float) -> bool:
        if self.above:
            return value >= self.threshold
        return value <= self.threshold


TEMP_HIGH = AlertRule("TEMP_HIGH", Severity.ALERT, 38.2, "Temperature too high", above=True)
TEMP_LOW = AlertRule("TEMP_LOW", Severity.ALERT, 36.8, "Temperature too low", above=False)
HUM_HIGH = AlertRule("HUM_HIGH", Severity.WARN, 65.0, "Humidity high", above=True)
HUM_LOW = AlertRule("HUM_LOW", Severity.WARN, 40.0, "Humidity low", above=False)

# Per channel, high is checked before low
TEMPERATURE_RULES = (TEMP_HIGH, TEMP_LOW)
HUMIDITY_RULES = (HUM_HIGH, HUM_LOW)


def match_rule(value: Optional[float], rules) -> Optional[AlertRule]:
    if is_missing(value):
        return None
    for rule in rules:
        if rule.matches(value):
            return rule
    return None


def recently_logged(db: Session, device_id: str, code: str, now: datetime) -> bool:
    """Whether ``code`` was logged for the device within the cooldown.

    A failed lookup counts as "not logged": a duplicate alert is preferable
    to a missed one.
    """
    since = now - timedelta(minutes=settings.alert_cooldown_minutes)
    try:
        existing = (
            db.query(Alert.id)
            .filter(Alert.device_id == device_id, Alert.code == code, Alert.ts >= since)
            .limit(1)
            .first()
        )
    except SQLAlchemyError as e:
        logger.warning(f"Duplicate lookup failed for {device_id}/{code}, logging anyway: {e}")
        db.rollback()
        return False
    return existing is not None


def evaluate_and_log_alerts(
    db: Session,
    device_id: str,
    temperature: Optional[float],
    humidity: Optional[float],
    now: Optional[datetime] = None,
) -> List[Alert]:
    """Log at most one alert per channel for the given reading.

    Returns the alert rows that were inserted.
    """
    now = now or datetime.now(timezone.utc)
    created = []

    for value, rules in ((temperature, TEMPERATURE_RULES), (humidity, HUMIDITY_RULES)):
        rule = match_rule(value, rules)
        if rule is None:
            continue
        if recently_logged(db, device_id, rule.code, now):
            continue

        alert = Alert(
            device_id=device_id,
            ts=now,
            level=rule.level,
            code=rule.code,
            message=rule.message,
            value=value,
        )
        db.add(alert)
        db.commit()
        created.append(alert)
        logger.warning(f"Alert {rule.code} logged for {device_id} (value: {value})")

    return created


def sweep_device_states(db: Session, now: Optional[datetime] = None) -> int:
    """Evaluate every device state with at least one reading.

    Returns the number of alerts created.
    """
    states = db.query(DeviceState).filter(
        (DeviceState.temp.isnot(None)) | (DeviceState.hum.isnot(None))
    ).all()

    total = 0
    for state in states:
        try:
            total += len(evaluate_and_log_alerts(db, state.device_id, state.temp, state.hum, now))
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Alert evaluation failed for {state.device_id}: {e}")
    return total
