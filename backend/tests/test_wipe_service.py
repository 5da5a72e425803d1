import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from hatchwatch.models import Alert, Cycle, Measurement, Severity
from hatchwatch.services import wipe_service
from hatchwatch.services.wipe_service import is_wipe_confirmed, wipe_device_data

from conftest import make_device

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _fill(db):
    make_device(db)
    db.add_all([
        Measurement(device_id="INC-0001", ts=NOW, temp=37.8, hum=55.0),
        Alert(device_id="INC-0001", ts=NOW, level=Severity.WARN, code="HUM_LOW",
              message="Humidity low", value=38.0),
        Cycle(id=uuid.uuid4(), device_id="INC-0001", animal_type="chicken",
              started_at=NOW - timedelta(days=3)),
    ])
    db.commit()


def _broken_cycles(db, device_id):
    raise OperationalError("DELETE FROM cycles", {}, Exception("database is locked"))


def test_confirmation():
    assert is_wipe_confirmed("INC-0001", "INC-0001", None)
    assert is_wipe_confirmed("INC-0001", None, 100)
    assert not is_wipe_confirmed("INC-0001", "inc-0001", 99)
    assert not is_wipe_confirmed("INC-0001", None, None)


def test_wipe_clears_every_table(db):
    _fill(db)
    result = wipe_device_data(db, "INC-0001")

    assert result.ok
    assert result.deleted == {"measurements": 1, "alerts": 1, "cycles": 1}


def test_failed_step_keeps_earlier_tables_cleared(db, monkeypatch):
    _fill(db)
    steps = tuple((table, _broken_cycles if table == "cycles" else step)
                  for table, step in wipe_service.WIPE_STEPS)
    monkeypatch.setattr(wipe_service, "WIPE_STEPS", steps)

    result = wipe_device_data(db, "INC-0001")

    assert not result.ok
    assert result.failed_table == "cycles"
    assert "database is locked" in result.error
    assert result.deleted == {"measurements": 1, "alerts": 1}

    db.expire_all()
    assert db.query(Measurement).count() == 0
    assert db.query(Alert).count() == 0
    assert db.query(Cycle).count() == 1
