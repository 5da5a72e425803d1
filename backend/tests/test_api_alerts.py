import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from hatchwatch.models import Alert, Cycle, Measurement, Severity
from hatchwatch.services import wipe_service


def _alert(ts, code="TEMP_HIGH"):
    return Alert(device_id="INC-0001", ts=ts, level=Severity.ALERT, code=code,
                 message="Temperature too high", value=38.5)


def _fill(db):
    now = datetime.now(timezone.utc)
    db.add_all([
        _alert(now - timedelta(minutes=30)),
        _alert(now - timedelta(minutes=5), code="TEMP_LOW"),
        Measurement(device_id="INC-0001", ts=now - timedelta(minutes=1), temp=37.8, hum=55.0),
        Cycle(id=uuid.uuid4(), device_id="INC-0001", animal_type="chicken", started_at=now - timedelta(days=3)),
    ])
    db.commit()


def test_list_alerts_newest_first(client, headers, device, db):
    _fill(db)
    resp = client.get("/devices/INC-0001/alerts", headers=headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert [a["code"] for a in data] == ["TEMP_LOW", "TEMP_HIGH"]
    assert data[0]["level"] == "alert"


def test_list_alerts_limit(client, headers, device, db):
    _fill(db)
    resp = client.get("/devices/INC-0001/alerts?limit=1", headers=headers)
    assert resp.status_code == 200, resp.text
    assert len(resp.json()) == 1


def test_clear_requires_exact_phrase(client, headers, device, db):
    _fill(db)
    resp = client.post("/devices/INC-0001/alerts/clear", json={"confirmation": "clear"}, headers=headers)
    assert resp.status_code == 400, resp.text
    assert "CLEAR" in resp.json()["detail"]

    db.expire_all()
    assert db.query(Alert).count() == 2

    resp = client.post("/devices/INC-0001/alerts/clear", json={"confirmation": "CLEAR"}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"device_id": "INC-0001", "deleted": 2}

    db.expire_all()
    assert db.query(Alert).count() == 0
    assert db.query(Measurement).count() == 1


def test_wipe_requires_confirmation(client, headers, device, db):
    _fill(db)
    resp = client.post("/devices/INC-0001/wipe", json={"confirmation": "INC-0002", "slider": 80}, headers=headers)
    assert resp.status_code == 400, resp.text

    db.expire_all()
    assert db.query(Measurement).count() == 1


def test_wipe_with_device_id(client, headers, device, db):
    _fill(db)
    resp = client.post("/devices/INC-0001/wipe", json={"confirmation": "INC-0001"}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["deleted"] == {"measurements": 1, "alerts": 2, "cycles": 1}

    db.expire_all()
    assert db.query(Measurement).count() == 0
    assert db.query(Alert).count() == 0
    assert db.query(Cycle).count() == 0


def test_wipe_with_full_slider(client, headers, device, db):
    _fill(db)
    resp = client.post("/devices/INC-0001/wipe", json={"slider": 100}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["deleted"]["measurements"] == 1


def test_wipe_of_other_users_device_is_404(client, other_headers, device):
    resp = client.post("/devices/INC-0001/wipe", json={"slider": 100}, headers=other_headers)
    assert resp.status_code == 404, resp.text


def test_partial_wipe_reports_failed_table(client, headers, device, db, monkeypatch):
    _fill(db)

    def broken(session, device_id):
        raise OperationalError("DELETE FROM cycles", {}, Exception("database is locked"))

    steps = tuple((table, broken if table == "cycles" else step) for table, step in wipe_service.WIPE_STEPS)
    monkeypatch.setattr(wipe_service, "WIPE_STEPS", steps)

    resp = client.post("/devices/INC-0001/wipe", json={"confirmation": "INC-0001"}, headers=headers)
    assert resp.status_code == 500, resp.text
    detail = resp.json()["detail"]
    assert detail["failed_table"] == "cycles"
    assert detail["deleted"] == {"measurements": 1, "alerts": 2}

    db.expire_all()
    assert db.query(Measurement).count() == 0
    assert db.query(Alert).count() == 0
    assert db.query(Cycle).count() == 1
