from datetime import datetime, timedelta, timezone

import pytest
from starlette.websockets import WebSocketDisconnect

from hatchwatch.config import settings
from hatchwatch.models import Alert, Severity
from hatchwatch.routers import live
from hatchwatch.services import scheduler
from hatchwatch.services.realtime import state_feed
from hatchwatch.services.scheduler import ViewScheduler, view_scheduler

from conftest import make_device


def test_initial_snapshot(client, device):
    with client.websocket_connect("/ws/devices/INC-0001?user_id=user-1") as ws:
        message = ws.receive_json()

    assert message["type"] == "state"
    assert message["data"]["temp"] == 37.8
    assert message["data"]["animal_label"] == "Chicken"
    assert message["data"]["status"]["level"] == "ok"


def test_snapshot_without_state(client, db):
    make_device(db)
    with client.websocket_connect("/ws/devices/INC-0001", headers={"X-User-Id": "user-1"}) as ws:
        message = ws.receive_json()
    assert message == {"type": "state", "data": None}


def test_unlinked_user_is_rejected(client, device):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/devices/INC-0001?user_id=user-2") as ws:
            ws.receive_json()
    assert exc.value.code == 4404


def test_state_patch_is_pushed(client, headers, device):
    with client.websocket_connect("/ws/devices/INC-0001?user_id=user-1") as ws:
        ws.receive_json()
        resp = client.post("/devices/INC-0001/state", json={"temp": 37.9}, headers=headers)
        assert resp.status_code == 200, resp.text

        message = ws.receive_json()
        assert message["type"] == "state"
        assert message["data"]["temp"] == 37.9
        assert message["data"]["hum"] == 55.0


def test_view_is_closed_on_disconnect(client, device):
    with client.websocket_connect("/ws/devices/INC-0001?user_id=user-1") as ws:
        ws.receive_json()

    assert state_feed.subscriber_count("INC-0001") == 0
    assert not [job for job in view_scheduler.scheduler.get_jobs() if job.id.startswith("device:INC-0001")]


@pytest.fixture
def running_views(monkeypatch):
    """A fresh scheduler per test, started by the app lifespan."""
    views = ViewScheduler()
    monkeypatch.setattr(scheduler, "view_scheduler", views)
    monkeypatch.setattr(live, "view_scheduler", views)
    monkeypatch.setattr(settings, "dashboard_poll_seconds", 3600)
    monkeypatch.setattr(settings, "alerts_poll_seconds", 3600)
    monkeypatch.setattr(settings, "status_poll_seconds", 3600)
    return views


def test_alert_log_is_polled(client, device, db, running_views, monkeypatch):
    db.add(Alert(device_id="INC-0001", ts=datetime.now(timezone.utc), level=Severity.ALERT,
                 code="TEMP_HIGH", message="Temperature too high", value=38.5))
    db.commit()
    monkeypatch.setattr(settings, "alerts_poll_seconds", 1)

    with client as c:
        with c.websocket_connect("/ws/devices/INC-0001?user_id=user-1") as ws:
            assert ws.receive_json()["type"] == "state"
            message = ws.receive_json()

    assert message["type"] == "alerts"
    assert [a["code"] for a in message["data"]] == ["TEMP_HIGH"]
    assert message["data"][0]["level"] == "alert"


def test_status_is_pushed_when_it_changes(client, db, running_views, monkeypatch):
    make_device(db, temp=37.8, hum=55.0, updated_at=datetime.now(timezone.utc) - timedelta(minutes=2))
    monkeypatch.setattr(settings, "status_poll_seconds", 1)

    with client as c:
        with c.websocket_connect("/ws/devices/INC-0001?user_id=user-1") as ws:
            assert ws.receive_json()["type"] == "state"

            first = ws.receive_json()
            assert first["type"] == "status"
            assert first["data"]["text"] == "OK"

            # The same reading is now older than the online window
            monkeypatch.setattr(settings, "online_window_minutes", 1)
            second = ws.receive_json()

    assert second["type"] == "status"
    assert second["data"]["online"] is False
    assert second["data"]["level"] == "offline"
    assert second["data"]["text"] == "Offline"
