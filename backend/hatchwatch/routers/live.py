"""
Live device view over WebSocket.

On connect the client gets the current state. After that it receives:
- ``state`` on every accepted change from the change feed
- ``alerts`` with the latest alert log every alerts poll interval
- ``status`` when the online/offline status changes, checked every status
  poll interval

The polling jobs belong to a scheduler view that is closed on disconnect.
Database access runs in the threadpool and ends its transaction right away.
"""
import asyncio
import logging
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from hatchwatch.config import settings
from hatchwatch.database import get_db
from hatchwatch.models import Alert, DeviceState, UserDevice
from hatchwatch.routers.state import animal_names, serialize_state, state_to_dict
from hatchwatch.schemas import AlertResponse
from hatchwatch.services.realtime import state_feed
from hatchwatch.services.scheduler import view_scheduler
from hatchwatch.services.state_reducer import DeviceStateStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])

ALERTS_PUSH_LIMIT = 50


def _is_linked(db: Session, user_id: Optional[str], device_id: str) -> bool:
    if not user_id:
        return False
    try:
        link = db.query(UserDevice).filter(
            UserDevice.user_id == user_id,
            UserDevice.device_id == device_id,
        ).first()
    finally:
        db.rollback()
    return link is not None


def _load_store(db: Session, device_id: str) -> DeviceStateStore:
    try:
        store = DeviceStateStore(animal_names(db))
        row = db.query(DeviceState).filter(DeviceState.device_id == device_id).first()
        if row is not None:
            store.apply(state_to_dict(row))
    finally:
        db.rollback()
    return store


def _latest_alerts(db: Session, device_id: str) -> List[dict]:
    try:
        rows = (
            db.query(Alert)
            .filter(Alert.device_id == device_id)
            .order_by(Alert.ts.desc())
            .limit(ALERTS_PUSH_LIMIT)
            .all()
        )
        return [AlertResponse.model_validate(a).model_dump(mode="json") for a in rows]
    finally:
        db.rollback()


async def _drain(websocket: WebSocket) -> None:
    while True:
        await websocket.receive_text()


@router.websocket("/ws/devices/{device_id}")
async def device_live(
    websocket: WebSocket,
    device_id: str,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    user_id = user_id or websocket.headers.get("x-user-id")
    if not await run_in_threadpool(_is_linked, db, user_id, device_id):
        await websocket.close(code=4404)
        return

    await websocket.accept()

    # Subscribed before the snapshot is read; changes older than it are dropped by the store
    queue = state_feed.subscribe(device_id)
    view_key = f"device:{device_id}:{uuid4().hex[:8]}"
    reader = None

    try:
        store = await run_in_threadpool(_load_store, db, device_id)
        snapshot = store.get(device_id)
        await websocket.send_json({
            "type": "state",
            "data": serialize_state(snapshot).model_dump(mode="json") if snapshot else None,
        })

        last_status = {"text": None}

        async def push_alerts():
            alerts = await run_in_threadpool(_latest_alerts, db, device_id)
            await websocket.send_json({"type": "alerts", "data": alerts})

        async def push_status():
            current = store.get(device_id)
            if current is None:
                return
            status = serialize_state(current).status
            if status.text != last_status["text"]:
                last_status["text"] = status.text
                await websocket.send_json({"type": "status", "data": status.model_dump(mode="json")})

        view_scheduler.open_view(view_key, [
            ("alerts", push_alerts, settings.alerts_poll_seconds),
            ("status", push_status, settings.status_poll_seconds),
        ])
        reader = asyncio.create_task(_drain(websocket))
        logger.info(f"Live view {view_key} opened")

        while not reader.done():
            try:
                change = await asyncio.wait_for(queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            merged = store.apply(change)
            if merged is None:
                continue
            await websocket.send_json({
                "type": "state",
                "data": serialize_state(merged).model_dump(mode="json"),
            })
    except WebSocketDisconnect:
        pass
    finally:
        if reader is not None:
            reader.cancel()
            if reader.done() and not reader.cancelled() and reader.exception() is not None:
                logger.debug(f"Live view {view_key} reader ended: {reader.exception()!r}")
        state_feed.unsubscribe(device_id, queue)
        view_scheduler.close_view(view_key)
        logger.info(f"Live view {view_key} closed")
