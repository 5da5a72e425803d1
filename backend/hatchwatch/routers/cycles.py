"""Incubation cycle API endpoints."""
import logging
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hatchwatch.database import get_db
from hatchwatch.deps import get_owned_device
from hatchwatch.models import Animal, Cycle, Device
from hatchwatch.schemas import CycleCreate, CycleResponse
from hatchwatch.services.thresholds import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices/{device_id}/cycles", tags=["cycles"])


def _to_response(cycle: Cycle, device: Device) -> CycleResponse:
    return CycleResponse(
        id=cycle.id,
        device_id=cycle.device_id,
        animal_type=cycle.animal_type,
        started_at=as_utc(cycle.started_at),
        ended_at=as_utc(cycle.ended_at),
        is_current=cycle.id == device.current_cycle_id,
    )


@router.get("", response_model=List[CycleResponse])
def list_cycles(
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """Cycles of a device, most recently started first."""
    cycles = (
        db.query(Cycle)
        .filter(Cycle.device_id == device.device_id)
        .order_by(Cycle.started_at.desc())
        .all()
    )
    return [_to_response(c, device) for c in cycles]


@router.post("", response_model=CycleResponse, status_code=201)
def start_cycle(
    data: CycleCreate,
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    """Start a new cycle; the previous current cycle ends where this one starts."""
    started_at = as_utc(data.started_at) or datetime.now(timezone.utc)

    if data.animal_type is not None:
        if not db.query(Animal).filter(Animal.id == data.animal_type).first():
            raise HTTPException(status_code=400, detail="Unknown animal type")

    if device.current_cycle_id is not None:
        previous = db.query(Cycle).filter(Cycle.id == device.current_cycle_id).first()
        if previous is not None and previous.ended_at is None:
            if started_at < as_utc(previous.started_at):
                raise HTTPException(status_code=400, detail="New cycle cannot start before the current one")
            previous.ended_at = started_at

    cycle = Cycle(device_id=device.device_id, animal_type=data.animal_type, started_at=started_at)
    try:
        db.add(cycle)
        db.flush()
        device.current_cycle_id = cycle.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Cycle {cycle.id} started for {device.device_id}")
    return _to_response(cycle, device)


@router.delete("/{cycle_id}", status_code=204)
def delete_cycle(
    cycle_id: UUID,
    device: Device = Depends(get_owned_device),
    db: Session = Depends(get_db),
):
    cycle = db.query(Cycle).filter(Cycle.id == cycle_id, Cycle.device_id == device.device_id).first()
    if not cycle:
        raise HTTPException(status_code=404, detail="Cycle not found")

    try:
        if device.current_cycle_id == cycle.id:
            device.current_cycle_id = None
            db.flush()
        db.delete(cycle)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return None
