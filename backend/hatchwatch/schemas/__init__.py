"""Pydantic schemas for API request/response validation."""
from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from hatchwatch.models.alert import Severity


# === Device Schemas ===
class DeviceCreate(BaseModel):
    device_id: str
    name: Optional[str] = None
    location: Optional[str] = ""

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("device_id is required (e.g. INC-0003)")
        return cleaned


class DeviceResponse(BaseModel):
    device_id: str
    name: str
    location: str
    is_active: bool
    created_at: datetime
    current_cycle_id: Optional[UUID] = None

    model_config = {"from_attributes": True}


# === State Schemas ===
class BandResponse(BaseModel):
    min: float
    max: float


class StatusResponse(BaseModel):
    online: bool
    level: Literal["ok", "warn", "alert", "offline"]
    issues: List[str] = []
    text: str


class DeviceStateResponse(BaseModel):
    device_id: str
    animal_type: Optional[str] = None
    animal_label: Optional[str] = None
    day: Optional[int] = None
    temp: Optional[float] = None
    hum: Optional[float] = None
    target_temp: Optional[float] = None
    tol_temp: Optional[float] = None
    target_hum: Optional[float] = None
    tol_hum: Optional[float] = None
    updated_at: Optional[datetime] = None
    temp_band: BandResponse
    hum_band: BandResponse
    status: StatusResponse


class DeviceStatePatch(BaseModel):
    """Partial device_state update; omitted fields keep their value."""
    animal_type: Optional[str] = None
    day: Optional[int] = Field(default=None, ge=0)
    temp: Optional[float] = None
    hum: Optional[float] = None
    target_temp: Optional[float] = None
    tol_temp: Optional[float] = Field(default=None, ge=0)
    target_hum: Optional[float] = None
    tol_hum: Optional[float] = Field(default=None, ge=0)
    updated_at: Optional[datetime] = None


class DeviceOverview(DeviceResponse):
    """Device merged with its state for the dashboard list."""
    state: Optional[DeviceStateResponse] = None


# === Chart Schemas ===
class ChartPoint(BaseModel):
    ts: datetime
    value: Optional[float] = None


class OverlayPointResponse(BaseModel):
    x: datetime
    y: float
    label: str


class ChannelChartResponse(BaseModel):
    key: str
    label: str
    unit: str
    points: List[ChartPoint]
    domain: Tuple[float, float]
    band: BandResponse
    alerts: List[OverlayPointResponse]


class ChartResponse(BaseModel):
    device_id: str
    from_ts: datetime
    to_ts: datetime
    smoothing_window: int
    overlay: str
    temperature: ChannelChartResponse
    humidity: ChannelChartResponse


class DailyAverageRow(BaseModel):
    day: str
    temp_avg: Optional[float] = None
    hum_avg: Optional[float] = None


class DailyAverageResponse(BaseModel):
    device_id: str
    cycle_id: Optional[UUID] = None
    state: Literal["ok", "no_cycle_selected"]
    rows: List[DailyAverageRow] = []


# === Alert Schemas ===
class AlertResponse(BaseModel):
    id: UUID
    device_id: str
    ts: datetime
    level: Severity
    code: str
    message: str
    value: Optional[float] = None

    model_config = {"from_attributes": True}


class ClearAlertsRequest(BaseModel):
    confirmation: str = ""


class ClearAlertsResponse(BaseModel):
    device_id: str
    deleted: int


class WipeRequest(BaseModel):
    confirmation: Optional[str] = None
    slider: Optional[int] = Field(default=None, ge=0, le=100)


class WipeResponse(BaseModel):
    device_id: str
    deleted: Dict[str, int]


# === Cycle Schemas ===
class CycleCreate(BaseModel):
    animal_type: Optional[str] = None
    started_at: Optional[datetime] = None


class CycleResponse(BaseModel):
    id: UUID
    device_id: str
    animal_type: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    is_current: bool = False

    model_config = {"from_attributes": True}
