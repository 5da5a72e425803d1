"""All SQLAlchemy models – re-exported for Alembic and app use."""

from hatchwatch.models.animal import Animal
from hatchwatch.models.device import Device, UserDevice
from hatchwatch.models.device_state import DeviceState
from hatchwatch.models.measurement import Measurement
from hatchwatch.models.alert import Alert, Severity
from hatchwatch.models.cycle import Cycle

__all__ = [
    "Animal",
    "Device", "UserDevice",
    "DeviceState",
    "Measurement",
    "Alert", "Severity",
    "Cycle",
]
