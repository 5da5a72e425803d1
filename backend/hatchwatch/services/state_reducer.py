"""
Last-write-wins merge of device state changes.

Changes arrive as partial rows keyed by device id. A change is applied only
when its ``updated_at`` is not older than what is already held; fields it
omits keep their previous values. Change payloads never carry the joined
animal label, so the label is kept while the animal type is unchanged and
re-resolved from the lookup otherwise.
"""
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from hatchwatch.services.thresholds import as_utc

STATE_FIELDS = (
    "device_id",
    "animal_type",
    "day",
    "temp",
    "hum",
    "target_temp",
    "tol_temp",
    "target_hum",
    "tol_hum",
    "updated_at",
)


def _parse_ts(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return as_utc(value)


def merge_state(
    current: Optional[Mapping[str, Any]],
    change: Mapping[str, Any],
    animal_names: Optional[Mapping[str, str]] = None,
) -> Optional[Dict[str, Any]]:
    """Return the merged state, or None when the change is stale."""
    animal_names = animal_names or {}
    incoming_ts = _parse_ts(change.get("updated_at"))

    if current is not None:
        current_ts = _parse_ts(current.get("updated_at"))
        if current_ts is not None and (incoming_ts is None or incoming_ts < current_ts):
            return None

    merged = dict(current or {})
    for key in STATE_FIELDS:
        if key in change:
            merged[key] = change[key]
    merged["updated_at"] = incoming_ts

    previous_type = (current or {}).get("animal_type")
    animal_type = merged.get("animal_type")
    if current is None or animal_type != previous_type or not merged.get("animal_label"):
        if "animal_label" in change:
            merged["animal_label"] = change["animal_label"]
        elif animal_type is not None:
            merged["animal_label"] = animal_names.get(animal_type, animal_type)
        else:
            merged["animal_label"] = None
    return merged


class DeviceStateStore:
    """Reducer holding the latest known state per device id."""

    def __init__(self, animal_names: Optional[Mapping[str, str]] = None):
        self._states: Dict[str, Dict[str, Any]] = {}
        self.animal_names = dict(animal_names or {})

    def get(self, device_id: str) -> Optional[Dict[str, Any]]:
        return self._states.get(device_id)

    def apply(self, change: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply one change; returns the new state, or None if it was stale."""
        device_id = change["device_id"]
        merged = merge_state(self._states.get(device_id), change, self.animal_names)
        if merged is not None:
            self._states[device_id] = merged
        return merged
