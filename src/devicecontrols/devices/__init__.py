"""Virtual device types and the demo device set."""

from .base import (
    Action,
    BooleanState,
    Device,
    DeviceKind,
    DeviceState,
    EmptyState,
    RangeState,
    SetBoolean,
    SetLevel,
    Trigger,
)

__all__ = [
    "Action",
    "BooleanState",
    "Device",
    "DeviceKind",
    "DeviceState",
    "EmptyState",
    "RangeState",
    "SetBoolean",
    "SetLevel",
    "Trigger",
]
