"""Shared fixtures for device controls tests."""

import pytest

from devicecontrols.controls import DeviceControlService, DeviceRegistry, UpdateBroadcaster
from devicecontrols.devices import BooleanState, Device, DeviceKind, EmptyState, RangeState


@pytest.fixture
def button():
    return Device("button-1", DeviceKind.STATELESS_TRIGGER, EmptyState())


@pytest.fixture
def light():
    return Device("light-1", DeviceKind.TOGGLE, BooleanState(False))


@pytest.fixture
def dimmer():
    return Device("dimmer-1", DeviceKind.DIMMABLE, RangeState(level=0.0, on=False))


@pytest.fixture
def registry():
    """Create an empty device registry."""
    return DeviceRegistry()


@pytest.fixture
def broadcaster():
    return UpdateBroadcaster()


@pytest.fixture
def service(button, light, dimmer):
    """Service with one device of each kind registered."""
    svc = DeviceControlService()
    for device in (button, light, dimmer):
        svc.register(device)
    return svc
