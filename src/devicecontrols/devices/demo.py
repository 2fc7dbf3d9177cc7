"""Sample home with a button, a light and a dimmable bulb."""

import logging
from typing import Optional

from devicecontrols.controls.config import ControlsConfig
from devicecontrols.controls.service import DeviceControlService
from devicecontrols.devices.base import BooleanState, Device, DeviceKind, EmptyState, RangeState
from devicecontrols.presenter import ControlProfile

logger = logging.getLogger(__name__)

SIMPLE_BUTTON_ID = "simple-button"
TOGGLE_BUTTON_ID = "toggle-button"
DIMMABLE_BULB_ID = "dimmable-bulb"

STRUCTURE = "Sample Home"

DEMO_PROFILES = {
    SIMPLE_BUTTON_ID: ControlProfile(
        title="Button",
        subtitle="Kitchen",
        zone="Kitchen",
        structure=STRUCTURE,
        device_type="generic_viewstream",
    ),
    TOGGLE_BUTTON_ID: ControlProfile(
        title="Bulb",
        subtitle="Restroom",
        zone="Restroom",
        structure=STRUCTURE,
        device_type="light",
        custom_color="#413C2D",
    ),
    DIMMABLE_BULB_ID: ControlProfile(
        title="Dimmable bulb",
        subtitle="Hall",
        zone="Hall",
        structure=STRUCTURE,
        device_type="light",
        custom_color="#303744",
    ),
}


def demo_devices() -> list[Device]:
    """Initial snapshots of the demo devices, in display order."""
    return [
        Device(SIMPLE_BUTTON_ID, DeviceKind.STATELESS_TRIGGER, EmptyState()),
        Device(TOGGLE_BUTTON_ID, DeviceKind.TOGGLE, BooleanState(False)),
        Device(DIMMABLE_BULB_ID, DeviceKind.DIMMABLE, RangeState(level=0.0, on=False)),
    ]


def build_demo_service(config: Optional[ControlsConfig] = None) -> DeviceControlService:
    """Create a service with the demo devices registered."""
    service = (
        DeviceControlService.from_config(config) if config else DeviceControlService()
    )
    for device in demo_devices():
        service.register(device)
    logger.info(f"Demo service ready with {len(service.registry)} devices")
    return service
