"""Device controls core: registry, dispatcher and update broadcaster."""

from devicecontrols.controls.broadcaster import Subscription, UpdateBroadcaster
from devicecontrols.controls.config import ControlsConfig, LevelPolicy, load_config
from devicecontrols.controls.device_registry import DeviceRegistry
from devicecontrols.controls.dispatcher import ActionDispatcher
from devicecontrols.controls.service import DeviceControlService

__all__ = [
    "ActionDispatcher",
    "ControlsConfig",
    "DeviceControlService",
    "DeviceRegistry",
    "LevelPolicy",
    "Subscription",
    "UpdateBroadcaster",
    "load_config",
]
