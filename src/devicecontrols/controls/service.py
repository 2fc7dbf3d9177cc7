"""Control service wiring a registry, a dispatcher and a broadcaster together."""

import logging
from typing import Any, Iterable, Optional

from devicecontrols.controls.broadcaster import Subscription, UpdateBroadcaster
from devicecontrols.controls.config import ControlsConfig, LevelPolicy
from devicecontrols.controls.device_registry import DeviceRegistry
from devicecontrols.controls.dispatcher import ActionDispatcher
from devicecontrols.devices.base import Action, Device, state_to_dict
from devicecontrols.errors import DeviceNotFoundError, DispatchError, KindMismatchError

logger = logging.getLogger(__name__)

RESPONSE_OK = "ok"
RESPONSE_FAIL = "fail"
RESPONSE_UNKNOWN = "unknown"


class DeviceControlService:
    """Entry point for action sources and presenters.

    Owns one registry, one broadcaster and one dispatcher. Instances are
    independent of each other; nothing is shared at module level.
    """

    def __init__(
        self,
        registry: Optional[DeviceRegistry] = None,
        broadcaster: Optional[UpdateBroadcaster] = None,
        level_policy: LevelPolicy = LevelPolicy.CLAMP,
    ):
        """Initialize the service.

        Args:
            registry: Registry to use, a new empty one if omitted
            broadcaster: Broadcaster to use, a new one if omitted
            level_policy: How out-of-range levels are handled
        """
        self._registry = registry if registry is not None else DeviceRegistry()
        self._broadcaster = broadcaster if broadcaster is not None else UpdateBroadcaster()
        self._dispatcher = ActionDispatcher(self._registry, self._broadcaster, level_policy)

    @classmethod
    def from_config(cls, config: ControlsConfig) -> "DeviceControlService":
        return cls(
            broadcaster=UpdateBroadcaster(config.max_pending_updates),
            level_policy=config.policy,
        )

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def broadcaster(self) -> UpdateBroadcaster:
        return self._broadcaster

    @property
    def level_policy(self) -> LevelPolicy:
        return self._dispatcher.level_policy

    def register(self, device: Device) -> None:
        """Register a device and publish its initial snapshot.

        The initial publish happens under the device's lock, so it always
        precedes the publish of any action dispatched to the new device.

        Raises:
            DuplicateIdError: If the ID is already registered
        """
        self._registry.register(device, on_registered=self._broadcaster.publish)

    def get(self, device_id: str) -> Optional[Device]:
        return self._registry.get(device_id)

    def list_all(self) -> list[Device]:
        """Snapshot of every device, in registration order."""
        return self._registry.list_all()

    def subscribe(self, device_ids: Optional[Iterable[str]] = None) -> Subscription:
        return self._broadcaster.subscribe(device_ids)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._broadcaster.unsubscribe(subscription)

    def dispatch(self, device_id: str, action: Action) -> Device:
        """Apply an action, raising a DispatchError subclass on failure."""
        return self._dispatcher.dispatch(device_id, action)

    def perform_action(self, device_id: str, action: Action) -> dict[str, Any]:
        """Apply an action and report the outcome as a result dict.

        Returns:
            dict with keys:
                - success: bool indicating if the action was applied
                - message: str describing the result
                - state: dict with the device state after the action
                  (empty if the device is unknown)
                - response: 'ok', 'fail' or 'unknown'
        """
        try:
            device = self._dispatcher.dispatch(device_id, action)
        except DeviceNotFoundError as e:
            logger.warning(str(e))
            return {
                "success": False,
                "message": str(e),
                "state": {},
                "response": RESPONSE_UNKNOWN,
            }
        except DispatchError as e:
            if not isinstance(e, KindMismatchError):
                logger.warning("Action rejected: %s", e)
            current = self._registry.get(device_id)
            return {
                "success": False,
                "message": str(e),
                "state": state_to_dict(current.state) if current else {},
                "response": RESPONSE_FAIL,
            }

        return {
            "success": True,
            "message": f"{type(action).__name__} applied to {device_id}",
            "state": state_to_dict(device.state),
            "response": RESPONSE_OK,
        }
