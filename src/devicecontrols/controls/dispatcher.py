"""Action dispatcher: validates actions and computes the next device state."""

import logging
import math
from dataclasses import replace
from typing import Callable

from devicecontrols.controls.broadcaster import UpdateBroadcaster
from devicecontrols.controls.config import LevelPolicy
from devicecontrols.controls.device_registry import DeviceRegistry
from devicecontrols.devices.base import (
    LEVEL_MAX,
    LEVEL_MIN,
    Action,
    BooleanState,
    Device,
    DeviceKind,
    DeviceState,
    RangeState,
    SetBoolean,
    SetLevel,
    Trigger,
)
from devicecontrols.errors import (
    DeviceNotFoundError,
    InvalidActionValueError,
    KindMismatchError,
    UnsupportedActionError,
)

logger = logging.getLogger(__name__)

LevelNormalizer = Callable[[str, SetLevel], float]
Reducer = Callable[[Device, Action, LevelNormalizer], DeviceState]


def _switch_value(device: Device, action: SetBoolean) -> bool:
    if not isinstance(action.value, bool):
        raise InvalidActionValueError(
            device.id, action, f"switch value must be true or false, got {action.value!r}"
        )
    return action.value


def _reduce_trigger(device: Device, action: Action, level: LevelNormalizer) -> DeviceState:
    if not isinstance(action, Trigger):
        raise UnsupportedActionError(device.id, device.kind, action)
    # Nothing to change, the commit only signals that activity happened
    return device.state


def _reduce_toggle(device: Device, action: Action, level: LevelNormalizer) -> DeviceState:
    if not isinstance(action, SetBoolean):
        raise UnsupportedActionError(device.id, device.kind, action)
    return BooleanState(_switch_value(device, action))


def _reduce_dimmable(device: Device, action: Action, level: LevelNormalizer) -> DeviceState:
    state = device.state
    if isinstance(action, SetLevel):
        return replace(state, level=level(device.id, action))
    if isinstance(action, SetBoolean):
        return replace(state, on=_switch_value(device, action))
    raise UnsupportedActionError(device.id, device.kind, action)


REDUCERS: dict[DeviceKind, Reducer] = {
    DeviceKind.STATELESS_TRIGGER: _reduce_trigger,
    DeviceKind.TOGGLE: _reduce_toggle,
    DeviceKind.DIMMABLE: _reduce_dimmable,
}


class ActionDispatcher:
    """Applies actions to registered devices.

    Each kind's rules live in ``REDUCERS``, a table of pure functions from
    (device, action) to next state. Lookup, reduce, commit and publish happen
    under the device's lock, so concurrent actions on one device are applied
    one after another and published in commit order.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        broadcaster: UpdateBroadcaster,
        level_policy: LevelPolicy = LevelPolicy.CLAMP,
    ):
        self._registry = registry
        self._broadcaster = broadcaster
        self._level_policy = LevelPolicy(level_policy)

    @property
    def level_policy(self) -> LevelPolicy:
        return self._level_policy

    def dispatch(self, device_id: str, action: Action) -> Device:
        """Apply ``action`` to a device, commit the new state and publish it.

        Args:
            device_id: Target device ID
            action: Action to apply

        Returns:
            The updated device snapshot

        Raises:
            DeviceNotFoundError: No device with this ID
            UnsupportedActionError: The device's kind does not accept this action
            InvalidActionValueError: The action's value cannot be used
            KindMismatchError: A reducer produced a state of the wrong variant
        """
        with self._registry.device_lock(device_id):
            device = self._registry.get(device_id)
            if device is None:
                raise DeviceNotFoundError(device_id)

            reducer = REDUCERS.get(device.kind)
            if reducer is None:
                raise UnsupportedActionError(device_id, device.kind, action)
            next_state = reducer(device, action, self._normalize_level)

            try:
                updated = self._registry.commit(device_id, next_state)
            except KindMismatchError:
                logger.exception("Reducer for %s produced a mismatched state", device.kind)
                raise

            self._broadcaster.publish(updated)

        logger.info("Dispatched %s to %s -> %s", type(action).__name__, device_id, updated.state)
        return updated

    def _normalize_level(self, device_id: str, action: SetLevel) -> float:
        value = action.value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidActionValueError(device_id, action, f"level must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidActionValueError(device_id, action, f"level must be finite, got {value!r}")
        if LEVEL_MIN <= value <= LEVEL_MAX:
            return float(value)
        if self._level_policy is LevelPolicy.REJECT:
            raise InvalidActionValueError(
                device_id, action, f"level must be {LEVEL_MIN:g}-{LEVEL_MAX:g}, got {value:g}"
            )
        clamped = max(LEVEL_MIN, min(LEVEL_MAX, float(value)))
        logger.debug("Clamped level %s to %s for %s", value, clamped, device_id)
        return clamped
