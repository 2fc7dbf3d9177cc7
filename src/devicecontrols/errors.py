"""Error types for device control operations.

Exception Hierarchy:
    DeviceControlError
    ├── DuplicateIdError - registering an ID that is already present
    └── DispatchError - any failure while applying an action
        ├── DeviceNotFoundError - no device with the given ID
        ├── KindMismatchError - state variant does not fit the device kind
        ├── UnsupportedActionError - action not accepted by this device kind
        └── InvalidActionValueError - action carries an unusable value
"""

from typing import Any, Optional


class DeviceControlError(Exception):
    """Base exception for the device controls core."""

    def __init__(self, message: str, device_id: Optional[str] = None):
        super().__init__(message)
        self.device_id = device_id


class DuplicateIdError(DeviceControlError, ValueError):
    """A device with the same ID is already registered."""

    def __init__(self, device_id: str):
        super().__init__(f"Device already registered: {device_id}", device_id)


class DispatchError(DeviceControlError):
    """Base class for errors raised while dispatching an action."""


class DeviceNotFoundError(DispatchError):
    """No device is registered under the requested ID."""

    def __init__(self, device_id: str):
        super().__init__(f"Unknown device: {device_id}", device_id)


class KindMismatchError(DispatchError):
    """A state variant does not match the owning device's kind.

    This signals a defect in device construction or a reducer, never a user
    error.
    """

    def __init__(self, device_id: str, kind: Any, state: Any):
        super().__init__(
            f"State {type(state).__name__} does not match kind {kind} "
            f"for device {device_id}",
            device_id,
        )
        self.kind = kind
        self.state = state


class UnsupportedActionError(DispatchError):
    """The device's kind does not accept this action type."""

    def __init__(self, device_id: str, kind: Any, action: Any):
        super().__init__(
            f"Action {type(action).__name__} is not supported by "
            f"{kind} device {device_id}",
            device_id,
        )
        self.kind = kind
        self.action = action


class InvalidActionValueError(DispatchError):
    """The action's value is outside what the device accepts."""

    def __init__(self, device_id: str, action: Any, reason: str):
        super().__init__(f"Invalid value for {device_id}: {reason}", device_id)
        self.action = action
        self.reason = reason
