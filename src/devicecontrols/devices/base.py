"""Device, state and action types for virtual controllable devices."""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Union

from devicecontrols.errors import KindMismatchError

LEVEL_MIN = 0.0
LEVEL_MAX = 100.0


class DeviceKind(str, Enum):
    """Closed set of device categories.

    The kind decides which state variant a device holds and which actions it
    accepts.
    """

    STATELESS_TRIGGER = "stateless_trigger"
    TOGGLE = "toggle"
    DIMMABLE = "dimmable"

    @property
    def state_type(self) -> type:
        """Return the state class devices of this kind must hold."""
        return _STATE_TYPES[self]

    def accepts_state(self, state: Any) -> bool:
        return type(state) is self.state_type

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class EmptyState:
    """State of a stateless trigger: nothing to remember."""


@dataclass(frozen=True)
class BooleanState:
    """On/off state of a toggle."""

    value: bool = False


@dataclass(frozen=True)
class RangeState:
    """Level plus on/off state of a dimmable device.

    ``level`` and ``on`` are independent: either can change without the other.
    """

    level: float = 0.0
    on: bool = False

    def __post_init__(self) -> None:
        if not is_valid_level(self.level):
            raise ValueError(
                f"level must be a number in [{LEVEL_MIN:g}, {LEVEL_MAX:g}], got {self.level!r}"
            )


DeviceState = Union[EmptyState, BooleanState, RangeState]

_STATE_TYPES = {
    DeviceKind.STATELESS_TRIGGER: EmptyState,
    DeviceKind.TOGGLE: BooleanState,
    DeviceKind.DIMMABLE: RangeState,
}


@dataclass(frozen=True)
class Trigger:
    """Fire a stateless device."""


@dataclass(frozen=True)
class SetBoolean:
    """Switch a device on or off."""

    value: bool


@dataclass(frozen=True)
class SetLevel:
    """Set the level of a dimmable device."""

    value: float


Action = Union[Trigger, SetBoolean, SetLevel]


def is_valid_level(level: Any) -> bool:
    """Check that ``level`` is a finite number within [LEVEL_MIN, LEVEL_MAX]."""
    if isinstance(level, bool) or not isinstance(level, (int, float)):
        return False
    return math.isfinite(level) and LEVEL_MIN <= level <= LEVEL_MAX


@dataclass(frozen=True)
class Device:
    """Immutable snapshot of a virtual device.

    ``id`` and ``kind`` never change; a state change produces a new snapshot
    via ``with_state``.
    """

    id: str
    kind: DeviceKind
    state: DeviceState

    def __post_init__(self) -> None:
        # Accept the plain string value of a kind, e.g. "toggle"
        if not isinstance(self.kind, DeviceKind):
            object.__setattr__(self, "kind", DeviceKind(self.kind))
        if not self.kind.accepts_state(self.state):
            raise KindMismatchError(self.id, self.kind, self.state)

    def with_state(self, state: DeviceState) -> "Device":
        return replace(self, state=state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "state": state_to_dict(self.state),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Device":
        return cls(
            id=data["id"],
            kind=DeviceKind(data["kind"]),
            state=state_from_dict(data["state"]),
        )


def state_to_dict(state: DeviceState) -> dict[str, Any]:
    """Serialize a state keeping its variant tag."""
    if isinstance(state, EmptyState):
        return {"type": "empty"}
    if isinstance(state, BooleanState):
        return {"type": "boolean", "value": state.value}
    if isinstance(state, RangeState):
        return {"type": "range", "level": state.level, "on": state.on}
    raise ValueError(f"Unknown state: {state!r}")


def state_from_dict(data: dict[str, Any]) -> DeviceState:
    tag = data.get("type")
    if tag == "empty":
        return EmptyState()
    if tag == "boolean":
        return BooleanState(bool(data["value"]))
    if tag == "range":
        return RangeState(level=float(data["level"]), on=bool(data["on"]))
    raise ValueError(f"Unknown state type: {tag!r}")


def action_to_dict(action: Action) -> dict[str, Any]:
    """Serialize an action keeping its variant tag."""
    if isinstance(action, Trigger):
        return {"type": "trigger"}
    if isinstance(action, SetBoolean):
        return {"type": "set_boolean", "value": action.value}
    if isinstance(action, SetLevel):
        return {"type": "set_level", "value": action.value}
    raise ValueError(f"Unknown action: {action!r}")


def action_from_dict(data: dict[str, Any]) -> Action:
    tag = data.get("type")
    if tag == "trigger":
        return Trigger()
    if tag == "set_boolean":
        return SetBoolean(data["value"])
    if tag == "set_level":
        return SetLevel(data["value"])
    raise ValueError(f"Unknown action type: {tag!r}")
