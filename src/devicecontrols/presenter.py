"""Renders device snapshots into control representations.

Cosmetic data (titles, zones, colors, status text) lives here and never in
device state.
"""

from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Mapping, Optional

from devicecontrols.devices.base import (
    LEVEL_MAX,
    LEVEL_MIN,
    BooleanState,
    Device,
    DeviceKind,
    RangeState,
)

STATUS_OK = "ok"
RANGE_STEP = 10.0


@dataclass(frozen=True)
class ControlProfile:
    """Presentation hints for one device."""

    title: str
    subtitle: str = ""
    zone: str = ""
    structure: str = ""
    device_type: str = "generic"
    custom_color: Optional[str] = None


def status_text(device: Device) -> str:
    """Short human-readable status, e.g. 'On' or '55%'."""
    state = device.state
    if isinstance(state, BooleanState):
        return "On" if state.value else "Off"
    if isinstance(state, RangeState):
        return f"{int(state.level)}%"
    return ""


def _template(device: Device) -> dict[str, Any]:
    state = device.state
    template: dict[str, Any] = {"template_id": f"{device.id}-template"}
    if device.kind is DeviceKind.TOGGLE:
        template.update(type="toggle", checked=state.value, label="Toggle")
    elif device.kind is DeviceKind.DIMMABLE:
        template.update(
            type="toggle_range",
            checked=state.on,
            label="On/Off",
            min=LEVEL_MIN,
            max=LEVEL_MAX,
            current=state.level,
            step=RANGE_STEP,
        )
    else:
        template.update(type="stateless")
    return template


def render_control(device: Device, profile: Optional[ControlProfile] = None) -> dict[str, Any]:
    """Build the control dict shown to users for a device snapshot.

    Args:
        device: Device snapshot to render
        profile: Presentation hints; the device ID is used as title if omitted

    Returns:
        dict with control_id, title, subtitle, zone, structure, device_type,
        status, status_text and template (plus custom_color when set)
    """
    profile = profile or ControlProfile(title=device.id)
    control = {
        "control_id": device.id,
        "title": profile.title,
        "subtitle": profile.subtitle,
        "zone": profile.zone,
        "structure": profile.structure,
        "device_type": profile.device_type,
        "status": STATUS_OK,
        "status_text": status_text(device),
        "template": _template(device),
    }
    if profile.custom_color:
        control["custom_color"] = profile.custom_color
    return control


async def render_updates(
    updates: AsyncIterable[Device],
    profiles: Optional[Mapping[str, ControlProfile]] = None,
) -> AsyncIterator[dict[str, Any]]:
    """Render every snapshot of an update stream as it arrives.

    Args:
        updates: Snapshot stream, typically a Subscription
        profiles: Presentation hints by device ID

    Yields:
        One control dict per snapshot, until the stream ends
    """
    profiles = profiles or {}
    async for device in updates:
        yield render_control(device, profiles.get(device.id))
