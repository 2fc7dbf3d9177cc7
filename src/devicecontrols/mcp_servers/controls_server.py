"""MCP server exposing the virtual device controls as tools."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastmcp import FastMCP
from dotenv import load_dotenv

from devicecontrols.controls.config import load_config
from devicecontrols.controls.service import DeviceControlService
from devicecontrols.devices.base import Action, SetBoolean, SetLevel, Trigger
from devicecontrols.devices.demo import DEMO_PROFILES, build_demo_service
from devicecontrols.logging import DynamoStateLogger
from devicecontrols.presenter import render_control, render_updates

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastMCP server
app = FastMCP("Device Controls")

ENV_FILE = Path.home() / ".devicecontrols" / ".env"

# Lazily initialized service and state logger
service: Optional[DeviceControlService] = None
state_logger: Optional[DynamoStateLogger] = None


def get_service() -> DeviceControlService:
    """Get or initialize the control service with the demo devices.

    Reads ~/.devicecontrols/.env into the environment before loading the
    config, so the level policy and state logging can be set there.
    """
    global service, state_logger
    if service is not None:
        return service

    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)
    config = load_config()

    service = build_demo_service(config)
    if config.state_log_enabled:
        state_logger = DynamoStateLogger.from_config(config)
        logger.info("State logging to DynamoDB table %s", config.state_log_table)
    return service


def _format_control(control: dict) -> str:
    line = f"{control['title']} [{control['control_id']}]"
    if control["zone"]:
        line += f" in {control['zone']}"
    if control["status_text"]:
        line += f": {control['status_text']}"
    template = control["template"]
    if template["type"] == "toggle_range":
        line += f" ({'ON' if template['checked'] else 'OFF'})"
    return line


def _describe(device_id: str) -> str:
    device = get_service().get(device_id)
    return _format_control(render_control(device, DEMO_PROFILES.get(device_id)))


async def _perform(device_id: str, tool: str, action: Action) -> str:
    result = get_service().perform_action(device_id, action)
    if state_logger is not None and result["success"]:
        await state_logger.log_state_change(device_id, tool, result)

    if result["success"]:
        return f"✓ {result['message']}. {_describe(device_id)}"
    return f"✗ {result['message']}"


@app.tool()
async def list_controls() -> str:
    """List every available control with its current status.

    Returns:
        One line per control: title, ID, zone and status
    """
    logger.info("Tool called: list_controls")
    svc = get_service()
    return "\n".join(
        _format_control(render_control(device, DEMO_PROFILES.get(device.id)))
        for device in svc.list_all()
    )


@app.tool()
async def get_control(device_id: str) -> str:
    """Get the current status of one control.

    Args:
        device_id: ID of the control, e.g. 'dimmable-bulb'

    Returns:
        The control's title, zone and status
    """
    logger.info("Tool called: get_control(%s)", device_id)
    if get_service().get(device_id) is None:
        return f"✗ Unknown device: {device_id}"
    return _describe(device_id)


@app.tool()
async def trigger(device_id: str) -> str:
    """Press a stateless button.

    Args:
        device_id: ID of the control

    Returns:
        A message confirming the press or explaining why it failed
    """
    logger.info("Tool called: trigger(%s)", device_id)
    return await _perform(device_id, "trigger", Trigger())


@app.tool()
async def set_switch(device_id: str, on: bool) -> str:
    """Switch a light or dimmable bulb on or off.

    Args:
        device_id: ID of the control
        on: True to switch on, False to switch off

    Returns:
        A message confirming the new state or explaining why it failed
    """
    logger.info("Tool called: set_switch(%s, %s)", device_id, on)
    return await _perform(device_id, "set_switch", SetBoolean(on))


@app.tool()
async def set_level(device_id: str, level: float) -> str:
    """Set the brightness level of a dimmable bulb.

    Args:
        device_id: ID of the control
        level: Level from 0 to 100

    Returns:
        A message confirming the new level or explaining why it failed
    """
    logger.info("Tool called: set_level(%s, %s)", device_id, level)
    return await _perform(device_id, "set_level", SetLevel(level))


@app.tool()
async def watch_controls(
    device_ids: Optional[list[str]] = None,
    max_updates: int = 10,
    timeout: float = 1.0,
) -> str:
    """Watch controls change.

    Starts with the current status of every watched control, then follows
    new changes until max_updates lines are collected or no change arrives
    within timeout seconds.

    Args:
        device_ids: IDs of the controls to watch, all controls if omitted
        max_updates: Maximum number of status lines to return
        timeout: Seconds to wait for the next change

    Returns:
        One line per observed status, oldest first
    """
    logger.info("Tool called: watch_controls(%s, %s, %s)", device_ids, max_updates, timeout)
    svc = get_service()
    unknown = [d for d in device_ids or [] if svc.get(d) is None]
    if unknown:
        return f"✗ Unknown device(s): {', '.join(unknown)}"
    if max_updates < 1:
        return "✗ max_updates must be at least 1"

    lines = []
    async with svc.subscribe(device_ids) as subscription:
        updates = render_updates(subscription, DEMO_PROFILES)
        try:
            while len(lines) < max_updates:
                try:
                    control = await asyncio.wait_for(anext(updates), timeout)
                except (asyncio.TimeoutError, StopAsyncIteration):
                    break
                lines.append(_format_control(control))
        finally:
            await updates.aclose()

    return "\n".join(lines) if lines else "No updates"


if __name__ == "__main__":
    app.run()
