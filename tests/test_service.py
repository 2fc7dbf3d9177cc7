"""Tests for DeviceControlService and end-to-end scenarios."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from devicecontrols.controls import DeviceControlService, LevelPolicy, UpdateBroadcaster
from devicecontrols.controls.config import ControlsConfig
from devicecontrols.devices import (
    BooleanState,
    Device,
    DeviceKind,
    RangeState,
    SetBoolean,
    SetLevel,
    Trigger,
)
from devicecontrols.devices.demo import (
    DIMMABLE_BULB_ID,
    SIMPLE_BUTTON_ID,
    TOGGLE_BUTTON_ID,
    build_demo_service,
)
from devicecontrols.errors import DuplicateIdError, UnsupportedActionError


async def _next(subscription, timeout=1.0):
    return await asyncio.wait_for(subscription.get(), timeout)


class TestRegistration:
    """Tests for registering devices through the service."""

    def test_register_publishes_initial_snapshot(self, service, light):
        assert service.broadcaster.latest("light-1") == light

    def test_duplicate_registration(self, service):
        with pytest.raises(DuplicateIdError):
            service.register(Device("light-1", DeviceKind.TOGGLE, BooleanState(True)))

        assert service.get("light-1").state == BooleanState(False)

    def test_list_all(self, service):
        assert [d.id for d in service.list_all()] == ["button-1", "light-1", "dimmer-1"]

    def test_from_config(self):
        svc = DeviceControlService.from_config(ControlsConfig(level_policy="reject"))

        assert svc.level_policy is LevelPolicy.REJECT

    @pytest.mark.asyncio
    async def test_from_config_bounds_subscriptions(self):
        svc = DeviceControlService.from_config(ControlsConfig(max_pending_updates=8))

        async with svc.subscribe() as sub:
            assert sub.max_pending == 8

    def test_action_racing_registration_is_published_last(self):
        """Test that an action dispatched during registration cannot be overtaken by the initial snapshot."""
        published = []
        racers = []

        class RacingBroadcaster(UpdateBroadcaster):
            def publish(self, device):
                if not published:
                    racer = threading.Thread(
                        target=svc.dispatch, args=("light-1", SetBoolean(True))
                    )
                    racer.start()
                    racer.join(timeout=0.2)
                    racers.append(racer)
                published.append(device.state)
                super().publish(device)

        svc = DeviceControlService(broadcaster=RacingBroadcaster())
        svc.register(Device("light-1", DeviceKind.TOGGLE, BooleanState(False)))
        racers[0].join(timeout=2.0)

        assert not racers[0].is_alive()
        assert published == [BooleanState(False), BooleanState(True)]
        assert svc.get("light-1").state == BooleanState(True)
        assert svc.broadcaster.latest("light-1") == svc.get("light-1")


class TestScenarios:
    """End-to-end action scenarios."""

    @pytest.mark.asyncio
    async def test_toggle_scenario(self):
        svc = DeviceControlService()
        svc.register(Device("light-1", DeviceKind.TOGGLE, BooleanState(False)))
        sub = svc.subscribe({"light-1"})

        result = svc.dispatch("light-1", SetBoolean(True))

        assert result.state == BooleanState(True)
        assert (await _next(sub)).state == BooleanState(False)
        assert (await _next(sub)).state == BooleanState(True)
        await asyncio.sleep(0)
        assert sub.pending == 0

    def test_dimmable_scenario(self):
        svc = DeviceControlService()
        svc.register(Device("dimmer-1", DeviceKind.DIMMABLE, RangeState(level=0, on=False)))

        assert svc.dispatch("dimmer-1", SetLevel(55)).state == RangeState(level=55, on=False)
        assert svc.dispatch("dimmer-1", SetBoolean(True)).state == RangeState(level=55, on=True)

    def test_level_above_range_is_clamped_by_default(self, service):
        assert service.dispatch("dimmer-1", SetLevel(150)).state == RangeState(level=100, on=False)

    @pytest.mark.asyncio
    async def test_subscriber_to_all_gets_one_snapshot_per_device(self, service):
        sub = service.subscribe()

        received = [await _next(sub) for _ in range(3)]
        await asyncio.sleep(0)

        assert [d.id for d in received] == ["button-1", "light-1", "dimmer-1"]
        assert sub.pending == 0

    @pytest.mark.asyncio
    async def test_unsupported_action_publishes_nothing(self, service):
        sub = service.subscribe({"light-1"})
        await _next(sub)

        with pytest.raises(UnsupportedActionError):
            service.dispatch("light-1", Trigger())
        await asyncio.sleep(0)

        assert sub.pending == 0

    @pytest.mark.asyncio
    async def test_concurrent_dispatch_on_one_device(self, service):
        """Test that concurrent actions on one device neither lose updates nor reorder them."""
        sub = service.subscribe({"dimmer-1"})
        await _next(sub)

        levels = [float(i) for i in range(1, 51)]

        def set_levels():
            for level in levels:
                service.dispatch("dimmer-1", SetLevel(level))

        def flip():
            for i in range(50):
                service.dispatch("dimmer-1", SetBoolean(i % 2 == 0))
            service.dispatch("dimmer-1", SetBoolean(True))

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=2) as pool:
            await asyncio.gather(
                loop.run_in_executor(pool, set_levels),
                loop.run_in_executor(pool, flip),
            )

        assert service.get("dimmer-1").state == RangeState(level=50.0, on=True)

        received = [await _next(sub) for _ in range(len(levels) + 51)]
        observed_levels = [d.state.level for d in received]
        assert observed_levels == sorted(observed_levels)
        assert received[-1] == service.get("dimmer-1")


class TestPerformAction:
    """Tests for result dicts returned by perform_action."""

    def test_ok(self, service):
        result = service.perform_action("dimmer-1", SetLevel(30))

        assert result["success"] is True
        assert result["response"] == "ok"
        assert result["state"] == {"type": "range", "level": 30.0, "on": False}
        assert "SetLevel" in result["message"]

    def test_unknown_device(self, service):
        result = service.perform_action("ghost", SetBoolean(True))

        assert result["success"] is False
        assert result["response"] == "unknown"
        assert "unknown device" in result["message"].lower()
        assert result["state"] == {}

    def test_unsupported_action(self, service):
        result = service.perform_action("light-1", SetLevel(10))

        assert result["success"] is False
        assert result["response"] == "fail"
        assert result["state"] == {"type": "boolean", "value": False}

    def test_invalid_value_with_reject_policy(self):
        svc = DeviceControlService(level_policy=LevelPolicy.REJECT)
        svc.register(Device("dimmer-1", DeviceKind.DIMMABLE, RangeState()))

        result = svc.perform_action("dimmer-1", SetLevel(150))

        assert result["success"] is False
        assert result["response"] == "fail"
        assert result["state"]["level"] == 0.0

    def test_trigger(self, service):
        result = service.perform_action("button-1", Trigger())

        assert result["success"] is True
        assert result["state"] == {"type": "empty"}


class TestDemoService:
    """Tests for the demo device set."""

    def test_demo_devices_registered(self):
        svc = build_demo_service()

        assert svc.registry.list_device_ids() == [
            SIMPLE_BUTTON_ID,
            TOGGLE_BUTTON_ID,
            DIMMABLE_BULB_ID,
        ]
        assert svc.get(TOGGLE_BUTTON_ID).state == BooleanState(False)
        assert svc.get(DIMMABLE_BULB_ID).state == RangeState(level=0, on=False)

    def test_demo_services_are_independent(self):
        first, second = build_demo_service(), build_demo_service()

        first.dispatch(TOGGLE_BUTTON_ID, SetBoolean(True))

        assert second.get(TOGGLE_BUTTON_ID).state == BooleanState(False)

    def test_demo_service_uses_config_policy(self):
        svc = build_demo_service(ControlsConfig(level_policy="reject"))

        assert svc.level_policy is LevelPolicy.REJECT
