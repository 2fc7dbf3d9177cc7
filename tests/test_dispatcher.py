"""Tests for ActionDispatcher."""

import logging
import math

import pytest

from devicecontrols.controls import dispatcher as dispatcher_module
from devicecontrols.controls.config import LevelPolicy
from devicecontrols.controls.device_registry import DeviceRegistry
from devicecontrols.controls.dispatcher import ActionDispatcher
from devicecontrols.devices import (
    BooleanState,
    DeviceKind,
    EmptyState,
    RangeState,
    SetBoolean,
    SetLevel,
    Trigger,
)
from devicecontrols.errors import (
    DeviceNotFoundError,
    DispatchError,
    InvalidActionValueError,
    KindMismatchError,
    UnsupportedActionError,
)


@pytest.fixture
def published(broadcaster, monkeypatch):
    """Record every device handed to broadcaster.publish."""
    calls = []
    original = broadcaster.publish

    def record(device):
        calls.append(device)
        original(device)

    monkeypatch.setattr(broadcaster, "publish", record)
    return calls


@pytest.fixture
def dispatcher(registry, broadcaster, button, light, dimmer):
    for device in (button, light, dimmer):
        registry.register(device)
    return ActionDispatcher(registry, broadcaster)


class TestDispatchSupportedActions:
    """Tests for actions each kind accepts."""

    def test_toggle_set_boolean(self, dispatcher, registry, published):
        updated = dispatcher.dispatch("light-1", SetBoolean(True))

        assert updated.state == BooleanState(True)
        assert registry.get("light-1").state == BooleanState(True)
        assert published == [updated]

    def test_trigger_is_noop_commit_that_publishes(self, dispatcher, button, published):
        updated = dispatcher.dispatch("button-1", Trigger())

        assert updated == button
        assert updated.state == EmptyState()
        assert published == [updated]

    def test_dimmable_fields_are_independent(self, dispatcher):
        """Test that level and on/off change without touching each other."""
        after_level = dispatcher.dispatch("dimmer-1", SetLevel(55))
        assert after_level.state == RangeState(level=55.0, on=False)

        after_on = dispatcher.dispatch("dimmer-1", SetBoolean(True))
        assert after_on.state == RangeState(level=55.0, on=True)

        after_level2 = dispatcher.dispatch("dimmer-1", SetLevel(20.5))
        assert after_level2.state == RangeState(level=20.5, on=True)

    def test_dispatch_is_deterministic(self, broadcaster, light):
        """Test that two fresh setups given the same action agree."""
        results = []
        for _ in range(2):
            reg = DeviceRegistry()
            reg.register(light)
            results.append(ActionDispatcher(reg, broadcaster).dispatch("light-1", SetBoolean(True)))

        assert results[0] == results[1]


class TestDispatchFailures:
    """Tests for rejected actions."""

    def test_unknown_device(self, dispatcher, published):
        with pytest.raises(DeviceNotFoundError) as exc_info:
            dispatcher.dispatch("ghost", SetBoolean(True))

        assert exc_info.value.device_id == "ghost"
        assert published == []

    @pytest.mark.parametrize(
        "device_id,action",
        [
            ("button-1", SetBoolean(True)),
            ("button-1", SetLevel(10)),
            ("light-1", Trigger()),
            ("light-1", SetLevel(10)),
            ("dimmer-1", Trigger()),
        ],
    )
    def test_unsupported_action_never_mutates(self, dispatcher, registry, published, device_id, action):
        before = registry.get(device_id)

        with pytest.raises(UnsupportedActionError) as exc_info:
            dispatcher.dispatch(device_id, action)

        assert exc_info.value.device_id == device_id
        assert exc_info.value.action == action
        assert registry.get(device_id) == before
        assert published == []

    @pytest.mark.parametrize("device_id", ["light-1", "dimmer-1"])
    @pytest.mark.parametrize("value", ["false", "true", 1, 0, None])
    def test_switch_value_must_be_bool(self, dispatcher, registry, published, device_id, value):
        """Test that truthy or falsy non-bool values never flip a switch."""
        before = registry.get(device_id)

        with pytest.raises(InvalidActionValueError) as exc_info:
            dispatcher.dispatch(device_id, SetBoolean(value))

        assert exc_info.value.device_id == device_id
        assert "true or false" in exc_info.value.reason
        assert registry.get(device_id) == before
        assert published == []

    def test_unsupported_and_not_found_are_distinct(self):
        assert not issubclass(UnsupportedActionError, DeviceNotFoundError)
        assert not issubclass(DeviceNotFoundError, UnsupportedActionError)
        assert issubclass(UnsupportedActionError, DispatchError)
        assert issubclass(DeviceNotFoundError, DispatchError)

    def test_kind_mismatch_is_logged_and_raised(self, dispatcher, registry, monkeypatch, caplog, published):
        """Test that a broken reducer surfaces as KindMismatchError without committing."""
        monkeypatch.setitem(
            dispatcher_module.REDUCERS, DeviceKind.TOGGLE, lambda device, action, level: EmptyState()
        )

        with caplog.at_level(logging.ERROR, logger="devicecontrols.controls.dispatcher"):
            with pytest.raises(KindMismatchError):
                dispatcher.dispatch("light-1", SetBoolean(True))

        assert any(r.levelno == logging.ERROR for r in caplog.records)
        assert registry.get("light-1").state == BooleanState(False)
        assert published == []


class TestLevelPolicy:
    """Tests for out-of-range level handling."""

    def test_default_policy_is_clamp(self, dispatcher):
        assert dispatcher.level_policy is LevelPolicy.CLAMP

    def test_clamp_above_range(self, dispatcher):
        updated = dispatcher.dispatch("dimmer-1", SetLevel(150))

        assert updated.state == RangeState(level=100.0, on=False)

    def test_clamp_below_range(self, dispatcher):
        dispatcher.dispatch("dimmer-1", SetLevel(40))

        updated = dispatcher.dispatch("dimmer-1", SetLevel(-5))

        assert updated.state.level == 0.0

    def test_reject_policy(self, registry, broadcaster, dimmer):
        registry.register(dimmer)
        dispatcher = ActionDispatcher(registry, broadcaster, LevelPolicy.REJECT)

        with pytest.raises(InvalidActionValueError):
            dispatcher.dispatch("dimmer-1", SetLevel(150))

        assert registry.get("dimmer-1") == dimmer

    def test_reject_policy_accepts_bounds(self, registry, broadcaster, dimmer):
        registry.register(dimmer)
        dispatcher = ActionDispatcher(registry, broadcaster, "reject")

        assert dispatcher.dispatch("dimmer-1", SetLevel(100)).state.level == 100.0
        assert dispatcher.dispatch("dimmer-1", SetLevel(0)).state.level == 0.0

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf, "50", None, True])
    def test_unusable_values_always_rejected(self, dispatcher, registry, value):
        with pytest.raises(InvalidActionValueError):
            dispatcher.dispatch("dimmer-1", SetLevel(value))

        assert registry.get("dimmer-1").state == RangeState()
