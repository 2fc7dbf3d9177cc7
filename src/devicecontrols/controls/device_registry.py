"""Device registry holding the current snapshot of every virtual device."""

import logging
import threading
from typing import Callable, Optional

from devicecontrols.devices.base import Device, DeviceState
from devicecontrols.errors import DeviceNotFoundError, DuplicateIdError, KindMismatchError

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Registry for managing devices by ID.

    Devices are kept in insertion order. Stored snapshots are immutable, so
    callers can never mutate registry state through a returned device; the
    only way to change state is ``commit``.

    Commits are serialized per device with a re-entrant lock. The mapping
    itself is guarded by a separate lock that is only held for dict access,
    so commits on different devices never contend.
    """

    def __init__(self):
        self._devices: dict[str, Device] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._lock = threading.Lock()

    def register(
        self,
        device: Device,
        on_registered: Optional[Callable[[Device], None]] = None,
    ) -> None:
        """Register a device under its own ID.

        Args:
            device: Device snapshot to register
            on_registered: Called with the device while its lock is still held,
                so no commit on that device can run before it returns

        Raises:
            DuplicateIdError: If a device with the same ID is already registered
        """
        lock = threading.RLock()
        with lock:
            with self._lock:
                if device.id in self._devices:
                    raise DuplicateIdError(device.id)
                self._devices[device.id] = device
                self._locks[device.id] = lock
            logger.info("Registered %s device %s", device.kind, device.id)
            if on_registered is not None:
                on_registered(device)

    def get(self, device_id: str) -> Optional[Device]:
        """Get a device snapshot by ID.

        Args:
            device_id: ID of device to retrieve

        Returns:
            Device snapshot or None if not found
        """
        with self._lock:
            return self._devices.get(device_id)

    def list_all(self) -> list[Device]:
        """Return a fresh list of all devices in registration order."""
        with self._lock:
            return list(self._devices.values())

    def list_device_ids(self) -> list[str]:
        """List all registered device IDs in registration order."""
        with self._lock:
            return list(self._devices.keys())

    def device_lock(self, device_id: str) -> threading.RLock:
        """Return the lock serializing state changes of one device.

        Raises:
            DeviceNotFoundError: If the device is not registered
        """
        with self._lock:
            lock = self._locks.get(device_id)
        if lock is None:
            raise DeviceNotFoundError(device_id)
        return lock

    def commit(self, device_id: str, new_state: DeviceState) -> Device:
        """Atomically replace the state of a device.

        Args:
            device_id: ID of device to update
            new_state: Replacement state, must match the device's kind

        Returns:
            The updated device snapshot

        Raises:
            DeviceNotFoundError: If the device is not registered
            KindMismatchError: If the state variant does not fit the device kind
        """
        with self.device_lock(device_id):
            with self._lock:
                current = self._devices[device_id]
            if not current.kind.accepts_state(new_state):
                raise KindMismatchError(device_id, current.kind, new_state)
            updated = current.with_state(new_state)
            with self._lock:
                self._devices[device_id] = updated
        logger.debug("Committed %s -> %s", device_id, new_state)
        return updated

    def __len__(self) -> int:
        """Return the number of registered devices."""
        with self._lock:
            return len(self._devices)

    def __contains__(self, device_id: str) -> bool:
        """Check if a device ID is registered."""
        with self._lock:
            return device_id in self._devices
