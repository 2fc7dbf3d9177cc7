"""Fan-out of device updates to subscribers with replay of the latest state."""

import asyncio
import logging
import threading
from collections import deque
from typing import Iterable, Optional

from devicecontrols.controls.config import DEFAULT_MAX_PENDING
from devicecontrols.devices.base import Device

logger = logging.getLogger(__name__)


class Subscription:
    """Handle for a stream of device snapshots.

    Iterate with ``async for`` or call ``get()``. Deliveries are queued on the
    event loop that created the subscription; publishers may run on any thread.
    Iteration ends once the subscription is cancelled.

    The queue is bounded by ``max_pending`` snapshots, or one per followed
    device when that is larger. When a slow consumer lets it fill up, older
    snapshots of devices that have a newer one queued are dropped, so the
    consumer still sees the latest state of every device in publish order.
    """

    def __init__(
        self,
        broadcaster: "UpdateBroadcaster",
        device_ids: Optional[frozenset[str]],
        loop: asyncio.AbstractEventLoop,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        if max_pending < 1:
            raise ValueError(f"max_pending must be at least 1, got {max_pending}")
        self._broadcaster = broadcaster
        self._device_ids = device_ids
        self._loop = loop
        self._max_pending = max_pending
        self._items: deque[Device] = deque()
        self._ready = asyncio.Event()
        self._closed = False

    @property
    def device_ids(self) -> Optional[frozenset[str]]:
        """Device IDs this subscription follows, or None for all devices."""
        return self._device_ids

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of snapshots queued and not yet consumed."""
        if self._closed:
            return 0
        return len(self._items)

    @property
    def max_pending(self) -> int:
        return self._max_pending

    def matches(self, device_id: str) -> bool:
        return self._device_ids is None or device_id in self._device_ids

    def _deliver(self, device: Device) -> bool:
        """Schedule a snapshot onto the subscriber's loop.

        Called with the broadcaster lock held, which keeps the scheduling
        order identical to the publish order.

        Returns:
            False if the subscriber's loop is gone
        """
        try:
            self._loop.call_soon_threadsafe(self._put, device)
        except RuntimeError:
            # Event loop already closed
            return False
        return True

    def _put(self, device: Device) -> None:
        if self._closed:
            return
        self._items.append(device)
        if len(self._items) > self._max_pending:
            self._collapse()
        self._ready.set()

    def _collapse(self) -> None:
        """Keep only the newest queued snapshot of each device."""
        newest: dict[str, Device] = {}
        for device in self._items:
            newest.pop(device.id, None)
            newest[device.id] = device
        dropped = len(self._items) - len(newest)
        self._items = deque(newest.values())
        if dropped:
            logger.warning(
                "Subscriber is falling behind, dropped %d superseded snapshot(s)", dropped
            )

    def _close(self) -> None:
        """Mark closed, drop queued snapshots and wake any waiting consumer."""
        self._closed = True
        try:
            self._loop.call_soon_threadsafe(self._wake)
        except RuntimeError:
            pass

    def _wake(self) -> None:
        self._items.clear()
        self._ready.set()

    async def get(self) -> Device:
        """Wait for the next snapshot.

        Raises:
            StopAsyncIteration: If the subscription is cancelled
        """
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._items:
                return self._items.popleft()
            self._ready.clear()
            await self._ready.wait()

    def cancel(self) -> None:
        """Stop deliveries and release this subscription. Idempotent."""
        self._broadcaster.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Device:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class UpdateBroadcaster:
    """Broadcasts "device now has this state" to all current subscribers.

    Keeps one cached snapshot per device (the latest published). A new
    subscriber first receives the cached snapshot of every device it follows,
    then every later publish that matches, in publish order.

    ``publish``, ``subscribe`` and ``unsubscribe`` are safe to call from any
    thread.
    """

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING):
        """Initialize the broadcaster.

        Args:
            max_pending: Queue bound for each subscription
        """
        if max_pending < 1:
            raise ValueError(f"max_pending must be at least 1, got {max_pending}")
        self._max_pending = max_pending
        self._latest: dict[str, Device] = {}
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, device_ids: Optional[Iterable[str]] = None) -> Subscription:
        """Subscribe to updates for the given devices.

        Must be called from a running event loop; snapshots are delivered on
        that loop.

        Args:
            device_ids: IDs to follow, or None for all devices

        Returns:
            Subscription yielding device snapshots until cancelled
        """
        loop = asyncio.get_running_loop()
        ids = frozenset(device_ids) if device_ids is not None else None
        subscription = Subscription(self, ids, loop, self._max_pending)

        with self._lock:
            replay = [d for d in self._latest.values() if subscription.matches(d.id)]
            for device in replay:
                subscription._deliver(device)
            self._subscriptions.append(subscription)

        logger.debug(
            "New subscription for %s, replaying %d device(s)",
            "all devices" if ids is None else sorted(ids),
            len(replay),
        )
        return subscription

    def publish(self, device: Device) -> None:
        """Record ``device`` as the latest snapshot and deliver it to matching subscribers."""
        with self._lock:
            self._latest[device.id] = device
            dead = []
            for subscription in self._subscriptions:
                if subscription.matches(device.id) and not subscription._deliver(device):
                    dead.append(subscription)
            for subscription in dead:
                logger.warning("Dropping subscription whose event loop is closed")
                self._subscriptions.remove(subscription)
                subscription._closed = True

        logger.debug("Published %s", device)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Safe to call more than once."""
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
            if subscription.closed:
                return
            subscription._close()
        logger.debug("Subscription cancelled")

    def latest(self, device_id: str) -> Optional[Device]:
        """Return the last published snapshot of a device."""
        with self._lock:
            return self._latest.get(device_id)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
