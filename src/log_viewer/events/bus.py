"""Thread-safe broadcast bus fanning log events out to live subscribers."""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections import deque

from log_viewer.monitoring.models import BroadcastEvent

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000


class SubscriptionClosed(Exception):
    """Raised when receiving from a subscription that has been closed."""


class SubscriberLagged(Exception):
    """Raised once when a subscriber's queue overflowed and events were dropped.

    Attributes:
        missed: Number of events dropped since the previous receive.
    """

    def __init__(self, missed: int):
        super().__init__(f"subscriber lagged behind by {missed} events")
        self.missed = missed


class Subscription:
    """A live consumer's handle on the broadcaster.

    Each subscription owns a bounded queue. Publishing never blocks: when the
    queue is full the oldest pending event is dropped and the drop is reported
    to the consumer on its next receive.

    Events can be consumed from a coroutine with recv() or from a thread
    with get().
    """

    def __init__(self, bus: Broadcaster, subscription_id: str, capacity: int):
        self.id = subscription_id
        self._bus = bus
        self._queue: deque[BroadcastEvent] = deque()
        self._capacity = capacity
        self._missed = 0
        self._closed = False
        self._cond = threading.Condition()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of events waiting to be received."""
        with self._cond:
            return len(self._queue)

    def _deliver(self, event: BroadcastEvent) -> None:
        with self._cond:
            if self._closed:
                return
            if len(self._queue) >= self._capacity:
                self._queue.popleft()
                self._missed += 1
            self._queue.append(event)
            self._cond.notify_all()
        self._wake()

    def _wake(self) -> None:
        loop, wakeup = self._loop, self._wakeup
        if loop is None or wakeup is None:
            return
        try:
            loop.call_soon_threadsafe(wakeup.set)
        except RuntimeError:
            # Consumer's event loop is already closed
            pass

    def _take(self) -> BroadcastEvent | None:
        """Pop the next event; caller holds the condition."""
        if self._missed:
            missed, self._missed = self._missed, 0
            raise SubscriberLagged(missed)
        if self._queue:
            return self._queue.popleft()
        if self._closed:
            raise SubscriptionClosed(self.id)
        return None

    async def recv(self) -> BroadcastEvent:
        """Wait for the next event.

        Raises:
            SubscriberLagged: Once, after events were dropped for this subscriber.
            SubscriptionClosed: When the subscription has been closed and drained.
        """
        if self._wakeup is None:
            self._loop = asyncio.get_running_loop()
            self._wakeup = asyncio.Event()

        while True:
            self._wakeup.clear()
            with self._cond:
                event = self._take()
            if event is not None:
                return event
            await self._wakeup.wait()

    def get(self, timeout: float | None = None) -> BroadcastEvent:
        """Block until the next event is available.

        Raises:
            SubscriberLagged: Once, after events were dropped for this subscriber.
            SubscriptionClosed: When the subscription has been closed and drained.
            TimeoutError: When no event arrived within the timeout.
        """
        with self._cond:
            event = self._take()
            if event is None:
                self._cond.wait_for(
                    lambda: self._queue or self._missed or self._closed, timeout
                )
                event = self._take()
            if event is None:
                raise TimeoutError(f"no event within {timeout}s")
            return event

    def close(self) -> None:
        """Unregister from the broadcaster and wake any waiting receiver."""
        self._bus.unsubscribe(self.id)

    def _mark_closed(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._wake()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Broadcaster:
    """
    Thread-safe multi-producer, multi-consumer broadcast bus.

    Every event published is copied into the queue of each subscription
    registered at the time of publishing. There is no history: a new
    subscriber only sees events published after it subscribed.

    Thread Safety:
        - All public methods are thread-safe
        - Publishing never blocks on slow subscribers
        - Subscriptions can be added/removed during publishing

    Example:
        bus = Broadcaster(capacity=1000)
        subscription = bus.subscribe()
        bus.publish(event)
        received = await subscription.recv()
        subscription.close()
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the broadcaster with an empty subscriber registry.

        Args:
            capacity: Maximum pending events per subscriber.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._subscribers: dict[str, Subscription] = {}
        self._lock = threading.Lock()
        logger.debug("Broadcaster initialized", extra={"capacity": capacity})

    def subscribe(self) -> Subscription:
        """
        Register a new subscription.

        Returns:
            Subscription receiving every event published from now on.
        """
        subscription = Subscription(self, str(uuid.uuid4()), self.capacity)

        with self._lock:
            self._subscribers[subscription.id] = subscription
            total = len(self._subscribers)

        logger.debug(
            "Subscriber registered",
            extra={"subscription_id": subscription.id, "total_subscribers": total},
        )
        return subscription

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription and close it.

        Args:
            subscription_id: ID of the subscription to remove.

        Returns:
            True if unsubscribed, False if ID not found.
        """
        with self._lock:
            subscription = self._subscribers.pop(subscription_id, None)

        if subscription is None:
            return False

        subscription._mark_closed()
        logger.debug(
            "Subscriber removed",
            extra={"subscription_id": subscription_id},
        )
        return True

    def publish(self, event: BroadcastEvent) -> int:
        """
        Deliver an event to every current subscriber.

        Args:
            event: Event to deliver.

        Returns:
            Number of subscribers the event was delivered to. Zero means
            nobody is listening; that is not an error.
        """
        with self._lock:
            subscribers = list(self._subscribers.values())

        if not subscribers:
            return 0

        for subscription in subscribers:
            subscription._deliver(event)

        return len(subscribers)

    def get_subscriber_count(self) -> int:
        """Get the number of registered subscriptions."""
        with self._lock:
            return len(self._subscribers)

    def close(self) -> None:
        """Close every subscription, ending their receivers."""
        with self._lock:
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()

        for subscription in subscribers:
            subscription._mark_closed()

        if subscribers:
            logger.info(f"Closed {len(subscribers)} subscriptions")
