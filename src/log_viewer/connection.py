"""Live WebSocket connection forwarding broadcast events to one viewer."""

import asyncio
import json
import logging
from enum import Enum

from fastapi import WebSocket, WebSocketDisconnect

from .events import Broadcaster, SubscriberLagged, Subscription, SubscriptionClosed
from .monitoring.models import BroadcastEvent

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle of a live connection."""

    CONNECTED = "connected"
    STREAMING = "streaming"
    CLOSED = "closed"


class LiveConnectionHandler:
    """Streams broadcast events to one accepted WebSocket.

    Two tasks run for the life of the connection: one reads frames from the
    viewer, the other forwards events from a broadcaster subscription. The
    first one to finish cancels the other and the subscription is released.
    """

    def __init__(self, websocket: WebSocket, broadcaster: Broadcaster):
        self.websocket = websocket
        self.broadcaster = broadcaster
        self.state = ConnectionState.CONNECTED
        self.subscription: Subscription | None = None
        self.sent = 0
        self.skipped = 0

    async def run(self) -> None:
        """Stream until the viewer disconnects or the subscription ends."""
        self.subscription = self.broadcaster.subscribe()
        self.state = ConnectionState.STREAMING
        logger.info(f"Live viewer connected (subscription {self.subscription.id})")

        inbound = asyncio.create_task(self._inbound(), name="ws-inbound")
        outbound = asyncio.create_task(
            self._outbound(self.subscription), name="ws-outbound"
        )
        try:
            done, pending = await asyncio.wait(
                {inbound, outbound}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.error(
                        f"Live connection task {task.get_name()} failed: {task.exception()}"
                    )
        finally:
            # Reached on cancellation of run() too
            for task in (inbound, outbound):
                if not task.done():
                    task.cancel()
            self.subscription.close()
            self.state = ConnectionState.CLOSED
            logger.info(
                f"Live viewer disconnected (subscription {self.subscription.id}, "
                f"sent {self.sent}, skipped {self.skipped})"
            )

    async def _inbound(self) -> None:
        """Read frames from the viewer until it closes or the transport fails."""
        while True:
            try:
                message = await self.websocket.receive()
            except WebSocketDisconnect:
                return
            except RuntimeError as e:
                logger.debug(f"WebSocket receive failed: {e}")
                return

            if message["type"] == "websocket.disconnect":
                return
            text = message.get("text")
            if text is not None:
                logger.debug(f"Received WebSocket message: {text}")

    async def _outbound(self, subscription: Subscription) -> None:
        """Forward events to the viewer until sending fails or the bus closes."""
        while True:
            try:
                event = await subscription.recv()
            except SubscriberLagged as e:
                logger.warning(
                    f"Live viewer {subscription.id} fell behind, {e.missed} events dropped"
                )
                continue
            except SubscriptionClosed:
                return

            payload = self.serialize(event)
            if payload is None:
                self.skipped += 1
                continue

            try:
                await self.websocket.send_text(payload)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                return
            self.sent += 1

    @staticmethod
    def serialize(event: BroadcastEvent) -> str | None:
        """Encode an event as one JSON text frame, None if it cannot be encoded."""
        try:
            return json.dumps(event.to_wire())
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize watch event: {e}")
            return None
