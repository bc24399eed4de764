"""Live push channels, at most one per user.

The change feed only ever calls `push`, which enqueues without waiting. Each
channel drains its own bounded queue onto the websocket and sends a heartbeat
when idle; a full queue or a failed send retires the channel, so a slow
client can never hold up the feed.
"""

import asyncio
import logging

from fastapi import WebSocket, WebSocketDisconnect

from app.config import settings
from app.db.database import utcnow

logger = logging.getLogger(__name__)

# Queued in place of a message to stop the pump
_RETIRE = object()


class PushChannel:
    def __init__(
        self,
        user_id: int,
        websocket: WebSocket,
        queue_size: int | None = None,
        heartbeat_interval: float | None = None,
    ):
        self.user_id = user_id
        self.websocket = websocket
        self.heartbeat_interval = heartbeat_interval or settings.HEARTBEAT_INTERVAL
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size or settings.PUSH_QUEUE_SIZE)
        self.retired = False

    def offer(self, message: dict) -> bool:
        """Enqueue without blocking; False when the channel is retired or full."""
        if self.retired:
            return False
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def retire(self) -> None:
        if self.retired:
            return
        self.retired = True
        # Make room for the stop marker so a blocked pump wakes up
        while True:
            try:
                self.queue.put_nowait(_RETIRE)
                return
            except asyncio.QueueFull:
                self.queue.get_nowait()

    async def _send(self, message: dict) -> None:
        await self.websocket.send_json(message)

    async def pump(self) -> None:
        """Send the greeting, then queued events and heartbeats until retired."""
        await self._send({
            "type": "connection_established",
            "message": "Real-time sync active",
            "user_id": self.user_id,
            "timestamp": utcnow().isoformat(),
        })
        while True:
            try:
                message = await asyncio.wait_for(self.queue.get(), timeout=self.heartbeat_interval)
            except asyncio.TimeoutError:
                message = {"type": "heartbeat", "timestamp": utcnow().isoformat()}
            if message is _RETIRE:
                return
            await self._send(message)

    async def close(self, code: int = 1000) -> None:
        self.retire()
        try:
            await self.websocket.close(code=code)
        except (RuntimeError, WebSocketDisconnect):
            # Already closed by either side
            pass


class ConnectionManager:
    def __init__(self, queue_size: int | None = None, heartbeat_interval: float | None = None):
        self.queue_size = queue_size
        self.heartbeat_interval = heartbeat_interval
        self.channels: dict[int, PushChannel] = {}

    def is_connected(self, user_id: int) -> bool:
        return user_id in self.channels

    async def connect(self, user_id: int, websocket: WebSocket) -> PushChannel:
        """Accept the websocket and make it the user's only channel."""
        await websocket.accept()
        channel = PushChannel(user_id, websocket, self.queue_size, self.heartbeat_interval)
        previous = self.channels.get(user_id)
        self.channels[user_id] = channel
        if previous is not None:
            logger.info("Replacing push channel for user %s", user_id)
            await previous.close(code=4000)
        return channel

    def disconnect(self, channel: PushChannel) -> None:
        channel.retire()
        # A replacing connection may already own the slot
        if self.channels.get(channel.user_id) is channel:
            del self.channels[channel.user_id]

    def push(self, user_id: int, message: dict) -> bool:
        """Best-effort, non-blocking delivery to the user's live channel."""
        channel = self.channels.get(user_id)
        if channel is None:
            return False
        if not channel.offer(message):
            logger.warning("Push queue full for user %s; dropping channel", user_id)
            self.disconnect(channel)
            return False
        return True

    async def _receive_until_closed(self, channel: PushChannel) -> None:
        # Clients only listen; reading detects the disconnect
        while True:
            await channel.websocket.receive_text()

    async def serve(self, channel: PushChannel) -> None:
        """Run the channel until the client leaves, a send fails or it is retired."""
        pump = asyncio.create_task(channel.pump())
        reader = asyncio.create_task(self._receive_until_closed(channel))
        try:
            done, _ = await asyncio.wait({pump, reader}, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.warning("Push channel for user %s failed: %s", channel.user_id, exc)
        finally:
            for task in (pump, reader):
                task.cancel()
            await asyncio.gather(pump, reader, return_exceptions=True)
            self.disconnect(channel)

    async def close_all(self) -> None:
        for channel in list(self.channels.values()):
            self.disconnect(channel)
            await channel.close(code=1001)


connection_manager = ConnectionManager()
