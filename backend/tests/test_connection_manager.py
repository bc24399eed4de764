"""Tests for live push channels - replacement, backpressure and heartbeats."""

import asyncio

from fastapi import WebSocketDisconnect

from app.services.connection_manager import ConnectionManager


class FakeWebSocket:
    def __init__(self, fail_sends: bool = False):
        self.sent: list[dict] = []
        self.accepted = False
        self.closed_with: int | None = None
        self.fail_sends = fail_sends
        self._gone = asyncio.Event()

    async def accept(self):
        self.accepted = True

    async def send_json(self, message: dict):
        if self.fail_sends and self.sent:
            raise RuntimeError("socket is dead")
        self.sent.append(message)

    async def receive_text(self) -> str:
        await self._gone.wait()
        raise WebSocketDisconnect(code=1000)

    async def close(self, code: int = 1000):
        self.closed_with = code
        self._gone.set()

    def hang_up(self):
        self._gone.set()

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


async def _wait_until(condition, timeout: float = 1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


async def test_push_without_channel():
    manager = ConnectionManager()
    assert manager.push(1, {"type": "session_update"}) is False


async def test_channel_sends_greeting_events_and_heartbeats():
    manager = ConnectionManager(queue_size=10, heartbeat_interval=0.02)
    ws = FakeWebSocket()
    channel = await manager.connect(7, ws)
    serving = asyncio.create_task(manager.serve(channel))

    assert manager.push(7, {"type": "session_update", "session": {"id": 1}})
    await _wait_until(lambda: "heartbeat" in ws.types())

    ws.hang_up()
    await asyncio.wait_for(serving, timeout=1)

    assert ws.accepted
    assert ws.sent[0]["type"] == "connection_established"
    assert ws.sent[0]["user_id"] == 7
    assert ws.sent[1] == {"type": "session_update", "session": {"id": 1}}
    assert not manager.is_connected(7)


async def test_new_connection_replaces_old_one():
    manager = ConnectionManager(queue_size=10, heartbeat_interval=5)
    old_ws, new_ws = FakeWebSocket(), FakeWebSocket()

    old = await manager.connect(3, old_ws)
    new = await manager.connect(3, new_ws)

    assert old.retired
    assert old_ws.closed_with == 4000
    assert manager.channels[3] is new

    # The old channel shutting down must not evict its replacement
    manager.disconnect(old)
    assert manager.channels[3] is new


async def test_full_queue_drops_the_channel():
    manager = ConnectionManager(queue_size=2, heartbeat_interval=5)
    await manager.connect(5, FakeWebSocket())

    assert manager.push(5, {"type": "a"})
    assert manager.push(5, {"type": "b"})
    assert manager.push(5, {"type": "c"}) is False
    assert not manager.is_connected(5)
    assert manager.push(5, {"type": "d"}) is False


async def test_failed_send_retires_the_channel():
    manager = ConnectionManager(queue_size=10, heartbeat_interval=5)
    ws = FakeWebSocket(fail_sends=True)
    channel = await manager.connect(9, ws)
    serving = asyncio.create_task(manager.serve(channel))

    manager.push(9, {"type": "session_update"})
    await asyncio.wait_for(serving, timeout=1)

    assert ws.types() == ["connection_established"]
    assert channel.retired
    assert not manager.is_connected(9)


async def test_close_all():
    manager = ConnectionManager(queue_size=10, heartbeat_interval=5)
    sockets = [FakeWebSocket() for _ in range(3)]
    for user_id, ws in enumerate(sockets, start=1):
        await manager.connect(user_id, ws)

    await manager.close_all()

    assert manager.channels == {}
    assert all(ws.closed_with == 1001 for ws in sockets)
