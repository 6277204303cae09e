# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Realtime fan-out of urgent lifecycle events.

The lifecycle service publishes into a single FIFO channel and returns at
once. One dispatcher task drains the channel and hands each frame to the
ConnectionManager, which queues it for every connected observer. Each socket
has its own writer task, so a slow dashboard never blocks the others.

Frames: {"event": "urgent:added" | "urgent:planb" | "urgent:resolved" | "heartbeat", "data": {...}}
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Dict, Optional

from urgent.core.logging import get_logger
from urgent.metrics import EVENTS_DROPPED, EVENTS_PUBLISHED, WS_CONNECTIONS
from urgent.models.domain import UrgentEvent

logger = get_logger(__name__)


class ConnectionManager:
    """Tracks live sockets; one bounded outbox and one writer task per socket."""

    def __init__(self, max_connections: int = 200, queue_size: int = 100,
                 heartbeat_interval: float = 30):
        self._outboxes: Dict[object, asyncio.Queue] = {}
        self._writers: Dict[object, asyncio.Task] = {}
        self._max_connections = max_connections
        self._queue_size = queue_size
        self._heartbeat_interval = heartbeat_interval

    @property
    def connection_count(self) -> int:
        return len(self._outboxes)

    async def connect(self, websocket) -> bool:
        if len(self._outboxes) >= self._max_connections:
            await websocket.close(code=1013)
            logger.warning("Realtime connection rejected total=%d", len(self._outboxes))
            return False
        await websocket.accept()
        outbox: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._outboxes[websocket] = outbox
        self._writers[websocket] = asyncio.create_task(self._writer(websocket, outbox))
        WS_CONNECTIONS.set(len(self._outboxes))
        logger.info("Realtime client connected total=%d", len(self._outboxes))
        return True

    async def disconnect(self, websocket) -> None:
        if self._outboxes.pop(websocket, None) is None:
            return
        task = self._writers.pop(websocket, None)
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
        WS_CONNECTIONS.set(len(self._outboxes))
        logger.info("Realtime client disconnected total=%d", len(self._outboxes))
        try:
            await websocket.close()
        except Exception as exc:
            logger.debug("Realtime close failed: %s", exc)

    async def broadcast(self, message: dict) -> None:
        frame = json.dumps(message)
        lagging = []
        for websocket, outbox in list(self._outboxes.items()):
            try:
                outbox.put_nowait(frame)
            except asyncio.QueueFull:
                lagging.append(websocket)
        for websocket in lagging:
            logger.warning("Realtime client cannot keep up, disconnecting")
            await self.disconnect(websocket)

    async def close_all(self) -> None:
        writers = [t for t in self._writers.values() if t is not asyncio.current_task()]
        for websocket in list(self._outboxes):
            await self.disconnect(websocket)
        await asyncio.gather(*writers, return_exceptions=True)

    async def _writer(self, websocket, outbox: asyncio.Queue) -> None:
        try:
            while True:
                try:
                    frame = await asyncio.wait_for(outbox.get(), timeout=self._heartbeat_interval)
                except asyncio.TimeoutError:
                    frame = json.dumps({
                        "event": "heartbeat",
                        "data": {"ts": datetime.now(timezone.utc).isoformat()},
                    })
                await websocket.send_text(frame)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.info("Realtime send failed, dropping client: %s", exc)
            await self.disconnect(websocket)


class Notifier:
    """Outbound channel between the lifecycle service and connected observers."""

    def __init__(self, connections: ConnectionManager, channel_size: int = 1000):
        self.connections = connections
        self._channel: asyncio.Queue = asyncio.Queue(maxsize=channel_size)
        self._dispatcher: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._dispatcher is not None and not self._dispatcher.done()

    def publish(self, event: UrgentEvent) -> None:
        """Enqueue without waiting. Missed events are never replayed."""
        try:
            self._channel.put_nowait(event)
        except asyncio.QueueFull:
            EVENTS_DROPPED.inc()
            logger.warning("Event channel full, dropped %s id=%s", event.name, event.payload.get("id"))
            return
        EVENTS_PUBLISHED.labels(event=event.name).inc()

    async def start(self) -> None:
        if self.running:
            return
        self._dispatcher = asyncio.create_task(self._dispatch_loop())
        logger.info("Notifier started")

    async def stop(self) -> None:
        if self._dispatcher and not self._dispatcher.done():
            self._dispatcher.cancel()
            try:
                await self._dispatcher
            except asyncio.CancelledError:
                pass
        self._dispatcher = None
        await self.connections.close_all()
        logger.info("Notifier stopped")

    async def join(self) -> None:
        """Wait until every published event has been handed to the sockets."""
        await self._channel.join()

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self._channel.get()
            try:
                await self.connections.broadcast(event.to_message())
            except Exception:
                logger.exception("Broadcast of %s failed", event.name)
            finally:
                self._channel.task_done()
