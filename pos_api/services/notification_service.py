"""Server-Sent-Events fan-out.

One ``NotificationService`` lives on ``app.state.notifier`` for the life of
the process. Each open ``/notifications`` stream is a ``NotificationClient``
holding a queue of pre-rendered SSE frames. Broadcasts can come from sync
route handlers running in the threadpool, so frames are handed to each
client's event loop with ``call_soon_threadsafe``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

CONNECTED = 'CONNECTED'
ORDERS_UPDATED = 'ORDERS_UPDATED'
SETTINGS_UPDATED = 'SETTINGS_UPDATED'
PRODUCTS_UPDATED = 'PRODUCTS_UPDATED'

HEARTBEAT_FRAME = ': heartbeat\n\n'


def _data_frame(payload: dict) -> str:
    return f'data: {json.dumps(payload)}\n\n'


@dataclass(eq=False)
class NotificationClient:
    interested_types: tuple[str, ...]
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    def wants(self, event_type: str) -> bool:
        return not self.interested_types or event_type in self.interested_types

    def write(self, frame: str) -> None:
        self.loop.call_soon_threadsafe(self.queue.put_nowait, frame)


class NotificationService:
    def __init__(self, *, retry_ms: int = 10000, heartbeat_seconds: float = 30) -> None:
        self.retry_ms = retry_ms
        self.heartbeat_seconds = heartbeat_seconds
        self._clients: list[NotificationClient] = []
        self._lock = threading.Lock()

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def _snapshot(self) -> list[NotificationClient]:
        with self._lock:
            return list(self._clients)

    def add_client(self, interested_types: list[str] | None = None) -> NotificationClient:
        """Register a stream. Must be called from the loop that will drain it."""
        client = NotificationClient(
            interested_types=tuple(interested_types or ()),
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._clients.append(client)
            total = len(self._clients)
        logger.info(
            'Client connected for notifications. Interested in: %s. Total clients: %s',
            ', '.join(client.interested_types) or 'ALL',
            total,
        )
        client.queue.put_nowait(f'retry: {self.retry_ms}\n')
        client.queue.put_nowait(_data_frame({'type': CONNECTED}))
        return client

    def remove_client(self, client: NotificationClient) -> None:
        with self._lock:
            if client in self._clients:
                self._clients.remove(client)
            total = len(self._clients)
        logger.info('Client disconnected from notifications. Total clients: %s', total)

    def broadcast(self, event_type: str, payload: dict) -> int:
        frame = _data_frame(payload)
        delivered = 0
        for client in self._snapshot():
            if not client.wants(event_type):
                continue
            try:
                client.write(frame)
            except RuntimeError:
                # Loop already closed; the stream's own cleanup will deregister it.
                continue
            delivered += 1
        return delivered

    def _notify(self, event_type: str) -> int:
        delivered = self.broadcast(
            event_type,
            {'type': event_type, 'timestamp': datetime.now(tz=timezone.utc).isoformat()},
        )
        logger.info('Notified %s clients of %s', delivered, event_type)
        return delivered

    def notify_orders_updated(self) -> int:
        return self._notify(ORDERS_UPDATED)

    def notify_settings_updated(self) -> int:
        return self._notify(SETTINGS_UPDATED)

    def notify_products_updated(self) -> int:
        return self._notify(PRODUCTS_UPDATED)

    def heartbeat(self) -> None:
        for client in self._snapshot():
            try:
                client.write(HEARTBEAT_FRAME)
            except RuntimeError:
                continue

    async def run_heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            self.heartbeat()

    async def stream(self, client: NotificationClient) -> AsyncIterator[str]:
        try:
            while True:
                yield await client.queue.get()
        finally:
            self.remove_client(client)
