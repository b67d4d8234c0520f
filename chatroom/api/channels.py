"""WebSocket push channel attached to a participant."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from ..events.models import BaseEvent

logger = logging.getLogger(__name__)

_CLOSE = object()


def event_payload(event: Any) -> Any:
    if isinstance(event, BaseEvent):
        return event.to_payload()
    return event


class WebSocketChannel:
    """Outbox in front of a WebSocket.

    ``push`` and ``close`` are synchronous so the registry can call them from
    any handler on the loop; ``run_writer`` drains the outbox onto the socket.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._outbox: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: Any) -> None:
        if self._closed:
            raise RuntimeError("channel is closed")
        self._outbox.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._outbox.put_nowait(_CLOSE)

    async def run_writer(self) -> None:
        try:
            while True:
                item = await self._outbox.get()
                if item is _CLOSE:
                    await self.websocket.close()
                    return
                await self.websocket.send_json(event_payload(item))
        except Exception:
            logger.warning("WebSocket writer stopped", exc_info=True)
            self._closed = True


__all__ = ["WebSocketChannel", "event_payload"]
