import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import Any, Optional, Protocol

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    """Outcome of a best-effort send."""

    DELIVERED = "delivered"
    DROPPED = "dropped"


class Endpoint(Protocol):
    """One connection's addressable channel, as seen by the registry and router."""

    endpoint_id: str

    @property
    def is_open(self) -> bool:
        ...

    async def send_text(self, text: str) -> DeliveryStatus:
        ...

    async def send_json(self, obj: Any) -> DeliveryStatus:
        ...


class WebSocketEndpoint:
    """
    Endpoint backed by a Starlette WebSocket.

    Sends never raise: a closed socket, a failed write or a write that takes
    longer than send_timeout all resolve to DeliveryStatus.DROPPED.
    """

    def __init__(self, ws: WebSocket, send_timeout: float = 5.0, endpoint_id: Optional[str] = None):
        self.ws = ws
        self.send_timeout = send_timeout
        self.endpoint_id = endpoint_id or uuid.uuid4().hex
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    def mark_closed(self) -> None:
        self._closed = True

    async def send_text(self, text: str) -> DeliveryStatus:
        if not self.is_open:
            return DeliveryStatus.DROPPED

        try:
            # Waiting for the lock counts against the same timeout as the write
            return await asyncio.wait_for(self._write(text), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            # A cancelled write may have left a partial frame on the wire
            logger.warning(f"Send to endpoint {self.endpoint_id} timed out after {self.send_timeout}s")
            self.mark_closed()
            return DeliveryStatus.DROPPED
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # Socket went away between the state check and the write
            logger.debug(f"Send to endpoint {self.endpoint_id} failed: {e}")
            self.mark_closed()
            return DeliveryStatus.DROPPED

    async def _write(self, text: str) -> DeliveryStatus:
        async with self._lock:
            # An earlier send may have closed the endpoint while this one queued
            if not self.is_open:
                return DeliveryStatus.DROPPED
            await self.ws.send_text(text)
        return DeliveryStatus.DELIVERED

    async def send_json(self, obj: Any) -> DeliveryStatus:
        return await self.send_text(json.dumps(obj, separators=(",", ":")))

    def __repr__(self) -> str:
        return f"WebSocketEndpoint({self.endpoint_id})"
