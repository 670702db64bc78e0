"""Event socket for Abode real-time updates.

This module provides a Socket.IO client that connects to the Abode cloud
event socket and republishes connection changes and device updates.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import socketio
from homeassistant.core import callback

from .api import AbodeAuthError, AbodeSocketError
from .const import (
    EVENT_DEVICE_UPDATE,
    SOCKET_PATH,
    SOCKET_RECONNECT_DELAY,
    SOCKET_RECONNECT_MAX_DELAY,
    SOCKET_URL,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from homeassistant.core import HomeAssistant

    from .api import AbodeRequestGateway

_LOGGER = logging.getLogger(__name__)


class StreamEventType(Enum):
    """Kinds of notifications published by the event stream."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DEVICE_CHANGED = "device_changed"


@dataclass(frozen=True)
class StreamEvent:
    """Represents a notification published by the event stream."""

    type: StreamEventType
    device_id: str | None = None


def extract_device_id(data: Any) -> str | None:
    """Extract the device id from a device update payload.

    The payload is usually the bare device id; object payloads carry it
    under "id" or "device_id".
    """
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        device_id = data.get("id") or data.get("device_id")
        return str(device_id) if device_id else None
    return None


class AbodeEventStream:
    """Manager for the Abode Socket.IO event connection.

    Keeps a single connection open, authenticated with the same session
    cookie as HTTP calls. Lost or failed connections are retried forever with
    capped exponential backoff. Socket failures never propagate; listeners
    only see CONNECTED and DISCONNECTED transitions.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        gateway: AbodeRequestGateway,
        reconnect_delay: float = SOCKET_RECONNECT_DELAY,
        max_reconnect_delay: float = SOCKET_RECONNECT_MAX_DELAY,
    ) -> None:
        """Initialize the event stream.

        Args:
            hass: Home Assistant instance.
            gateway: Request gateway providing the socket handshake headers.
            reconnect_delay: Delay before the first reconnect attempt.
            max_reconnect_delay: Upper bound for the reconnect delay.

        """
        self._hass = hass
        self._gateway = gateway
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._reconnect_attempts = 0
        self._sio: socketio.AsyncClient | None = None
        self._connected = False
        self._reconnect_task: asyncio.Task[None] | None = None
        self._shutdown = False
        self._callbacks: list[Callable[[StreamEvent], None]] = []

    @property
    def connected(self) -> bool:
        """Return True if the event socket is connected."""
        return self._connected

    def register_callback(
        self,
        callback: Callable[[StreamEvent], None],
    ) -> Callable[[], None]:
        """Register a callback for stream events.

        Args:
            callback: Function to call for every published event.

        Returns:
            A function to unregister the callback.

        """
        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def _publish(self, event: StreamEvent) -> None:
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                _LOGGER.exception("Error in event stream callback")

    async def async_connect(self) -> bool:
        """Connect to the Abode event socket.

        A failed attempt schedules a reconnect.

        Returns:
            True if connection was successful, False otherwise.

        """
        if self._sio is not None and self._connected:
            _LOGGER.debug("Already connected to Abode event socket")
            return True

        try:
            headers = self._build_headers()
            self._sio = socketio.AsyncClient(
                reconnection=False,  # We handle reconnection ourselves
                logger=False,
                engineio_logger=False,
            )
            self._register_event_handlers()

            _LOGGER.info("Connecting to Abode event socket at %s", SOCKET_URL)

            await self._sio.connect(
                SOCKET_URL,
                headers=headers,
                transports=["websocket"],
                socketio_path=SOCKET_PATH,
            )
            self._connected = True
        except AbodeSocketError as err:
            _LOGGER.warning("Cannot connect to Abode event socket: %s", err)
            self._connected = False
        except socketio.exceptions.ConnectionError as err:
            _LOGGER.warning("Failed to connect to Abode event socket: %s", err)
            self._connected = False
        except Exception:
            _LOGGER.exception("Unexpected error connecting to Abode event socket")
            self._connected = False

        if not self._connected:
            self._schedule_reconnect()
        return self._connected

    def _build_headers(self) -> dict[str, str]:
        try:
            return self._gateway.build_socket_headers()
        except AbodeAuthError as err:
            error_msg = f"No session for event socket: {err}"
            raise AbodeSocketError(error_msg) from err

    def _register_event_handlers(self) -> None:
        """Register Socket.IO event handlers."""
        if self._sio is None:
            return

        self._sio.on("connect", self._on_connect)
        self._sio.on("disconnect", self._on_disconnect)
        self._sio.on("connect_error", self._on_connect_error)
        self._sio.on(EVENT_DEVICE_UPDATE, self._on_device_update)

    async def _on_connect(self) -> None:
        _LOGGER.info("Abode event socket connected")
        self._connected = True
        self._reconnect_attempts = 0
        self._publish(StreamEvent(StreamEventType.CONNECTED))

    async def _on_disconnect(self, reason: Any = None) -> None:
        _LOGGER.warning("Abode event socket disconnected: %s", reason)
        self._connected = False
        self._publish(StreamEvent(StreamEventType.DISCONNECTED))
        if not self._shutdown:
            self._schedule_reconnect()

    async def _on_connect_error(self, data: Any = None) -> None:
        _LOGGER.debug("Abode event socket connect error: %s", data)

    async def _on_device_update(self, data: Any) -> None:
        """Handle device update events.

        Event format: "deviceId"
        """
        device_id = extract_device_id(data)
        if not device_id:
            _LOGGER.warning("Invalid device update received: %s", data)
            return

        _LOGGER.debug("Received device update via event socket: %s", device_id)
        self._publish(StreamEvent(StreamEventType.DEVICE_CHANGED, device_id))

    def _next_reconnect_delay(self) -> float:
        delay = min(
            self._reconnect_delay * 2**self._reconnect_attempts,
            self._max_reconnect_delay,
        )
        self._reconnect_attempts += 1
        return delay

    def _schedule_reconnect(self, *, immediate: bool = False) -> None:
        """Schedule a reconnection attempt."""
        if self._shutdown:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return  # Reconnection already scheduled

        self._reconnect_task = asyncio.create_task(
            self._async_reconnect(immediate=immediate)
        )

    async def _async_reconnect(self, *, immediate: bool = False) -> None:
        while not self._shutdown and not self._connected:
            if immediate:
                immediate = False
            else:
                delay = self._next_reconnect_delay()
                _LOGGER.info(
                    "Reconnecting to Abode event socket in %s seconds", delay
                )
                await asyncio.sleep(delay)
                if self._shutdown:
                    return

            await self._async_close_client()
            await self.async_connect()

    async def _async_close_client(self) -> None:
        """Drop a client left over from a lost connection."""
        sio, self._sio = self._sio, None
        if sio is None:
            return
        try:
            await sio.disconnect()
        except Exception:
            _LOGGER.exception("Error closing stale event socket")

    @callback
    def handle_session_renewed(self) -> None:
        """Reconnect right away with a renewed session if disconnected."""
        if self._shutdown or self._connected:
            return
        if not self._gateway.state.current.session:
            return

        _LOGGER.debug("Session renewed while disconnected, reconnecting now")
        self._reconnect_attempts = 0
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None
        self._schedule_reconnect(immediate=True)

    async def async_disconnect(self) -> None:
        """Disconnect from the event socket and stop reconnecting."""
        self._shutdown = True

        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
            self._reconnect_task = None

        if self._sio is not None:
            try:
                await self._sio.disconnect()
                _LOGGER.info("Disconnected from Abode event socket")
            except Exception:
                _LOGGER.exception("Error disconnecting from event socket")
            finally:
                self._connected = False
                self._sio = None
