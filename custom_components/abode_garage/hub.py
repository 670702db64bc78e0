"""Abode cloud hub tying authentication, renewal, events and devices together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from . import api
from .auth import AbodeAuthClient
from .coordinator import AbodeDeviceCoordinator, AbodeSessionCoordinator
from .models import AbodeSessionState
from .websocket import AbodeEventStream

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .models import (
        AbodeControlResponse,
        AbodeCredentials,
        AbodeDevice,
        GarageDoorStatusInt,
    )
    from .websocket import StreamEvent

_LOGGER = logging.getLogger(__name__)


class AbodeHub:
    """Entry point for consumers of the Abode cloud client.

    Consumers list devices, set garage door targets, subscribe to stream
    events and read reconciled door states from `device_coordinator`.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry | None,
        session: httpx.AsyncClient,
        credentials: AbodeCredentials,
        host_version: str | None = None,
    ) -> None:
        self.state = AbodeSessionState()
        self.gateway = api.AbodeRequestGateway(
            session, self.state, credentials.device_uuid, host_version
        )
        self.auth = AbodeAuthClient(self.gateway, credentials)
        self.session_coordinator = AbodeSessionCoordinator(
            hass, config_entry, self.auth
        )
        self.device_coordinator = AbodeDeviceCoordinator(
            hass, config_entry, self.gateway
        )
        self.event_stream = AbodeEventStream(hass, self.gateway)
        self._unsubscribers: list[Callable[[], None]] = []

    async def async_init(self) -> None:
        """Sign in, load garage doors and start the background tasks.

        Raises:
            AbodeApiClientError: If the initial sign-in fails.

        """
        await self.auth.async_authenticate()

        self._unsubscribers.append(
            self.event_stream.register_callback(
                self.device_coordinator.handle_stream_event
            )
        )
        # Also starts the renewal ticks, which only run while listened to.
        self._unsubscribers.append(
            self.session_coordinator.async_add_listener(
                self.event_stream.handle_session_renewed
            )
        )

        await self.device_coordinator.async_refresh()
        await self.event_stream.async_connect()

    async def async_get_devices(self) -> list[AbodeDevice]:
        """Fetch all devices of the account."""
        return await api.async_get_devices(self.gateway)

    async def async_set_garage_door_target(
        self,
        device_id: str,
        status: GarageDoorStatusInt,
    ) -> AbodeControlResponse:
        """Open or close a garage door."""
        _LOGGER.debug("Setting garage door %s to %s", device_id, status.name)
        return await api.async_control_garage_door(self.gateway, device_id, status)

    def register_callback(
        self,
        callback: Callable[[StreamEvent], None],
    ) -> Callable[[], None]:
        """Subscribe to CONNECTED, DISCONNECTED and DEVICE_CHANGED events."""
        return self.event_stream.register_callback(callback)

    async def async_shutdown(self) -> None:
        """Stop renewal, the event socket and the grace timer."""
        while self._unsubscribers:
            self._unsubscribers.pop()()

        await self.event_stream.async_disconnect()
        await self.session_coordinator.async_shutdown()
        await self.device_coordinator.async_shutdown()
