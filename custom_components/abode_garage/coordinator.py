"""Coordinators for Abode Garage Door integration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from homeassistant.core import callback
from homeassistant.helpers.event import async_call_later
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import DOMAIN, SESSION_RENEWAL_INTERVAL, STALE_GRACE_PERIOD
from .models import (
    AbodeGarageDoorDevice,
    AbodeSession,
    ConnectivityState,
    DoorState,
    ReconcilerState,
)
from .websocket import StreamEvent, StreamEventType

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import CALLBACK_TYPE, HomeAssistant

    from .auth import AbodeAuthClient

_LOGGER = logging.getLogger(__name__)


class AbodeSessionCoordinator(DataUpdateCoordinator[AbodeSession]):
    """Coordinator that periodically renews the Abode session.

    Each tick renews the session and OAuth tokens. When renewal fails the
    session is treated as lost and a full sign-in is attempted; when that
    fails too the tick fails and the next tick tries again.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry | None,
        auth: AbodeAuthClient,
        update_interval: timedelta = timedelta(seconds=SESSION_RENEWAL_INTERVAL),
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_session",
            update_interval=update_interval,
        )
        self.auth = auth
        self.data = auth.session

    async def _async_update_data(self) -> AbodeSession:
        """Renew tokens, falling back to a full sign-in."""
        try:
            session = await self.auth.async_renew()
        except api.AbodeApiClientError as err:
            _LOGGER.debug("No session, signing in again: %s", err)
        else:
            _LOGGER.debug("Renewed Abode session")
            return session

        try:
            return await self.auth.async_authenticate()
        except api.AbodeApiClientError as err:
            error_msg = f"Failed to renew session: {err}"
            raise UpdateFailed(error_msg) from err


class AbodeDeviceCoordinator(
    DataUpdateCoordinator[dict[str, AbodeGarageDoorDevice]]
):
    """Coordinator that holds garage door states and decides their trust.

    Cached state is trusted while the event socket is connected. When the
    socket drops, state stays trusted for a grace period; if the socket is
    still down afterwards every door is reported unknown. A reconnect always
    triggers a full re-fetch, since updates may have been missed.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry | None,
        gateway: api.AbodeRequestGateway,
        grace_period: float = STALE_GRACE_PERIOD,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_devices",
            update_interval=None,
        )
        self._gateway = gateway
        self._grace_period = grace_period
        self._unsub_grace_timer: CALLBACK_TYPE | None = None
        self.connectivity = ConnectivityState()
        self.reconciler_state = ReconcilerState.LIVE
        # Set when trust returns after an outage, until a full fetch lands.
        self.resync_pending = False
        self.data = {}

    async def _async_update_data(self) -> dict[str, AbodeGarageDoorDevice]:
        try:
            devices = await api.async_get_devices(self._gateway)
        except api.AbodeAuthError as err:
            error_msg = f"Authentication error while fetching devices: {err}"
            raise UpdateFailed(error_msg) from err
        except api.AbodeApiClientError as err:
            error_msg = f"API error while fetching devices: {err}"
            raise UpdateFailed(error_msg) from err

        doors = {
            device.id: device
            for device in devices
            if isinstance(device, AbodeGarageDoorDevice)
        }
        _LOGGER.debug("Fetched status for %d garage doors", len(doors))
        self.resync_pending = False
        return doors

    def reported_state(self, device_id: str) -> DoorState:
        """Return the door state to present for a device.

        Unknown while the socket has been down past the grace period and
        until the full fetch after such an outage succeeds. Also unknown
        after a failed refresh, or when the device has not been fetched.
        """
        if self.reconciler_state is ReconcilerState.UNKNOWN or self.resync_pending:
            return DoorState.UNKNOWN
        if not self.last_update_success:
            return DoorState.UNKNOWN

        device = (self.data or {}).get(device_id)
        if device is None:
            return DoorState.UNKNOWN
        return device.door_state

    @callback
    def handle_stream_event(self, event: StreamEvent) -> None:
        """Update trust and cached state from an event stream notification."""
        if event.type is StreamEventType.CONNECTED:
            self._handle_connected()
        elif event.type is StreamEventType.DISCONNECTED:
            self._handle_disconnected()
        elif event.type is StreamEventType.DEVICE_CHANGED and event.device_id:
            self._handle_device_changed(event.device_id)

    def _handle_connected(self) -> None:
        self.connectivity.connected = True
        self._cancel_grace_timer()

        previous = self.reconciler_state
        self.reconciler_state = ReconcilerState.LIVE
        if previous is ReconcilerState.UNKNOWN:
            self.resync_pending = True
        if previous is not ReconcilerState.LIVE:
            _LOGGER.info("Event socket back, re-fetching garage door states")

        self.hass.async_create_task(self.async_request_refresh())

    def _handle_disconnected(self) -> None:
        self.connectivity.connected = False
        self.connectivity.last_disconnect_time = datetime.now(UTC)

        if self.reconciler_state is not ReconcilerState.LIVE:
            return

        self.reconciler_state = ReconcilerState.PENDING_STALE
        self._cancel_grace_timer()
        self._unsub_grace_timer = async_call_later(
            self.hass, self._grace_period, self._async_grace_period_expired
        )

    def _handle_device_changed(self, device_id: str) -> None:
        if self.reconciler_state is not ReconcilerState.LIVE:
            _LOGGER.debug("Ignoring update for %s while not live", device_id)
            return
        if device_id not in (self.data or {}):
            return

        self.hass.async_create_task(self.async_refresh_device(device_id))

    @callback
    def _async_grace_period_expired(self, _now: datetime) -> None:
        self._unsub_grace_timer = None
        if self.connectivity.connected:
            return

        _LOGGER.warning(
            "Event socket down for %s seconds, garage door states unknown",
            self._grace_period,
        )
        self.reconciler_state = ReconcilerState.UNKNOWN
        self.async_update_listeners()

    def _cancel_grace_timer(self) -> None:
        if self._unsub_grace_timer is not None:
            self._unsub_grace_timer()
            self._unsub_grace_timer = None

    async def async_refresh_device(self, device_id: str) -> None:
        """Re-fetch one garage door and update its cached state."""
        try:
            device = await api.async_get_device(self._gateway, device_id)
        except api.AbodeApiClientError as err:
            _LOGGER.warning("Failed to refresh garage door %s: %s", device_id, err)
            return

        if not isinstance(device, AbodeGarageDoorDevice):
            _LOGGER.warning("Device %s is no longer a garage door", device_id)
            return

        self.async_set_updated_data({**(self.data or {}), device_id: device})

    async def async_shutdown(self) -> None:
        """Cancel the grace timer and stop the coordinator."""
        self._cancel_grace_timer()
        await super().async_shutdown()
