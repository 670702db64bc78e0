from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD
from homeassistant.const import __version__ as HA_VERSION
from homeassistant.core import HomeAssistant

from . import api
from .api import create_session_client
from .const import DOMAIN
from .hub import AbodeHub
from .models import AbodeCredentials

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Abode Garage Door integration for entry %s", entry.entry_id)

    email = entry.data.get(CONF_EMAIL)
    password = entry.data.get(CONF_PASSWORD)
    if not email or not password:
        _LOGGER.error("Missing email and password for entry %s", entry.entry_id)
        return False

    session = create_session_client(hass)
    hub = AbodeHub(
        hass,
        entry,
        session,
        AbodeCredentials(email=email, password=password),
        HA_VERSION,
    )

    try:
        await hub.async_init()
    except api.AbodeApiClientError as err:
        _LOGGER.error("Failed to initialize Abode for entry %s: %s", entry.entry_id, err)
        await hub.async_shutdown()
        return False

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = hub
    _LOGGER.info(
        "Successfully setup Abode Garage Door integration for entry %s",
        entry.entry_id,
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Abode Garage Door integration for entry %s", entry.entry_id)

    hub: AbodeHub | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if hub is None:
        _LOGGER.warning("No Abode hub found for entry %s", entry.entry_id)
        return True

    await hub.async_shutdown()
    _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
    return True
