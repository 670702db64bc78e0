"""Data models for Abode Garage Door integration."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum, StrEnum
from uuid import uuid4

from .const import DEVICE_TYPE_GARAGE_DOOR

# Sent on every login and in every cookie; regenerated only by a restart.
DEVICE_UUID = str(uuid4())


@dataclass(frozen=True)
class AbodeCredentials:
    """Account credentials plus the process-lifetime device identifier."""

    email: str
    password: str = field(repr=False)
    device_uuid: str = DEVICE_UUID


@dataclass(frozen=True, slots=True)
class AbodeSession:
    """Immutable snapshot of the session cookie, API key and OAuth token."""

    session: str = ""
    api_key: str = ""
    oauth_token: str = ""

    @property
    def is_authenticated(self) -> bool:
        """Return True if all three credentials are present."""
        return bool(self.session and self.api_key and self.oauth_token)


class AbodeSessionState:
    """Owned cell holding the current AbodeSession.

    Readers always get a complete snapshot. Writers swap the whole snapshot,
    so a half-updated triple is never observable.
    """

    def __init__(self) -> None:
        self._current = AbodeSession()

    @property
    def current(self) -> AbodeSession:
        """Return the snapshot in effect right now."""
        return self._current

    def replace(self, session: AbodeSession) -> None:
        """Publish a complete triple from a successful login."""
        self._current = session

    def renew(self, session: str, oauth_token: str) -> AbodeSession:
        """Publish renewed session and OAuth tokens, keeping the API key."""
        self._current = dataclasses.replace(
            self._current, session=session, oauth_token=oauth_token
        )
        return self._current

    def clear(self) -> None:
        """Drop all three credentials together."""
        self._current = AbodeSession()


class GarageDoorStatus(StrEnum):
    """Door status as reported by device queries."""

    OPEN = "Open"
    CLOSED = "Closed"


class GarageDoorStatusInt(IntEnum):
    """Door status as accepted by the control endpoint."""

    OPEN = 0
    CLOSED = 1

    @classmethod
    def for_target(cls, closed: bool) -> GarageDoorStatusInt:
        """Return the control value for an open or closed target."""
        return cls.CLOSED if closed else cls.OPEN


class DoorState(StrEnum):
    """Externally visible door state."""

    OPEN = "open"
    CLOSED = "closed"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class ReconcilerState(Enum):
    """Trust level of cached device state."""

    LIVE = "live"
    PENDING_STALE = "pending_stale"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class GarageDoorFaults:
    """Fault flags of a garage door, sent by the API as 0/1."""

    low_battery: bool = False
    jammed: bool = False


@dataclass(frozen=True, slots=True)
class AbodeDevice:
    """Represents any device returned by the Abode device list."""

    id: str
    type_tag: str
    name: str

    @property
    def is_garage_door(self) -> bool:
        """Return True if this device is a secure barrier."""
        return self.type_tag == DEVICE_TYPE_GARAGE_DOOR


@dataclass(frozen=True, slots=True)
class AbodeGarageDoorDevice(AbodeDevice):
    """Represents a secure barrier (garage door) device."""

    status: str = ""
    faults: GarageDoorFaults = field(default_factory=GarageDoorFaults)

    @property
    def door_state(self) -> DoorState:
        """Map the reported status and faults onto a door state."""
        if self.faults.jammed:
            return DoorState.STOPPED
        if self.status == GarageDoorStatus.CLOSED:
            return DoorState.CLOSED
        return DoorState.OPEN


@dataclass(frozen=True, slots=True)
class AbodeControlResponse:
    """Acknowledgement of a garage door control request."""

    id: str
    status: GarageDoorStatusInt


@dataclass(slots=True)
class ConnectivityState:
    """Event socket connectivity as seen by the reconciler."""

    connected: bool = False
    last_disconnect_time: datetime | None = None
