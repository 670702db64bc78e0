"""API client for the Abode security cloud.

This module provides the request gateway that every outbound call goes
through, the raw authentication calls, and typed accessors for the device
list and garage door control.
"""

import logging
from enum import Enum
from typing import Any

import httpx
from homeassistant.core import HomeAssistant
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    API_BASE_URL,
    API_KEY_HEADER,
    AUTH_PATH_PREFIX,
    CLAIMS_PATH,
    CONTROL_GARAGE_DOOR_PATH,
    DEFAULT_TIMEOUT,
    DEVICE_PATH,
    DEVICE_TYPE_GARAGE_DOOR,
    DEVICES_PATH,
    LOGIN_PATH,
    ORIGIN,
    SESSION_COOKIE,
    SESSION_PATH,
    USER_AGENT_BASE,
)
from .models import (
    AbodeControlResponse,
    AbodeCredentials,
    AbodeDevice,
    AbodeGarageDoorDevice,
    AbodeSession,
    AbodeSessionState,
    GarageDoorFaults,
    GarageDoorStatusInt,
)

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


class AbodeApiClientError(Exception):
    """Base exception for Abode API client errors."""


class AbodeAuthError(AbodeApiClientError):
    """Exception raised when signing in or authorizing a request fails."""


class AbodeMissingCredentialsError(AbodeAuthError):
    """Exception raised when email or password is empty."""


class AbodeMissingSessionError(AbodeAuthError):
    """Exception raised when no session token is available."""


class AbodeMissingApiKeyError(AbodeAuthError):
    """Exception raised when no API key is available."""


class AbodeMissingOAuthTokenError(AbodeAuthError):
    """Exception raised when no OAuth token is available."""


class AbodeTransportError(AbodeApiClientError):
    """Exception raised for network level failures."""


class AbodeSocketError(AbodeApiClientError):
    """Exception raised when the event socket cannot be opened."""


class RequestTier(Enum):
    """Credentials an endpoint requires."""

    UNAUTHENTICATED = "unauthenticated"
    SESSION = "session"
    FULL = "full"


def classify_path(path: str) -> RequestTier:
    """Return the credential tier for an API path.

    Args:
        path: Path relative to the API base URL.

    Returns:
        UNAUTHENTICATED for sign-in paths, SESSION for the session status
        path, FULL for everything else.

    """
    if path.startswith(AUTH_PATH_PREFIX):
        return RequestTier.UNAUTHENTICATED
    if path == SESSION_PATH:
        return RequestTier.SESSION
    return RequestTier.FULL


def create_user_agent(host_version: str | None = None) -> str:
    """Create the User-Agent, suffixed with the host version when known."""
    if host_version:
        return f"{USER_AGENT_BASE}/{host_version}"
    return USER_AGENT_BASE


def create_cookie(session: str, device_uuid: str) -> str:
    """Create the Cookie header pairing the session with the device UUID."""
    return f"{SESSION_COOKIE}={session};uuid={device_uuid}"


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an authorization error."""
    return status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)


class AbodeRequestGateway:
    """Single choke point for outbound Abode API calls.

    Every request is classified by path and gets its credentials injected
    here, from the session snapshot current at send time. Missing
    credentials fail before any network I/O.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        state: AbodeSessionState,
        device_uuid: str,
        host_version: str | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            session: HTTP client session.
            state: Session cell read on every request.
            device_uuid: Process-lifetime device identifier.
            host_version: Optional host framework version for the User-Agent.

        """
        self._session = session
        self._state = state
        self._device_uuid = device_uuid
        self.user_agent = create_user_agent(host_version)

    @property
    def state(self) -> AbodeSessionState:
        """Return the session cell this gateway reads."""
        return self._state

    def build_headers(
        self,
        path: str,
        tokens: AbodeSession | None = None,
    ) -> dict[str, str]:
        """Build the headers required by the tier of a path.

        Args:
            path: Path relative to the API base URL.
            tokens: Snapshot to use instead of the current session state.
                Used while signing in, before the snapshot is published.

        Returns:
            Dictionary containing HTTP headers for the request.

        Raises:
            AbodeApiClientError: If the path is not a relative path.
            AbodeMissingSessionError: If the session token is required but empty.
            AbodeMissingApiKeyError: If the API key is required but empty.
            AbodeMissingOAuthTokenError: If the OAuth token is required but empty.

        """
        if not path.startswith("/"):
            error_msg = f"Invalid API path: {path!r}"
            raise AbodeApiClientError(error_msg)

        if tokens is None:
            tokens = self._state.current

        headers = {
            "User-Agent": self.user_agent,
            "Cookie": create_cookie(tokens.session, self._device_uuid),
        }

        tier = classify_path(path)
        if tier is RequestTier.UNAUTHENTICATED:
            return headers

        if not tokens.session:
            error_msg = "Missing session"
            raise AbodeMissingSessionError(error_msg)
        if not tokens.api_key:
            error_msg = "Missing API key"
            raise AbodeMissingApiKeyError(error_msg)
        headers[API_KEY_HEADER] = tokens.api_key

        if tier is RequestTier.SESSION:
            return headers

        if not tokens.oauth_token:
            error_msg = "Missing OAuth token"
            raise AbodeMissingOAuthTokenError(error_msg)
        headers["Authorization"] = f"Bearer {tokens.oauth_token}"
        return headers

    def build_socket_headers(self) -> dict[str, str]:
        """Build the handshake headers for the event socket.

        Raises:
            AbodeMissingSessionError: If there is no session to authenticate with.

        """
        tokens = self._state.current
        if not tokens.session:
            error_msg = "Missing session"
            raise AbodeMissingSessionError(error_msg)
        return {
            "Origin": ORIGIN,
            "Cookie": create_cookie(tokens.session, self._device_uuid),
            "User-Agent": self.user_agent,
        }

    async def async_request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        tokens: AbodeSession | None = None,
    ) -> httpx.Response:
        """Send a request to the Abode API.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL.
            json: Optional JSON body.
            tokens: Optional snapshot overriding the current session state.

        Returns:
            The HTTP response, whatever its status.

        Raises:
            AbodeAuthError: If required credentials are missing.
            AbodeTransportError: If the request fails at the network level.

        """
        headers = self.build_headers(path, tokens)
        url = f"{API_BASE_URL}{path}"

        _LOGGER.debug("%s %s", method, path)
        try:
            return await self._session.request(method, url, headers=headers, json=json)
        except httpx.RequestError as err:
            error_msg = f"Request to {path} failed: {err}"
            raise AbodeTransportError(error_msg) from err


def validate_response(response: httpx.Response) -> Any:
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON data from response.

    Raises:
        AbodeAuthError: If the request was not authorized.
        AbodeApiClientError: If any other HTTP error is detected.

    """
    _validate_http_status(response)
    return _parse_json(response)


def _validate_http_status(response: httpx.Response) -> None:
    if not is_http_error(response.status_code):
        return

    if is_auth_error(response.status_code):
        auth_error = f"Authorization error: {response.status_code}"
        raise AbodeAuthError(auth_error)

    client_error = f"Request failed: {response.status_code}"
    raise AbodeApiClientError(client_error)


def _require_ok(response: httpx.Response) -> None:
    if response.status_code != HTTP_OK:
        error_msg = f"Received non-200 response: {response.status_code}"
        raise AbodeAuthError(error_msg)


def _parse_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in response: {err}"
        raise AbodeApiClientError(error_msg) from err


def _get_field(data: Any, key: str) -> Any:
    if isinstance(data, dict):
        return data.get(key)
    return None


def extract_session_cookie(response: httpx.Response) -> str | None:
    """Extract the session value from the Set-Cookie headers of a response."""
    return response.cookies.get(SESSION_COOKIE) or None


def _fault_flag(value: Any) -> bool:
    try:
        return bool(int(value or 0))
    except (TypeError, ValueError):
        return False


def parse_device(data: dict[str, Any]) -> AbodeDevice:
    """Parse a device object from the device list.

    Args:
        data: Device object as returned by the API.

    Returns:
        AbodeGarageDoorDevice for secure barriers, AbodeDevice otherwise.

    Raises:
        AbodeApiClientError: If the device object has no id.

    """
    try:
        device_id = str(data["id"])
    except (KeyError, TypeError) as err:
        error_msg = f"Malformed device object: {data!r}"
        raise AbodeApiClientError(error_msg) from err

    type_tag = str(data.get("type_tag", ""))
    name = str(data.get("name", ""))

    if type_tag != DEVICE_TYPE_GARAGE_DOOR:
        return AbodeDevice(id=device_id, type_tag=type_tag, name=name)

    faults = data.get("faults") or {}
    return AbodeGarageDoorDevice(
        id=device_id,
        type_tag=type_tag,
        name=name,
        status=str(data.get("status", "")),
        faults=GarageDoorFaults(
            low_battery=_fault_flag(faults.get("low_battery")),
            jammed=_fault_flag(faults.get("jammed")),
        ),
    )


def extract_devices(data: Any) -> list[AbodeDevice]:
    """Extract device list from API response.

    Args:
        data: API response data, a list of device objects.

    Returns:
        List of AbodeDevice objects.

    """
    if not isinstance(data, list):
        _LOGGER.warning("Unexpected device list payload: %s", type(data).__name__)
        return []
    return [parse_device(d) for d in data]


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for Abode API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=DEFAULT_TIMEOUT)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def async_login(
    gateway: AbodeRequestGateway,
    credentials: AbodeCredentials,
) -> AbodeSession:
    """Sign in with email and password.

    Args:
        gateway: Request gateway.
        credentials: Account credentials and device UUID.

    Returns:
        AbodeSession holding the session and API key, without OAuth token.

    Raises:
        AbodeAuthError: If the response is not a 200.
        AbodeMissingApiKeyError: If the response body has no API key.
        AbodeMissingSessionError: If the response sets no session cookie.
        AbodeTransportError: If the request fails at the network level.

    """
    payload = {
        "id": credentials.email,
        "password": credentials.password,
        "uuid": credentials.device_uuid,
    }

    _LOGGER.debug("Signing in to Abode API")
    response = await gateway.async_request("POST", LOGIN_PATH, json=payload)
    _require_ok(response)

    api_key = _get_field(_parse_json(response), "token")
    if not api_key:
        error_msg = "Response did not contain API key"
        raise AbodeMissingApiKeyError(error_msg)

    session = extract_session_cookie(response)
    if not session:
        error_msg = "Response did not contain session"
        raise AbodeMissingSessionError(error_msg)

    return AbodeSession(session=session, api_key=api_key)


async def async_get_oauth_token(
    gateway: AbodeRequestGateway,
    tokens: AbodeSession | None = None,
) -> str:
    """Request an OAuth bearer token from the claims endpoint.

    Args:
        gateway: Request gateway.
        tokens: Optional snapshot to authenticate with instead of the
            current session state.

    Returns:
        The OAuth access token.

    Raises:
        AbodeAuthError: If the response is not a 200.
        AbodeMissingOAuthTokenError: If the response has no access token.
        AbodeTransportError: If the request fails at the network level.

    """
    response = await gateway.async_request("GET", CLAIMS_PATH, tokens=tokens)
    _require_ok(response)

    oauth_token = _get_field(_parse_json(response), "access_token")
    if not oauth_token:
        error_msg = "Response did not contain OAuth token"
        raise AbodeMissingOAuthTokenError(error_msg)
    return oauth_token


async def async_get_session(gateway: AbodeRequestGateway) -> str:
    """Request the current session identifier.

    Raises:
        AbodeAuthError: If the response is not a 200.
        AbodeMissingSessionError: If the response has no session id.
        AbodeTransportError: If the request fails at the network level.

    """
    response = await gateway.async_request("GET", SESSION_PATH)
    _require_ok(response)

    session = _get_field(_parse_json(response), "id")
    if not session:
        error_msg = "Response did not contain session"
        raise AbodeMissingSessionError(error_msg)
    return str(session)


async def async_get_devices(gateway: AbodeRequestGateway) -> list[AbodeDevice]:
    """Fetch all devices of the account.

    Args:
        gateway: Request gateway.

    Returns:
        List of AbodeDevice objects.

    Raises:
        AbodeAuthError: If credentials are missing or rejected.
        AbodeApiClientError: If API request fails.

    """
    _LOGGER.debug("Fetching devices from Abode API")
    response = await gateway.async_request("GET", DEVICES_PATH)
    devices = extract_devices(validate_response(response))
    _LOGGER.debug("Retrieved %d devices from Abode API", len(devices))
    return devices


async def async_get_device(
    gateway: AbodeRequestGateway,
    device_id: str,
) -> AbodeDevice | None:
    """Fetch a single device.

    The endpoint answers with either a device object or a one-element list.

    Returns:
        The device, or None if the response holds no device.

    Raises:
        AbodeAuthError: If credentials are missing or rejected.
        AbodeApiClientError: If API request fails.

    """
    path = DEVICE_PATH.format(device_id=device_id)
    response = await gateway.async_request("GET", path)
    data = validate_response(response)

    if isinstance(data, dict):
        data = [data]
    devices = extract_devices(data)
    return devices[0] if devices else None


async def async_control_garage_door(
    gateway: AbodeRequestGateway,
    device_id: str,
    status: GarageDoorStatusInt,
) -> AbodeControlResponse:
    """Open or close a garage door.

    Args:
        gateway: Request gateway.
        device_id: Target device identifier.
        status: Control plane target status.

    Returns:
        Acknowledgement with the device id and accepted status.

    Raises:
        AbodeAuthError: If credentials are missing or rejected.
        AbodeApiClientError: If API request fails.

    """
    path = CONTROL_GARAGE_DOOR_PATH.format(device_id=device_id)
    payload = {"status": int(status)}

    _LOGGER.debug("Sending garage door command to %s: %s", device_id, status.name)
    response = await gateway.async_request("PUT", path, json=payload)
    data = validate_response(response)

    try:
        return AbodeControlResponse(
            id=str(data["id"]),
            status=GarageDoorStatusInt(int(data["status"])),
        )
    except (KeyError, TypeError, ValueError) as err:
        error_msg = f"Unexpected control response: {data!r}"
        raise AbodeApiClientError(error_msg) from err
