"""Pytest configuration and fixtures for Abode Garage Door tests."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from custom_components.abode_garage.api import AbodeRequestGateway
from custom_components.abode_garage.models import (
    AbodeCredentials,
    AbodeSession,
    AbodeSessionState,
)

TEST_EMAIL = "test@example.com"
TEST_PASSWORD = "password123"
TEST_DEVICE_UUID = "3f2b8c1e-4d5a-4f6b-9c7d-0e1f2a3b4c5d"
TEST_SESSION = "session_token"
TEST_API_KEY = "api_key"
TEST_OAUTH_TOKEN = "oauth_token"
TEST_HOST_VERSION = "2025.1.0"


def create_gateway(
    session: httpx.AsyncClient,
    state: AbodeSessionState | None = None,
    host_version: str | None = TEST_HOST_VERSION,
) -> AbodeRequestGateway:
    """Create a request gateway over the given HTTP client.

    Args:
        session: HTTP client session.
        state: Session cell, a fresh empty one when omitted.
        host_version: Host version for the User-Agent.

    Returns:
        A gateway using the test device UUID.

    """
    return AbodeRequestGateway(
        session,
        state if state is not None else AbodeSessionState(),
        TEST_DEVICE_UUID,
        host_version,
    )


@pytest.fixture
def make_gateway() -> Callable[..., AbodeRequestGateway]:
    """Fixture providing the gateway factory."""
    return create_gateway


@pytest.fixture
def credentials() -> AbodeCredentials:
    """Fixture providing test account credentials."""
    return AbodeCredentials(
        email=TEST_EMAIL,
        password=TEST_PASSWORD,
        device_uuid=TEST_DEVICE_UUID,
    )


@pytest.fixture
def authenticated_session() -> AbodeSession:
    """Fixture providing a complete session triple."""
    return AbodeSession(
        session=TEST_SESSION,
        api_key=TEST_API_KEY,
        oauth_token=TEST_OAUTH_TOKEN,
    )


@pytest.fixture
def authenticated_state(authenticated_session: AbodeSession) -> AbodeSessionState:
    """Fixture providing a session cell holding a complete triple."""
    state = AbodeSessionState()
    state.replace(authenticated_session)
    return state


@pytest.fixture
def sample_login_response() -> dict[str, Any]:
    """Fixture providing a sample login API response body."""
    return {"token": TEST_API_KEY}


@pytest.fixture
def sample_login_headers() -> dict[str, str]:
    """Fixture providing login response headers setting the session cookie."""
    return {"set-cookie": f"SESSION={TEST_SESSION}; Path=/; HttpOnly"}


@pytest.fixture
def sample_claims_response() -> dict[str, Any]:
    """Fixture providing a sample claims API response body."""
    return {"access_token": TEST_OAUTH_TOKEN}


@pytest.fixture
def sample_garage_door() -> dict[str, Any]:
    """Fixture providing a garage door device object."""
    return {
        "id": "ZW:00000001",
        "type_tag": "device_type.secure_barrier",
        "name": "Garage Door",
        "status": "Closed",
        "faults": {"low_battery": 0, "jammed": 0},
    }


@pytest.fixture
def sample_devices_response(sample_garage_door: dict[str, Any]) -> list[dict[str, Any]]:
    """Fixture providing a sample device list with one garage door.

    Returns:
        A list representing a device list API response.

    """
    return [
        sample_garage_door,
        {
            "id": "RF:00000002",
            "type_tag": "device_type.door_contact",
            "name": "Front Door",
            "status": "Closed",
            "faults": {"low_battery": 0},
        },
    ]
