"""Constants for the Abode Garage Door integration.

This module contains all the constants used throughout the integration,
including API endpoints, header names, timing values and device tags.
"""

DOMAIN = "abode_garage"

API_BASE_URL = "https://my.goabode.com"
ORIGIN = "https://my.goabode.com/"
SOCKET_URL = API_BASE_URL
SOCKET_PATH = "socket.io"
USER_AGENT_BASE = "HomeAssistant"

AUTH_PATH_PREFIX = "/api/auth2/"
LOGIN_PATH = "/api/auth2/login"
CLAIMS_PATH = "/api/auth2/claims"
SESSION_PATH = "/api/v1/session"
DEVICES_PATH = "/api/v1/devices"
DEVICE_PATH = "/api/v1/devices/{device_id}"
CONTROL_GARAGE_DOOR_PATH = "/api/v1/control/power_switch/{device_id}"

SESSION_COOKIE = "SESSION"
API_KEY_HEADER = "ABODE-API-KEY"

DEFAULT_TIMEOUT = 10.0  # Seconds, bounds every HTTP call including renewal
SESSION_RENEWAL_INTERVAL = 1500  # Seconds between session/OAuth renewals
STALE_GRACE_PERIOD = 30  # Seconds before a lost socket makes state unknown
SOCKET_RECONNECT_DELAY = 5  # Initial reconnect delay, doubled per failure
SOCKET_RECONNECT_MAX_DELAY = 300

EVENT_DEVICE_UPDATE = "com.goabode.device.update"

DEVICE_TYPE_GARAGE_DOOR = "device_type.secure_barrier"
