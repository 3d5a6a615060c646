"""Constants for the Eight Sleep Thermostat integration.

This module contains the constants used throughout the integration,
including API endpoints, polling intervals, storage keys and error codes.
"""

from datetime import timedelta

DOMAIN = "eight_sleep_thermostat"
MANUFACTURER = "Eight Sleep"
MODEL = "Pod Pro"

BASE_URL = "https://client-api.8slp.net/v1"
API_HOST = "client-api.8slp.net"
USER_AGENT = "Eight%20Sleep/15296 CFNetwork/1331.0.7 Darwin/21.4.0"
REQUEST_TIMEOUT = 10.0
REQUEST_RETRIES = 3

# Sessions are treated as expired this long before the advertised expiry
SESSION_EXPIRY_MARGIN = timedelta(minutes=20)
SESSION_VALIDATION_INTERVAL = timedelta(minutes=10)

REFRESH_INTERVAL = 15.0  # Seconds between refreshes while active
IDLE_TIMEOUT = 90.0  # Seconds without activity before polling stops

STORAGE_VERSION = 1
STORAGE_SESSION = "session"
STORAGE_PROFILE = "profile"

MIN_TEMP_C = 10.0
MAX_TEMP_C = 45.0
TARGET_TEMP_STEP = 0.5

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_TIMEOUT = "timeout_error"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"

ATTR_SIDE = "side"
ATTR_CURRENT_LEVEL = "current_level"
ATTR_TARGET_LEVEL = "target_level"
ATTR_IS_PRIMING = "is_priming"
ATTR_NEEDS_PRIMING = "needs_priming"
ATTR_HAS_WATER = "has_water"
