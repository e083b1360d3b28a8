"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000

SYSTEM_CONFIG_ID = "system-config"

DEFAULT_REFERENCE_LATITUDE = 28.986701
DEFAULT_REFERENCE_LONGITUDE = 77.152050
DEFAULT_REFERENCE_NAME = "Main Hostel Building"
DEFAULT_GEOFENCE_RADIUS_METERS = 50
DEFAULT_WINDOW_START_HOUR = 19
DEFAULT_WINDOW_END_HOUR = 22
DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_MAX_GATE_PASS_DAYS = 14
DEFAULT_MAX_PENDING_PASSES = 3
DEFAULT_GRACE_MINUTES = 5

QR_TOKEN_PREFIX = "GP-"
QR_TOKEN_BYTES = 8

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
DEFAULT_LOG_PAGE_LIMIT = 50
