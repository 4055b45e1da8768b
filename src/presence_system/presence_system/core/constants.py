"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

# A "present" signal older than this no longer counts as presence. The live
# report path, the status query and the sweeper must all use this value.
FRESHNESS_WINDOW = timedelta(minutes=10)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60
DEFAULT_SWEEP_BATCH_SIZE = 500

DEFAULT_HISTORY_LIMIT = 10
DEFAULT_LOG_LIMIT = 100

DEFAULT_SOURCE = "unknown"
MOBILE_SOURCE = "mobile_scanner"

# Mobile clients send this instead of a device id when no beacon is in range.
NO_DEVICE_SENTINEL = "none"

UNKNOWN_DEVICE_LOCATION = "Unknown Location"
