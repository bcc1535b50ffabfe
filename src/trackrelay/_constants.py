"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Wire addressing: /tracking/trackers/{id}/{position|rotation}
# ------------------------------------------------------------------

ADDRESS_ROOT = "tracking"
ADDRESS_COLLECTION = "trackers"
ADDRESS_TEMPLATE = "/tracking/trackers/{tracker_id}/{kind}"
VECTOR_ARITY = 3

# ------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------

DEFAULT_LISTEN_HOST = "127.0.0.1"
DEFAULT_LISTEN_PORT = 9009
DEFAULT_DESTINATION_HOST = "127.0.0.1"
DEFAULT_DESTINATION_PORT = 9010
DEFAULT_INVERSION_THRESHOLD = 170.0
DEFAULT_QUEUE_SIZE = 10_000
DEFAULT_STATUS_HOST = "127.0.0.1"
DEFAULT_STATUS_PORT = 8080
DEFAULT_SHUTDOWN_TIMEOUT = 5.0

# Largest datagram the listener will read in one call.
MAX_DATAGRAM_SIZE = 65535

# Log one warning per this many dropped records.
DROP_LOG_INTERVAL = 1000
