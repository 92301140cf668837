"""Internal constants shared across the server."""

DEFAULT_PORT = 3210
DEFAULT_HOST = "0.0.0.0"
USER_AGENT = "tabsync/1.0 (+title-resolver)"

#: Line prefix written to stdout once every listener is bound.
READY_MARKER = "SERVER_READY"

TITLE_FETCH_TIMEOUT_S: float = 5.0
DEVICE_TIMEOUT_S: float = 5 * 60.0
SWEEP_INTERVAL_S: float = 60.0

#: How long a supervisor waits for :data:`READY_MARKER` before giving up.
STARTUP_TIMEOUT_S: float = 20.0

# ------------------------------------------------------------------
# Wire-level error bodies
# ------------------------------------------------------------------

ERROR_MISSING_FIELDS = "Missing fields"
ERROR_ADD_FAILED = "Failed to add URL"
