"""Internal constants shared across the library."""

BASE_URL = "https://app.medsoft.care"
SAVE_LOCATION_PATH = "/api/location/save/patient"
USER_AGENT = "pylocsync/1 (aiohttp)"

AUTH_REJECTED_STATUSES: frozenset[int] = frozenset({401, 403})

# ------------------------------------------------------------------
# Sampling defaults (provider request profile at engine start)
# ------------------------------------------------------------------

DEFAULT_DISPLACEMENT_M = 10.0
DEFAULT_MIN_INTERVAL_MS = 5_000
DEFAULT_MAX_INTERVAL_MS = 10_000

#: Decimal places the server reports displacement hints with.
DISPLACEMENT_PRECISION = 2
