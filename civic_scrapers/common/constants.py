"""Application constants."""

PRODUCT_NAME = "CivicSupportScrapers"
PRODUCT_VERSION = "1.0.0"
CONTACT = "hey@codefornorway.org"
USER_AGENT = f"{PRODUCT_NAME}/{PRODUCT_VERSION} (+{CONTACT})"

EXIT_SUCCESS = 0
EXIT_USAGE = 2
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
EXIT_INTERRUPTED = 130

GEOCODE_CACHE_PREFIX = "nominatim"
MAX_GEOCODE_QUERIES = 6

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "org",
    "stage",
    "url",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "records_out",
    "error_code",
    "message",
)
