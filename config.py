"""
Runtime configuration. Values come from environment variables; secrets may
also be dropped into the secrets/ folder.
"""

import os
import os.path


def _read_secret_file_optional(filename: str) -> str | None:
    """Read a secret file if it exists and is not empty; return None otherwise."""
    secrets_path = os.path.join("secrets", filename)
    if not os.path.exists(secrets_path):
        return None
    with open(secrets_path) as f:
        content = f.read().strip()
        return content or None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Configuration validation failed: {name} must be an integer, got {value!r}") from e


DEBUG = os.getenv("DEBUG", "0") == "1"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "[%(asctime)s] %(levelname)s %(name)s: %(message)s")
# Council scripts report failures on stderr; only warnings and up go there too.
COUNCIL_SCRIPT_LOG_LEVEL = os.getenv("COUNCIL_SCRIPT_LOG_LEVEL", "WARNING")

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _env_int("PORT", 10000)


# Result cache
CACHE_TTL_SECONDS = _env_int("CACHE_TTL_SECONDS", 24 * 60 * 60)


# Timeouts (seconds)
ADAPTER_TIMEOUT_SECONDS = _env_int("ADAPTER_TIMEOUT_SECONDS", 120)
HTTP_TIMEOUT_SECONDS = _env_int("HTTP_TIMEOUT_SECONDS", 15)
COUNCIL_HTTP_TIMEOUT_SECONDS = _env_int("COUNCIL_HTTP_TIMEOUT_SECONDS", 10)


# Generic adapter process: run as `python -m <module> <council> ...`
COLLECT_DATA_MODULE = os.getenv("COLLECT_DATA_MODULE", "services.councils.collect_data")

# Sent when a council script needs a postcode field but the user gave only a UPRN.
PLACEHOLDER_POSTCODE = os.getenv("PLACEHOLDER_POSTCODE", "SW1A 1AA")


# Address directories
MIN_API_KEY_LENGTH = _env_int("MIN_API_KEY_LENGTH", 10)
ADDRESS_API_KEY = os.getenv("ADDRESS_API_KEY") or _read_secret_file_optional("address_api_key.txt")
PRIVILEGED_ADDRESS_API_URL = os.getenv(
    "PRIVILEGED_ADDRESS_API_URL", "https://api.os.uk/search/places/v1/postcode"
)
PUBLIC_ADDRESS_DIRECTORY_URL = os.getenv(
    "PUBLIC_ADDRESS_DIRECTORY_URL", "https://uprn.uk/postcode/{postcode}"
)


# Councils served by the cross-council standardized waste API instead of a scraper script.
STANDARDIZED_API_COUNCILS = [
    name.strip()
    for name in os.getenv("STANDARDIZED_API_COUNCILS", "StandardWasteApi").split(",")
    if name.strip()
]


# Calendar feed
FEED_PRODID = "-//Bin Portal//EN"
FEED_UID_DOMAIN = "binportal"
FEED_CALENDAR_NAME = os.getenv("FEED_CALENDAR_NAME", "Bin Collections")
