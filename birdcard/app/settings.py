"""Application settings read from environment variables."""

import logging
import os

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    """Read an integer variable, falling back to *default* when unset or malformed."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning('[settings] %s=%r is not an integer, using %d', name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float variable, falling back to *default* when unset or malformed."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning('[settings] %s=%r is not a number, using %s', name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean variable ('true'/'1'/'yes' are truthy)."""
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def parse_sentinels(raw: str) -> list[tuple[float, float]]:
    """Parse ``'lat,lon;lat,lon'`` into coordinate pairs, skipping bad entries."""
    sentinels: list[tuple[float, float]] = []
    for chunk in raw.split(';'):
        parts = chunk.split(',')
        if len(parts) != 2:
            continue
        try:
            sentinels.append((float(parts[0]), float(parts[1])))
        except ValueError:
            continue
    return sentinels


# Shared card (target) updated when no card id arrives with an event.
YOTO_CARD_ID: str = os.environ.get('YOTO_CARD_ID', '')
YOTO_API_BASE_URL: str = os.environ.get('YOTO_API_BASE_URL', 'https://api.yotoplay.com')
YOTO_ACCESS_TOKEN: str = os.environ.get('YOTO_ACCESS_TOKEN', '')

EBIRD_API_KEY: str = os.environ.get('EBIRD_API_KEY', '')
EBIRD_API_BASE_URL: str = os.environ.get('EBIRD_API_BASE_URL', 'https://api.ebird.org/v2')

IPGEO_BASE_URL: str = os.environ.get('IPGEO_BASE_URL', 'http://ip-api.com/json')

# Public URL of this service, embedded in the stream links published to the card.
BASE_URL: str = os.environ.get('BASE_URL', 'http://localhost:8080').rstrip('/')
ASSETS_BASE_URL: str = os.environ.get('ASSETS_BASE_URL', BASE_URL + '/audio').rstrip('/')

SCHEDULER_TOKEN: str = os.environ.get('SCHEDULER_TOKEN', '')

SESSION_TTL_MINUTES: int = _env_int('SESSION_TTL_MINUTES', 15)
BUCKET_PRECISION: int = _env_int('BUCKET_PRECISION', 1)
REGIONAL_RADIUS_KM: int = _env_int('REGIONAL_RADIUS_KM', 160)
REGIONAL_WINDOW_DAYS: int = _env_int('REGIONAL_WINDOW_DAYS', 30)
HTTP_TIMEOUT_SECONDS: float = _env_float('HTTP_TIMEOUT_SECONDS', 10.0)
SWEEP_INTERVAL_SECONDS: int = _env_int('SWEEP_INTERVAL_SECONDS', 300)
CACHE_UNRESOLVED: bool = _env_bool('CACHE_UNRESOLVED', True)
# Offline polygon lookup for observer timezones; off leaves only the coarse table.
TIMEZONE_POLYGONS: bool = _env_bool('TIMEZONE_POLYGONS', True)
LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'INFO').upper()

GEO_SENTINELS: list[tuple[float, float]] = parse_sentinels(
    os.environ.get('GEO_SENTINELS', '0,0')
)
