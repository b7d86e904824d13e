"""Timezone tables.

Two degraded lookups used when nothing better is available:

* :func:`timezone_for_coordinates` maps coordinates to an IANA zone through a
  small table of latitude/longitude boxes.
* :func:`location_for_timezone` maps a device's timezone setting to a
  representative city for that zone.

Neither table invents a place for input it does not recognise; both return
``None`` so callers can treat the observer as unresolved.
"""

from __future__ import annotations

import re

from ..models import Location, LocationSource

# (lat_min, lat_max, lon_min, lon_max, zone), checked in order; first match wins.
_COORDINATE_RULES: list[tuple[float, float, float, float, str]] = [
    # Alaska and Hawaii, ahead of the wider North American boxes.
    (51.0, 72.0, -170.0, -130.0, 'America/Anchorage'),
    (18.0, 23.0, -161.0, -154.0, 'Pacific/Honolulu'),
    # Contiguous United States.
    (31.0, 37.0, -114.0, -109.0, 'America/Phoenix'),
    (24.0, 50.0, -125.0, -114.0, 'America/Los_Angeles'),
    (24.0, 50.0, -114.0, -102.0, 'America/Denver'),
    (24.0, 50.0, -102.0, -87.0, 'America/Chicago'),
    (24.0, 50.0, -87.0, -66.0, 'America/New_York'),
    # Canada.
    (41.0, 84.0, -141.0, -123.0, 'America/Vancouver'),
    (41.0, 84.0, -123.0, -110.0, 'America/Edmonton'),
    (41.0, 84.0, -110.0, -90.0, 'America/Winnipeg'),
    (41.0, 84.0, -90.0, -74.0, 'America/Toronto'),
    (41.0, 84.0, -74.0, -52.0, 'America/Halifax'),
    # Mexico.
    (14.0, 24.0, -118.0, -86.0, 'America/Mexico_City'),
    # Europe.
    (35.0, 71.0, -10.0, 2.0, 'Europe/London'),
    (35.0, 71.0, 2.0, 15.0, 'Europe/Paris'),
    (35.0, 71.0, 15.0, 25.0, 'Europe/Berlin'),
    (35.0, 71.0, 25.0, 40.0, 'Europe/Athens'),
    # Asia.
    (-10.0, 55.0, 60.0, 85.0, 'Asia/Dubai'),
    (-10.0, 55.0, 85.0, 97.0, 'Asia/Kolkata'),
    (-10.0, 55.0, 97.0, 110.0, 'Asia/Bangkok'),
    (-10.0, 55.0, 110.0, 130.0, 'Asia/Shanghai'),
    (-10.0, 55.0, 130.0, 145.0, 'Asia/Tokyo'),
    # Australia and New Zealand.
    (-45.0, -10.0, 110.0, 130.0, 'Australia/Perth'),
    (-45.0, -10.0, 130.0, 145.0, 'Australia/Adelaide'),
    (-45.0, -10.0, 145.0, 155.0, 'Australia/Sydney'),
    (-48.0, -34.0, 166.0, 179.0, 'Pacific/Auckland'),
    # South America.
    (-55.0, 15.0, -82.0, -70.0, 'America/Lima'),
    (-55.0, 15.0, -70.0, -50.0, 'America/Santiago'),
    (-55.0, 15.0, -50.0, -35.0, 'America/Sao_Paulo'),
    # Africa.
    (-35.0, 37.0, -20.0, 0.0, 'Africa/Casablanca'),
    (-35.0, 37.0, 0.0, 20.0, 'Africa/Lagos'),
    (-35.0, 37.0, 20.0, 40.0, 'Africa/Cairo'),
    (-35.0, 37.0, 40.0, 50.0, 'Africa/Nairobi'),
]


def timezone_for_coordinates(latitude: float, longitude: float) -> str | None:
    """Return the IANA zone of the first matching box, or None."""
    for lat_min, lat_max, lon_min, lon_max, zone in _COORDINATE_RULES:
        if lat_min <= latitude <= lat_max and lon_min <= longitude <= lon_max:
            return zone
    return None


# ---------------------------------------------------------------------------
# Timezone -> representative city
# ---------------------------------------------------------------------------

# zone: (lat, lon, city, region, country)
_REPRESENTATIVE_CITIES: dict[str, tuple[float, float, str, str, str]] = {
    'America/New_York': (40.7128, -74.0060, 'New York', 'New York', 'United States'),
    'America/Chicago': (41.8781, -87.6298, 'Chicago', 'Illinois', 'United States'),
    'America/Denver': (39.7392, -104.9903, 'Denver', 'Colorado', 'United States'),
    'America/Los_Angeles': (34.0522, -118.2437, 'Los Angeles', 'California', 'United States'),
    'America/Phoenix': (33.4484, -112.0740, 'Phoenix', 'Arizona', 'United States'),
    'America/Anchorage': (61.2181, -149.9003, 'Anchorage', 'Alaska', 'United States'),
    'Pacific/Honolulu': (21.3099, -157.8581, 'Honolulu', 'Hawaii', 'United States'),
    'America/Toronto': (43.6532, -79.3832, 'Toronto', 'Ontario', 'Canada'),
    'America/Vancouver': (49.2827, -123.1207, 'Vancouver', 'British Columbia', 'Canada'),
    'America/Halifax': (44.6488, -63.5752, 'Halifax', 'Nova Scotia', 'Canada'),
    'Europe/London': (51.5074, -0.1278, 'London', 'England', 'United Kingdom'),
    'Europe/Paris': (48.8566, 2.3522, 'Paris', 'Île-de-France', 'France'),
    'Europe/Berlin': (52.5200, 13.4050, 'Berlin', 'Berlin', 'Germany'),
    'Europe/Madrid': (40.4168, -3.7038, 'Madrid', 'Madrid', 'Spain'),
    'Europe/Rome': (41.9028, 12.4964, 'Rome', 'Lazio', 'Italy'),
    'Europe/Amsterdam': (52.3676, 4.9041, 'Amsterdam', 'North Holland', 'Netherlands'),
    'Europe/Stockholm': (59.3293, 18.0686, 'Stockholm', 'Stockholm', 'Sweden'),
    'Australia/Sydney': (-33.8688, 151.2093, 'Sydney', 'New South Wales', 'Australia'),
    'Australia/Melbourne': (-37.8136, 144.9631, 'Melbourne', 'Victoria', 'Australia'),
    'Australia/Brisbane': (-27.4698, 153.0251, 'Brisbane', 'Queensland', 'Australia'),
    'Australia/Perth': (-31.9505, 115.8605, 'Perth', 'Western Australia', 'Australia'),
    'Asia/Tokyo': (35.6762, 139.6503, 'Tokyo', 'Tokyo', 'Japan'),
    'Asia/Shanghai': (31.2304, 121.4737, 'Shanghai', 'Shanghai', 'China'),
    'Asia/Singapore': (1.3521, 103.8198, 'Singapore', 'Singapore', 'Singapore'),
    'Asia/Dubai': (25.2048, 55.2708, 'Dubai', 'Dubai', 'United Arab Emirates'),
    'Pacific/Auckland': (-36.8485, 174.7633, 'Auckland', 'Auckland', 'New Zealand'),
    'America/Sao_Paulo': (-23.5505, -46.6333, 'São Paulo', 'São Paulo', 'Brazil'),
    'America/Buenos_Aires': (-34.6037, -58.3816, 'Buenos Aires', 'Buenos Aires', 'Argentina'),
    'America/Mexico_City': (19.4326, -99.1332, 'Mexico City', 'Mexico City', 'Mexico'),
}

# Legacy and abbreviated names some devices report.
_ALIASES: dict[str, str] = {
    'US/Eastern': 'America/New_York',
    'US/Central': 'America/Chicago',
    'US/Mountain': 'America/Denver',
    'US/Pacific': 'America/Los_Angeles',
    'US/Arizona': 'America/Phoenix',
    'US/Alaska': 'America/Anchorage',
    'US/Hawaii': 'Pacific/Honolulu',
    'EST': 'America/New_York',
    'EDT': 'America/New_York',
    'CST': 'America/Chicago',
    'CDT': 'America/Chicago',
    'MST': 'America/Denver',
    'MDT': 'America/Denver',
    'PST': 'America/Los_Angeles',
    'PDT': 'America/Los_Angeles',
    'GB': 'Europe/London',
    'Europe/Dublin': 'Europe/London',
    'Europe/Brussels': 'Europe/Paris',
}

# Keyword fallbacks for names like 'Eastern Standard Time'.
_KEYWORDS: list[tuple[str, str]] = [
    ('Eastern', 'America/New_York'),
    ('Central', 'America/Chicago'),
    ('Mountain', 'America/Denver'),
    ('Pacific', 'America/Los_Angeles'),
]

# Whole-hour UTC offsets mapped to a representative zone.
_OFFSETS: dict[int, str] = {
    -10: 'Pacific/Honolulu',
    -9: 'America/Anchorage',
    -8: 'America/Los_Angeles',
    -7: 'America/Denver',
    -6: 'America/Chicago',
    -5: 'America/New_York',
    -4: 'America/Halifax',
    -3: 'America/Sao_Paulo',
    0: 'Europe/London',
    1: 'Europe/Paris',
    4: 'Asia/Dubai',
    8: 'Asia/Shanghai',
    9: 'Asia/Tokyo',
    10: 'Australia/Sydney',
    12: 'Pacific/Auckland',
}

_OFFSET_RE = re.compile(r'^(?:GMT|UTC)\s*([+-])\s*(\d{1,2})(?::?00)?$', re.IGNORECASE)


def canonical_timezone(name: str) -> str | None:
    """Map a device timezone string onto a zone in the representative table."""
    name = name.strip()
    if not name:
        return None
    if name in _REPRESENTATIVE_CITIES:
        return name
    if name in _ALIASES:
        return _ALIASES[name]
    match = _OFFSET_RE.match(name)
    if match:
        hours = int(match.group(2))
        if match.group(1) == '-':
            hours = -hours
        return _OFFSETS.get(hours)
    if name.upper() in ('GMT', 'UTC'):
        return _OFFSETS[0]
    if '/' not in name:
        for keyword, zone in _KEYWORDS:
            if keyword in name:
                return zone
    return None


def location_for_timezone(name: str) -> Location | None:
    """Return the representative city for a device timezone, or None if unknown."""
    zone = canonical_timezone(name)
    if zone is None:
        return None
    lat, lon, city, region, country = _REPRESENTATIVE_CITIES[zone]
    return Location(
        latitude=lat,
        longitude=lon,
        city_name=city,
        region_name=region,
        country_name=country,
        source=LocationSource.DEVICE_TIMEZONE,
        timezone=zone,
    )
