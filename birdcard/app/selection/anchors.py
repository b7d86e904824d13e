"""Fixed rotations used when no location-specific item is available."""

from __future__ import annotations

from ..models import Item, Location, LocationSource

# (lat, lon, city), weighted toward the US, UK, Mexico and Canada.
_ANCHOR_CITIES: list[tuple[float, float, str]] = [
    (40.7128, -74.0060, 'New York'),
    (34.0522, -118.2437, 'Los Angeles'),
    (41.8781, -87.6298, 'Chicago'),
    (29.7604, -95.3698, 'Houston'),
    (33.4484, -112.0740, 'Phoenix'),
    (39.7392, -104.9903, 'Denver'),
    (47.6062, -122.3321, 'Seattle'),
    (25.7617, -80.1918, 'Miami'),
    (42.3601, -71.0589, 'Boston'),
    (37.7749, -122.4194, 'San Francisco'),
    (43.6532, -79.3832, 'Toronto'),
    (45.5017, -73.5673, 'Montreal'),
    (49.2827, -123.1207, 'Vancouver'),
    (51.0447, -114.0719, 'Calgary'),
    (53.5461, -113.4938, 'Edmonton'),
    (45.4215, -75.6972, 'Ottawa'),
    (51.5074, -0.1278, 'London'),
    (53.4808, -2.2426, 'Manchester'),
    (55.9533, -3.1883, 'Edinburgh'),
    (52.4862, -1.8904, 'Birmingham'),
    (51.4545, -2.5879, 'Bristol'),
    (53.8008, -1.5491, 'Leeds'),
    (19.4326, -99.1332, 'Mexico City'),
    (20.6597, -103.3496, 'Guadalajara'),
    (25.6866, -100.3161, 'Monterrey'),
    (21.1619, -86.8515, 'Cancun'),
    (32.5149, -117.0382, 'Tijuana'),
    (31.6904, -106.4245, 'Ciudad Juárez'),
    (-33.8688, 151.2093, 'Sydney'),
    (35.6762, 139.6503, 'Tokyo'),
    (-1.2921, 36.8219, 'Nairobi'),
    (-23.5505, -46.6333, 'São Paulo'),
    (48.8566, 2.3522, 'Paris'),
    (52.5200, 13.4050, 'Berlin'),
    (55.7558, 37.6173, 'Moscow'),
    (19.0760, 72.8777, 'Mumbai'),
    (1.3521, 103.8198, 'Singapore'),
    (-34.6037, -58.3816, 'Buenos Aires'),
]

ANCHOR_LOCATIONS: list[Location] = [
    Location(
        latitude=lat,
        longitude=lon,
        city_name=city,
        source=LocationSource.GLOBAL_FALLBACK,
    )
    for lat, lon, city in _ANCHOR_CITIES
]

# Widespread birds used when even the anchor search comes back empty.
WORLDWIDE_BIRDS: list[Item] = [
    Item.from_name('American Robin', scientific_name='Turdus migratorius'),
    Item.from_name('Northern Cardinal', scientific_name='Cardinalis cardinalis'),
    Item.from_name('Blue Jay', scientific_name='Cyanocitta cristata'),
    Item.from_name('Mourning Dove', scientific_name='Zenaida macroura'),
    Item.from_name('European Robin', scientific_name='Erithacus rubecula'),
    Item.from_name('Great Tit', scientific_name='Parus major'),
    Item.from_name('Common Blackbird', scientific_name='Turdus merula'),
    Item.from_name('House Sparrow', scientific_name='Passer domesticus'),
    Item.from_name('Barn Swallow', scientific_name='Hirundo rustica'),
    Item.from_name('Mallard', scientific_name='Anas platyrhynchos'),
    Item.from_name('Rock Pigeon', scientific_name='Columba livia'),
    Item.from_name('Australian Magpie', scientific_name='Gymnorhina tibicen'),
    Item.from_name('Rainbow Lorikeet', scientific_name='Trichoglossus moluccanus'),
]


def anchor_location(index: int) -> Location:
    """Return the anchor at *index*, wrapping around the rotation."""
    return ANCHOR_LOCATIONS[index % len(ANCHOR_LOCATIONS)]


def worldwide_bird(index: int) -> Item:
    """Return the worldwide fallback bird for *index*."""
    return WORLDWIDE_BIRDS[index % len(WORLDWIDE_BIRDS)]
