"""
core/geo.py -- Bounding box resolution for spatial "within region" queries.

Coordinates come in as (lat, lng) because that is how clients write them
("61.497,23.771"). Rings go out as (lng, lat) pairs because that is the
GeoJSON axis order spatial predicates expect.

Known limitations, both deliberate:
  - Corners are passed through as given, so swapped corners produce the
    same rectangle traversed in the other direction. envelope() and the
    even-odd contains() test ignore orientation, so the query result is
    unchanged.
  - No antimeridian support. A box crossing +/-180 longitude resolves to
    the wrong (complementary) region.

Layer rule: core/ is the kernel. No imports from api/, auth/, or resources/.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from core.errors import ValidationError

Ring = tuple[tuple[float, float], ...]


class Coordinate(NamedTuple):
    lat: float
    lng: float


def validate_coordinate(lat: float, lng: float, field: str = "location") -> Coordinate:
    """Return a Coordinate or raise ValidationError for non-finite or out-of-range values."""
    messages: list[str] = []
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise ValidationError([f"Invalid coordinate: {field}"]) from None
    if not math.isfinite(lat_f) or not -90.0 <= lat_f <= 90.0:
        messages.append(f"Latitude must be between -90 and 90: {field}")
    if not math.isfinite(lng_f) or not -180.0 <= lng_f <= 180.0:
        messages.append(f"Longitude must be between -180 and 180: {field}")
    if messages:
        raise ValidationError(messages)
    return Coordinate(lat=lat_f, lng=lng_f)


def parse_corner(raw: str, field: str = "corner") -> Coordinate:
    """Parse a "lat,lng" query string value into a validated Coordinate."""
    parts = (raw or "").split(",")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise ValidationError([f"Expected 'lat,lng': {field}"])
    return validate_coordinate(parts[0].strip(), parts[1].strip(), field)


def resolve(top_right: Coordinate, bottom_left: Coordinate) -> Ring:
    """Return the closed 5-point (lng, lat) ring spanning the two corners.

    Order: bottom-left, bottom-right, top-right, top-left, bottom-left.
    """
    tr = validate_coordinate(top_right[0], top_right[1], "topRight")
    bl = validate_coordinate(bottom_left[0], bottom_left[1], "bottomLeft")
    return (
        (bl.lng, bl.lat),
        (tr.lng, bl.lat),
        (tr.lng, tr.lat),
        (bl.lng, tr.lat),
        (bl.lng, bl.lat),
    )


def as_geojson(ring: Ring) -> dict:
    """GeoJSON Polygon geometry for a single closed ring."""
    return {"type": "Polygon", "coordinates": [[list(point) for point in ring]]}


def envelope(ring: Ring) -> tuple[float, float, float, float]:
    """Return (min_lng, min_lat, max_lng, max_lat) of the ring's vertices."""
    lngs = [p[0] for p in ring]
    lats = [p[1] for p in ring]
    return min(lngs), min(lats), max(lngs), max(lats)


def contains(ring: Ring, lng: float, lat: float) -> bool:
    """Even-odd ray casting point-in-polygon test.

    Points exactly on an edge may fall either way; callers only rely on
    strictly inside / strictly outside.
    """
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > lat) != (yj > lat):
            x_cross = xi + (lat - yi) * (xj - xi) / (yj - yi)
            if lng < x_cross:
                inside = not inside
        j = i
    return inside
