"""
Region geometry construction.

Client-supplied coordinate arrays and the configured collection reach both go
through these builders, so every region that reaches Earth Engine has been
range-checked and closed.
"""

import json
from typing import Any, List, Sequence

from river_monitor.exceptions import InvalidGeometry
from river_monitor.models.domain import RegionGeometry
from river_monitor.utils.validation import validate_coordinates


def _to_pair(raw: Any) -> List[float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise InvalidGeometry(f"Each coordinate must be a [lon, lat] pair, got {raw!r}")
    # bool is an int subclass; reject it explicitly
    if isinstance(raw[0], bool) or isinstance(raw[1], bool):
        raise InvalidGeometry(f"Coordinate values must be numeric, got {raw!r}")
    try:
        lon, lat = float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        raise InvalidGeometry(f"Coordinate values must be numeric, got {raw!r}")

    is_valid, error = validate_coordinates(lat, lon)
    if not is_valid:
        raise InvalidGeometry(error)
    return [lon, lat]


def point(lon: float, lat: float) -> RegionGeometry:
    """Build a point region."""
    return RegionGeometry(kind="point", coordinates=[_to_pair([lon, lat])])


def polygon(points: Sequence[Sequence[float]]) -> RegionGeometry:
    """
    Build a closed polygon from an ordered ring of [lon, lat] pairs.

    The ring may be open or already closed. At least three distinct points
    are required.
    """
    if not isinstance(points, (list, tuple)):
        raise InvalidGeometry("Coordinates must be a list of [lon, lat] pairs")

    ring = [_to_pair(raw) for raw in points]
    distinct = {tuple(pair) for pair in ring}
    if len(distinct) < 3:
        raise InvalidGeometry(
            f"A polygon needs at least 3 distinct points, got {len(distinct)}"
        )

    if ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return RegionGeometry(kind="polygon", coordinates=ring)


def parse_polygon_json(coordinates: str) -> RegionGeometry:
    """Parse the ``coordinates`` query parameter (a JSON ring) into a polygon."""
    try:
        points = json.loads(coordinates)
    except (TypeError, json.JSONDecodeError) as e:
        raise InvalidGeometry(
            f"Invalid coordinates format. Must be valid JSON array: {str(e)}"
        )
    # Accept the GeoJSON-style nesting [[[lon, lat], ...]] as well
    if (
        isinstance(points, list)
        and len(points) == 1
        and isinstance(points[0], list)
        and points[0]
        and isinstance(points[0][0], list)
    ):
        points = points[0]
    return polygon(points)
