"""Format-agnostic extraction of a canonical path from travel route payloads."""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, List, Mapping, Optional, Sequence

from .polyline import decode_polyline

logger = logging.getLogger(__name__)

LatLng = Dict[str, float]
Path = List[LatLng]

MAX_DEPTH = 6

LAT_KEYS = ("lat", "latitude", "Latitude", "latDeg")
LNG_KEYS = ("lng", "lon", "longitude", "Longitude", "lngDeg")

# Single points or wrappers around one; checked before the path containers.
NESTED_KEYS = (
    "location",
    "position",
    "geometry",
    "start_location",
    "end_location",
    "startLocation",
    "endLocation",
    "origin",
    "destination",
    "startPoint",
    "endPoint",
    "routeGeometry",
)

PATH_KEYS = (
    "path",
    "paths",
    "points",
    "coordinates",
    "polyline",
    "overview_path",
    "overviewPath",
    "polylinePoints",
    "routes",
    "legs",
    "steps",
    "segments",
    "line",
)

_POLYLINE_SHAPE = re.compile(r"^[A-Za-z0-9_.~:-]+$")
_HAS_LETTER = re.compile(r"[A-Za-z]")
_SEPARATORS = re.compile(r"[|;\n]")
_NUMERIC_PREFIX = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def to_number(value: object) -> Optional[float]:
    """Coerce ``value`` into a finite float, or ``None`` when it is not numeric.

    Strings are read up to the end of their leading numeric prefix, so
    ``"12.5km"`` gives ``12.5``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value.lstrip())
        if not match:
            return None
        try:
            number = float(match.group(0))
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _first_number(value: Mapping[str, object], keys: Sequence[str]) -> Optional[float]:
    for key in keys:
        number = to_number(value.get(key))
        if number is not None:
            return number
    return None


def to_lat_lng(value: object) -> Optional[LatLng]:
    if not isinstance(value, Mapping):
        return None
    lat = _first_number(value, LAT_KEYS)
    lng = _first_number(value, LNG_KEYS)
    if lat is None or lng is None:
        return None
    return {"lat": lat, "lng": lng}


def extract_path_from_string(value: object) -> Path:
    """Read a path from an encoded polyline or a ``lat,lng|lat,lng`` string.

    The polyline check is purely shape-based: any string made only of polyline
    alphabet characters with at least one letter is decoded as a polyline.
    """
    if value is None:
        return []
    trimmed = str(value).strip()
    if not trimmed:
        return []

    if _POLYLINE_SHAPE.match(trimmed) and _HAS_LETTER.search(trimmed):
        return decode_polyline(trimmed)

    coordinates: Path = []
    for segment in _SEPARATORS.split(trimmed):
        tokens = [token.strip() for token in segment.split(",")]
        lat = to_number(tokens[0])
        lng = to_number(tokens[1]) if len(tokens) > 1 else None
        if lat is not None and lng is not None:
            coordinates.append({"lat": lat, "lng": lng})
    return coordinates


def _extract_from_keys(candidate: Mapping[str, object], keys: Sequence[str], depth: int) -> Path:
    for key in keys:
        nested_value = candidate.get(key)
        if not nested_value:
            continue
        nested = extract_path_recursively(nested_value, depth + 1)
        if nested:
            return nested
    return []


def extract_path_recursively(value: object, depth: int = 0) -> Path:
    """Search an arbitrary JSON-like tree for a coordinate path.

    Lists of exactly two numbers are read as ``[lat, lng]`` pairs, other lists
    are flattened in order, strings go through ``extract_path_from_string`` and
    mappings are tried as a point, then through ``NESTED_KEYS`` and finally
    ``PATH_KEYS``; the first key that yields a non-empty path wins. Anything
    deeper than ``MAX_DEPTH`` levels is ignored.
    """
    if not value or depth > MAX_DEPTH:
        return []

    if isinstance(value, (list, tuple)):
        if len(value) == 2:
            lat = to_number(value[0])
            lng = to_number(value[1])
            if lat is not None and lng is not None:
                return [{"lat": lat, "lng": lng}]
        path: Path = []
        for item in value:
            path.extend(extract_path_recursively(item, depth + 1))
        return path

    if isinstance(value, str):
        return extract_path_from_string(value)

    if not isinstance(value, Mapping):
        return []

    point = to_lat_lng(value)
    if point:
        return [point]

    nested = _extract_from_keys(value, NESTED_KEYS, depth)
    if nested:
        return nested
    return _extract_from_keys(value, PATH_KEYS, depth)


def compute_bounds(path: Sequence[LatLng]) -> Optional[Dict[str, float]]:
    if not path:
        return None
    north = south = path[0]["lat"]
    east = west = path[0]["lng"]
    for point in path:
        north = max(north, point["lat"])
        south = min(south, point["lat"])
        east = max(east, point["lng"])
        west = min(west, point["lng"])
    return {"north": north, "south": south, "east": east, "west": west}


def _geometry(path: Path, start: Optional[LatLng] = None, end: Optional[LatLng] = None) -> Dict[str, object]:
    return {
        "path": path,
        "bounds": compute_bounds(path),
        "start": start or path[0],
        "end": end or path[-1],
    }


def build_route_geometry(route: object) -> Optional[Dict[str, object]]:
    """Reduce a route payload of unknown shape to ``{path, bounds, start, end}``.

    A mapping that already carries a ``path`` list is trusted first, with its
    ``start``/``end`` entries used as overrides. Everything else goes through
    the recursive extractor. Returns ``None`` when no coordinates are found.
    """
    if not route:
        return None

    if isinstance(route, Mapping) and isinstance(route.get("path"), (list, tuple)):
        path = [point for point in (to_lat_lng(item) for item in route["path"]) if point]
        if path:
            return _geometry(path, to_lat_lng(route.get("start")), to_lat_lng(route.get("end")))

    path = extract_path_recursively(route)
    if not path:
        logger.debug("No coordinates found in route payload of type %s", type(route).__name__)
        return None
    return _geometry(path)
