"""Encoded polyline decoding that tolerates truncated input."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

PRECISION = 1e5


def _read_delta(encoded: str, index: int) -> Tuple[Optional[int], int]:
    """Read one zig-zag encoded value starting at ``index``.

    Values are accumulated as signed 32-bit integers, so runaway continuation
    runs wrap instead of growing without bound. Returns ``(None, index)`` when
    the string ends before the group is complete.
    """
    result = 0
    shift = 0
    length = len(encoded)
    while True:
        if index >= length:
            return None, index
        chunk = ord(encoded[index]) - 63
        index += 1
        result = (result | ((chunk & 0x1F) << (shift % 32))) & 0xFFFFFFFF
        shift += 5
        if chunk < 0x20:
            break
    if result & 0x80000000:
        result -= 1 << 32
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode_polyline(encoded: object) -> List[Dict[str, float]]:
    """Decode an encoded polyline into ``[{"lat", "lng"}, ...]``.

    Only complete lat/lng pairs are returned; a dangling group at the end of
    the string is dropped.
    """
    if not encoded or not isinstance(encoded, str):
        return []

    coordinates: List[Dict[str, float]] = []
    index = 0
    lat = 0
    lng = 0
    while index < len(encoded):
        delta_lat, index = _read_delta(encoded, index)
        if delta_lat is None:
            break
        delta_lng, index = _read_delta(encoded, index)
        if delta_lng is None:
            break
        lat += delta_lat
        lng += delta_lng
        coordinates.append({"lat": lat / PRECISION, "lng": lng / PRECISION})
    return coordinates
