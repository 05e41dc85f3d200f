"""Travel session reconciliation: stored route merging, payouts and presentation."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .geometry import build_route_geometry
from .models import TravelPayload, TravelRecord, utcnow
from .vehicles import DEFAULT_PAYOUT_POLICY, PayoutPolicy, compute_payout

logger = logging.getLogger(__name__)

APPEND_ONLY_KEYS = ("stops", "path")


def serialize_route(value: object) -> Optional[str]:
    """Turn a route payload into the text stored on the record.

    Strings are kept verbatim since some clients send polylines or delimited
    coordinate lists rather than JSON.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        logger.warning("Dropping route that cannot be serialized: %s", exc)
        return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def deserialize_route(stored: object) -> Any:
    """Decode stored route text, falling back to the raw string for legacy rows.

    ``NaN`` and ``Infinity`` are not JSON, so such rows stay opaque strings.
    """
    if not isinstance(stored, str):
        return stored
    try:
        return json.loads(stored, parse_constant=_reject_constant)
    except ValueError:
        logger.debug("Stored route is not JSON, keeping it as an opaque string")
        return stored


def merge_route(prior: object, incoming: object) -> Any:
    """Combine an incoming route update with the previously stored route.

    When both sides are objects, ``stops`` and ``path`` lists are appended to
    the prior ones and every other incoming key overwrites. In all other cases
    the incoming value replaces the stored route.
    """
    existing = deserialize_route(prior) if prior else None
    if not isinstance(existing, Mapping) or not isinstance(incoming, Mapping):
        return incoming

    merged: Dict[str, Any] = dict(existing)
    for key in APPEND_ONLY_KEYS:
        additions = incoming.get(key)
        if isinstance(additions, list):
            previous = existing.get(key)
            merged[key] = (list(previous) if isinstance(previous, list) else []) + additions

    for key, value in incoming.items():
        if key not in APPEND_ONLY_KEYS:
            merged[key] = value
    return merged


def new_record(payload: TravelPayload, user_id: str, policy: PayoutPolicy = DEFAULT_PAYOUT_POLICY) -> TravelRecord:
    return TravelRecord(
        user_id=user_id,
        date=payload.date,
        distance_km=payload.distance_km,
        vehicle_type=payload.vehicle_type.value,
        route=serialize_route(payload.route),
        payout=compute_payout(payload.distance_km, payload.vehicle_type, policy),
        started_at=payload.started_at,
        ended_at=payload.ended_at,
        auto_ended=payload.auto_ended,
    )


def apply_update(record: TravelRecord, payload: TravelPayload, policy: PayoutPolicy = DEFAULT_PAYOUT_POLICY) -> TravelRecord:
    """Apply an update payload to ``record`` in place.

    Optional fields are only touched when the client sent them; the route is
    merged with ``merge_route`` rather than overwritten.
    """
    record.date = payload.date
    record.distance_km = payload.distance_km
    record.vehicle_type = payload.vehicle_type.value
    record.payout = compute_payout(payload.distance_km, payload.vehicle_type, policy)

    if payload.supplied("route"):
        record.route = serialize_route(merge_route(record.route, payload.route))
    if payload.supplied("started_at"):
        record.started_at = payload.started_at
    if payload.supplied("ended_at"):
        record.ended_at = payload.ended_at
    if payload.supplied("auto_ended"):
        record.auto_ended = payload.auto_ended

    record.updated_at = utcnow()
    return record


def present_record(record: TravelRecord) -> Dict[str, Any]:
    data = record.model_dump(mode="json")
    route = deserialize_route(record.route)
    data["route"] = route
    data["route_geometry"] = build_route_geometry(route)
    return data


def summarize_records(records: Iterable[TravelRecord], policy: PayoutPolicy = DEFAULT_PAYOUT_POLICY) -> Dict[str, float]:
    summary = {"total_distance": 0.0, "eligible_distance": 0.0, "total_payout": 0.0}
    for record in records:
        distance = record.distance_km or 0.0
        summary["total_distance"] += distance
        if policy.is_eligible(record.vehicle_type):
            summary["eligible_distance"] += distance
        summary["total_payout"] += record.payout or 0.0
    summary["rate_per_km"] = policy.rate_per_km
    return summary
