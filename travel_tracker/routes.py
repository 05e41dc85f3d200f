"""REST API blueprint for travel sessions."""
from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from .geometry import build_route_geometry
from .models import MonthlyQuery, TravelPayload
from .sessions import apply_update, new_record, present_record, summarize_records
from .storage import TravelRecordNotFound, travel_store
from .vehicles import PayoutPolicy

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _error(message: str, code: str, status: HTTPStatus, details: Optional[object] = None):
    body: Dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def _validation_error(exc: ValidationError):
    details = exc.errors(include_url=False, include_context=False, include_input=False)
    return _error("validation failed", "VALIDATION_ERROR", HTTPStatus.BAD_REQUEST, details)


def _current_user_id() -> Optional[str]:
    header = current_app.config.get("TRAVEL_USER_HEADER", "X-User-Id")
    user_id = (request.headers.get(header) or "").strip()
    return user_id or None


def _payout_policy() -> PayoutPolicy:
    return PayoutPolicy(rate_per_km=float(current_app.config.get("TRAVEL_RATE_PER_KM", 3.0)))


@api_bp.post("/travel")
def create_or_update_travel():
    user_id = _current_user_id()
    if not user_id:
        return _error("Unauthorised. Please sign in again.", "UNAUTHORIZED", HTTPStatus.UNAUTHORIZED)

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _error("invalid or missing JSON", "VALIDATION_ERROR", HTTPStatus.BAD_REQUEST)
    try:
        travel = TravelPayload.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)

    policy = _payout_policy()
    record_id = travel.target_id()
    if record_id:
        try:
            record = travel_store.update(record_id, user_id, lambda current: apply_update(current, travel, policy))
        except TravelRecordNotFound:
            return _error("Travel record not found for this user", "TRAVEL_RECORD_NOT_FOUND", HTTPStatus.NOT_FOUND)
        logger.info("Updated travel record %s for user %s", record.id, user_id)
        return jsonify({"message": "Travel record updated successfully", "data": present_record(record)}), HTTPStatus.OK

    record = travel_store.create(new_record(travel, user_id, policy))
    logger.info("Created travel record %s for user %s", record.id, user_id)
    return jsonify({"message": "Travel record added successfully", "data": present_record(record)}), HTTPStatus.CREATED


@api_bp.get("/travel")
def list_travels():
    records = travel_store.list()
    return jsonify({"data": [present_record(record) for record in records]})


@api_bp.get("/travel/monthly")
def monthly_travels():
    if not request.args.get("month") or not request.args.get("year"):
        return _error("Please provide month and year", "VALIDATION_ERROR", HTTPStatus.BAD_REQUEST)
    try:
        query = MonthlyQuery.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return _validation_error(exc)

    records = travel_store.list(user_id=query.user_id, month=query.month, year=query.year)
    return jsonify(
        {
            "data": {
                "records": [present_record(record) for record in records],
                "summary": summarize_records(records, _payout_policy()),
            }
        }
    )


@api_bp.get("/travel/executives")
def executives():
    return jsonify({"data": travel_store.executives()})


@api_bp.get("/travel/users/<user_id>")
def user_travel_history(user_id: str):
    records = travel_store.list(user_id=user_id.strip())
    return jsonify({"data": [present_record(record) for record in records]})


@api_bp.post("/travel/geometry")
def preview_geometry():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or "route" not in payload:
        return _error("route is required", "VALIDATION_ERROR", HTTPStatus.BAD_REQUEST)
    return jsonify({"route_geometry": build_route_geometry(payload["route"])})
