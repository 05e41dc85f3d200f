"""Data models for travel session requests and stored records."""
from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .geometry import to_number
from .vehicles import VehicleType, normalize_vehicle_type

RecordId = Union[int, str]


def _parse_datetime(value: object) -> Optional[dt.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return dt.datetime.fromisoformat(text)
        except ValueError:
            pass
    raise ValueError("invalid date or time supplied")


def _utc_naive(value: dt.datetime) -> dt.datetime:
    # Naive timestamps are taken to be UTC already.
    if value.tzinfo is None:
        return value
    return value.astimezone(dt.timezone.utc).replace(tzinfo=None)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TravelPayload(BaseModel):
    """Create or update request for a travel session."""

    date: dt.date
    distance_km: float
    vehicle_type: VehicleType
    route: Any = None
    started_at: Optional[dt.datetime] = None
    ended_at: Optional[dt.datetime] = None
    auto_ended: bool = False
    id: Optional[RecordId] = None
    record_id: Optional[RecordId] = None
    travel_id: Optional[RecordId] = None

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, value: object) -> dt.date:
        parsed = _parse_datetime(value)
        if parsed is None:
            raise ValueError("date is required")
        return parsed.date()

    @field_validator("distance_km", mode="before")
    @classmethod
    def validate_distance(cls, value: object) -> float:
        distance = to_number(value)
        if distance is None or distance < 0:
            raise ValueError("Distance must be a non-negative number")
        return distance

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def validate_vehicle_type(cls, value: object) -> VehicleType:
        normalized = normalize_vehicle_type(value)
        try:
            return VehicleType(normalized)
        except ValueError:
            raise ValueError("Invalid vehicle type provided") from None

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def validate_timestamp(cls, value: object) -> Optional[dt.datetime]:
        return _parse_datetime(value)

    @field_validator("auto_ended", mode="before")
    @classmethod
    def validate_auto_ended(cls, value: object) -> bool:
        return bool(value)

    @model_validator(mode="after")
    def validate_time_window(self) -> "TravelPayload":
        if self.started_at and self.ended_at and _utc_naive(self.ended_at) < _utc_naive(self.started_at):
            raise ValueError("End time cannot be before start time")
        return self

    def target_id(self) -> Optional[str]:
        """Return the id of the record to update, if any was given.

        The first non-null of ``id``, ``record_id`` and ``travel_id`` decides;
        a falsy value there (``0``, ``""``) means create.
        """
        candidate = next((value for value in (self.id, self.record_id, self.travel_id) if value is not None), None)
        return str(candidate) if candidate else None

    def supplied(self, field_name: str) -> bool:
        return field_name in self.model_fields_set


class MonthlyQuery(BaseModel):
    """Query parameters for the monthly travel report."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1)
    user_id: Optional[str] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def validate_user_id(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class TravelRecord(BaseModel):
    """A persisted travel session. ``route`` holds the serialized route text."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    date: dt.date
    distance_km: float
    vehicle_type: str
    route: Optional[str] = None
    payout: float = 0.0
    started_at: Optional[dt.datetime] = None
    ended_at: Optional[dt.datetime] = None
    auto_ended: bool = False
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)
