"""Vehicle type normalization and the per-kilometre payout rule."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class VehicleType(str, Enum):
    OWN_VEHICLE = "OWN_VEHICLE"
    COLLEAGUE = "COLLEAGUE"
    COMPANY_VEHICLE = "COMPANY_VEHICLE"


# Spaced entries can never match after formatting; kept so the table mirrors
# the values clients were told to send.
VEHICLE_TYPE_ALIASES: Dict[VehicleType, Tuple[str, ...]] = {
    VehicleType.OWN_VEHICLE: ("OWN", "OWN_VEHICLE", "OWN-VEHICLE", "OWN VEHICLE", "BIKE", "CAR", "BUS", "OTHER"),
    VehicleType.COLLEAGUE: ("COLLEAGUE", "WITH_COLLEAGUE", "COLLEAGUE_VEHICLE"),
    VehicleType.COMPANY_VEHICLE: ("COMPANY", "COMPANY_VEHICLE", "COMPANY-VEHICLE", "COMPANY VEHICLE"),
}

_WHITESPACE = re.compile(r"\s+")


def normalize_vehicle_type(raw: object) -> Optional[str]:
    """Map free text such as ``"own vehicle"`` or ``"Car"`` onto a canonical value.

    Unknown values come back formatted but unmapped so the caller can reject
    them; empty input gives ``None``.
    """
    if not raw:
        return None
    formatted = _WHITESPACE.sub("_", str(raw).strip().upper())
    for vehicle_type, aliases in VEHICLE_TYPE_ALIASES.items():
        if formatted in aliases:
            return vehicle_type.value
    return formatted


@dataclass(frozen=True)
class PayoutPolicy:
    """Reimbursement settings for travel sessions."""

    rate_per_km: float = 3.0
    eligible_vehicle_type: VehicleType = VehicleType.OWN_VEHICLE

    def is_eligible(self, vehicle_type: Union[VehicleType, str, None]) -> bool:
        return vehicle_type == self.eligible_vehicle_type


DEFAULT_PAYOUT_POLICY = PayoutPolicy()


def compute_payout(
    distance_km: float,
    vehicle_type: Union[VehicleType, str, None],
    policy: PayoutPolicy = DEFAULT_PAYOUT_POLICY,
) -> float:
    if not policy.is_eligible(vehicle_type):
        return 0.0
    return float(distance_km) * policy.rate_per_km
