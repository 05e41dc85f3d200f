import json

import pytest

from travel_tracker.models import TravelPayload
from travel_tracker.sessions import (
    apply_update,
    deserialize_route,
    merge_route,
    new_record,
    present_record,
    serialize_route,
    summarize_records,
)
from travel_tracker.vehicles import PayoutPolicy

STOP_A = {"name": "Client A", "lat": 12.9, "lng": 77.5}
STOP_B = {"name": "Client B", "lat": 13.0, "lng": 77.6}
POINT_1 = {"lat": 12.9, "lng": 77.5}
POINT_2 = {"lat": 13.0, "lng": 77.6}


def _payload(**overrides):
    data = {"date": "2024-05-14", "distance_km": 40, "vehicle_type": "own vehicle"}
    data.update(overrides)
    return TravelPayload.model_validate(data)


def test_merge_appends_stops_and_path():
    prior = json.dumps({"stops": [STOP_A], "path": [POINT_1]})

    merged = merge_route(prior, {"stops": [STOP_B], "path": [POINT_2]})

    assert merged == {"stops": [STOP_A, STOP_B], "path": [POINT_1, POINT_2]}


def test_merge_with_empty_update_keeps_prior_lists():
    prior = {"stops": [STOP_A], "path": [POINT_1], "mode": "bike"}

    assert merge_route(prior, {}) == prior


def test_merge_overwrites_other_keys_and_keeps_absent_ones():
    prior = {"path": [POINT_1], "status": "started", "provider": "gps"}

    merged = merge_route(prior, {"status": "ended", "end": POINT_2, "note": None})

    assert merged == {"path": [POINT_1], "status": "ended", "provider": "gps", "end": POINT_2, "note": None}


def test_merge_starts_missing_lists_and_ignores_non_list_values():
    merged = merge_route({"path": "not a list"}, {"stops": [STOP_A], "path": "_ibE_ibE"})

    assert merged == {"path": "not a list", "stops": [STOP_A]}


def test_merge_does_not_mutate_prior():
    prior = {"stops": [STOP_A]}

    merge_route(prior, {"stops": [STOP_B]})

    assert prior == {"stops": [STOP_A]}


@pytest.mark.parametrize("prior", [None, "", "_p~iF~ps|U", "[1, 2]", json.dumps([POINT_1])])
def test_incoming_replaces_when_prior_is_not_an_object(prior):
    incoming = {"stops": [STOP_B]}

    assert merge_route(prior, incoming) == incoming


def test_incoming_non_object_replaces_prior():
    prior = json.dumps({"stops": [STOP_A]})

    assert merge_route(prior, "38.5,-120.2|40.7,-120.95") == "38.5,-120.2|40.7,-120.95"
    assert merge_route(prior, [POINT_2]) == [POINT_2]
    assert merge_route(prior, None) is None


def test_serialize_route():
    assert serialize_route(None) is None
    assert serialize_route("") is None
    assert serialize_route("_ibE_ibE") == "_ibE_ibE"
    assert json.loads(serialize_route({"path": [POINT_1]})) == {"path": [POINT_1]}
    assert serialize_route({"bad": object()}) is None


def test_deserialize_route_falls_back_to_raw_string():
    assert deserialize_route('{"path": []}') == {"path": []}
    assert deserialize_route("38.5,-120.2|40.7,-120.95") == "38.5,-120.2|40.7,-120.95"
    assert deserialize_route(None) is None
    assert deserialize_route({"path": []}) == {"path": []}


@pytest.mark.parametrize("stored", ["NaN", "Infinity", "-Infinity", '{"path": [NaN]}'])
def test_deserialize_route_keeps_non_standard_constants_as_strings(stored):
    assert deserialize_route(stored) == stored


def test_present_record_never_emits_nan_for_legacy_constant_route():
    record = new_record(_payload(route="NaN"), "exec-1")

    data = present_record(record)

    assert data["route"] == "NaN"
    assert "NaN" not in json.dumps(data["route_geometry"])


@pytest.mark.parametrize(
    "ids, expected",
    [
        ({}, None),
        ({"id": 7}, "7"),
        ({"record_id": "abc", "travel_id": "xyz"}, "abc"),
        ({"id": 0, "record_id": "abc"}, None),
        ({"id": "", "record_id": "abc"}, None),
        ({"id": None, "travel_id": "xyz"}, "xyz"),
    ],
)
def test_target_id_uses_first_non_null_candidate(ids, expected):
    assert _payload(**ids).target_id() == expected


def test_new_record_computes_payout_and_serializes_route():
    record = new_record(_payload(route={"stops": [STOP_A], "path": [POINT_1]}), "exec-1")

    assert record.user_id == "exec-1"
    assert record.vehicle_type == "OWN_VEHICLE"
    assert record.payout == 120.0
    assert json.loads(record.route) == {"stops": [STOP_A], "path": [POINT_1]}


def test_new_record_with_policy_and_ineligible_vehicle():
    assert new_record(_payload(), "exec-1", PayoutPolicy(rate_per_km=2.5)).payout == 100.0
    assert new_record(_payload(vehicle_type="company"), "exec-1").payout == 0.0


def test_apply_update_merges_route_and_recomputes_payout():
    record = new_record(_payload(route={"stops": [STOP_A], "path": [POINT_1]}), "exec-1")

    apply_update(record, _payload(distance_km="55.5", vehicle_type="colleague", route={"stops": [STOP_B], "path": [POINT_2]}))

    assert record.distance_km == 55.5
    assert record.vehicle_type == "COLLEAGUE"
    assert record.payout == 0.0
    assert json.loads(record.route) == {"stops": [STOP_A, STOP_B], "path": [POINT_1, POINT_2]}


def test_apply_update_leaves_unsupplied_fields_untouched():
    record = new_record(
        _payload(route="38.5,-120.2", started_at="2024-05-14T09:00:00Z", auto_ended=True),
        "exec-1",
    )

    apply_update(record, _payload(ended_at="2024-05-14T18:30:00Z"))

    assert record.route == "38.5,-120.2"
    assert record.started_at.hour == 9
    assert record.ended_at.hour == 18
    assert record.auto_ended is True


def test_apply_update_with_null_route_clears_it():
    record = new_record(_payload(route={"path": [POINT_1]}), "exec-1")

    apply_update(record, _payload(route=None))

    assert record.route is None


def test_present_record_attaches_geometry():
    record = new_record(_payload(route={"path": [POINT_1, POINT_2], "stops": [STOP_A]}), "exec-1")

    data = present_record(record)

    assert data["route"]["stops"] == [STOP_A]
    assert data["date"] == "2024-05-14"
    assert data["route_geometry"]["start"] == POINT_1
    assert data["route_geometry"]["end"] == POINT_2
    assert data["route_geometry"]["bounds"] == {"north": 13.0, "south": 12.9, "east": 77.6, "west": 77.5}


def test_present_record_keeps_legacy_string_route():
    record = new_record(_payload(route="38.5,-120.2|40.7,-120.95"), "exec-1")

    data = present_record(record)

    assert data["route"] == "38.5,-120.2|40.7,-120.95"
    assert len(data["route_geometry"]["path"]) == 2


def test_present_record_without_route():
    data = present_record(new_record(_payload(), "exec-1"))

    assert data["route"] is None
    assert data["route_geometry"] is None


def test_summarize_records():
    records = [
        new_record(_payload(distance_km=10), "exec-1"),
        new_record(_payload(distance_km=5, vehicle_type="company"), "exec-1"),
    ]

    summary = summarize_records(records)

    assert summary == {
        "total_distance": 15.0,
        "eligible_distance": 10.0,
        "total_payout": 30.0,
        "rate_per_km": 3.0,
    }
