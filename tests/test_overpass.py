"""
Unit tests for the Overpass query client.
All HTTP calls are mocked — no network access required.
"""

import json
import sys
import pytest
from unittest.mock import MagicMock
from pathlib import Path

import requests

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.data.schema import Coordinate, FountainCategory
from src.fountains.errors import EmptyResponseError, NetworkError, ParseError
from src.fountains.overpass import (
    OverpassClient, OverpassTags, build_overpass_query, extract_description,
    parse_overpass_response,
)


CENTER = Coordinate(latitude=40.7128, longitude=-74.0060)


def _body(elements):
    return json.dumps({"version": 0.6, "elements": elements}).encode("utf-8")


def _client_returning(content: bytes, status_error=None):
    session = MagicMock()
    mock_resp = MagicMock()
    mock_resp.content = content
    mock_resp.raise_for_status = MagicMock(side_effect=status_error)
    session.post.return_value = mock_resp
    return OverpassClient(url="https://overpass.test/api/interpreter", session=session), session


class TestQuery:
    def test_query_selects_all_water_tags(self):
        query = build_overpass_query(40.7128, -74.006, 5000)
        assert query.startswith("[out:json][timeout:25];")
        assert 'node["amenity"="drinking_water"](around:5000,40.7128,-74.006);' in query
        assert 'node["amenity"="water_point"]' in query
        assert 'node["drinking_water"="yes"]' in query
        assert query.endswith("out body;")

    def test_fetch_posts_query_once(self):
        client, session = _client_returning(_body([]))
        client.fetch(CENTER, 1500)

        assert session.post.call_count == 1
        args, kwargs = session.post.call_args
        assert args[0] == "https://overpass.test/api/interpreter"
        assert "(around:1500," in kwargs["data"]["data"]
        assert kwargs["timeout"] is None

    def test_fetch_rejects_non_positive_radius(self):
        client, session = _client_returning(_body([]))
        with pytest.raises(ValueError, match="radius_m"):
            client.fetch(CENTER, 0)
        session.post.assert_not_called()


class TestParsing:
    def test_element_with_coordinates_yields_one_record(self):
        records = parse_overpass_response(_body([{
            "type": "node", "id": 123456789, "lat": 40.7128, "lon": -74.0060,
            "tags": {"amenity": "drinking_water", "name": "Central Park Fountain"},
        }]))

        assert len(records) == 1
        record = records[0]
        assert record.id == "123456789"
        assert record.latitude == 40.7128
        assert record.longitude == -74.0060
        assert record.name == "Central Park Fountain"
        assert record.is_operational is True
        assert record.category == FountainCategory.DRINKING_FOUNTAIN

    def test_element_missing_coordinate_is_dropped(self):
        records = parse_overpass_response(_body([
            {"type": "node", "id": 1, "lat": 40.0},
            {"type": "node", "id": 2, "lon": -74.0},
            {"type": "way", "id": 3, "tags": {"amenity": "drinking_water"}},
        ]))
        assert records == []

    def test_out_of_range_coordinate_is_dropped(self):
        records = parse_overpass_response(_body([
            {"type": "node", "id": 1, "lat": 91.0, "lon": 0.0},
            {"type": "node", "id": 2, "lat": 90.0, "lon": 180.0},
            {"type": "node", "id": 3, "lat": -90.0, "lon": -180.0},
        ]))
        assert [r.id for r in records] == ["2", "3"]

    def test_defaults_when_tags_absent(self):
        records = parse_overpass_response(_body([
            {"type": "node", "id": 777, "lat": 48.8566, "lon": 2.3522},
        ]))
        assert records[0].name == "Drinking Fountain"
        assert records[0].description == "Public drinking water"
        assert records[0].is_operational is True

    def test_operational_only_false_for_no(self):
        records = parse_overpass_response(_body([
            {"id": 1, "lat": 1.0, "lon": 1.0, "tags": {"operational": "no"}},
            {"id": 2, "lat": 1.0, "lon": 1.0, "tags": {"operational": "yes"}},
            {"id": 3, "lat": 1.0, "lon": 1.0, "tags": {"operational": "seasonal"}},
            {"id": 4, "lat": 1.0, "lon": 1.0, "tags": {"operational": None}},
        ]))
        assert [r.is_operational for r in records] == [False, True, True, True]

    def test_explicit_description_wins(self):
        records = parse_overpass_response(_body([{
            "id": 555, "lat": 51.5074, "lon": -0.1278,
            "tags": {
                "name": "Hyde Park Fountain", "wheelchair": "yes", "bottle": "yes",
                "operator": "Thames Water", "description": "Historic fountain",
            },
        }]))
        assert records[0].description == "Historic fountain"
        assert records[0].wheelchair_accessible is True

    def test_water_point_maps_to_water_station(self):
        records = parse_overpass_response(_body([
            {"id": 9, "lat": 1.0, "lon": 2.0, "tags": {"amenity": "water_point"}},
        ]))
        assert records[0].category == FountainCategory.WATER_STATION

    def test_duplicate_ids_keep_first(self):
        records = parse_overpass_response(_body([
            {"id": 111, "lat": 1.0, "lon": 1.0, "tags": {"name": "First"}},
            {"id": 111, "lat": 2.0, "lon": 2.0, "tags": {"name": "Second"}},
            {"id": 222, "lat": 3.0, "lon": 3.0},
        ]))
        assert [(r.id, r.name) for r in records] == [("111", "First"), ("222", "Drinking Fountain")]

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_overpass_response(b"{ invalid json }")

    def test_missing_elements_raises_parse_error(self):
        with pytest.raises(ParseError, match="schema"):
            parse_overpass_response(b'{"remark": "runtime error"}')


class TestDescription:
    def test_access_then_bottle_in_fixed_order(self):
        tags = OverpassTags(access="permit", bottle="yes")
        assert extract_description(tags) == "Access: permit • Bottle refill available"

    def test_all_three_clauses(self):
        tags = OverpassTags(access="customers", bottle="yes", wheelchair="yes")
        assert extract_description(tags) == (
            "Access: customers • Bottle refill available • Wheelchair accessible"
        )

    def test_public_access_is_not_mentioned(self):
        assert extract_description(OverpassTags(access="yes", wheelchair="yes")) == "Wheelchair accessible"

    def test_negative_values_ignored(self):
        tags = OverpassTags(bottle="no", wheelchair="limited")
        assert extract_description(tags) == "Public drinking water"

    def test_no_tags(self):
        assert extract_description(None) == "Public drinking water"


class TestClientErrors:
    def test_transport_failure_raises_network_error(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError("down")
        client = OverpassClient(session=session)

        with pytest.raises(NetworkError, match="down"):
            client.fetch(CENTER)
        assert session.post.call_count == 1

    def test_http_error_status_raises_network_error(self):
        client, _ = _client_returning(
            b"busy", status_error=requests.exceptions.HTTPError("429 Too Many Requests"),
        )
        with pytest.raises(NetworkError):
            client.fetch(CENTER)

    def test_empty_body_raises_empty_response_error(self):
        client, _ = _client_returning(b"")
        with pytest.raises(EmptyResponseError):
            client.fetch(CENTER)

    def test_malformed_body_raises_parse_error(self):
        client, _ = _client_returning(b"<html>gateway timeout</html>")
        with pytest.raises(ParseError):
            client.fetch(CENTER)

    def test_fetch_success(self):
        client, _ = _client_returning(_body([
            {"id": 1, "lat": 40.71, "lon": -74.0, "tags": {"name": "A"}},
            {"id": 2, "lat": 40.72, "lon": -74.01},
        ]))
        records = client.fetch(CENTER)
        assert [r.id for r in records] == ["1", "2"]
