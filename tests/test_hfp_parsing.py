"""Tests for HFP topic, payload and identifier handling."""

from __future__ import annotations

import json

import pytest

from congestion_recorder.exceptions import DepartureNormalizationError, ParseError, PayloadParseError
from congestion_recorder.services.hfp.identifiers import (
    is_end_of_line,
    to_gtfs_id,
    to_routing_direction_id,
)
from congestion_recorder.services.hfp.payload import parse_payload
from congestion_recorder.services.hfp.topic import HfpTopic, parse_topic

from .fixtures.hfp_fixture import build_payload, build_topic


class TestParseTopic:
    def test_extracts_fields(self) -> None:
        topic = "/hfp/v2/journey/ongoing/vp/bus/0022/00854/4611/1/Leppävaara/19:56/4150264/5/60;24/28/65/06"

        assert parse_topic(topic) == HfpTopic(
            event_type="vp", route_id="4611", next_stop_id="4150264"
        )

    def test_end_of_line_topic(self) -> None:
        parsed = parse_topic(build_topic(event_type="dep", next_stop="EOL"))

        assert parsed.event_type == "dep"
        assert is_end_of_line(parsed.next_stop_id)

    def test_short_topic_yields_none_fields(self) -> None:
        assert parse_topic("/hfp/v2/journey/ongoing/vp") == HfpTopic(
            event_type="vp", route_id=None, next_stop_id=None
        )

    def test_empty_segments_are_none(self) -> None:
        parsed = parse_topic("/hfp/v2/journey/ongoing/vp/tram/0040/00412//1/Pasila/08:15//")

        assert parsed.route_id is None
        assert parsed.next_stop_id is None


class TestParsePayload:
    def test_selects_upper_cased_event(self) -> None:
        payload = parse_payload(build_payload(event_type="vp", drst=0), "vp")

        assert payload.direction == "1"
        assert payload.seen_at == "2019-05-30T05:20:03.520Z"
        assert payload.departure_date == "2019-05-30"
        assert payload.departure_time == "08:15"
        assert payload.has_doors_open is False

    def test_missing_event_key_gives_empty_payload(self) -> None:
        payload = parse_payload(json.dumps({"ARR": {"dir": "2"}}).encode(), "vp")

        assert payload.direction is None
        assert payload.seen_at is None
        assert payload.has_doors_open is False

    def test_absent_fields_are_none(self) -> None:
        payload = parse_payload(build_payload(drst=None, start=None), "vp")

        assert payload.departure_time is None
        assert payload.doors_open is None

    def test_accepts_str_body(self) -> None:
        payload = parse_payload('{"VP": {"drst": 1}}', "vp")

        assert payload.has_doors_open is True

    @pytest.mark.parametrize(
        "body",
        [b"{not json", b"[1, 2]", b'"VP"', b"\xff\xfe", b'{"VP": [1]}'],
    )
    def test_malformed_bodies_raise(self, body: bytes) -> None:
        with pytest.raises(PayloadParseError):
            parse_payload(body, "vp")

    def test_missing_event_type_raises(self) -> None:
        with pytest.raises(PayloadParseError, match="no event type"):
            parse_payload(build_payload(), None)


class TestIdentifiers:
    def test_gtfs_id_prefix(self) -> None:
        assert to_gtfs_id("1007") == "HSL:1007"
        assert to_gtfs_id("HSL:1007") == "HSL:1007"

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_gtfs_id_raises(self, value: str | None) -> None:
        with pytest.raises(ParseError):
            to_gtfs_id(value)

    @pytest.mark.parametrize(("realtime", "routing"), [("1", 0), ("2", 1), (1, 0), (2, 1)])
    def test_direction_translation(self, realtime: str | int, routing: int) -> None:
        assert to_routing_direction_id(realtime) == routing

    @pytest.mark.parametrize("value", [None, "0", "3", "north"])
    def test_invalid_direction_raises(self, value: str | None) -> None:
        with pytest.raises(DepartureNormalizationError):
            to_routing_direction_id(value)

    def test_end_of_line_sentinel(self) -> None:
        assert is_end_of_line("EOL")
        assert not is_end_of_line("1140447")
        assert not is_end_of_line(None)
