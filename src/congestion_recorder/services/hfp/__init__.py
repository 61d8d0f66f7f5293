"""Parsing and normalization of HSL High-Frequency Positioning (HFP v2) messages."""

from congestion_recorder.services.hfp.departure import Departure, DepartureTimeNormalizer
from congestion_recorder.services.hfp.identifiers import is_end_of_line, to_gtfs_id
from congestion_recorder.services.hfp.payload import DeparturePayload, parse_payload
from congestion_recorder.services.hfp.topic import HfpTopic, parse_topic

__all__ = [
    "Departure",
    "DeparturePayload",
    "DepartureTimeNormalizer",
    "HfpTopic",
    "is_end_of_line",
    "parse_payload",
    "parse_topic",
    "to_gtfs_id",
]
