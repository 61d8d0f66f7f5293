"""SQLAlchemy models for the HSL Congestion Recorder."""

from congestion_recorder.models.base import Base
from congestion_recorder.models.observations import TripStop
from congestion_recorder.models.transit import RoutePattern, Stop, Trip, route_pattern_stops

__all__ = [
    "Base",
    "RoutePattern",
    "Stop",
    "Trip",
    "TripStop",
    "route_pattern_stops",
]
