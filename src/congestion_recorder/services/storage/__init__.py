"""Persistence of transit entities and trip stop observations."""

from congestion_recorder.services.storage.materializer import EntityMaterializer
from congestion_recorder.services.storage.recorder import TripStopRecorder
from congestion_recorder.services.storage.repositories import (
    RoutePatternRepository,
    StopRepository,
    TripRepository,
)

__all__ = [
    "EntityMaterializer",
    "RoutePatternRepository",
    "StopRepository",
    "TripRepository",
    "TripStopRecorder",
]
