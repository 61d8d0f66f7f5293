"""Fuzzy trip matching against the Digitransit routing API."""

from congestion_recorder.services.routing.client import RoutingApiClient, RoutingApiError
from congestion_recorder.services.routing.resolvers import RoutePatternIdResolver, TripIdResolver

__all__ = [
    "RoutePatternIdResolver",
    "RoutingApiClient",
    "RoutingApiError",
    "TripIdResolver",
]
