"""Resolve realtime departures into routing API route pattern and trip ids."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from congestion_recorder.exceptions import (
    NotFoundError,
    RemoteServiceUnavailableError,
    RoutePatternIdNotFoundError,
    TripIdNotFoundError,
)
from congestion_recorder.logging import get_logger
from congestion_recorder.services.hfp.identifiers import to_gtfs_id

if TYPE_CHECKING:
    from congestion_recorder.services.routing.client import RoutingApiClient

logger = get_logger(__name__)

ROUTE_PATTERN_QUERY = """
query FuzzyTripPattern($route: String!, $direction: Int, $date: String!, $time: Int!) {
  fuzzyTrip(route: $route, direction: $direction, date: $date, time: $time) {
    pattern {
      code
    }
  }
}
"""

TRIP_QUERY = """
query FuzzyTripId($route: String!, $direction: Int, $date: String!, $time: Int!) {
  fuzzyTrip(route: $route, direction: $direction, date: $date, time: $time) {
    gtfsId
  }
}
"""


class _FuzzyTripResolver(ABC):
    """Shared fuzzyTrip lookup; subclasses pick the query and the extracted field."""

    query: str
    not_found_error: type[NotFoundError]
    label: str

    def __init__(self, client: RoutingApiClient) -> None:
        self._client = client

    async def find_id_by_departure(
        self,
        route_id: str | None,
        direction_id: int,
        departure_date: str,
        departure_time_seconds: int,
    ) -> str:
        """Find the id of the trip best matching a departure.

        Args:
            route_id: Realtime route id, e.g. ``"1007"``.
            direction_id: Routing API direction (0 or 1).
            departure_date: Service day as ``YYYY-MM-DD``.
            departure_time_seconds: Seconds since start of the service day.

        Raises:
            ParseError: The realtime route id is missing.
            NotFoundError: No trip matches (subclass specific to the resolver).
            RemoteServiceUnavailableError: Any other lookup failure.
        """
        route_gtfs_id = to_gtfs_id(route_id)

        try:
            variables = {
                "route": route_gtfs_id,
                "direction": direction_id,
                "date": departure_date,
                "time": departure_time_seconds,
            }
            data = await self._client.query(self.query, variables)
            trip = data.get("fuzzyTrip")
            if not trip:
                msg = (
                    f"Trip details not found for route ID {route_gtfs_id}, "
                    f"direction {direction_id}, departure date {departure_date}, "
                    f"departure time {departure_time_seconds}"
                )
                raise self.not_found_error(msg)
            resolved_id = self._extract_id(trip)
        except NotFoundError:
            raise
        except Exception as exc:
            msg = f"Failed to find {self.label} from routing API. Reason: '{exc}'"
            raise RemoteServiceUnavailableError(msg) from exc

        logger.debug(
            "Departure resolved",
            kind=self.label,
            route_id=route_gtfs_id,
            direction_id=direction_id,
            departure_date=departure_date,
            departure_time_seconds=departure_time_seconds,
            resolved_id=resolved_id,
        )
        return resolved_id

    @abstractmethod
    def _extract_id(self, trip: dict[str, Any]) -> str:
        """Pick the resolved id out of a fuzzyTrip result."""


class RoutePatternIdResolver(_FuzzyTripResolver):
    """Resolves a departure into its GTFS route pattern code."""

    query = ROUTE_PATTERN_QUERY
    not_found_error = RoutePatternIdNotFoundError
    label = "route pattern ID"

    def _extract_id(self, trip: dict[str, Any]) -> str:
        return str(trip["pattern"]["code"])


class TripIdResolver(_FuzzyTripResolver):
    """Resolves a departure into its GTFS trip id."""

    query = TRIP_QUERY
    not_found_error = TripIdNotFoundError
    label = "trip ID"

    def _extract_id(self, trip: dict[str, Any]) -> str:
        return str(trip["gtfsId"])
