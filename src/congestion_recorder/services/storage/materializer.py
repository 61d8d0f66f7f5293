"""Get-or-create of the transit entities referenced by an observation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from congestion_recorder.exceptions import CouldNotMaterializeEntityError
from congestion_recorder.logging import get_logger
from congestion_recorder.services.hfp.identifiers import to_gtfs_id
from congestion_recorder.services.storage.repositories import (
    IdentityRepository,
    RoutePatternRepository,
    StopRepository,
    TripRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from congestion_recorder.models import RoutePattern, Stop, Trip

logger = get_logger(__name__)


class EntityMaterializer:
    """Ensures route patterns, stops and trips exist before they are referenced."""

    def __init__(
        self,
        route_patterns: RoutePatternRepository | None = None,
        stops: StopRepository | None = None,
        trips: TripRepository | None = None,
    ) -> None:
        self.route_patterns = route_patterns or RoutePatternRepository()
        self.stops = stops or StopRepository()
        self.trips = trips or TripRepository()

    async def get_or_create_route_pattern(
        self, session: AsyncSession, route_pattern_id: str
    ) -> RoutePattern:
        return await self._get_or_create(session, self.route_patterns, route_pattern_id)

    async def get_or_create_stop(self, session: AsyncSession, realtime_stop_id: str | None) -> Stop:
        """Materialize a stop given its realtime id (e.g. ``"1140447"``)."""
        stop_id = to_gtfs_id(realtime_stop_id)
        return await self._get_or_create(session, self.stops, stop_id)

    async def get_or_create_trip(self, session: AsyncSession, trip_id: str) -> Trip:
        return await self._get_or_create(session, self.trips, trip_id)

    async def ensure_stop_associated(
        self, session: AsyncSession, route_pattern_id: str, stop_id: str
    ) -> bool:
        """Associate a stop with a route pattern unless already associated.

        Returns:
            True if a new association was stored.
        """
        try:
            if await self.route_patterns.has_stop(session, route_pattern_id, stop_id):
                return False
            created = await self.route_patterns.associate_stop(session, route_pattern_id, stop_id)
        except Exception as exc:
            msg = (
                f"Failed to associate stop {stop_id} to route pattern {route_pattern_id}. "
                f"Reason: {exc}"
            )
            raise CouldNotMaterializeEntityError(msg) from exc

        if created:
            logger.info(
                "Stop associated to route pattern",
                route_pattern_id=route_pattern_id,
                stop_id=stop_id,
            )
        return created

    async def _get_or_create(
        self, session: AsyncSession, repository: IdentityRepository[Any], entity_id: str
    ) -> Any:
        entity = repository.model.__name__
        try:
            row = await repository.get_by_id(session, entity_id)
            if row is not None:
                return row
            row = await repository.create_by_id(session, entity_id)
        except Exception as exc:
            msg = f"Failed to get or create {entity} {entity_id}. Reason: {exc}"
            raise CouldNotMaterializeEntityError(msg) from exc

        logger.info("Entity materialized", entity=entity, entity_id=entity_id)
        return row
