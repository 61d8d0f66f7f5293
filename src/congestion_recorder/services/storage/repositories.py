"""Identity-keyed repositories for route patterns, stops and trips.

Lookups return the row or ``None``; creates are ``INSERT ... ON CONFLICT DO
NOTHING`` followed by a re-read, so two pipelines creating the same identity
at once both end up with the single stored row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import exists, select
from sqlalchemy.dialects import postgresql

from congestion_recorder.logging import get_logger
from congestion_recorder.models import RoutePattern, Stop, Trip, route_pattern_stops

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", RoutePattern, Stop, Trip)


class IdentityRepository(Generic[ModelT]):
    """Get and idempotent create for a model whose primary key is its identity."""

    model: type[ModelT]
    key: str

    async def get_by_id(self, session: AsyncSession, entity_id: str) -> ModelT | None:
        return await session.get(self.model, entity_id)

    async def create_by_id(self, session: AsyncSession, entity_id: str) -> ModelT:
        """Insert the identity unless it already exists and return the stored row."""
        stmt = (
            postgresql.insert(self.model)
            .values({self.key: entity_id})
            .on_conflict_do_nothing(index_elements=[self.key])
        )
        try:
            result = await session.execute(stmt)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

        if not result.rowcount:
            logger.debug(
                "Identity already stored by a concurrent writer",
                table=self.model.__tablename__,
                entity_id=entity_id,
            )

        row = await session.get(self.model, entity_id, populate_existing=True)
        if row is None:
            msg = f"{self.model.__name__} {entity_id} missing right after insert"
            raise LookupError(msg)
        return row


class RoutePatternRepository(IdentityRepository[RoutePattern]):
    model = RoutePattern
    key = "route_pattern_id"

    async def has_stop(self, session: AsyncSession, route_pattern_id: str, stop_id: str) -> bool:
        stmt = select(
            exists().where(
                route_pattern_stops.c.route_pattern_id == route_pattern_id,
                route_pattern_stops.c.stop_id == stop_id,
            )
        )
        return bool(await session.scalar(stmt))

    async def associate_stop(
        self, session: AsyncSession, route_pattern_id: str, stop_id: str
    ) -> bool:
        """Link a stop to a route pattern. Returns False when the link already existed."""
        stmt = (
            postgresql.insert(route_pattern_stops)
            .values(route_pattern_id=route_pattern_id, stop_id=stop_id)
            .on_conflict_do_nothing(index_elements=["route_pattern_id", "stop_id"])
        )
        try:
            result: Any = await session.execute(stmt)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return bool(result.rowcount)


class StopRepository(IdentityRepository[Stop]):
    model = Stop
    key = "stop_id"


class TripRepository(IdentityRepository[Trip]):
    model = Trip
    key = "trip_id"
