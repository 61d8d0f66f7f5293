"""Append-only writer for trip stop observations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from congestion_recorder.exceptions import CouldNotSaveTripStopError
from congestion_recorder.models import TripStop

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class TripStopRecorder:
    """Records where and when a vehicle stopped, and whether its doors were open."""

    async def record_trip_stop(
        self,
        session: AsyncSession,
        trip_id: str,
        stop_id: str,
        seen_at_stop: datetime,
        doors_open: bool,
    ) -> TripStop:
        """Insert a new observation row; never updates an existing one.

        Raises:
            CouldNotSaveTripStopError: The insert or commit failed.
        """
        trip_stop = TripStop(
            trip_id=trip_id,
            stop_id=stop_id,
            seen_at_stop=seen_at_stop,
            doors_open=doors_open,
        )
        try:
            session.add(trip_stop)
            await session.commit()
        except Exception as exc:
            await session.rollback()
            msg = f"Failed to record trip stop. Reason: {exc}"
            raise CouldNotSaveTripStopError(msg) from exc
        return trip_stop
