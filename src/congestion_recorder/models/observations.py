"""Realtime observation models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from congestion_recorder.models.base import Base


class TripStop(Base):
    """A vehicle on a trip seen at a stop, with or without its doors open.

    Append-only: repeated sightings of the same trip at the same stop each get
    their own row so dwell time can be derived from the sequence.
    """

    __tablename__ = "trip_stops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trip_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("trips.trip_id", ondelete="CASCADE"),
        nullable=False,
    )
    stop_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("stops.stop_id", ondelete="CASCADE"),
        nullable=False,
    )
    seen_at_stop: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    doors_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_trip_stops_trip_stop", "trip_id", "stop_id"),
        Index("ix_trip_stops_seen_at", "seen_at_stop"),
    )
